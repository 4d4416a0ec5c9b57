"""Budget module schemas and forms."""
from decimal import Decimal, InvalidOperation
from wtforms import StringField, DecimalField, IntegerField, SelectField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional, Regexp
from app.core.errors import ValidationError
from app.core.forms import APIForm, optional_code
from app.core.money import SUPPORTED_CURRENCIES, to_cents
from .allocation import ALLOCATION_TYPES, PERCENTAGE


class RUDecimalField(DecimalField):
    """DecimalField с поддержкой русской локали (запятые → точки, пробелы)."""

    def process_formdata(self, valuelist):
        if valuelist and valuelist[0] not in (None, ''):
            try:
                normalized_value = str(valuelist[0]).replace(' ', '').replace(',', '.')
                self.data = Decimal(normalized_value)
            except (ValueError, InvalidOperation):
                self.data = None
                raise ValueError(self.gettext('Not a valid decimal value.'))
        else:
            self.data = None


class NullableIntegerField(IntegerField):
    """IntegerField that accepts JSON null as 'no value'."""

    def process_formdata(self, valuelist):
        if not valuelist or valuelist[0] in (None, ''):
            self.data = None
            return
        try:
            self.data = int(valuelist[0])
        except (ValueError, TypeError):
            self.data = None
            raise ValueError(self.gettext('Not a valid integer value.'))


COLOR_PATTERN = r'^#[0-9A-Fa-f]{6}$'


class CategoryForm(APIForm):
    """Income/expense category creation/edit form."""
    name = StringField('Название', validators=[
        DataRequired(message='Название обязательно'),
        Length(min=1, max=100, message='Название должно быть от 1 до 100 символов')
    ])
    icon = StringField('Иконка', validators=[
        Optional(),
        Length(max=50)
    ])
    color = StringField('Цвет', validators=[
        Optional(),
        Regexp(COLOR_PATTERN, message='Цвет должен быть в формате #RRGGBB')
    ])


class IncomeForm(APIForm):
    """Income creation/edit form."""
    amount = RUDecimalField('Сумма')
    currency = SelectField('Валюта', choices=[
        (curr, curr) for curr in SUPPORTED_CURRENCIES
    ], coerce=optional_code, validators=[Optional()], validate_choice=False)
    category_id = NullableIntegerField('Категория', validators=[Optional()])
    description = TextAreaField('Описание', validators=[
        Optional(),
        Length(max=500, message='Описание не должно превышать 500 символов')
    ])

    def validate_amount(self, field):
        if field.data is None:
            raise ValueError('Сумма обязательна')
        if field.data.is_finite() and field.data < 0:
            raise ValueError('Сумма не может быть отрицательной')
        try:
            field.data = to_cents(field.data)
        except ValueError:
            raise ValueError('Сумма должна быть меньше 1 000 000 000 000')

    def validate_currency(self, field):
        if field.data and field.data not in SUPPORTED_CURRENCIES:
            raise ValueError(f'Валюта {field.data} не поддерживается')


class AllocationData:
    """Allocation rule data validation schema."""

    @staticmethod
    def validate(data: dict) -> dict:
        """Validate and clean one desired allocation rule."""
        if not isinstance(data, dict):
            raise ValueError('Allocation must be an object')

        cleaned = {}

        if data.get('income_category_id') in (None, ''):
            raise ValueError('Field income_category_id is required')
        try:
            cleaned['income_category_id'] = int(data['income_category_id'])
        except (ValueError, TypeError):
            raise ValueError('Invalid income category ID')

        allocation_type = data.get('allocation_type', PERCENTAGE)
        if allocation_type not in ALLOCATION_TYPES:
            raise ValueError(f'Invalid allocation type: {allocation_type}')
        cleaned['allocation_type'] = allocation_type

        if data.get('allocation_value') in (None, ''):
            raise ValueError('Field allocation_value is required')
        try:
            value = to_cents(str(data['allocation_value']).replace(' ', '').replace(',', '.'))
        except ValueError:
            raise ValueError('Invalid allocation value')
        if value < 0:
            raise ValueError('Allocation value must be non-negative')
        cleaned['allocation_value'] = value

        return cleaned

    @staticmethod
    def validate_list(items) -> list:
        """Validate a desired-state list; any bad item rejects the whole list."""
        if not isinstance(items, list):
            raise ValidationError('Field allocations must be a list')

        cleaned = []
        errors = {}
        for index, item in enumerate(items):
            try:
                cleaned.append(AllocationData.validate(item))
            except ValueError as e:
                errors[str(index)] = str(e)

        if errors:
            raise ValidationError('Invalid allocations', details=errors)
        return cleaned
