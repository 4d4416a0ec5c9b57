"""Auth module schemas and forms."""
from wtforms import PasswordField, SelectField, StringField
from wtforms.validators import DataRequired, EqualTo, Length, Optional, Regexp
from app.core.money import SUPPORTED_CURRENCIES
from app.core.forms import APIForm, JSONBooleanField, optional_code, optional_str

EMAIL_PATTERN = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'
THEMES = ('light', 'dark')


class LoginForm(APIForm):
    """Email login form."""
    email = StringField('Email', validators=[
        DataRequired(message='Email обязателен')
    ])
    password = PasswordField('Пароль', validators=[
        DataRequired(message='Пароль обязателен')
    ])
    remember_me = JSONBooleanField('Запомнить меня')


class RegisterForm(APIForm):
    """Email registration form."""
    name = StringField('Имя', validators=[
        DataRequired(message='Имя обязательно'),
        Length(min=2, max=100, message='Имя должно быть от 2 до 100 символов')
    ])
    email = StringField('Email', validators=[
        DataRequired(message='Email обязателен'),
        Length(max=120),
        Regexp(EMAIL_PATTERN, message='Некорректный email')
    ])
    password = PasswordField('Пароль', validators=[
        DataRequired(message='Пароль обязателен'),
        Length(min=6, message='Пароль должен быть не менее 6 символов')
    ])
    password_confirm = PasswordField('Подтвердите пароль', validators=[
        DataRequired(message='Подтверждение пароля обязательно'),
        EqualTo('password', message='Пароли не совпадают')
    ])


class ChangePasswordForm(APIForm):
    """Change password form."""
    current_password = PasswordField('Текущий пароль', validators=[
        DataRequired(message='Текущий пароль обязателен')
    ])
    new_password = PasswordField('Новый пароль', validators=[
        DataRequired(message='Новый пароль обязателен'),
        Length(min=6, message='Пароль должен быть не менее 6 символов')
    ])
    new_password_confirm = PasswordField('Подтвердите новый пароль', validators=[
        DataRequired(message='Подтверждение нового пароля обязательно'),
        EqualTo('new_password', message='Пароли не совпадают')
    ])


class ProfileForm(APIForm):
    """Partial profile update; absent fields stay unchanged."""
    name = StringField('Имя', validators=[
        Optional(),
        Length(min=2, max=100, message='Имя должно быть от 2 до 100 символов')
    ])
    theme = SelectField('Тема', choices=[(theme, theme) for theme in THEMES],
                        coerce=optional_str, validators=[Optional()], validate_choice=False)
    currency = SelectField('Валюта', choices=[(code, code) for code in SUPPORTED_CURRENCIES],
                           coerce=optional_code, validators=[Optional()], validate_choice=False)
    onboarding_completed = JSONBooleanField('Онбординг пройден')
    tutorial_completed = JSONBooleanField('Обучение пройдено')

    def validate_theme(self, field):
        if field.data and field.data not in THEMES:
            raise ValueError(f'Неизвестная тема {field.data}')

    def validate_currency(self, field):
        if field.data and field.data not in SUPPORTED_CURRENCIES:
            raise ValueError(f'Валюта {field.data} не поддерживается')


class TelegramAuthData:
    """Telegram login widget payload schema."""

    @staticmethod
    def validate(data) -> bool:
        """Check that the payload carries an integer id, auth_date and a hash."""
        if not isinstance(data, dict):
            return False

        for field in ('id', 'auth_date', 'hash'):
            if data.get(field) in (None, ''):
                return False

        try:
            int(data['id'])
            int(data['auth_date'])
        except (ValueError, TypeError):
            return False

        return True
