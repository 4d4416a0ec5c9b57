"""Base form for JSON request bodies."""
from flask_wtf import FlaskForm
from wtforms import BooleanField
from app.core.errors import ValidationError


class APIForm(FlaskForm):
    """Form fed from a JSON body; CSRF is enforced per request by CSRFProtect."""

    class Meta:
        csrf = False

    def validated(self) -> dict:
        """Return cleaned data or raise ValidationError with field messages."""
        if not self.validate_on_submit():
            raise ValidationError('Invalid data', details=self.errors)
        return {name: field.data for name, field in self._fields.items()}


class JSONBooleanField(BooleanField):
    """BooleanField fed from JSON: true/false/"true"/"false", absent means None."""

    def process_formdata(self, valuelist):
        if not valuelist or valuelist[0] is None:
            self.data = None
        elif isinstance(valuelist[0], bool):
            self.data = valuelist[0]
        else:
            self.data = str(valuelist[0]).strip().lower() in ('true', '1', 'yes', 'on')


def optional_code(value):
    """SelectField coerce: JSON null stays None, codes are upper-cased."""
    if value is None or value == '':
        return None
    return str(value).strip().upper()


def optional_str(value):
    """SelectField coerce: JSON null stays None."""
    if value is None or value == '':
        return None
    return str(value).strip()
