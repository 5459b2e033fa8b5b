from flask_wtf import FlaskForm
from wtforms import BooleanField, PasswordField, StringField
from wtforms.validators import DataRequired, Length, ValidationError

_COMMON_PASSWORDS = {
    "password",
    "12345678",
    "123456789",
    "1234567890",
    "qwerty123",
    "password1",
    "iloveyou",
    "letmein1",
    "trustno1",
    "bookworm",
}


def _validate_password_strength(form, field):
    password = field.data
    if not password or len(password) < 8:
        return  # Length validator handles this
    if password.lower() in _COMMON_PASSWORDS:
        raise ValidationError("This password is too common. Please choose a stronger password.")
    if not password.isprintable():
        raise ValidationError("Password contains invalid characters.")


class LoginForm(FlaskForm):
    username = StringField("Username", validators=[DataRequired(), Length(max=64)])
    password = PasswordField("Password", validators=[DataRequired()])
    remember_me = BooleanField("Remember me")


class AdminLoginForm(FlaskForm):
    password = PasswordField("Password", validators=[DataRequired()])
