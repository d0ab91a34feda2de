# forms.py
from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import ImmutableMultiDict
from wtforms import IntegerField, PasswordField, StringField
from wtforms.fields.core import UnboundField
from wtforms.validators import DataRequired, Email, Length, Optional, Regexp

from .errors import ValidationFailed

OTP_PATTERN = Regexp(r'^\d{6}$', message='Code must be 6 digits')


class APIForm(FlaskForm):
    """JSON request body; bearer-token API, so no CSRF token"""

    class Meta:
        csrf = False

    @classmethod
    def from_json(cls):
        """Build the form from the JSON body, rejecting values of the wrong shape.

        The body must be an object. Declared fields take strings (integer
        fields also take JSON integers); null counts as absent and undeclared
        keys are ignored.
        """
        payload = request.get_json(silent=True) if request.get_data(cache=True) else {}
        if not isinstance(payload, dict):
            raise ValidationFailed({'body': ['Expected a JSON object.']})

        values, errors = {}, {}
        for name, value in payload.items():
            unbound = getattr(cls, name, None)
            if not isinstance(unbound, UnboundField) or value is None:
                continue
            if isinstance(value, str):
                values[name] = value
            elif (issubclass(unbound.field_class, IntegerField)
                  and isinstance(value, int) and not isinstance(value, bool)):
                values[name] = str(value)
            else:
                errors[name] = ['Invalid value type.']
        if errors:
            raise ValidationFailed(errors)

        return cls(formdata=ImmutableMultiDict(values))

    def validated(self):
        if not self.validate_on_submit():
            raise ValidationFailed(self.errors)
        return self


class RegisterForm(APIForm):
    email = StringField('Email', validators=[DataRequired(), Email(), Length(max=120)])
    # bcrypt only looks at the first 72 bytes
    password = PasswordField('Password', validators=[DataRequired(), Length(min=6, max=72)])


class LoginForm(APIForm):
    email = StringField('Email', validators=[DataRequired(), Length(max=120)])
    password = PasswordField('Password', validators=[DataRequired(), Length(max=72)])
    # checked inside the throttled login, so bad codes count as failures
    token = StringField('OTP Code', validators=[Optional()])


class OTPForm(APIForm):
    token = StringField('OTP Code', validators=[DataRequired(), OTP_PATTERN])


class ProjectForm(APIForm):
    name = StringField('Name', validators=[DataRequired(), Length(min=1, max=100)])
    color = StringField('Color', validators=[Optional(), Length(max=16)])


class DailyTaskForm(APIForm):
    projectId = IntegerField('Project', validators=[DataRequired()])
    title = StringField('Title', validators=[DataRequired(), Length(min=1, max=200)])


class DailyTaskTitleForm(APIForm):
    title = StringField('Title', validators=[DataRequired(), Length(min=1, max=200)])
