from flask_wtf import FlaskForm
from wtforms import BooleanField, PasswordField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, Email, EqualTo, Length, Optional, Regexp

from journal_press.models import SubmissionStatus


class LoginForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), Email()])
    password = PasswordField('Password', validators=[DataRequired()])
    remember = BooleanField('Remember Me')


class RegistrationForm(FlaskForm):
    full_name = StringField('Full name', validators=[Optional(), Length(max=200)])
    email = StringField('Email', validators=[DataRequired(), Email()])
    password = PasswordField('Password', validators=[
        DataRequired(),
        Length(min=8, message="Password must be at least 8 characters")
    ])
    confirm_password = PasswordField('Confirm Password', validators=[DataRequired(), EqualTo('password')])


class StatusForm(FlaskForm):
    status = SelectField(
        'Status',
        choices=[(s.value, s.label) for s in SubmissionStatus],
        validators=[DataRequired(message="Status is required")]
    )
    editor_notes = TextAreaField('Editor notes', validators=[
        Optional(),
        Length(max=5000, message="Editor notes are too long (max 5000 characters)")
    ])


class PublishForm(FlaskForm):
    issue_id = StringField('Issue', validators=[DataRequired(message="Please select an issue.")])
    pages = StringField('Pages', validators=[
        Optional(),
        Regexp(r'^[\d\-–\s]+$', message="Pages must be numbers or ranges (e.g., 25-30)")
    ])
    doi = StringField('DOI', validators=[
        Optional(),
        Regexp(
            r'^10\.\d{4,9}/[\S]+$',
            message="Invalid DOI format (should start with 10., e.g., 10.1234/example)"
        )
    ])
    final_pdf_ref = StringField('Final PDF path', validators=[Optional(), Length(max=500)])


def first_error(form):
    """Return the first validation message of a form, for JSON error bodies."""
    for field_name, errors in form.errors.items():
        if errors:
            return field_name, errors[0]
    return None, "Invalid request."
