from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import ImmutableMultiDict
from wtforms import StringField, TextAreaField, DateField, PasswordField
from wtforms.validators import DataRequired, Optional, Email, Length, Regexp, AnyOf

from errors import ValidationError
from models import NOMINATION_APPROVED, NOMINATION_REJECTED, VOTER_ACTIVE, VOTER_INACTIVE

PHONE = Regexp(r'^\+?\d{10,15}$', message='Enter a valid phone number.')
CODE = Regexp(r'^\d{6}$', message='Code must be 6 digits.')
BLOOD_GROUPS = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']


def validated(form_class):
    """Builds the form from the request body and raises on the first error."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = request.form.to_dict()
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object.')

    # JSON numbers and booleans arrive as non-strings
    formdata = ImmutableMultiDict({
        key: str(value) for key, value in payload.items()
        if value is not None and not isinstance(value, (dict, list))
    })
    form = form_class(formdata=formdata)
    if not form.validate():
        for field_name, errors in form.errors.items():
            raise ValidationError(f'{field_name}: {errors[0]}')
    return form


class EmailForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), Email()])


class EmailCodeForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), Email()])
    code = StringField('Code', validators=[DataRequired(), CODE])


class PhoneForm(FlaskForm):
    phone = StringField('Phone', validators=[DataRequired(), PHONE])


class SubAdminLoginForm(FlaskForm):
    phone = StringField('Phone', validators=[DataRequired(), PHONE])
    password = PasswordField('Password', validators=[DataRequired()])
    code = StringField('Code', validators=[DataRequired(), CODE])


class SubAdminForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(), Length(max=100)])
    email = StringField('Email', validators=[DataRequired(), Email()])
    phone = StringField('Phone', validators=[DataRequired(), PHONE])
    password = PasswordField('Password', validators=[DataRequired(), Length(min=8)])


class VoterForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(), Length(max=100)])
    email = StringField('Email', validators=[DataRequired(), Email()])
    phone = StringField('Phone', validators=[DataRequired(), PHONE])
    date_of_birth = DateField('Date of Birth', format='%Y-%m-%d', validators=[DataRequired()])
    district = StringField('District', validators=[DataRequired(), Length(max=80)])
    sub_district = StringField('Sub-district', validators=[DataRequired(), Length(max=80)])
    union = StringField('Union', validators=[DataRequired(), Length(max=80)])
    blood_group = StringField('Blood Group', validators=[Optional(), AnyOf(BLOOD_GROUPS)])


class EditVoterForm(FlaskForm):
    name = StringField('Name', validators=[Optional(), Length(max=100)])
    email = StringField('Email', validators=[Optional(), Email()])
    phone = StringField('Phone', validators=[Optional(), PHONE])
    date_of_birth = DateField('Date of Birth', format='%Y-%m-%d', validators=[Optional()])
    district = StringField('District', validators=[Optional(), Length(max=80)])
    sub_district = StringField('Sub-district', validators=[Optional(), Length(max=80)])
    union = StringField('Union', validators=[Optional(), Length(max=80)])
    blood_group = StringField('Blood Group', validators=[Optional(), AnyOf(BLOOD_GROUPS)])
    status = StringField('Status', validators=[Optional(), AnyOf([VOTER_ACTIVE, VOTER_INACTIVE])])


class PaymentForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(), Length(max=100)])
    email = StringField('Email', validators=[DataRequired(), Email()])
    phone = StringField('Phone', validators=[Optional(), PHONE])


class NominationForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(), Length(max=100)])
    email = StringField('Email', validators=[DataRequired(), Email()])
    phone = StringField('Phone', validators=[Optional(), PHONE])
    symbol = StringField('Symbol', validators=[DataRequired(), Length(max=60)])
    manifesto = TextAreaField('Manifesto', validators=[Optional(), Length(max=5000)])
    transaction_id = StringField('Transaction ID', validators=[Optional(), Length(max=64)])


class ReviewForm(FlaskForm):
    status = StringField('Status', validators=[DataRequired(), AnyOf([NOMINATION_APPROVED, NOMINATION_REJECTED])])


class VoteForm(FlaskForm):
    nomination_id = StringField('Nomination ID', validators=[DataRequired(), Length(max=40)])
