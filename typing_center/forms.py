"""
typing_center/forms.py

Flask-WTF forms used to validate JSON request bodies.

The API is called with JSON, not HTML forms, so bind_json_form() flattens the
body into a MultiDict and feeds it to the form as formdata. Nested values
(line items, step logs) are validated elsewhere (ledger/workflow).

Choice fields are StringField + AnyOf so that Optional() can short-circuit
on missing values.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Type

from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import BooleanField, DateField, DecimalField, IntegerField, PasswordField, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, EqualTo, InputRequired, Length, Optional as OptionalValue, Regexp

from .catalog import APPLICATION_TYPES, EMIRATES
from .errors import ValidationError
from .ledger import PAYMENT_METHODS
from .models import Client, Quotation, User

EMAIL_RE = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


# ---------------------------------------------------------------------
# JSON binding
# ---------------------------------------------------------------------
def _flatten(body: Dict[str, Any]) -> MultiDict:
    pairs = []
    for key, value in body.items():
        if value is None or isinstance(value, (list, dict)):
            continue
        if isinstance(value, bool):
            value = "y" if value else ""
        pairs.append((key, str(value)))
    return MultiDict(pairs)


def json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def bind_json_form(form_cls: Type[FlaskForm], data: Optional[Dict[str, Any]] = None) -> FlaskForm:
    """
    Build and validate a form from the JSON body.

    Raises ValidationError with the per-field errors when validation fails.
    """
    body = json_body() if data is None else data
    form = form_cls(formdata=_flatten(body), meta={"csrf": False})
    if not form.validate():
        raise ValidationError("Invalid input.", payload={"errors": form.errors})
    return form


def submitted(form: FlaskForm, data: Dict[str, Any]) -> Dict[str, Any]:
    """Form data restricted to the keys actually present in the body (for partial updates)."""
    return {name: field.data for name, field in form._fields.items() if name in data}


# ---------------------------------------------------------------------
# Auth & users
# ---------------------------------------------------------------------
class LoginForm(FlaskForm):
    username = StringField("Username", validators=[DataRequired(), Length(max=80)])
    password = PasswordField("Password", validators=[DataRequired()])


class ChangePasswordForm(FlaskForm):
    current_password = PasswordField("Current password", validators=[DataRequired()])
    new_password = PasswordField("New password", validators=[DataRequired(), Length(min=6, max=128)])


class PasswordResetRequestForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Regexp(EMAIL_RE, message="Invalid email.")])


class PasswordResetForm(FlaskForm):
    token = StringField("Token", validators=[DataRequired()])
    new_password = PasswordField("New password", validators=[DataRequired(), Length(min=6, max=128)])
    confirm_password = PasswordField(
        "Confirm password",
        validators=[OptionalValue(), EqualTo("new_password", message="Passwords do not match.")],
    )


class UserForm(FlaskForm):
    username = StringField("Username", validators=[DataRequired(), Length(max=80)])
    password = PasswordField("Password", validators=[OptionalValue(), Length(min=6, max=128)])
    full_name = StringField("Full name", validators=[DataRequired(), Length(max=150)])
    email = StringField("Email", validators=[OptionalValue(), Regexp(EMAIL_RE, message="Invalid email.")])
    phone = StringField("Phone", validators=[OptionalValue(), Length(max=50)])
    role = StringField("Role", validators=[OptionalValue(), AnyOf(User.ROLES)])
    is_active = BooleanField("Active")


class UserUpdateForm(UserForm):
    username = StringField("Username", validators=[OptionalValue(), Length(max=80)])
    full_name = StringField("Full name", validators=[OptionalValue(), Length(max=150)])


# ---------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------
class ClientForm(FlaskForm):
    client_type = StringField("Client type", validators=[OptionalValue(), AnyOf(Client.TYPES)])
    company_name = StringField("Company name", validators=[OptionalValue(), Length(max=255)])
    contact_person = StringField("Contact person", validators=[OptionalValue(), Length(max=255)])
    email = StringField("Email", validators=[OptionalValue(), Regexp(EMAIL_RE, message="Invalid email.")])
    phone = StringField("Phone", validators=[OptionalValue(), Length(max=50)])
    trade_license_number = StringField("Trade license", validators=[OptionalValue(), Length(max=100)])
    emirate = StringField("Emirate", validators=[OptionalValue(), AnyOf(list(EMIRATES))])
    address = StringField("Address", validators=[OptionalValue(), Length(max=255)])
    is_new_client = BooleanField("New client")
    notes = TextAreaField("Notes", validators=[OptionalValue()])


# ---------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------
class DocumentForm(FlaskForm):
    """Scalar fields shared by quotations and invoices. Items are validated by the ledger."""

    client_id = IntegerField("Client", validators=[OptionalValue()])
    client_name = StringField("Client name", validators=[OptionalValue(), Length(max=255)])
    person_name = StringField("Person name", validators=[OptionalValue(), Length(max=255)])
    license_type = StringField("License type", validators=[OptionalValue(), Length(max=100)])
    activity = StringField("Activity", validators=[OptionalValue(), Length(max=255)])
    date = DateField("Date", validators=[OptionalValue()])
    include_vat = BooleanField("Include VAT")
    notes = TextAreaField("Notes", validators=[OptionalValue()])


class QuotationForm(DocumentForm):
    service_description = TextAreaField("Service description", validators=[OptionalValue()])
    service_category = StringField("Service category", validators=[OptionalValue(), Length(max=100)])
    status = StringField("Status", validators=[OptionalValue(), AnyOf(Quotation.STATUSES)])


class InvoiceForm(DocumentForm):
    service_type = StringField("Service type", validators=[OptionalValue(), Length(max=100)])


class PaymentForm(FlaskForm):
    invoice_id = IntegerField("Invoice", validators=[DataRequired()])
    amount = DecimalField("Amount", places=2, validators=[InputRequired()])
    method = StringField("Method", validators=[DataRequired(), AnyOf(PAYMENT_METHODS)])
    payment_date = DateField("Payment date", validators=[OptionalValue()])
    reference = StringField("Reference", validators=[OptionalValue(), Length(max=255)])
    notes = TextAreaField("Notes", validators=[OptionalValue()])


# ---------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------
class ApplicationForm(FlaskForm):
    client_id = IntegerField("Client", validators=[OptionalValue()])
    client_name = StringField("Client name", validators=[OptionalValue(), Length(max=255)])
    person_name = StringField("Person name", validators=[OptionalValue(), Length(max=255)])
    pre_approval_mb_number = StringField("Pre-approval / MB number", validators=[OptionalValue(), Length(max=100)])
    invoice_id = IntegerField("Invoice", validators=[OptionalValue()])
    application_type = StringField(
        "Application type", validators=[DataRequired(), AnyOf(list(APPLICATION_TYPES))]
    )
    application_type_description = StringField("Description", validators=[OptionalValue(), Length(max=255)])
    emirate = StringField("Emirate", validators=[OptionalValue(), AnyOf(list(EMIRATES))])
    start_date = DateField("Start date", validators=[OptionalValue()])
    expected_completion = DateField("Expected completion", validators=[OptionalValue()])
    notes = TextAreaField("Notes", validators=[OptionalValue()])


class ApplicationUpdateForm(ApplicationForm):
    application_type = StringField(
        "Application type", validators=[OptionalValue(), AnyOf(list(APPLICATION_TYPES))]
    )


class StepCompletionForm(FlaskForm):
    step = StringField("Step", validators=[DataRequired()])
    notes = TextAreaField("Notes", validators=[DataRequired()])
    updated_by = StringField("Updated by", validators=[DataRequired(), Length(max=150)])


# ---------------------------------------------------------------------
# Useful links
# ---------------------------------------------------------------------
class UsefulLinkForm(FlaskForm):
    name = StringField("Name", validators=[DataRequired(), Length(max=150)])
    url = StringField(
        "URL",
        validators=[DataRequired(), Length(max=500), Regexp(r"^https?://", message="URL must start with http(s)://.")],
    )
    description = TextAreaField("Description", validators=[OptionalValue()])
    category = StringField("Category", validators=[OptionalValue(), Length(max=80)])
    icon = StringField("Icon", validators=[OptionalValue(), Length(max=80)])


class UsefulLinkUpdateForm(UsefulLinkForm):
    name = StringField("Name", validators=[OptionalValue(), Length(max=150)])
    url = StringField(
        "URL",
        validators=[OptionalValue(), Length(max=500), Regexp(r"^https?://", message="URL must start with http(s)://.")],
    )
