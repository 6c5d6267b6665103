"""
Application Routes

Visa / license cases moving through the fixed step catalog.

Rules:
- Steps are completed one at a time, in catalog order, each with a note and
  the name of the person who did it.
- The application type can only change while no step has been completed.
- 'other' applications have no steps and are closed explicitly.
- Deletion is admin only.
"""

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from ...catalog import OTHER, catalog_payload
from ...errors import ConflictError
from ...extensions import db
from ...forms import (
    ApplicationForm,
    ApplicationUpdateForm,
    StepCompletionForm,
    bind_json_form,
    json_body,
    submitted,
)
from ...models import Application, Invoice
from ...numbering import commit_or_conflict, next_application_number
from ...security import admin_required
from ...utils import get_or_404, resolve_client
from ...workflow import complete_step, mark_other_completed, start_application, step_progress, sync_state


applications_bp = Blueprint("applications", __name__, url_prefix="/api/applications")

DEFAULT_CLIENT_NAME = "Walk-in Customer"
DEFAULT_PERSON_NAME = "Not Specified"

SCALAR_FIELDS = ("pre_approval_mb_number", "emirate", "expected_completion", "notes")


def _get_application(application_id: int) -> Application:
    return get_or_404(Application, application_id, "Application not found.")


def _detail(application: Application) -> dict:
    data = application.to_dict()
    data["steps"] = step_progress(application)
    return data


def _check_invoice(invoice_id):
    if invoice_id:
        get_or_404(Invoice, invoice_id, "Invoice not found.")
    return invoice_id or None


def _type_description(application_type: str, description):
    """The free-text description only applies to 'other'."""
    if application_type != OTHER:
        return None
    return (description or "").strip() or None


# ---------------------------------------------------------------------
# READ
# ---------------------------------------------------------------------

@applications_bp.route("/catalog", methods=["GET"])
@login_required
def catalog():
    """Application types, their steps and the emirates list."""
    return jsonify(catalog_payload())


@applications_bp.route("/", methods=["GET"])
@login_required
def list_applications():
    """Newest first. Optional ?status= filter."""
    query = Application.query
    status = (request.args.get("status") or "").strip()
    if status:
        query = query.filter(Application.status == status)
    applications = query.order_by(Application.created_at.desc(), Application.id.desc()).all()
    return jsonify([a.to_dict() for a in applications])


@applications_bp.route("/<int:application_id>", methods=["GET"])
@login_required
def get_application(application_id):
    return jsonify(_detail(_get_application(application_id)))


# ---------------------------------------------------------------------
# CREATE / UPDATE / DELETE
# ---------------------------------------------------------------------

@applications_bp.route("/", methods=["POST"])
@login_required
def create_application():
    form = bind_json_form(ApplicationForm)

    client_id, client_name = resolve_client(form.client_id.data, form.client_name.data)
    application_type = form.application_type.data

    application = Application(
        application_number=next_application_number(),
        client_id=client_id,
        client_name=client_name or DEFAULT_CLIENT_NAME,
        person_name=(form.person_name.data or "").strip() or DEFAULT_PERSON_NAME,
        invoice_id=_check_invoice(form.invoice_id.data),
        application_type=application_type,
        application_type_description=_type_description(
            application_type, form.application_type_description.data
        ),
    )
    for field in SCALAR_FIELDS:
        setattr(application, field, getattr(form, field).data or None)
    if form.start_date.data:
        application.start_date = form.start_date.data

    start_application(application)

    db.session.add(application)
    commit_or_conflict()

    current_app.logger.info(
        "Application %s (%s) created by %s",
        application.application_number,
        application.application_type,
        current_user.username,
    )
    return jsonify(_detail(application)), 201


@applications_bp.route("/<int:application_id>", methods=["PUT"])
@login_required
def update_application(application_id):
    """
    Partial update of descriptive fields.

    Progress (steps_completed / current_step / status) is never taken from
    the body; use the steps and complete endpoints.
    """
    application = _get_application(application_id)

    data = json_body()
    form = bind_json_form(ApplicationUpdateForm, data)
    changes = submitted(form, data)

    new_type = changes.get("application_type")
    if new_type and new_type != application.application_type:
        if application.steps_completed or application.status == "completed":
            raise ConflictError("Application type cannot be changed once processing has started.")
        application.application_type = new_type
        start_application(application)

    if "client_id" in changes or "client_name" in changes:
        client_id, client_name = resolve_client(
            changes.get("client_id", application.client_id),
            changes.get("client_name", application.client_name),
            current_client_id=application.client_id,
        )
        application.client_id = client_id
        application.client_name = client_name or DEFAULT_CLIENT_NAME

    if "person_name" in changes:
        application.person_name = (changes["person_name"] or "").strip() or DEFAULT_PERSON_NAME
    if "invoice_id" in changes:
        application.invoice_id = _check_invoice(changes["invoice_id"])
    if changes.get("start_date"):
        application.start_date = changes["start_date"]
    for field in SCALAR_FIELDS:
        if field in changes:
            setattr(application, field, changes[field] or None)

    application.application_type_description = _type_description(
        application.application_type,
        changes.get("application_type_description", application.application_type_description),
    )

    sync_state(application)
    db.session.commit()
    return jsonify(_detail(application))


@applications_bp.route("/<int:application_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_application(application_id):
    application = _get_application(application_id)
    number = application.application_number

    db.session.delete(application)
    db.session.commit()

    current_app.logger.info("Application %s deleted by %s", number, current_user.username)
    return jsonify({"message": "Application deleted."})


# ---------------------------------------------------------------------
# PROGRESS
# ---------------------------------------------------------------------

@applications_bp.route("/<int:application_id>/steps", methods=["POST"])
@login_required
def complete_application_step(application_id):
    """Complete the current step. Body: {step, notes, updated_by}."""
    application = _get_application(application_id)
    form = bind_json_form(StepCompletionForm)

    entry = complete_step(
        application,
        step_id=form.step.data,
        note=form.notes.data,
        updated_by=form.updated_by.data,
    )
    db.session.commit()

    current_app.logger.info(
        "Application %s: step %s completed by %s",
        application.application_number,
        entry["step"],
        entry["updated_by"],
    )
    return jsonify(_detail(application))


@applications_bp.route("/<int:application_id>/complete", methods=["POST"])
@login_required
def complete_other_application(application_id):
    """Close an 'other' application."""
    application = _get_application(application_id)
    mark_other_completed(application)
    db.session.commit()
    return jsonify(_detail(application))
