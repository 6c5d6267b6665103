"""
Quotation Routes

Provides CRUD, PDF download and conversion to an invoice.

Rules:
- Totals are recomputed server-side from the items on every write.
- A converted quotation is immutable: update and delete answer 409.
- Deletion is admin only.
- Every mutation is written to the audit trail after the main commit.
"""

from io import BytesIO

from flask import Blueprint, current_app, jsonify, request, send_file
from flask_login import current_user, login_required
from sqlalchemy.exc import IntegrityError

from ...audit import log_audit
from ...documents import render_quotation_pdf
from ...errors import ConflictError
from ...extensions import db
from ...forms import QuotationForm, bind_json_form, json_body, submitted
from ...ledger import apply_totals, convert_quotation_to_invoice
from ...models import Quotation
from ...numbering import commit_or_conflict, next_quotation_number
from ...security import admin_required
from ...utils import get_or_404, resolve_client


quotations_bp = Blueprint("quotations", __name__, url_prefix="/api/quotations")

SCALAR_FIELDS = (
    "person_name",
    "service_description",
    "service_category",
    "license_type",
    "activity",
    "status",
    "notes",
)


def _get_quotation(quotation_id: int) -> Quotation:
    return get_or_404(Quotation, quotation_id, "Quotation not found.")


def _ensure_editable(quotation: Quotation) -> None:
    if quotation.converted_to_invoice:
        raise ConflictError(
            "Quotation has been converted to an invoice and can no longer be changed.",
            payload={"invoice_id": quotation.invoice_id},
        )


# ---------------------------------------------------------------------
# READ
# ---------------------------------------------------------------------

@quotations_bp.route("/", methods=["GET"])
@login_required
def list_quotations():
    query = Quotation.query
    status = (request.args.get("status") or "").strip()
    if status:
        query = query.filter(Quotation.status == status)
    quotations = query.order_by(Quotation.created_at.desc(), Quotation.id.desc()).all()
    return jsonify([q.to_dict() for q in quotations])


@quotations_bp.route("/<int:quotation_id>", methods=["GET"])
@login_required
def get_quotation(quotation_id):
    return jsonify(_get_quotation(quotation_id).to_dict())


@quotations_bp.route("/<int:quotation_id>/pdf", methods=["GET"])
@login_required
def quotation_pdf(quotation_id):
    quotation = _get_quotation(quotation_id)
    pdf = render_quotation_pdf(
        quotation,
        current_app.config["COMPANY_NAME"],
        vat_rate=current_app.config.get("VAT_RATE", "0.05"),
    )
    return send_file(
        BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"Quotation-{quotation.quotation_number}.pdf",
    )


# ---------------------------------------------------------------------
# CREATE / UPDATE / DELETE
# ---------------------------------------------------------------------

@quotations_bp.route("/", methods=["POST"])
@login_required
def create_quotation():
    data = json_body()
    form = bind_json_form(QuotationForm, data)

    client_id, client_name = resolve_client(form.client_id.data, form.client_name.data)

    quotation = Quotation(
        quotation_number=next_quotation_number(),
        client_id=client_id,
        client_name=client_name,
        status=form.status.data or "draft",
    )
    for field in SCALAR_FIELDS:
        if field != "status":
            setattr(quotation, field, getattr(form, field).data or None)
    if form.date.data:
        quotation.date = form.date.data

    apply_totals(quotation, data.get("items"), form.include_vat.data)

    db.session.add(quotation)
    commit_or_conflict()

    log_audit("quotations", quotation.id, "created", None, quotation.to_dict())
    return jsonify(quotation.to_dict()), 201


@quotations_bp.route("/<int:quotation_id>", methods=["PUT"])
@login_required
def update_quotation(quotation_id):
    """Partial update; items/include_vat changes recompute the totals."""
    quotation = _get_quotation(quotation_id)
    _ensure_editable(quotation)

    data = json_body()
    form = bind_json_form(QuotationForm, data)
    changes = submitted(form, data)
    before = quotation.to_dict()

    if "client_id" in changes or "client_name" in changes:
        client_id, client_name = resolve_client(
            changes.get("client_id", quotation.client_id),
            changes.get("client_name", quotation.client_name),
            current_client_id=quotation.client_id,
        )
        quotation.client_id = client_id
        quotation.client_name = client_name

    for field in SCALAR_FIELDS:
        if field in changes:
            setattr(quotation, field, changes[field] or None)
    if not quotation.status:
        quotation.status = "draft"
    if changes.get("date"):
        quotation.date = changes["date"]

    if "items" in data or "include_vat" in data:
        include_vat = changes["include_vat"] if "include_vat" in changes else quotation.include_vat
        items = data["items"] if "items" in data else quotation.items
        apply_totals(quotation, items, include_vat)

    db.session.commit()

    log_audit("quotations", quotation.id, "updated", before, quotation.to_dict())
    return jsonify(quotation.to_dict())


@quotations_bp.route("/<int:quotation_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_quotation(quotation_id):
    quotation = _get_quotation(quotation_id)
    _ensure_editable(quotation)

    before = quotation.to_dict()
    db.session.delete(quotation)
    db.session.commit()

    log_audit("quotations", quotation_id, "deleted", before, None)
    current_app.logger.info("Quotation %s deleted by %s", before["quotation_number"], current_user.username)
    return jsonify({"message": "Quotation deleted."})


# ---------------------------------------------------------------------
# CONVERSION
# ---------------------------------------------------------------------

def convert_and_audit(quotation: Quotation):
    """
    Convert in one transaction, then audit both records.

    Shared with POST /api/invoices/from-quotation/<id>.
    """
    before = quotation.to_dict()
    try:
        invoice = convert_quotation_to_invoice(quotation)
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Record number collision, please retry.") from exc
    commit_or_conflict()

    log_audit("quotations", quotation.id, "converted_to_invoice", before, quotation.to_dict())
    log_audit("invoices", invoice.id, "created_from_quotation", None, invoice.to_dict())
    return invoice


@quotations_bp.route("/<int:quotation_id>/convert", methods=["POST"])
@login_required
def convert_quotation(quotation_id):
    quotation = _get_quotation(quotation_id)
    invoice = convert_and_audit(quotation)
    return jsonify(invoice.to_dict()), 201
