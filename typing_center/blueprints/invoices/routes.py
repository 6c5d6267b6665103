"""
Invoice Routes

Provides CRUD, PDF download, audit history and creation from a quotation.

Rules:
- Totals are recomputed from the items; amount_paid / balance /
  payment_status are always re-derived from the stored payments and any
  client-supplied values for them are ignored.
- Deleting an invoice deletes its payments (admin only).
- Every mutation is written to the audit trail after the main commit.
"""

from io import BytesIO

from flask import Blueprint, current_app, jsonify, request, send_file
from flask_login import current_user, login_required

from ...audit import get_audit_history, log_audit
from ...documents import render_invoice_pdf
from ...extensions import db
from ...forms import InvoiceForm, bind_json_form, json_body, submitted
from ...ledger import apply_totals, ensure_total_covers_payments, refresh_payment_state
from ...models import Invoice, Quotation
from ...numbering import commit_or_conflict, next_invoice_number
from ...security import admin_required
from ...utils import get_or_404, resolve_client
from ..quotations.routes import convert_and_audit


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")

SCALAR_FIELDS = ("person_name", "service_type", "license_type", "activity", "notes")


def _get_invoice(invoice_id: int) -> Invoice:
    return get_or_404(Invoice, invoice_id, "Invoice not found.")


# ---------------------------------------------------------------------
# READ
# ---------------------------------------------------------------------

@invoices_bp.route("/", methods=["GET"])
@login_required
def list_invoices():
    """Newest first. Optional filters: ?payment_status=, ?client_id=."""
    query = Invoice.query

    payment_status = (request.args.get("payment_status") or "").strip()
    if payment_status:
        query = query.filter(Invoice.payment_status == payment_status)

    client_id = request.args.get("client_id", type=int)
    if client_id:
        query = query.filter(Invoice.client_id == client_id)

    invoices = query.order_by(Invoice.created_at.desc(), Invoice.id.desc()).all()
    return jsonify([i.to_dict() for i in invoices])


@invoices_bp.route("/<int:invoice_id>", methods=["GET"])
@login_required
def get_invoice(invoice_id):
    return jsonify(_get_invoice(invoice_id).to_dict())


@invoices_bp.route("/<int:invoice_id>/pdf", methods=["GET"])
@login_required
def invoice_pdf(invoice_id):
    invoice = _get_invoice(invoice_id)
    pdf = render_invoice_pdf(
        invoice,
        current_app.config["COMPANY_NAME"],
        vat_rate=current_app.config.get("VAT_RATE", "0.05"),
    )
    return send_file(
        BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"Invoice-{invoice.invoice_number}.pdf",
    )


@invoices_bp.route("/<int:invoice_id>/audit", methods=["GET"])
@login_required
def invoice_audit(invoice_id):
    """Audit history for an invoice, newest first."""
    _get_invoice(invoice_id)
    limit = min(request.args.get("limit", 50, type=int) or 50, 500)
    return jsonify([e.to_dict() for e in get_audit_history("invoices", invoice_id, limit=limit)])


# ---------------------------------------------------------------------
# CREATE / UPDATE / DELETE
# ---------------------------------------------------------------------

@invoices_bp.route("/", methods=["POST"])
@login_required
def create_invoice():
    data = json_body()
    form = bind_json_form(InvoiceForm, data)

    client_id, client_name = resolve_client(form.client_id.data, form.client_name.data)

    invoice = Invoice(
        invoice_number=next_invoice_number(),
        client_id=client_id,
        client_name=client_name,
    )
    for field in SCALAR_FIELDS:
        setattr(invoice, field, getattr(form, field).data or None)
    if form.date.data:
        invoice.date = form.date.data

    apply_totals(invoice, data.get("items"), form.include_vat.data)

    db.session.add(invoice)
    refresh_payment_state(invoice)
    commit_or_conflict()

    log_audit("invoices", invoice.id, "created", None, invoice.to_dict())
    return jsonify(invoice.to_dict()), 201


@invoices_bp.route("/<int:invoice_id>", methods=["PUT"])
@login_required
def update_invoice(invoice_id):
    """
    Partial update.

    amount_paid / balance / payment_status in the body are ignored; they are
    re-derived from the payment set after the totals are recomputed. A total
    below the amount already paid is rejected.
    """
    invoice = _get_invoice(invoice_id)

    data = json_body()
    form = bind_json_form(InvoiceForm, data)
    changes = submitted(form, data)
    before = invoice.to_dict()

    if "client_id" in changes or "client_name" in changes:
        client_id, client_name = resolve_client(
            changes.get("client_id", invoice.client_id),
            changes.get("client_name", invoice.client_name),
            current_client_id=invoice.client_id,
        )
        invoice.client_id = client_id
        invoice.client_name = client_name

    for field in SCALAR_FIELDS:
        if field in changes:
            setattr(invoice, field, changes[field] or None)
    if changes.get("date"):
        invoice.date = changes["date"]

    include_vat = changes["include_vat"] if "include_vat" in changes else invoice.include_vat
    items = data["items"] if "items" in data else invoice.items
    apply_totals(invoice, items, include_vat)
    ensure_total_covers_payments(invoice)
    refresh_payment_state(invoice)

    db.session.commit()

    log_audit("invoices", invoice.id, "updated", before, invoice.to_dict())
    return jsonify(invoice.to_dict())


@invoices_bp.route("/<int:invoice_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_invoice(invoice_id):
    """Delete an invoice together with its payments."""
    invoice = _get_invoice(invoice_id)
    before = invoice.to_dict()

    # The source quotation keeps converted_to_invoice/invoice_id as history.
    db.session.delete(invoice)
    db.session.commit()

    log_audit("invoices", invoice_id, "deleted", before, None)
    current_app.logger.info("Invoice %s deleted by %s", before["invoice_number"], current_user.username)
    return jsonify({"message": "Invoice deleted."})


@invoices_bp.route("/from-quotation/<int:quotation_id>", methods=["POST"])
@login_required
def create_from_quotation(quotation_id):
    quotation = get_or_404(Quotation, quotation_id, "Quotation not found.")
    invoice = convert_and_audit(quotation)
    return jsonify(invoice.to_dict()), 201
