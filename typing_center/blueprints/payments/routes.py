"""
Payment Routes

Payments are the only way an invoice's amount_paid / balance /
payment_status change. Overpayment is rejected.
"""

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from ...audit import log_audit
from ...extensions import db
from ...forms import PaymentForm, bind_json_form
from ...ledger import record_payment
from ...models import Invoice, Payment
from ...utils import get_or_404


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.route("/", methods=["GET"])
@login_required
def list_payments():
    """Newest first. Optional ?invoice_id= filter."""
    query = Payment.query
    invoice_id = request.args.get("invoice_id", type=int)
    if invoice_id:
        query = query.filter(Payment.invoice_id == invoice_id)
    payments = query.order_by(Payment.payment_date.desc(), Payment.id.desc()).all()
    return jsonify([p.to_dict() for p in payments])


@payments_bp.route("/", methods=["POST"])
@login_required
def create_payment():
    form = bind_json_form(PaymentForm)
    invoice = get_or_404(Invoice, form.invoice_id.data, "Invoice not found.")
    before = invoice.to_dict()

    payment = record_payment(
        invoice,
        amount=form.amount.data,
        method=form.method.data,
        payment_date=form.payment_date.data,
        reference=form.reference.data or None,
        notes=form.notes.data or None,
        recorded_by=current_user.audit_name,
    )
    db.session.commit()

    current_app.logger.info(
        "Payment of %s (%s) recorded on %s by %s",
        payment.amount,
        payment.method,
        invoice.invoice_number,
        current_user.username,
    )
    log_audit("invoices", invoice.id, "updated", before, invoice.to_dict())

    return jsonify({"payment": payment.to_dict(), "invoice": invoice.to_dict()}), 201
