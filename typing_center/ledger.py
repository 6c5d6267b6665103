"""
typing_center/ledger.py

Invoice ledger: line items, VAT totals, payments and quotation conversion.

Rules:
- Totals are always recomputed server-side from the items.
- amount_paid / balance / payment_status are derived from the full payment
  set of an invoice, read fresh from the database. Client-supplied values
  for those fields are never trusted.
- Money is Decimal quantized to 2 places (ROUND_HALF_UP).

Functions stage changes in the session; the calling route commits.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from flask import current_app
from sqlalchemy import func

from .extensions import db
from .errors import ConflictError, ValidationError
from .models import Invoice, Payment
from .numbering import next_invoice_number

DEFAULT_VAT_RATE = Decimal("0.05")
PAYMENT_METHODS = ("cash", "bank_transfer", "card", "cheque")

ZERO = Decimal("0.00")

# Largest value a Numeric(12, 2) column holds.
MAX_AMOUNT = Decimal("9999999999.99")


def _money(x: Decimal) -> Decimal:
    return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _invalid_amount(field: str, message: str = "Must be a number.") -> ValidationError:
    return ValidationError(f"Invalid {field}.", payload={"errors": {field: [message]}})


def to_money(value: Any, field: str = "amount") -> Decimal:
    """
    Parse a user-supplied amount.

    Booleans, non-numeric strings and magnitudes above MAX_AMOUNT are rejected.
    """
    if isinstance(value, bool) or value is None:
        raise _invalid_amount(field)
    try:
        amount = _money(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError) as exc:
        raise _invalid_amount(field) from exc
    if not amount.is_finite():
        raise _invalid_amount(field)
    if abs(amount) > MAX_AMOUNT:
        raise _invalid_amount(field, f"Must not exceed {MAX_AMOUNT}.")
    return amount


def configured_vat_rate() -> Decimal:
    return Decimal(str(current_app.config.get("VAT_RATE", DEFAULT_VAT_RATE)))


# ---------------------------------------------------------------------
# Items & totals
# ---------------------------------------------------------------------
def normalize_items(items: Optional[Iterable[Any]]) -> List[Dict[str, Any]]:
    """
    Validate line items and return them in storage shape:
    [{"description": str, "amount": float}, ...]
    """
    if items is None:
        return []
    if not isinstance(items, (list, tuple)):
        raise ValidationError("Items must be a list.")

    normalized = []
    errors = {}
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            errors[str(index)] = ["Item must be an object."]
            continue

        description = str(item.get("description") or "").strip()
        if not description:
            errors[str(index)] = ["Description is required."]
            continue

        try:
            amount = to_money(item.get("amount", 0), field="amount")
        except ValidationError as exc:
            errors[str(index)] = exc.payload["errors"]["amount"]
            continue

        if amount < 0:
            errors[str(index)] = ["Amount cannot be negative."]
            continue

        normalized.append({"description": description, "amount": float(amount)})

    if errors:
        raise ValidationError("Invalid items.", payload={"errors": {"items": errors}})

    return normalized


def compute_totals(
    items: Iterable[Dict[str, Any]],
    include_vat: bool,
    vat_rate: Decimal = DEFAULT_VAT_RATE,
) -> Dict[str, Decimal]:
    """subtotal, vat_amount and total for already-normalized items."""
    subtotal = _money(sum((Decimal(str(i.get("amount", 0))) for i in items), ZERO))
    vat_amount = _money(subtotal * Decimal(str(vat_rate))) if include_vat else ZERO
    return {
        "subtotal": subtotal,
        "vat_amount": vat_amount,
        "total": _money(subtotal + vat_amount),
    }


def apply_totals(document, items: Optional[Iterable[Any]], include_vat: bool) -> None:
    """Store normalized items and recomputed totals on a quotation or invoice."""
    normalized = normalize_items(items)
    totals = compute_totals(normalized, include_vat, configured_vat_rate())
    if totals["total"] > MAX_AMOUNT:
        raise ValidationError(
            "Invalid items.",
            payload={"errors": {"items": {"total": [f"Total must not exceed {MAX_AMOUNT}."]}}},
        )

    document.items = normalized
    document.include_vat = bool(include_vat)
    document.subtotal = totals["subtotal"]
    document.vat_amount = totals["vat_amount"]
    document.total = totals["total"]


# ---------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------
def _paid_total(invoice_id: int) -> Decimal:
    paid = (
        db.session.query(func.coalesce(func.sum(Payment.amount), 0))
        .filter(Payment.invoice_id == invoice_id)
        .scalar()
    )
    return _money(Decimal(str(paid or 0)))


def refresh_payment_state(invoice: Invoice) -> None:
    """Derive amount_paid, balance and payment_status from the stored payments."""
    db.session.flush()

    total = _money(Decimal(str(invoice.total or 0)))
    amount_paid = _paid_total(invoice.id) if invoice.id is not None else ZERO
    balance = max(ZERO, _money(total - amount_paid))

    if balance == ZERO:
        status = "paid"
    elif amount_paid > ZERO:
        status = "partial"
    else:
        status = "unpaid"

    invoice.amount_paid = amount_paid
    invoice.balance = balance
    invoice.payment_status = status


def ensure_total_covers_payments(invoice: Invoice) -> None:
    """
    Reject a total below what has already been paid on the invoice.

    Edits may lower the total down to amount_paid, never below it.
    """
    if invoice.id is None:
        return
    paid = _paid_total(invoice.id)
    total = _money(Decimal(str(invoice.total or 0)))
    if total < paid:
        raise ValidationError(
            f"Invoice total {total} is below the {paid} already paid.",
            payload={"amount_paid": float(paid), "total": float(total)},
        )


def record_payment(
    invoice: Invoice,
    amount: Any,
    method: str,
    payment_date: Optional[date] = None,
    reference: Optional[str] = None,
    notes: Optional[str] = None,
    recorded_by: Optional[str] = None,
) -> Payment:
    """
    Add a payment to an invoice and refresh its payment state.

    Overpayment (amount above the outstanding balance) is rejected.
    """
    amount = to_money(amount)
    if amount <= ZERO:
        raise ValidationError(
            "Payment amount must be greater than zero.",
            payload={"errors": {"amount": ["Must be greater than zero."]}},
        )
    if method not in PAYMENT_METHODS:
        raise ValidationError(
            "Invalid payment method.",
            payload={"errors": {"method": [f"Must be one of: {', '.join(PAYMENT_METHODS)}."]}},
        )

    refresh_payment_state(invoice)
    outstanding = _money(Decimal(str(invoice.balance)))
    if amount > outstanding:
        raise ValidationError(
            f"Payment exceeds the outstanding balance of {outstanding}.",
            payload={"balance": float(outstanding)},
        )

    payment = Payment(
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
        client_id=invoice.client_id,
        client_name=invoice.client_name,
        amount=amount,
        method=method,
        payment_date=payment_date or date.today(),
        reference=reference,
        notes=notes,
        recorded_by=recorded_by,
    )
    db.session.add(payment)

    refresh_payment_state(invoice)
    return payment


# ---------------------------------------------------------------------
# Quotation -> Invoice
# ---------------------------------------------------------------------
def convert_quotation_to_invoice(quotation, today: Optional[date] = None) -> Invoice:
    """
    Create an invoice from a quotation and mark the quotation converted.

    Both writes are staged in the current session; the caller commits them
    together (or rolls both back).
    """
    if quotation.converted_to_invoice:
        raise ConflictError(
            "Quotation has already been converted to an invoice.",
            payload={"invoice_id": quotation.invoice_id},
        )

    total = _money(Decimal(str(quotation.total or 0)))

    invoice = Invoice(
        invoice_number=next_invoice_number(today),
        quotation_id=quotation.id,
        client_id=quotation.client_id,
        client_name=quotation.client_name,
        person_name=quotation.person_name,
        service_type=quotation.service_category,
        license_type=quotation.license_type,
        activity=quotation.activity,
        date=today or date.today(),
        items=[dict(i) for i in (quotation.items or [])],
        include_vat=bool(quotation.include_vat),
        subtotal=_money(Decimal(str(quotation.subtotal or 0))),
        vat_amount=_money(Decimal(str(quotation.vat_amount or 0))),
        total=total,
        payment_status="unpaid",
        amount_paid=ZERO,
        balance=total,
        notes=quotation.notes,
    )
    db.session.add(invoice)
    db.session.flush()

    quotation.converted_to_invoice = True
    quotation.invoice_id = invoice.id

    current_app.logger.info(
        "Quotation %s converted to invoice %s", quotation.quotation_number, invoice.invoice_number
    )
    return invoice
