"""Unit tests for line items, totals and payment state."""
from datetime import date
from decimal import Decimal

import pytest

from typing_center.errors import ConflictError, ValidationError
from typing_center.extensions import db
from typing_center.ledger import (
    MAX_AMOUNT,
    apply_totals,
    compute_totals,
    convert_quotation_to_invoice,
    normalize_items,
    record_payment,
    refresh_payment_state,
    to_money,
)
from typing_center.models import Invoice, Payment, Quotation


def test_totals_with_vat() -> None:
    items = normalize_items([{"description": "Job Offer", "amount": 1000}, {"description": "Service Charge", "amount": 200}])
    totals = compute_totals(items, include_vat=True)
    assert totals == {"subtotal": Decimal("1200.00"), "vat_amount": Decimal("60.00"), "total": Decimal("1260.00")}


def test_totals_without_vat() -> None:
    totals = compute_totals([{"description": "Typing", "amount": 99.99}], include_vat=False)
    assert totals["vat_amount"] == Decimal("0.00")
    assert totals["total"] == Decimal("99.99")


def test_vat_is_rounded_half_up() -> None:
    totals = compute_totals([{"description": "x", "amount": "10.10"}], include_vat=True)
    # 10.10 * 0.05 = 0.505
    assert totals["vat_amount"] == Decimal("0.51")
    assert totals["total"] == Decimal("10.61")


def test_empty_items_give_zero_totals() -> None:
    assert compute_totals([], include_vat=True)["total"] == Decimal("0.00")


def test_normalize_items_quantizes_and_strips() -> None:
    assert normalize_items([{"description": "  Visa  ", "amount": "150.456"}]) == [
        {"description": "Visa", "amount": 150.46}
    ]


@pytest.mark.parametrize(
    "items",
    [
        [{"description": "", "amount": 10}],
        [{"description": "x", "amount": -1}],
        [{"description": "x", "amount": "abc"}],
        [{"description": "x", "amount": True}],
        [{"description": "x", "amount": 1e30}],
        [{"description": "x", "amount": "Infinity"}],
        ["not an item"],
        "not a list",
    ],
)
def test_normalize_items_rejects_malformed_input(items) -> None:
    with pytest.raises(ValidationError):
        normalize_items(items)


def _invoice(total: str = "1260.00") -> Invoice:
    invoice = Invoice(invoice_number="INV-2025-00001", client_name="Acme", items=[])
    invoice.total = Decimal(total)
    db.session.add(invoice)
    refresh_payment_state(invoice)
    db.session.commit()
    return invoice


def test_apply_totals_uses_configured_rate(app) -> None:
    app.config["VAT_RATE"] = "0.10"
    quotation = Quotation(quotation_number="QT-2025-0001")
    apply_totals(quotation, [{"description": "x", "amount": 100}], include_vat=True)
    assert quotation.vat_amount == Decimal("10.00")
    assert quotation.total == Decimal("110.00")


def test_new_invoice_is_unpaid(app) -> None:
    invoice = _invoice()
    assert invoice.payment_status == "unpaid"
    assert invoice.balance == Decimal("1260.00")
    assert invoice.amount_paid == Decimal("0.00")


def test_partial_then_full_payment(app) -> None:
    invoice = _invoice()

    record_payment(invoice, 760, "cash")
    db.session.commit()
    assert invoice.amount_paid == Decimal("760.00")
    assert invoice.balance == Decimal("500.00")
    assert invoice.payment_status == "partial"

    record_payment(invoice, "500", "bank_transfer", payment_date=date(2025, 1, 5), reference="TRX-1")
    db.session.commit()
    assert invoice.balance == Decimal("0.00")
    assert invoice.payment_status == "paid"
    assert Payment.query.filter_by(invoice_id=invoice.id).count() == 2


def test_payment_denormalizes_invoice_fields(app) -> None:
    invoice = _invoice()
    payment = record_payment(invoice, 10, "card", recorded_by="Sara Ahmed (sara)")
    db.session.commit()
    assert payment.invoice_number == "INV-2025-00001"
    assert payment.client_name == "Acme"
    assert payment.recorded_by == "Sara Ahmed (sara)"


@pytest.mark.parametrize("amount", [0, -5, "abc", "1e30", "NaN"])
def test_non_positive_payment_rejected(app, amount) -> None:
    with pytest.raises(ValidationError):
        record_payment(_invoice(), amount, "cash")


def test_unknown_method_rejected(app) -> None:
    with pytest.raises(ValidationError):
        record_payment(_invoice(), 10, "crypto")


def test_overpayment_rejected(app) -> None:
    invoice = _invoice("100.00")
    record_payment(invoice, 60, "cash")
    db.session.commit()

    with pytest.raises(ValidationError) as excinfo:
        record_payment(invoice, "40.01", "cash")
    assert excinfo.value.payload["balance"] == 40.0


def test_payment_state_is_recomputed_from_stored_payments(app) -> None:
    invoice = _invoice("300.00")
    record_payment(invoice, 100, "cash")
    db.session.commit()

    # Stale or tampered denormalized values are corrected on refresh.
    invoice.amount_paid = Decimal("999")
    invoice.payment_status = "paid"
    refresh_payment_state(invoice)
    assert invoice.amount_paid == Decimal("100.00")
    assert invoice.payment_status == "partial"


def test_conversion_copies_quotation(app) -> None:
    quotation = Quotation(quotation_number="QT-2025-0001", client_name="Acme", person_name="Ali", license_type="LLC")
    apply_totals(quotation, [{"description": "Job Offer", "amount": 1000}], include_vat=True)
    db.session.add(quotation)
    db.session.commit()

    invoice = convert_quotation_to_invoice(quotation, today=date(2025, 2, 1))
    db.session.commit()

    assert invoice.invoice_number == "INV-2025-00001"
    assert invoice.quotation_id == quotation.id
    assert invoice.items == quotation.items
    assert invoice.include_vat is True
    assert invoice.total == Decimal("1050.00")
    assert invoice.balance == Decimal("1050.00")
    assert invoice.payment_status == "unpaid"
    assert quotation.converted_to_invoice is True
    assert quotation.invoice_id == invoice.id

    with pytest.raises(ConflictError):
        convert_quotation_to_invoice(quotation)


def test_amounts_are_bounded_by_the_column() -> None:
    assert to_money("9999999999.99") == MAX_AMOUNT
    with pytest.raises(ValidationError) as exc:
        to_money("10000000000")
    assert exc.value.payload["errors"]["amount"] == [f"Must not exceed {MAX_AMOUNT}."]


def test_summed_items_above_the_bound_rejected(app) -> None:
    items = [{"description": "x", "amount": "9999999999.99"}, {"description": "y", "amount": 1}]
    with pytest.raises(ValidationError):
        apply_totals(_invoice(), items, include_vat=False)
