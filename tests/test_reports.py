"""Dashboard and yearly report tests."""
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from typing_center.reports import dashboard_summary, yearly_report


def _invoice(total, balance, on, client_id=None, client_name="Walk-in"):
    row = SimpleNamespace(
        total=Decimal(total),
        balance=Decimal(balance),
        date=on,
        client_id=client_id,
        client_name=client_name,
    )
    row.to_dict = lambda include_payments=True: {"total": float(row.total)}
    return row


def _payment(amount, on, method):
    return SimpleNamespace(amount=Decimal(amount), payment_date=on, method=method)


def _application(status):
    return SimpleNamespace(status=status, to_dict=lambda: {"status": status})


def test_dashboard_figures_for_current_month() -> None:
    today = date(2025, 3, 15)
    invoices = [
        _invoice("1260.00", "500.00", date(2025, 3, 2)),
        _invoice("300.00", "300.00", date(2025, 2, 20)),
    ]
    payments = [
        _payment("760.00", date(2025, 3, 3), "cash"),
        _payment("100.00", date(2025, 2, 21), "card"),
    ]
    applications = [_application("in_progress"), _application("completed"), _application("in_progress")]

    summary = dashboard_summary(invoices, payments, applications, today=today)

    assert summary["month"] == "2025-03"
    assert summary["monthly_revenue"] == 1260.0
    assert summary["total_receivables"] == 800.0
    assert summary["monthly_collections"] == 760.0
    assert summary["pending_applications"] == 2
    assert len(summary["recent_invoices"]) == 2


def test_yearly_report_buckets_months_and_methods() -> None:
    invoices = [
        _invoice("1000.00", "0.00", date(2025, 1, 10), client_id=1, client_name="Acme"),
        _invoice("500.00", "200.00", date(2025, 1, 28), client_id=1, client_name="Acme"),
        _invoice("200.00", "200.00", date(2025, 4, 2)),
        _invoice("999.00", "999.00", date(2024, 12, 31), client_id=1, client_name="Acme"),
    ]
    payments = [
        _payment("1000.00", date(2025, 1, 10), "bank_transfer"),
        _payment("200.00", date(2025, 2, 1), "cash"),
        _payment("100.00", date(2025, 2, 5), "cheque"),
        _payment("50.00", date(2024, 12, 31), "cash"),
    ]

    report = yearly_report(invoices, payments, 2025)

    january, february, _, april = report["monthly"][:4]
    assert january["month"] == "Jan"
    assert january["full_month"] == "January"
    assert january["amount"] == 1500.0
    assert january["receivables"] == 200.0
    assert january["bank"] == 1000.0
    assert february["collections"] == 300.0
    assert february["cash"] == 200.0
    assert february["card"] == 100.0
    assert april["amount"] == 200.0

    assert report["totals"]["amount"] == 1700.0
    assert report["totals"]["collections"] == 1300.0

    clients = {c["key"]: c for c in report["clients"]}
    assert clients["1"]["invoice_count"] == 2
    assert clients["1"]["total"] == 1500.0
    assert clients["1"]["paid"] == 1300.0
    assert clients["Walk-in"]["is_walk_in"] is True

    assert report["payment_distribution"] == [
        {"name": "Cash", "key": "cash", "value": 200.0},
        {"name": "Bank Transfer", "key": "bank", "value": 1000.0},
        {"name": "Card/Cheque", "key": "card", "value": 100.0},
    ]


def test_yearly_report_drops_empty_methods() -> None:
    report = yearly_report([], [_payment("10.00", date(2025, 5, 1), "cash")], 2025)
    assert [d["key"] for d in report["payment_distribution"]] == ["cash"]
    assert len(report["monthly"]) == 12


def test_dashboard_endpoint(client, user_headers, create_invoice) -> None:
    invoice = create_invoice(items=[{"description": "Typing", "amount": 300}])
    client.post(
        "/api/payments/",
        json={"invoice_id": invoice["id"], "amount": 100, "method": "cash"},
        headers=user_headers,
    )

    summary = client.get("/api/reports/dashboard", headers=user_headers).get_json()
    assert summary["monthly_revenue"] == 300.0
    assert summary["total_receivables"] == 200.0
    assert summary["monthly_collections"] == 100.0
    assert summary["recent_invoices"][0]["invoice_number"] == invoice["invoice_number"]


def test_yearly_endpoint(client, user_headers, create_invoice) -> None:
    create_invoice(items=[{"description": "Typing", "amount": 300}], date="2024-06-10")

    report = client.get("/api/reports/yearly?year=2024", headers=user_headers).get_json()
    assert report["year"] == 2024
    assert report["monthly"][5]["amount"] == 300.0
    assert report["clients"][0]["name"] == "Walk-in"


def test_yearly_endpoint_rejects_bad_year(client, user_headers) -> None:
    assert client.get("/api/reports/yearly?year=abc", headers=user_headers).status_code == 400
