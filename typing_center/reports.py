"""
typing_center/reports.py

Dashboard figures and the yearly financial report.

The aggregation functions are pure: they take lists of Invoice / Payment /
Application rows and return JSON-ready dicts. The reports blueprint does the
querying.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

ZERO = Decimal("0.00")

# Report buckets: card covers card and cheque.
METHOD_BUCKETS = {
    "cash": "cash",
    "bank_transfer": "bank",
    "card": "card",
    "cheque": "card",
}
BUCKET_LABELS = (("cash", "Cash"), ("bank", "Bank Transfer"), ("card", "Card/Cheque"))


def _d(value) -> Decimal:
    return Decimal(str(value or 0))


def _f(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01")))


def _same_month(value: Optional[date], year: int, month: int) -> bool:
    return value is not None and value.year == year and value.month == month


def dashboard_summary(
    invoices: List,
    payments: List,
    applications: List,
    today: Optional[date] = None,
) -> Dict:
    """
    Headline figures for the home screen.

    invoices/applications are expected newest first (the recent lists are
    the first five of each).
    """
    today = today or date.today()

    monthly_revenue = sum((_d(i.total) for i in invoices if _same_month(i.date, today.year, today.month)), ZERO)
    receivables = sum((_d(i.balance) for i in invoices), ZERO)
    monthly_collections = sum(
        (_d(p.amount) for p in payments if _same_month(p.payment_date, today.year, today.month)), ZERO
    )
    pending = sum(1 for a in applications if a.status != "completed")

    return {
        "month": f"{today:%Y-%m}",
        "monthly_revenue": _f(monthly_revenue),
        "total_receivables": _f(receivables),
        "pending_applications": pending,
        "monthly_collections": _f(monthly_collections),
        "recent_invoices": [i.to_dict(include_payments=False) for i in invoices[:5]],
        "recent_applications": [a.to_dict() for a in applications[:5]],
    }


def _empty_row() -> Dict[str, Decimal]:
    return {k: ZERO for k in ("amount", "receivables", "collections", "cash", "bank", "card")}


def _client_summary(invoices: Iterable) -> List[Dict]:
    summary: Dict[str, Dict] = {}
    for inv in invoices:
        key = str(inv.client_id) if inv.client_id else (inv.client_name or "walk-in")
        row = summary.setdefault(
            key,
            {
                "key": key,
                "client_id": inv.client_id,
                "name": inv.client_name or "Walk-in Customer",
                "is_walk_in": not inv.client_id,
                "invoice_count": 0,
                "total": ZERO,
                "receivables": ZERO,
            },
        )
        row["invoice_count"] += 1
        row["total"] += _d(inv.total)
        row["receivables"] += _d(inv.balance)

    rows = []
    for row in summary.values():
        rows.append(
            {
                **row,
                "total": _f(row["total"]),
                "receivables": _f(row["receivables"]),
                "paid": _f(row["total"] - row["receivables"]),
            }
        )
    rows.sort(key=lambda r: r["total"], reverse=True)
    return rows


def yearly_report(invoices: List, payments: List, year: int) -> Dict:
    """
    Monthly breakdown of invoiced amounts, receivables and collections.

    Invoices are bucketed by invoice date and payments by payment date; rows
    outside the year are ignored.
    """
    months = [_empty_row() for _ in range(12)]

    year_invoices = [i for i in invoices if i.date is not None and i.date.year == year]
    for inv in year_invoices:
        row = months[inv.date.month - 1]
        row["amount"] += _d(inv.total)
        row["receivables"] += _d(inv.balance)

    for pay in payments:
        if pay.payment_date is None or pay.payment_date.year != year:
            continue
        row = months[pay.payment_date.month - 1]
        amount = _d(pay.amount)
        row["collections"] += amount
        bucket = METHOD_BUCKETS.get(pay.method)
        if bucket:
            row[bucket] += amount

    totals = _empty_row()
    monthly = []
    for index, row in enumerate(months, start=1):
        for key, value in row.items():
            totals[key] += value
        monthly.append(
            {
                "month": calendar.month_abbr[index],
                "full_month": calendar.month_name[index],
                **{key: _f(value) for key, value in row.items()},
            }
        )

    distribution = [
        {"name": label, "key": key, "value": _f(totals[key])}
        for key, label in BUCKET_LABELS
        if totals[key] > 0
    ]

    return {
        "year": year,
        "monthly": monthly,
        "totals": {key: _f(value) for key, value in totals.items()},
        "clients": _client_summary(year_invoices),
        "payment_distribution": distribution,
    }
