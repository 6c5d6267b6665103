"""
typing_center/numbering.py

Human-readable sequential numbers for documents and records.

Formats:
- Quotation:   QT-YYYY-NNNN
- Invoice:     INV-YYYY-NNNNN
- Client:      CLI-YYYY-NNNN
- Application: APP-YYMMDD-NNN

KNOWN LIMITATION:
- The next number is read from the most recently created row, so two
  concurrent creations can compute the same value. The number columns are
  unique; the losing insert fails and is reported as a ConflictError asking
  the caller to retry. See commit_or_conflict().
"""

from __future__ import annotations

import re
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError

from .extensions import db
from .errors import ConflictError
from .models import Application, Client, Invoice, Quotation


def next_number(model, column, prefix: str, period: str, width: int) -> str:
    """
    Next value in <prefix>-<period>-<seq> for the given model column.

    The sequence restarts at 1 whenever the latest record belongs to an
    earlier period (or carries a number in an unexpected shape).
    """
    latest = (
        db.session.query(column)
        .order_by(model.created_at.desc(), model.id.desc())
        .limit(1)
        .scalar()
    )

    seq = 1
    if latest:
        match = re.match(rf"^{re.escape(prefix)}-{re.escape(period)}-(\d+)$", latest)
        if match:
            seq = int(match.group(1)) + 1

    return f"{prefix}-{period}-{seq:0{width}d}"


def next_quotation_number(today: Optional[date] = None) -> str:
    today = today or date.today()
    return next_number(Quotation, Quotation.quotation_number, "QT", f"{today:%Y}", 4)


def next_invoice_number(today: Optional[date] = None) -> str:
    today = today or date.today()
    return next_number(Invoice, Invoice.invoice_number, "INV", f"{today:%Y}", 5)


def next_client_code(today: Optional[date] = None) -> str:
    today = today or date.today()
    return next_number(Client, Client.client_code, "CLI", f"{today:%Y}", 4)


def next_application_number(today: Optional[date] = None) -> str:
    today = today or date.today()
    return next_number(Application, Application.application_number, "APP", f"{today:%y%m%d}", 3)


def commit_or_conflict() -> None:
    """Commit the session; a unique-number collision becomes a retryable ConflictError."""
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Record number collision, please retry.") from exc
