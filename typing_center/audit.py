"""
typing_center/audit.py

Audit trail for invoices and quotations.

Goals:
- Capture WHO did WHAT to WHICH record, with BEFORE/AFTER snapshots.
- Store the actor as "Full Name (username)" so history survives renames.
- Store IP address and user agent for traceability.

IMPORTANT:
- log_audit() runs AFTER the primary change has been committed and commits
  its own entry. A failing audit write is rolled back and logged; it never
  fails the business operation.
- Entries are append-only: nothing in the application updates or deletes them.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from flask import current_app, has_request_context, request
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .models import AuditLog

ACTIONS = (
    "created",
    "updated",
    "deleted",
    "created_from_quotation",
    "converted_to_invoice",
)


def _stable(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def compute_changed_fields(
    old_data: Optional[Dict[str, Any]],
    new_data: Optional[Dict[str, Any]],
) -> List[str]:
    """
    Top-level keys of new_data whose value differs from old_data.

    Values are compared by their JSON serialization. Empty when either side
    is missing (creations and deletions carry no field diff).
    """
    if not old_data or not new_data:
        return []
    return [key for key in new_data if _stable(new_data.get(key)) != _stable(old_data.get(key))]


def _actor() -> str:
    if has_request_context() and current_user and current_user.is_authenticated:
        return current_user.audit_name
    return "system"


def _snapshot(data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Round-trip through JSON so Decimal/date values are stored as plain JSON."""
    if data is None:
        return None
    return json.loads(json.dumps(data, default=str))


def log_audit(
    table_name: str,
    record_id: int,
    action: str,
    old_data: Optional[Dict[str, Any]] = None,
    new_data: Optional[Dict[str, Any]] = None,
) -> Optional[AuditLog]:
    """
    Append and commit an AuditLog entry.

    Returns the entry, or None when the write failed.

    SECURITY NOTE:
    - request.remote_addr is as Flask sees it. Behind a reverse proxy,
      configure ProxyFix to capture the real client IP.
    """
    ip_address = None
    user_agent = None
    if has_request_context():
        ip_address = request.remote_addr
        user_agent = (request.headers.get("User-Agent") or "")[:255] or None

    entry = AuditLog(
        table_name=table_name,
        record_id=int(record_id),
        action=action,
        changed_by=_actor(),
        old_data=_snapshot(old_data),
        new_data=_snapshot(new_data),
        changed_fields=compute_changed_fields(old_data, new_data),
        ip_address=ip_address,
        user_agent=user_agent,
    )

    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(
            "Audit write failed for %s #%s (%s)", table_name, record_id, action
        )
        return None

    return entry


def get_audit_history(table_name: str, record_id: int, limit: int = 50) -> List[AuditLog]:
    """Entries for one record, newest first."""
    return (
        AuditLog.query
        .filter_by(table_name=table_name, record_id=record_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )
