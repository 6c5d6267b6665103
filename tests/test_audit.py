"""Unit tests for the audit recorder."""
from decimal import Decimal

from typing_center.audit import compute_changed_fields, get_audit_history, log_audit
from typing_center.models import AuditLog


def test_changed_fields_compares_serialized_values() -> None:
    old = {"total": 100.0, "items": [{"description": "a", "amount": 1}], "notes": None}
    new = {"total": 100.0, "items": [{"description": "a", "amount": 2}], "notes": "hi"}
    assert compute_changed_fields(old, new) == ["items", "notes"]


def test_changed_fields_empty_when_a_side_is_missing() -> None:
    assert compute_changed_fields(None, {"a": 1}) == []
    assert compute_changed_fields({"a": 1}, None) == []


def test_changed_fields_handles_non_json_values() -> None:
    assert compute_changed_fields({"total": Decimal("1.00")}, {"total": Decimal("1.50")}) == ["total"]


def test_log_audit_outside_request_uses_system_actor(app) -> None:
    entry = log_audit("invoices", 7, "created", None, {"total": Decimal("10.00")})

    assert entry is not None
    assert entry.changed_by == "system"
    assert entry.ip_address is None
    assert entry.new_data == {"total": "10.00"}
    assert entry.changed_fields == []


def test_history_is_newest_first_and_scoped(app) -> None:
    log_audit("invoices", 1, "created", None, {"v": 1})
    log_audit("invoices", 1, "updated", {"v": 1}, {"v": 2})
    log_audit("invoices", 2, "created", None, {"v": 1})
    log_audit("quotations", 1, "created", None, {"v": 1})

    history = get_audit_history("invoices", 1)
    assert [e.action for e in history] == ["updated", "created"]
    assert history[0].changed_fields == ["v"]
    assert len(get_audit_history("invoices", 1, limit=1)) == 1


def test_audit_write_failure_is_swallowed(app) -> None:
    AuditLog.__table__.drop(bind=app.extensions["sqlalchemy"].engine)

    assert log_audit("invoices", 1, "created", None, {"v": 1}) is None
