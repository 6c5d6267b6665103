"""
Utility functions shared across the blueprints. This includes:
- get_or_404: Fetch a row by primary key or raise NotFound.
- resolve_client: Look up the client referenced by a document and its display name.
- parse_year: Read a ?year= query argument.
"""

from __future__ import annotations

from datetime import date
from typing import Optional, Tuple

from flask import request

from .errors import NotFound, ValidationError
from .extensions import db
from .models import Client


def get_or_404(model, record_id: int, message: Optional[str] = None):
    """Primary-key lookup that raises the API's NotFound instead of aborting."""
    record = db.session.get(model, record_id)
    if record is None:
        raise NotFound(message or f"{model.__name__} not found.")
    return record


def resolve_client(
    client_id: Optional[int],
    client_name: Optional[str] = None,
    current_client_id: Optional[int] = None,
) -> Tuple[Optional[int], Optional[str]]:
    """
    Return (client_id, client_name) for a document.

    When a client id is given it must exist; the name defaults to the client's
    display name. A soft-deleted client is only accepted when it is the one the
    document already references (current_client_id), so older documents keep
    their link but new links cannot be made.
    """
    client_name = (client_name or "").strip() or None
    if not client_id:
        return None, client_name

    client = db.session.get(Client, client_id)
    if client is None:
        raise ValidationError("Client does not exist.", payload={"errors": {"client_id": ["Unknown client."]}})
    if client.deleted_at is not None and client.id != current_client_id:
        raise ValidationError(
            "Client has been deleted.", payload={"errors": {"client_id": ["Client has been deleted."]}}
        )
    return client.id, client_name or client.display_name


def parse_year(default: Optional[int] = None) -> int:
    raw = (request.args.get("year") or "").strip()
    if not raw:
        return default or date.today().year
    try:
        year = int(raw)
    except ValueError as exc:
        raise ValidationError("Invalid year.") from exc
    if year < 1900 or year > 9999:
        raise ValidationError("Invalid year.")
    return year
