"""
typing_center/errors.py

Error taxonomy for the API.

Every error carries the HTTP status it maps to. The app factory registers one
handler for ServiceError that renders {"error": message, **payload}.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 400

    def __init__(self, message: str, *, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {}

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.message}
        body.update(self.payload)
        return body


class ValidationError(ServiceError):
    """Missing required field or malformed input."""

    status_code = 400


class NotFound(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    """Duplicate identity, already-converted quotation, number collision."""

    status_code = 409


class AuthError(ServiceError):
    """Bad credentials, missing/expired/invalid token."""

    status_code = 401


class PermissionDenied(AuthError):
    status_code = 403


class TooManyAttempts(AuthError):
    """Login lockout for the caller IP."""

    status_code = 429
