"""
typing_center/security.py

Access control helpers for the Typing Center API.

Key rules:
- The UI is never trusted; all permission checks are server-side.
- Every request is authenticated with an "Authorization: Bearer <jwt>" header,
  resolved to a User by Flask-Login's request_loader.
- Admin: full access. User: day-to-day work, no destructive operations and
  no user management. roles_required() is the single predicate per route.

Failed logins are limited per caller IP with Flask-Limiter (see login_limit);
its storage is whatever RATELIMIT_STORAGE_URI points at.

Password-reset tokens live in an ExpiringStore held on app.extensions. A
reset token is single use, so it has to be remembered and consumed
server-side; the store is process-local and NOT durable: a restart clears
every outstanding reset token.
"""

from __future__ import annotations

import math
import secrets
import time
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Callable, Optional

import jwt
from flask import current_app, request
from flask_limiter.errors import RateLimitExceeded
from flask_login import current_user

from .errors import AuthError, PermissionDenied, TooManyAttempts
from .extensions import db, limiter
from .models import User

JWT_ALGORITHM = "HS256"


# ---------------------------------------------------------------------
# Reset-token store
# ---------------------------------------------------------------------
class ExpiringStore:
    """
    Keyed store with per-entry expiry and a capacity bound.

    Expired entries are purged on access. When full, the oldest entry is
    evicted. Not shared between processes and not persisted.
    """

    def __init__(self, ttl_seconds: float, max_entries: int = 10000, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._data: "OrderedDict[str, tuple[float, Any]]" = OrderedDict()

    def _purge(self) -> None:
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._data.items() if expires_at <= now]
        for key in expired:
            del self._data[key]

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        self._purge()
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._data.pop(key, None)
        self._data[key] = (self._clock() + ttl, value)
        while len(self._data) > self.max_entries:
            self._data.popitem(last=False)

    def get(self, key: str, default: Any = None) -> Any:
        self._purge()
        item = self._data.get(key)
        return default if item is None else item[1]

    def pop(self, key: str, default: Any = None) -> Any:
        self._purge()
        item = self._data.pop(key, None)
        return default if item is None else item[1]

    def __contains__(self, key: str) -> bool:
        self._purge()
        return key in self._data

    def __len__(self) -> int:
        self._purge()
        return len(self._data)


def init_security(app) -> None:
    """Attach the process-local reset-token store to the app."""
    app.extensions["reset_tokens"] = ExpiringStore(
        ttl_seconds=int(app.config.get("RESET_TOKEN_TTL_MINUTES", 60)) * 60,
        max_entries=int(app.config.get("AUTH_STORE_MAX_ENTRIES", 10000)),
    )


def reset_tokens() -> ExpiringStore:
    return current_app.extensions["reset_tokens"]


def new_reset_token() -> str:
    return secrets.token_hex(32)


# ---------------------------------------------------------------------
# Failed-login limit
# ---------------------------------------------------------------------
def _lockout_minutes() -> int:
    return int(current_app.config.get("LOGIN_LOCKOUT_MINUTES", 15))


def login_limit() -> str:
    """e.g. "5 per 15 minutes", from LOGIN_MAX_ATTEMPTS and LOGIN_LOCKOUT_MINUTES."""
    return f"{int(current_app.config.get('LOGIN_MAX_ATTEMPTS', 5))} per {_lockout_minutes()} minutes"


def failed_login(response) -> bool:
    """Only rejected credentials count towards the login limit."""
    return response.status_code == 401


def attempts_remaining() -> Optional[int]:
    """Failed logins the caller has left, counting the one being answered."""
    current = limiter.current_limit
    if current is None:
        return None
    return max(0, int(current.remaining) - 1)


def lockout_error(error: RateLimitExceeded) -> TooManyAttempts:
    """Translate a breached login limit into the API's 429 error."""
    window = _lockout_minutes()
    minutes = window
    current = limiter.current_limit
    if current is not None:
        minutes = max(1, min(window, math.ceil((current.reset_at - time.time()) / 60)))

    current_app.logger.warning("Login locked for %s (%s)", request.remote_addr, error.description)
    return TooManyAttempts(
        f"Too many failed login attempts. Try again in {minutes} minute(s).",
        payload={"retry_after_minutes": minutes},
    )


# ---------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------
def issue_token(user: User) -> str:
    """Signed HS256 bearer token for a user."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "username": user.username,
        "role": user.role,
        "full_name": user.full_name,
        "iat": now,
        "exp": now + timedelta(hours=int(current_app.config.get("JWT_EXPIRES_HOURS", 8))),
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET_KEY"], algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Verify a bearer token. Raises AuthError when expired or invalid."""
    try:
        return jwt.decode(token, current_app.config["JWT_SECRET_KEY"], algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise AuthError("Token expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthError("Invalid token.") from exc


def bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def load_user_from_request(req) -> Optional[User]:
    """Flask-Login request_loader: bearer token -> active User (or None)."""
    token = bearer_token()
    if not token:
        return None

    try:
        claims = decode_token(token)
    except AuthError as exc:
        current_app.logger.debug("Rejected bearer token: %s", exc.message)
        return None

    try:
        user_id = int(claims.get("sub"))
    except (TypeError, ValueError):
        return None

    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


# ---------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------
def roles_required(*roles: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator factory: caller must be authenticated and hold one of the roles.

    Usage:
        @bp.route(...)
        @login_required
        @roles_required("admin")
        def delete_invoice(invoice_id): ...
    """
    def decorator(view_func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view_func)
        def wrapper(*args: Any, **kwargs: Any):
            if not current_user.is_authenticated:
                raise AuthError("Authentication required.")
            if current_user.role not in roles:
                raise PermissionDenied("You do not have permission to perform this action.")
            return view_func(*args, **kwargs)

        return wrapper

    return decorator


admin_required = roles_required("admin")
