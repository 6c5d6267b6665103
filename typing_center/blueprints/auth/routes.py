"""
Authentication Routes

Provides:
- POST /api/auth/login
- GET  /api/auth/check
- POST /api/auth/logout
- POST /api/auth/password-reset/request
- POST /api/auth/password-reset/reset

Rules:
- Only active users may log in; credentials validated via password hash.
- Failed logins are counted per caller IP by Flask-Limiter; successful ones
  never count. Once the limit is reached the IP gets 429 until the window
  expires.
- Tokens are stateless JWTs, so logout only has meaning on the client.
- Reset requests always answer with the same message so accounts cannot be
  enumerated. There is no mail delivery: the token is written to the log.
"""

from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from ...errors import AuthError, ValidationError
from ...extensions import db, limiter
from ...forms import LoginForm, PasswordResetForm, PasswordResetRequestForm, bind_json_form
from ...models import User
from ...security import (
    attempts_remaining,
    failed_login,
    issue_token,
    login_limit,
    new_reset_token,
    reset_tokens,
)


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

RESET_REQUEST_MESSAGE = "If an account with that email exists, a password reset link has been sent."


def _caller_ip() -> str:
    return request.remote_addr or "unknown"


# ============================================================
# LOGIN
# ============================================================

@auth_bp.route("/login", methods=["POST"])
@limiter.limit(login_limit, deduct_when=failed_login)
def login():
    """Exchange username/password for a bearer token."""
    ip = _caller_ip()

    form = bind_json_form(LoginForm)
    username = form.username.data.strip()

    user = User.query.filter_by(username=username).first()

    if not user or not user.check_password(form.password.data) or not user.is_active:
        remaining = attempts_remaining()
        current_app.logger.warning("Failed login for %r from %s (%s attempts left)", username, ip, remaining)
        payload = {} if remaining is None else {"attemptsRemaining": remaining}
        raise AuthError("Invalid username or password.", payload=payload)

    user.last_login = datetime.utcnow()
    db.session.commit()

    current_app.logger.info("User %s logged in from %s", user.username, ip)
    return jsonify({"token": issue_token(user), "user": user.to_dict()})


@auth_bp.route("/check", methods=["GET"])
@login_required
def check():
    """Validate the bearer token and return the current user."""
    return jsonify({"valid": True, "user": current_user.to_dict()})


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    current_app.logger.info("User %s logged out", current_user.username)
    return jsonify({"message": "Logged out."})


# ============================================================
# PASSWORD RESET
# ============================================================

@auth_bp.route("/password-reset/request", methods=["POST"])
def password_reset_request():
    form = bind_json_form(PasswordResetRequestForm)
    email = form.email.data.strip().lower()

    user = User.query.filter(db.func.lower(User.email) == email).first()
    if user and user.is_active:
        token = new_reset_token()
        reset_tokens().set(token, user.id)
        current_app.logger.info("Password reset token for %s: %s", user.username, token)
    else:
        current_app.logger.info("Password reset requested for unknown email %s", email)

    return jsonify({"message": RESET_REQUEST_MESSAGE})


@auth_bp.route("/password-reset/reset", methods=["POST"])
def password_reset():
    form = bind_json_form(PasswordResetForm)

    # Single use: the token is consumed even if the account has gone away.
    user_id = reset_tokens().pop(form.token.data.strip())
    user = db.session.get(User, user_id) if user_id is not None else None
    if user is None or not user.is_active:
        raise ValidationError("Invalid or expired reset token.")

    user.set_password(form.new_password.data)
    db.session.commit()

    current_app.logger.info("Password reset completed for %s", user.username)
    return jsonify({"message": "Password has been reset successfully."})
