"""
User Management (Admin Only).

Rules enforced server-side:
- Usernames are unique.
- An admin cannot delete their own account.
- Password change is self-service only and requires the current password.
"""

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from ...errors import ConflictError, NotFound, PermissionDenied, ValidationError
from ...extensions import db
from ...forms import ChangePasswordForm, UserForm, UserUpdateForm, bind_json_form, json_body, submitted
from ...models import User
from ...security import admin_required


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found.")
    return user


def _ensure_username_free(username: str, exclude_id: int | None = None) -> None:
    query = User.query.filter(User.username == username)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise ConflictError("Username already exists.")


# ---------------------------------------------------------------------
# LIST / CREATE
# ---------------------------------------------------------------------

@users_bp.route("/", methods=["GET"])
@login_required
@admin_required
def list_users():
    users = User.query.order_by(User.username.asc()).all()
    return jsonify([u.to_dict() for u in users])


@users_bp.route("/", methods=["POST"])
@login_required
@admin_required
def create_user():
    """Create a login account. Password is required on creation."""
    data = json_body()
    form = bind_json_form(UserForm, data)

    if not form.password.data:
        raise ValidationError("Invalid input.", payload={"errors": {"password": ["This field is required."]}})

    username = form.username.data.strip()
    _ensure_username_free(username)

    user = User(
        username=username,
        full_name=form.full_name.data.strip(),
        email=form.email.data or None,
        phone=form.phone.data or None,
        role=form.role.data or "user",
        is_active=form.is_active.data if "is_active" in data else True,
    )
    user.set_password(form.password.data)

    db.session.add(user)
    db.session.commit()

    current_app.logger.info("User %s created by %s", user.username, current_user.username)
    return jsonify(user.to_dict()), 201


# ---------------------------------------------------------------------
# UPDATE / DELETE
# ---------------------------------------------------------------------

@users_bp.route("/<int:user_id>", methods=["PUT"])
@login_required
@admin_required
def update_user(user_id):
    """
    Partial update. Admin can:
    - rename / change contact details
    - change role, activate/deactivate
    - set a new password without knowing the old one
    """
    user = _get_user(user_id)
    data = json_body()
    form = bind_json_form(UserUpdateForm, data)
    changes = submitted(form, data)

    if changes.get("username"):
        username = changes["username"].strip()
        _ensure_username_free(username, exclude_id=user.id)
        user.username = username
    if changes.get("full_name"):
        user.full_name = changes["full_name"].strip()
    if "email" in changes:
        user.email = changes["email"] or None
    if "phone" in changes:
        user.phone = changes["phone"] or None
    if changes.get("role"):
        user.role = changes["role"]
    if "is_active" in changes:
        if user.id == current_user.id and not changes["is_active"]:
            raise ValidationError("You cannot deactivate your own account.")
        user.is_active = bool(changes["is_active"])
    if changes.get("password"):
        user.set_password(changes["password"])

    db.session.commit()
    return jsonify(user.to_dict())


@users_bp.route("/<int:user_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_user(user_id):
    user = _get_user(user_id)
    if user.id == current_user.id:
        raise ValidationError("You cannot delete your own account.")

    db.session.delete(user)
    db.session.commit()

    current_app.logger.info("User %s deleted by %s", user.username, current_user.username)
    return jsonify({"message": "User deleted."})


# ---------------------------------------------------------------------
# SELF-SERVICE PASSWORD CHANGE
# ---------------------------------------------------------------------

@users_bp.route("/<int:user_id>/password", methods=["PUT"])
@login_required
def change_password(user_id):
    """Any user may change their own password, never someone else's."""
    if user_id != current_user.id:
        raise PermissionDenied("You can only change your own password.")

    form = bind_json_form(ChangePasswordForm)
    user = _get_user(user_id)

    if not user.check_password(form.current_password.data):
        raise ValidationError("Current password is incorrect.")

    user.set_password(form.new_password.data)
    db.session.commit()

    current_app.logger.info("User %s changed their password", user.username)
    return jsonify({"message": "Password changed successfully."})
