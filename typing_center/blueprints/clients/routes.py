"""
Client Routes

Rules:
- Clients are never hard-deleted; DELETE sets deleted_at (admin only).
- Listings hide soft-deleted clients. A single client is still returned by id
  (with deleted_at set) so that older quotations/invoices can show it.
- Creation is rejected when an active client already matches by phone,
  email, trade license, or by company name / contact person within the same
  client type. At least one of those identifiers is required.
"""

from datetime import datetime

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy import or_

from ...errors import ConflictError, NotFound, ValidationError
from ...extensions import db
from ...forms import ClientForm, bind_json_form, json_body, submitted
from ...models import Client
from ...numbering import commit_or_conflict, next_client_code
from ...security import admin_required


clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")

CLIENT_FIELDS = (
    "client_type",
    "company_name",
    "contact_person",
    "email",
    "phone",
    "trade_license_number",
    "emirate",
    "address",
    "is_new_client",
    "notes",
)


def _clean(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _identity_conditions(values: dict) -> list:
    """OR-conditions identifying the same real-world client."""
    conditions = []
    if values.get("phone"):
        conditions.append(Client.phone == values["phone"])
    if values.get("email"):
        conditions.append(Client.email == values["email"])

    client_type = values.get("client_type") or "company"
    if client_type == "company" and values.get("company_name"):
        conditions.append((Client.company_name == values["company_name"]) & (Client.client_type == "company"))
    if client_type == "individual" and values.get("contact_person"):
        conditions.append(
            (Client.contact_person == values["contact_person"]) & (Client.client_type == "individual")
        )

    if values.get("trade_license_number"):
        conditions.append(Client.trade_license_number == values["trade_license_number"])
    return conditions


def _find_duplicates(values: dict, exclude_id: int | None = None) -> list:
    conditions = _identity_conditions(values)
    if not conditions:
        return []

    query = Client.query.filter(Client.deleted_at.is_(None), or_(*conditions))
    if exclude_id is not None:
        query = query.filter(Client.id != exclude_id)
    return query.all()


def _duplicate_error(duplicates: list) -> ConflictError:
    return ConflictError(
        "Client already exists.",
        payload={
            "duplicates": [
                {
                    "id": c.id,
                    "client_code": c.client_code,
                    "company_name": c.company_name,
                    "contact_person": c.contact_person,
                    "phone": c.phone,
                    "email": c.email,
                }
                for c in duplicates
            ]
        },
    )


def _get_client(client_id: int, include_deleted: bool = False) -> Client:
    client = db.session.get(Client, client_id)
    if client is None or (client.deleted_at is not None and not include_deleted):
        raise NotFound("Client not found.")
    return client


# ---------------------------------------------------------------------
# READ
# ---------------------------------------------------------------------

@clients_bp.route("/", methods=["GET"])
@login_required
def list_clients():
    """Active clients, newest first. Optional ?search= over names, phone, email, code."""
    query = Client.query.filter(Client.deleted_at.is_(None))

    search = (request.args.get("search") or "").strip()
    if search:
        like = f"%{search}%"
        query = query.filter(
            or_(
                Client.company_name.ilike(like),
                Client.contact_person.ilike(like),
                Client.phone.ilike(like),
                Client.email.ilike(like),
                Client.client_code.ilike(like),
            )
        )

    clients = query.order_by(Client.created_at.desc(), Client.id.desc()).all()
    return jsonify([c.to_dict() for c in clients])


@clients_bp.route("/<int:client_id>", methods=["GET"])
@login_required
def get_client(client_id):
    return jsonify(_get_client(client_id, include_deleted=True).to_dict())


# ---------------------------------------------------------------------
# WRITE
# ---------------------------------------------------------------------

@clients_bp.route("/", methods=["POST"])
@login_required
def create_client():
    data = json_body()
    form = bind_json_form(ClientForm, data)
    values = {field: _clean(getattr(form, field).data) for field in CLIENT_FIELDS}
    values["client_type"] = values["client_type"] or "company"
    values["is_new_client"] = bool(values["is_new_client"])

    if not _identity_conditions(values):
        raise ValidationError("No unique identifier provided.")

    duplicates = _find_duplicates(values)
    if duplicates:
        raise _duplicate_error(duplicates)

    client = Client(client_code=next_client_code(), **values)
    db.session.add(client)
    commit_or_conflict()

    current_app.logger.info("Client %s created by %s", client.client_code, current_user.username)
    return jsonify(client.to_dict()), 201


@clients_bp.route("/<int:client_id>", methods=["PUT"])
@login_required
def update_client(client_id):
    """Partial update of an active client. Duplicate check excludes the client itself."""
    client = _get_client(client_id)

    data = json_body()
    form = bind_json_form(ClientForm, data)
    changes = {k: _clean(v) for k, v in submitted(form, data).items() if k in CLIENT_FIELDS}
    if "client_type" in changes and not changes["client_type"]:
        changes.pop("client_type")
    if "is_new_client" in changes:
        changes["is_new_client"] = bool(changes["is_new_client"])

    merged = {field: getattr(client, field) for field in CLIENT_FIELDS}
    merged.update(changes)

    duplicates = _find_duplicates(merged, exclude_id=client.id)
    if duplicates:
        raise _duplicate_error(duplicates)

    for field, value in changes.items():
        setattr(client, field, value)
    db.session.commit()

    return jsonify(client.to_dict())


@clients_bp.route("/<int:client_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_client(client_id):
    """Soft delete."""
    client = _get_client(client_id)
    client.deleted_at = datetime.utcnow()
    db.session.commit()

    current_app.logger.info("Client %s deleted by %s", client.client_code, current_user.username)
    return jsonify({"message": "Client deleted."})
