"""
Useful Links Routes

Shared bookmarks (government portals, typing systems) shown to every user.
Anyone signed in can add or edit a link; deletion is admin only.
"""

from flask import Blueprint, jsonify
from flask_login import login_required

from ...extensions import db
from ...forms import UsefulLinkForm, UsefulLinkUpdateForm, bind_json_form, json_body, submitted
from ...models import UsefulLink
from ...security import admin_required
from ...utils import get_or_404


useful_links_bp = Blueprint("useful_links", __name__, url_prefix="/api/useful-links")

LINK_FIELDS = ("name", "url", "description", "category", "icon")


@useful_links_bp.route("/", methods=["GET"])
@login_required
def list_links():
    links = UsefulLink.query.order_by(UsefulLink.category.asc(), UsefulLink.name.asc()).all()
    return jsonify([link.to_dict() for link in links])


@useful_links_bp.route("/", methods=["POST"])
@login_required
def create_link():
    form = bind_json_form(UsefulLinkForm)
    link = UsefulLink(**{field: (getattr(form, field).data or "").strip() or None for field in LINK_FIELDS})
    db.session.add(link)
    db.session.commit()
    return jsonify(link.to_dict()), 201


@useful_links_bp.route("/<int:link_id>", methods=["PUT"])
@login_required
def update_link(link_id):
    link = get_or_404(UsefulLink, link_id, "Link not found.")

    data = json_body()
    form = bind_json_form(UsefulLinkUpdateForm, data)
    for field, value in submitted(form, data).items():
        value = (value or "").strip() or None
        if field in ("name", "url") and value is None:
            continue
        setattr(link, field, value)

    db.session.commit()
    return jsonify(link.to_dict())


@useful_links_bp.route("/<int:link_id>", methods=["DELETE"])
@login_required
@admin_required
def delete_link(link_id):
    link = get_or_404(UsefulLink, link_id, "Link not found.")
    db.session.delete(link)
    db.session.commit()
    return jsonify({"message": "Link deleted."})
