"""Shared fixtures: an app on an in-memory database, users and bearer headers."""
import sys
from pathlib import Path

import pytest
from flask.testing import FlaskClient

# Ensure repository root is on sys.path for module resolution
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import TestConfig
from typing_center import create_app
from typing_center.extensions import db
from typing_center.models import Client, User
from typing_center.security import issue_token


@pytest.fixture
def app():
    """
    Fresh application and schema per test.

    The app context stays pushed so tests and fixtures can use the session
    directly; requests made through `client` get their own context.
    """

    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


class RequestContextClient(FlaskClient):
    """Runs every request in a new app context, as a real server does."""

    def open(self, *args, **kwargs):
        with self.application.app_context():
            response = super().open(*args, **kwargs)
        # Objects held by the test reload what the request committed.
        db.session.expire_all()
        return response


@pytest.fixture
def client(app):
    app.test_client_class = RequestContextClient
    return app.test_client()


def _make_user(username: str, role: str, password: str = "secret123", **extra) -> User:
    user = User(
        username=username,
        full_name=extra.pop("full_name", username.title()),
        role=role,
        is_active=extra.pop("is_active", True),
        **extra,
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def make_user(app):
    return _make_user


@pytest.fixture
def admin_user(app) -> User:
    return _make_user("admin", "admin", full_name="System Administrator", email="admin@example.com")


@pytest.fixture
def regular_user(app) -> User:
    return _make_user("sara", "user", full_name="Sara Ahmed", email="sara@example.com")


def bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {issue_token(user)}"}


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return bearer(admin_user)


@pytest.fixture
def user_headers(regular_user) -> dict:
    return bearer(regular_user)


@pytest.fixture
def sample_client(app) -> Client:
    record = Client(
        client_code="CLI-2025-0001",
        client_type="company",
        company_name="Acme Trading LLC",
        contact_person="Omar Khalid",
        phone="0501234567",
        email="info@acme.ae",
        emirate="dubai",
    )
    db.session.add(record)
    db.session.commit()
    return record


@pytest.fixture
def create_invoice(client, admin_headers):
    """POST an invoice and return its JSON."""

    def _create(items=None, include_vat=False, **fields):
        body = {
            "client_name": "Walk-in",
            "items": items if items is not None else [{"description": "Typing", "amount": 100}],
            "include_vat": include_vat,
            **fields,
        }
        response = client.post("/api/invoices/", json=body, headers=admin_headers)
        assert response.status_code == 201, response.get_json()
        return response.get_json()

    return _create
