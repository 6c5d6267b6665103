"""
typing_center/__init__.py

Flask application factory for the Typing Center Management System.

Requirements:
- JSON API only; the UI is a separate client and is never trusted.
- PostgreSQL-ready (SQLAlchemy + migrations) but SQLite is used for dev.
- Every request carries a bearer token; access control is enforced per route.
"""

from __future__ import annotations

import logging

import click
from flask import Flask, jsonify
from flask_limiter.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .errors import ServiceError
from .extensions import db, limiter, login_manager, migrate
from .models import Client, User
from .security import init_security, load_user_from_request, lockout_error

# Blueprint imports kept inside create_app() to reduce import side effects.


def create_app(config_object: str | object = "config.Config") -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)
    init_security(app)

    @login_manager.user_loader
    def load_user(user_id: str) -> User | None:
        """Load user for Flask-Login."""
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    login_manager.request_loader(load_user_from_request)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Authentication required."}), 401

    # ----------------------------------------------------------------------
    # Errors
    # ----------------------------------------------------------------------
    @app.errorhandler(ServiceError)
    def handle_service_error(error: ServiceError):
        # A rejected operation never leaves staged changes behind.
        db.session.rollback()
        app.logger.debug("%s: %s", type(error).__name__, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limit(error: RateLimitExceeded):
        lockout = lockout_error(error)
        return jsonify(lockout.to_dict()), lockout.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return jsonify({"error": error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        db.session.rollback()
        app.logger.exception("Unhandled error: %s", error)
        return jsonify({"error": "Internal server error"}), 500

    # ----------------------------------------------------------------------
    # Blueprints
    # ----------------------------------------------------------------------
    from .blueprints.auth import auth_bp
    from .blueprints.users import users_bp
    from .blueprints.clients import clients_bp
    from .blueprints.quotations import quotations_bp
    from .blueprints.invoices import invoices_bp
    from .blueprints.payments import payments_bp
    from .blueprints.applications import applications_bp
    from .blueprints.reports import reports_bp
    from .blueprints.useful_links import useful_links_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(clients_bp)
    app.register_blueprint(quotations_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(applications_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(useful_links_bp)

    # ----------------------------------------------------------------------
    # Health
    # ----------------------------------------------------------------------
    @app.route("/health")
    def health():
        """Database connectivity check."""
        try:
            db.session.execute(text("SELECT 1"))
        except SQLAlchemyError:
            app.logger.exception("Health check failed")
            return jsonify({"status": "error", "database": "unreachable"}), 503
        return jsonify({"status": "ok", "database": "ok"})

    # ----------------------------------------------------------------------
    # CLI
    # ----------------------------------------------------------------------
    @app.cli.command("create-admin")
    @click.option("--username", default="admin", show_default=True)
    @click.option("--password", default="admin123", show_default=True)
    @click.option("--full-name", default="System Administrator", show_default=True)
    @click.option("--email", default=None)
    def create_admin_command(username, password, full_name, email):
        """Create the first admin account (no-op if the username exists)."""
        if User.query.filter_by(username=username).first():
            click.echo(f"User '{username}' already exists.")
            return

        user = User(username=username, full_name=full_name, email=email, role="admin", is_active=True)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        click.echo(f"Admin '{username}' created. Change the password after the first login.")

    @app.cli.command("seed-demo")
    def seed_demo_command():
        """Create the demo client (idempotent)."""
        from .numbering import next_client_code

        if Client.query.filter_by(company_name="Demo Client LLC").first():
            click.echo("Demo client already exists.")
            return

        client = Client(
            client_code=next_client_code(),
            client_type="company",
            company_name="Demo Client LLC",
            contact_person="Demo Contact",
            email="demo@client.com",
            phone="0500000000",
            trade_license_number="TL-123456",
            emirate="dubai",
        )
        db.session.add(client)
        db.session.commit()
        click.echo(f"Demo client {client.client_code} created.")

    return app
