"""
Application configuration.
This module defines the configuration settings for the Flask application, including database connection, secret keys,
token lifetimes and login throttling. It uses environment variables for sensitive information and defaults for
development. In production, make sure to set the appropriate environment variables and secure the secret keys.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Base configuration shared by all environments."""

    # IMPORTANT: change these in production
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me-please")
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", SECRET_KEY)

    # Database: SQLite for development (simple file in project folder)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'typing_center.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer-token API: forms are validated from JSON bodies without CSRF tokens
    WTF_CSRF_ENABLED = False

    # Auth
    JWT_EXPIRES_HOURS = 8
    LOGIN_MAX_ATTEMPTS = 5
    LOGIN_LOCKOUT_MINUTES = 15

    RESET_TOKEN_TTL_MINUTES = 60
    AUTH_STORE_MAX_ENTRIES = 10000

    # Failed-login limits (Flask-Limiter). memory:// is per process; point this
    # at redis://... when running several workers.
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_HEADERS_ENABLED = True

    # Billing
    VAT_RATE = "0.05"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Names used on printed documents
    APP_NAME = "Typing Center Management"
    COMPANY_NAME = os.environ.get("COMPANY_NAME", "Bab Alyusr Business Setup Services")


class TestConfig(Config):
    """In-memory database for the test suite."""

    TESTING = True
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-jwt-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "DEBUG"
