"""
Quotations blueprint package.

Exposes the Blueprint object imported in typing_center.__init__.
The routes live in routes.py.
"""

from .routes import quotations_bp  # noqa: F401
