"""
Useful links blueprint package.

Exposes the Blueprint object imported in typing_center.__init__.
The routes live in routes.py.
"""

from .routes import useful_links_bp  # noqa: F401
