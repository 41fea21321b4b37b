"""Import blueprint package."""

from __future__ import annotations

from flask import Blueprint

bp = Blueprint("imports", __name__, url_prefix="/api/import")

from . import routes  # noqa: E402,F401

__all__ = ["bp"]
