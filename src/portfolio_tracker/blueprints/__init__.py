"""JSON API blueprints."""

from __future__ import annotations

from flask import current_app, jsonify

from ..context import AppContext


def app_context() -> AppContext:
    """Return the services wired for the running app."""

    return current_app.config["PORTFOLIO_CONTEXT"]


def error_response(code: str, message: str, status: int = 400, **details):
    body = {"code": code, "message": message}
    body.update(details)
    return jsonify({"error": body}), status
