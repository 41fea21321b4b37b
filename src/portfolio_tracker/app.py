"""Flask application factory for the JSON API."""

from __future__ import annotations

from importlib import import_module
from typing import Iterable, Optional

from flask import Flask, jsonify
from werkzeug.exceptions import RequestEntityTooLarge

from . import cli as _cli
from .config import BaseConfig, DevConfig
from .context import create_app_context
from .logging_config import setup_logging

_CONFIG_MAP = {
    "development": DevConfig,
    "default": BaseConfig,
}


def _resolve_config(name: str | None) -> type[BaseConfig]:
    """Return the config class for the provided environment name."""

    if not name:
        return BaseConfig
    return _CONFIG_MAP.get(name.lower(), BaseConfig)


def _blueprint_paths() -> Iterable[str]:
    """Yield blueprint import paths registered on every app."""

    yield "portfolio_tracker.blueprints.imports"
    yield "portfolio_tracker.blueprints.dashboard"


def create_app(config: Optional[BaseConfig] = None, *, config_name: str | None = None) -> Flask:
    """Create and configure the Flask application instance."""

    app = Flask(__name__, instance_relative_config=True)
    config_obj = config or _resolve_config(config_name)()
    app.config.from_object(config_obj)
    app.config["MAX_CONTENT_LENGTH"] = config_obj.MAX_UPLOAD_BYTES
    app.config["PORTFOLIO_CONFIG"] = config_obj

    setup_logging(config_obj)
    app.config["PORTFOLIO_CONTEXT"] = create_app_context(config_obj)

    _register_blueprints(app)
    _register_error_handlers(app)
    _cli.init_app(app)
    return app


def _register_blueprints(app: Flask) -> None:
    """Import and register all blueprints declared in `_blueprint_paths`."""

    for dotted_path in _blueprint_paths():
        module = import_module(dotted_path)
        blueprint = getattr(module, "bp")
        app.register_blueprint(blueprint)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(RequestEntityTooLarge)
    def _too_large(_exc: RequestEntityTooLarge):
        return (
            jsonify(
                {
                    "error": {
                        "code": "FILE_TOO_LARGE",
                        "message": f"Uploads are limited to {app.config['MAX_CONTENT_LENGTH']} bytes",
                    }
                }
            ),
            413,
        )
