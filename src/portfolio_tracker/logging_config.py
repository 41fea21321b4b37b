"""Package logging: readable console lines plus a rotating JSON-lines file."""

from __future__ import annotations

import json
import logging
import logging.handlers
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import BaseConfig

ROOT_LOGGER_NAME = "portfolio_tracker"
LOG_FILE_NAME = "portfolio_tracker.log"

_CONSOLE_HANDLER = f"{ROOT_LOGGER_NAME}.console"
_FILE_HANDLER = f"{ROOT_LOGGER_NAME}.file"

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


class JSONFormatter(logging.Formatter):
    """One JSON object per line; ``extra=`` fields are nested under ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        extra = {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}
        if extra:
            entry["extra"] = extra
        if record.exc_info and record.exc_info[0] is not None:
            entry["error"] = record.exc_info[0].__name__
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _console_handler(config: BaseConfig, level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.set_name(_CONSOLE_HANDLER)
    # Quiet consoles outside dev mode; the file keeps the full record.
    handler.setLevel(level if config.DEV_MODE else max(level, logging.WARNING))
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s", datefmt="%H:%M:%S")
    )
    return handler


def _file_handler(log_file: Path, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    handler.set_name(_FILE_HANDLER)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())
    return handler


def log_file_path(config: BaseConfig) -> Path:
    return Path(config.DATA_DIR) / "logs" / LOG_FILE_NAME


def setup_logging(config: BaseConfig) -> logging.Logger:
    """Install the package handlers once per log file.

    The CLI and the Flask factory both call this; a repeat call for the same
    data directory only re-applies the level. Pointing at another data
    directory swaps the handlers.
    """

    level = logging.getLevelName(config.LOG_LEVEL)
    if not isinstance(level, int):
        level = logging.INFO

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    log_file = log_file_path(config)

    installed = {handler.get_name(): handler for handler in logger.handlers}
    current = installed.get(_FILE_HANDLER)
    if current is not None and Path(current.baseFilename) == log_file.absolute():
        current.setLevel(level)
        return logger

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.addHandler(_console_handler(config, level))
    logger.addHandler(_file_handler(log_file, level))
    logger.debug("Logging to %s", log_file, extra={"dev_mode": config.DEV_MODE})
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the package namespace."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
