"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "Portfolio Tracker"
    DB_FILENAME = "portfolio.db"
    SQLITE_PRAGMAS = {"journal_mode": "wal", "foreign_keys": "on"}

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("PORTFOLIO_DEV_MODE", default=True)
        self.LOG_LEVEL = os.getenv("PORTFOLIO_LOG_LEVEL", "INFO").upper()
        self.DATABASE_URL = os.getenv("PORTFOLIO_DATABASE_URL", self._build_sqlite_url())
        self.QUOTE_TTL_SECONDS = _env_float("PORTFOLIO_QUOTE_TTL_SECONDS", 300.0)
        self.ALLOCATION_BAND = _env_float("PORTFOLIO_ALLOCATION_BAND", 0.10)
        self.MAX_UPLOAD_BYTES = int(_env_float("PORTFOLIO_MAX_UPLOAD_BYTES", 10 * 1024 * 1024))
        if not 0 <= self.ALLOCATION_BAND < 1:
            raise ValueError("PORTFOLIO_ALLOCATION_BAND must be between 0 and 1.")

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("PORTFOLIO_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        return f"sqlite:///{self.DATA_DIR / self.DB_FILENAME}"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        if not self.is_sqlite:
            return {}
        return {"connect_args": {"check_same_thread": False}}


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False


class TestingConfig(BaseConfig):
    """Configuration pinned to a throwaway directory; ignores PORTFOLIO_DATABASE_URL."""

    DEBUG = False
    TESTING = True

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = Path(data_dir)
        super().__init__()
        self.DATABASE_URL = self._build_sqlite_url()

    def _resolve_data_dir(self) -> Path:
        self._data_dir.mkdir(parents=True, exist_ok=True)
        return self._data_dir.resolve()
