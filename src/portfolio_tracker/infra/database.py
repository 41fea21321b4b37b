"""Database engine, schema bootstrap and session helpers."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, ContextManager, Iterator, Tuple

from sqlalchemy import event, inspect, text
from sqlalchemy.engine import Connection, Engine
from sqlmodel import Session, SQLModel, create_engine

from ..config import BaseConfig

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], ContextManager[Session]]

LINK_TABLE = "position_watchlist_link"

# One link per (position, watchlist) pair that ever shared a symbol; active when
# any membership row for the pair is still open, otherwise dropped at the most
# recent removal.
_BACKFILL_LINKS_SQL = text(
    """
    INSERT INTO position_watchlist_link (position_id, watchlist_id, status, linked_at, dropped_at)
    SELECT
        p.id,
        wm.watchlist_id,
        CASE WHEN SUM(CASE WHEN wm.removed_at IS NULL THEN 1 ELSE 0 END) > 0
             THEN 'active' ELSE 'dropped' END,
        MIN(wm.added_at),
        CASE WHEN SUM(CASE WHEN wm.removed_at IS NULL THEN 1 ELSE 0 END) > 0
             THEN NULL ELSE MAX(wm.removed_at) END
    FROM position p
    JOIN watchlist_member wm ON wm.symbol = p.symbol
    WHERE NOT EXISTS (
        SELECT 1 FROM position_watchlist_link l
        WHERE l.position_id = p.id AND l.watchlist_id = wm.watchlist_id
    )
    GROUP BY p.id, wm.watchlist_id
    """
)


def create_db_engine(config: BaseConfig) -> Engine:
    """Create SQLModel engine from configuration."""

    engine = create_engine(config.DATABASE_URL, **config.sqlalchemy_engine_options())
    if config.is_sqlite:
        _install_sqlite_pragmas(engine, config.SQLITE_PRAGMAS)
    return engine


def _install_sqlite_pragmas(engine: Engine, pragmas: dict[str, str]) -> None:
    """Apply PRAGMAs on every new DBAPI connection; foreign keys are off by default."""

    @event.listens_for(engine, "connect")
    def _set_pragmas(dbapi_connection, _connection_record) -> None:  # pragma: no cover - driver hook
        cursor = dbapi_connection.cursor()
        try:
            for name, value in pragmas.items():
                cursor.execute(f"PRAGMA {name}={value}")
        finally:
            cursor.close()


def init_database(engine: Engine) -> None:
    """Create the schema and run data migrations in a single transaction.

    Must complete before any importer or query path touches the database.
    """
    from .. import models  # noqa: F401  # register tables with SQLModel metadata

    with engine.begin() as connection:
        link_table_existed = inspect(connection).has_table(LINK_TABLE)
        SQLModel.metadata.create_all(connection)
        if not link_table_existed:
            backfilled = backfill_position_links(connection)
            logger.info("Created %s table, backfilled %d links", LINK_TABLE, backfilled)


def backfill_position_links(connection: Connection) -> int:
    """Link existing positions to every watchlist that ever listed their symbol."""

    result = connection.execute(_BACKFILL_LINKS_SQL)
    return max(result.rowcount or 0, 0)


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """Provide a transactional scope around operations."""
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_session_factory(engine: Engine) -> SessionFactory:
    """Create a session factory function."""

    def factory() -> ContextManager[Session]:
        return session_scope(engine)

    return factory


def bootstrap_database(config: BaseConfig | None = None) -> Tuple[Engine, SessionFactory]:
    """Convenience bootstrap for engine + session_factory with schema init.

    Used by the CLI, the web app and tests to ensure consistent engine options
    and session configuration. Returns (engine, session_factory).
    """

    cfg = config or BaseConfig()
    engine = create_db_engine(cfg)
    init_database(engine)
    return engine, create_session_factory(engine)
