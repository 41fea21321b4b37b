"""SQLModel implementation of Symbol repository."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, exists
from sqlmodel import col, or_, select

from ...domain.clock import Clock, utcnow
from ...domain.merge import SymbolUpdate
from ...domain.symbols import normalize_symbol
from ...models import Position, Symbol, WatchlistMember
from ..database import SessionFactory


def _orphan_condition():
    has_position = exists().where(Position.symbol == Symbol.symbol)
    has_active_member = exists().where(
        WatchlistMember.symbol == Symbol.symbol,
        col(WatchlistMember.removed_at).is_(None),
    )
    return ~has_position & ~has_active_member


class SQLModelSymbolRepository:
    """SQLModel-based symbol repository implementation."""

    def __init__(self, session_factory: SessionFactory, clock: Clock = utcnow):
        self.session_factory = session_factory
        self.clock = clock

    def get(self, symbol: str) -> Optional[Symbol]:
        with self.session_factory() as session:
            return session.get(Symbol, normalize_symbol(symbol))

    def list_all(self) -> list[Symbol]:
        with self.session_factory() as session:
            return list(session.exec(select(Symbol).order_by(col(Symbol.symbol))).all())

    def search(self, query: str, limit: int = 50) -> list[Symbol]:
        """Match on ticker or company name substring."""
        pattern = f"%{query.strip()}%"
        with self.session_factory() as session:
            statement = (
                select(Symbol)
                .where(or_(col(Symbol.symbol).ilike(pattern), col(Symbol.company_name).ilike(pattern)))
                .order_by(col(Symbol.symbol))
                .limit(limit)
            )
            return list(session.exec(statement).all())

    def upsert(self, update: SymbolUpdate) -> Symbol:
        """Insert the symbol or merge descriptive fields without erasing known values."""
        canonical = normalize_symbol(update.symbol)
        with self.session_factory() as session:
            existing = session.get(Symbol, canonical)
            if existing is None:
                now = self.clock()
                existing = Symbol(symbol=canonical, created_at=now, updated_at=now)
            update.apply_to(existing)
            existing.symbol = canonical
            existing.updated_at = self.clock()
            session.add(existing)
            session.commit()
            session.refresh(existing)
            return existing

    def ensure(self, symbol: str) -> Symbol:
        """Make sure a row exists for ``symbol`` without changing its description."""
        return self.upsert(SymbolUpdate(symbol=symbol))

    def update(
        self, symbol: str, *, company_name: str | None = None, sector: str | None = None
    ) -> Optional[Symbol]:
        """Merge into an existing symbol; returns None when it does not exist."""
        if self.get(symbol) is None:
            return None
        return self.upsert(SymbolUpdate(symbol=symbol, company_name=company_name, sector=sector))

    def delete(self, symbol: str) -> bool:
        with self.session_factory() as session:
            result = session.execute(delete(Symbol).where(col(Symbol.symbol) == normalize_symbol(symbol)))
            session.commit()
            return result.rowcount > 0

    def list_orphans(self) -> list[str]:
        """Symbols with no positions and no active watchlist membership."""
        with self.session_factory() as session:
            statement = select(Symbol.symbol).where(_orphan_condition()).order_by(col(Symbol.symbol))
            return list(session.exec(statement).all())

    def delete_orphans(self) -> int:
        orphans = self.list_orphans()
        if not orphans:
            return 0
        with self.session_factory() as session:
            result = session.execute(delete(Symbol).where(col(Symbol.symbol).in_(orphans)))
            session.commit()
            return result.rowcount
