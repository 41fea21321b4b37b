"""SQLModel implementation of Position repository."""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import delete
from sqlmodel import col, select

from ...domain.clock import Clock, utcnow
from ...domain.merge import PositionUpdate
from ...domain.symbols import normalize_symbol
from ...models import Position, Symbol
from ..database import SessionFactory


class SQLModelPositionRepository:
    """SQLModel-based position repository implementation."""

    def __init__(self, session_factory: SessionFactory, clock: Clock = utcnow):
        self.session_factory = session_factory
        self.clock = clock

    def get_by_id(self, position_id: int) -> Optional[Position]:
        with self.session_factory() as session:
            return session.get(Position, position_id)

    def get_by_account_and_symbol(self, account_id: int, symbol: str) -> Optional[Position]:
        with self.session_factory() as session:
            statement = select(Position).where(
                Position.account_id == account_id, Position.symbol == normalize_symbol(symbol)
            )
            return session.exec(statement).first()

    def list_all(self) -> list[Position]:
        with self.session_factory() as session:
            return list(session.exec(select(Position).order_by(col(Position.symbol))).all())

    def list_by_account(self, account_id: int) -> list[Position]:
        with self.session_factory() as session:
            statement = (
                select(Position)
                .where(Position.account_id == account_id)
                .order_by(col(Position.symbol))
            )
            return list(session.exec(statement).all())

    def list_by_symbol(self, symbol: str) -> list[Position]:
        with self.session_factory() as session:
            statement = (
                select(Position)
                .where(Position.symbol == normalize_symbol(symbol))
                .order_by(col(Position.account_id))
            )
            return list(session.exec(statement).all())

    def upsert(self, update: PositionUpdate) -> tuple[Position, bool]:
        """Insert or merge by (account, symbol).

        Shares are always replaced by the incoming snapshot; cost basis is kept
        when the snapshot does not carry one. Returns ``(position, created)``.
        """
        canonical = normalize_symbol(update.symbol)
        with self.session_factory() as session:
            existing = session.exec(
                select(Position).where(
                    Position.account_id == update.account_id, Position.symbol == canonical
                )
            ).first()
            created = existing is None
            if existing is None:
                existing = Position(account_id=update.account_id, symbol=canonical, shares=update.shares)
            update.apply_to(existing)
            existing.updated_at = self.clock()
            session.add(existing)
            session.commit()
            session.refresh(existing)
            return existing, created

    def update(
        self, position_id: int, *, shares: float | None = None, cost_basis: float | None = None
    ) -> Optional[Position]:
        """Manual edit; fields left as None keep their stored values."""
        with self.session_factory() as session:
            position = session.get(Position, position_id)
            if position is None:
                return None
            if shares is not None:
                position.shares = shares
            if cost_basis is not None:
                position.cost_basis = cost_basis
            position.updated_at = self.clock()
            session.add(position)
            session.commit()
            session.refresh(position)
            return position

    def delete(self, position_id: int) -> bool:
        with self.session_factory() as session:
            result = session.execute(delete(Position).where(col(Position.id) == position_id))
            session.commit()
            return result.rowcount > 0

    def list_enriched(self, account_id: int | None = None) -> list[dict[str, Any]]:
        """Positions joined with symbol name and sector."""
        with self.session_factory() as session:
            statement = select(Position, Symbol).join(Symbol, col(Symbol.symbol) == Position.symbol)
            if account_id is not None:
                statement = statement.where(Position.account_id == account_id)
            statement = statement.order_by(col(Position.symbol))
            rows = session.exec(statement).all()
            return [
                {**position.model_dump(), "company_name": symbol.company_name, "sector": symbol.sector}
                for position, symbol in rows
            ]
