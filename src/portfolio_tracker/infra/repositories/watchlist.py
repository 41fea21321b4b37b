"""SQLModel implementation of Watchlist and membership repository."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func
from sqlmodel import col, select

from ...domain.clock import Clock, utcnow
from ...domain.symbols import normalize_symbol
from ...models import Watchlist, WatchlistMember, WatchlistSource
from ..database import SessionFactory


def _validate_source(source: str) -> str:
    return WatchlistSource(source).value


class SQLModelWatchlistRepository:
    """Watchlists plus their append-only membership log."""

    def __init__(self, session_factory: SessionFactory, clock: Clock = utcnow):
        self.session_factory = session_factory
        self.clock = clock

    # -- watchlists ---------------------------------------------------------

    def get_by_id(self, watchlist_id: int) -> Optional[Watchlist]:
        with self.session_factory() as session:
            return session.get(Watchlist, watchlist_id)

    def get_by_name(self, name: str) -> Optional[Watchlist]:
        with self.session_factory() as session:
            return session.exec(select(Watchlist).where(Watchlist.name == name)).first()

    def list_all(self) -> list[Watchlist]:
        with self.session_factory() as session:
            return list(session.exec(select(Watchlist).order_by(col(Watchlist.name))).all())

    def list_by_source(self, source: str) -> list[Watchlist]:
        with self.session_factory() as session:
            statement = (
                select(Watchlist)
                .where(Watchlist.source == _validate_source(source))
                .order_by(col(Watchlist.name))
            )
            return list(session.exec(statement).all())

    def create(self, name: str, source: str, dollar_allocation: float | None = None) -> Watchlist:
        now = self.clock()
        with self.session_factory() as session:
            watchlist = Watchlist(
                name=name,
                source=_validate_source(source),
                dollar_allocation=dollar_allocation,
                created_at=now,
                updated_at=now,
            )
            session.add(watchlist)
            session.commit()
            session.refresh(watchlist)
            return watchlist

    def update(
        self, watchlist_id: int, *, name: str | None = None, dollar_allocation: float | None = None
    ) -> Optional[Watchlist]:
        with self.session_factory() as session:
            watchlist = session.get(Watchlist, watchlist_id)
            if watchlist is None:
                return None
            if name:
                watchlist.name = name
            if dollar_allocation is not None:
                watchlist.dollar_allocation = dollar_allocation
            watchlist.updated_at = self.clock()
            session.add(watchlist)
            session.commit()
            session.refresh(watchlist)
            return watchlist

    def delete(self, watchlist_id: int) -> bool:
        """Delete a watchlist; members, ratings and links cascade."""
        with self.session_factory() as session:
            result = session.execute(delete(Watchlist).where(col(Watchlist.id) == watchlist_id))
            session.commit()
            return result.rowcount > 0

    # -- membership ---------------------------------------------------------

    def get_active_member(self, watchlist_id: int, symbol: str) -> Optional[WatchlistMember]:
        with self.session_factory() as session:
            statement = select(WatchlistMember).where(
                WatchlistMember.watchlist_id == watchlist_id,
                WatchlistMember.symbol == normalize_symbol(symbol),
                col(WatchlistMember.removed_at).is_(None),
            )
            return session.exec(statement).first()

    def list_active_symbols(self, watchlist_id: int) -> list[str]:
        with self.session_factory() as session:
            statement = (
                select(WatchlistMember.symbol)
                .where(
                    WatchlistMember.watchlist_id == watchlist_id,
                    col(WatchlistMember.removed_at).is_(None),
                )
                .distinct()
                .order_by(col(WatchlistMember.symbol))
            )
            return list(session.exec(statement).all())

    def count_active_members(self, watchlist_id: int) -> int:
        return len(self.list_active_symbols(watchlist_id))

    def count_members(self, watchlist_id: int) -> int:
        """All membership rows, removed ones included."""
        with self.session_factory() as session:
            statement = (
                select(func.count())
                .select_from(WatchlistMember)
                .where(WatchlistMember.watchlist_id == watchlist_id)
            )
            return int(session.exec(statement).one())

    def membership_history(self, watchlist_id: int, symbol: str) -> list[WatchlistMember]:
        with self.session_factory() as session:
            statement = (
                select(WatchlistMember)
                .where(
                    WatchlistMember.watchlist_id == watchlist_id,
                    WatchlistMember.symbol == normalize_symbol(symbol),
                )
                .order_by(col(WatchlistMember.added_at))
            )
            return list(session.exec(statement).all())

    def ensure_active_member(
        self, watchlist_id: int, symbol: str, *, at: datetime | None = None
    ) -> tuple[WatchlistMember, bool]:
        """Open a membership unless one is already active. Returns ``(member, created)``."""
        canonical = normalize_symbol(symbol)
        existing = self.get_active_member(watchlist_id, canonical)
        if existing is not None:
            return existing, False
        with self.session_factory() as session:
            member = WatchlistMember(
                watchlist_id=watchlist_id, symbol=canonical, added_at=at or self.clock()
            )
            session.add(member)
            session.commit()
            session.refresh(member)
            return member, True

    def remove_member(self, watchlist_id: int, symbol: str, *, at: datetime | None = None) -> bool:
        """Soft-delete the active membership; False when none is active."""
        with self.session_factory() as session:
            statement = select(WatchlistMember).where(
                WatchlistMember.watchlist_id == watchlist_id,
                WatchlistMember.symbol == normalize_symbol(symbol),
                col(WatchlistMember.removed_at).is_(None),
            )
            members = session.exec(statement).all()
            if not members:
                return False
            removed_at = at or self.clock()
            for member in members:
                member.removed_at = removed_at
                session.add(member)
            session.commit()
            return True

    def count_removed_members(self) -> int:
        with self.session_factory() as session:
            statement = (
                select(func.count())
                .select_from(WatchlistMember)
                .where(col(WatchlistMember.removed_at).is_not(None))
            )
            return int(session.exec(statement).one())

    def purge_removed_members(self) -> int:
        """Hard-delete soft-deleted membership rows."""
        with self.session_factory() as session:
            result = session.execute(
                delete(WatchlistMember).where(col(WatchlistMember.removed_at).is_not(None))
            )
            session.commit()
            return result.rowcount
