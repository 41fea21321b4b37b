"""Position-watchlist link lifecycle.

A link records, per held position, whether a watchlist still recommends its
symbol. Links start ``active``, become ``dropped`` when the symbol's active
membership in the watchlist ends while the position is held, and return to
``active`` (clearing ``dropped_at``) when the symbol is re-added. Imports only
ever transition links; hard deletes are reserved for explicit unlinking.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Optional

from sqlalchemy import delete
from sqlmodel import Session, col, select

from ..domain.clock import Clock, utcnow
from ..domain.symbols import normalize_symbol
from ..infra.database import SessionFactory
from ..models import (
    LinkStatus,
    Position,
    PositionWatchlistLink,
    Symbol,
    Watchlist,
    WatchlistMember,
)

logger = logging.getLogger(__name__)

ACTIVE = LinkStatus.ACTIVE.value
DROPPED = LinkStatus.DROPPED.value


@dataclass
class LinkTransitions:
    """Counts of link changes produced by one synchronization pass."""

    created: int = 0
    reinstated: int = 0
    dropped: int = 0

    def __iadd__(self, other: "LinkTransitions") -> "LinkTransitions":
        self.created += other.created
        self.reinstated += other.reinstated
        self.dropped += other.dropped
        return self

    @property
    def total(self) -> int:
        return self.created + self.reinstated + self.dropped

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class PositionLinkManager:
    """Owns every read and state transition of ``position_watchlist_link`` rows."""

    def __init__(self, session_factory: SessionFactory, clock: Clock = utcnow):
        self.session_factory = session_factory
        self.clock = clock

    # -- lookups ------------------------------------------------------------

    def get_link(self, position_id: int, watchlist_id: int) -> Optional[PositionWatchlistLink]:
        with self.session_factory() as session:
            return self._find(session, position_id, watchlist_id)

    def get_links_for_position(self, position_id: int) -> list[dict[str, Any]]:
        with self.session_factory() as session:
            statement = (
                select(PositionWatchlistLink, Watchlist)
                .join(Watchlist, col(Watchlist.id) == PositionWatchlistLink.watchlist_id)
                .where(PositionWatchlistLink.position_id == position_id)
                .order_by(col(PositionWatchlistLink.linked_at).desc())
            )
            return [
                {**link.to_dict(), "watchlist_name": watchlist.name, "watchlist_source": watchlist.source}
                for link, watchlist in session.exec(statement).all()
            ]

    def get_links_for_watchlist(self, watchlist_id: int) -> list[PositionWatchlistLink]:
        with self.session_factory() as session:
            statement = (
                select(PositionWatchlistLink)
                .where(PositionWatchlistLink.watchlist_id == watchlist_id)
                .order_by(col(PositionWatchlistLink.linked_at).desc())
            )
            return list(session.exec(statement).all())

    def get_active_links(self) -> list[PositionWatchlistLink]:
        with self.session_factory() as session:
            statement = (
                select(PositionWatchlistLink)
                .where(PositionWatchlistLink.status == ACTIVE)
                .order_by(col(PositionWatchlistLink.linked_at).desc())
            )
            return list(session.exec(statement).all())

    def get_dropped_links(self) -> list[dict[str, Any]]:
        with self.session_factory() as session:
            statement = (
                select(PositionWatchlistLink, Watchlist)
                .join(Watchlist, col(Watchlist.id) == PositionWatchlistLink.watchlist_id)
                .where(PositionWatchlistLink.status == DROPPED)
                .order_by(col(PositionWatchlistLink.dropped_at).desc())
            )
            return [
                {**link.to_dict(), "watchlist_name": watchlist.name, "watchlist_source": watchlist.source}
                for link, watchlist in session.exec(statement).all()
            ]

    def get_dropped_links_with_details(self) -> list[dict[str, Any]]:
        """Dropped recommendations on positions still held (shares > 0), newest first."""
        with self.session_factory() as session:
            statement = (
                select(PositionWatchlistLink, Watchlist, Position, Symbol)
                .join(Watchlist, col(Watchlist.id) == PositionWatchlistLink.watchlist_id)
                .join(Position, col(Position.id) == PositionWatchlistLink.position_id)
                .join(Symbol, col(Symbol.symbol) == Position.symbol, isouter=True)
                .where(PositionWatchlistLink.status == DROPPED, col(Position.shares) > 0)
                .order_by(col(PositionWatchlistLink.dropped_at).desc())
            )
            return [
                {
                    "position_id": link.position_id,
                    "watchlist_id": link.watchlist_id,
                    "watchlist_name": watchlist.name,
                    "symbol": position.symbol,
                    "company_name": symbol.company_name if symbol else None,
                    "shares": position.shares,
                    "dropped_at": link.dropped_at,
                }
                for link, watchlist, position, symbol in session.exec(statement).all()
            ]

    # -- single-link transitions -------------------------------------------

    def create_link(self, position_id: int, watchlist_id: int) -> PositionWatchlistLink:
        """Insert an active link, or force an existing one back to active."""
        with self.session_factory() as session:
            link = self._find(session, position_id, watchlist_id)
            if link is None:
                link = PositionWatchlistLink(
                    position_id=position_id,
                    watchlist_id=watchlist_id,
                    status=ACTIVE,
                    linked_at=self.clock(),
                )
            else:
                link.status = ACTIVE
                link.dropped_at = None
            session.add(link)
            session.commit()
            session.refresh(link)
            return link

    def mark_dropped(self, position_id: int, watchlist_id: int) -> Optional[PositionWatchlistLink]:
        return self._transition(position_id, watchlist_id, DROPPED)

    def reactivate(self, position_id: int, watchlist_id: int) -> Optional[PositionWatchlistLink]:
        return self._transition(position_id, watchlist_id, ACTIVE)

    def delete_link(self, position_id: int, watchlist_id: int) -> bool:
        """Hard delete for explicit unlinking."""
        with self.session_factory() as session:
            result = session.execute(
                delete(PositionWatchlistLink).where(
                    col(PositionWatchlistLink.position_id) == position_id,
                    col(PositionWatchlistLink.watchlist_id) == watchlist_id,
                )
            )
            session.commit()
            return result.rowcount > 0

    # -- bulk transitions ---------------------------------------------------

    def mark_dropped_by_symbol(self, symbol: str, watchlist_id: int) -> int:
        """Drop every active link on positions of ``symbol`` for the watchlist."""
        return self._transition_by_symbol(symbol, watchlist_id, from_status=ACTIVE, to_status=DROPPED)

    def reactivate_by_symbol(self, symbol: str, watchlist_id: int) -> int:
        """Reinstate every dropped link on positions of ``symbol`` for the watchlist."""
        return self._transition_by_symbol(symbol, watchlist_id, from_status=DROPPED, to_status=ACTIVE)

    def sync_links_for_symbol(self, symbol: str, watchlist_id: int) -> LinkTransitions:
        """Bring links in line with an active membership of ``symbol``.

        Positions on the symbol without a link get a new active link; dropped
        links are reinstated.
        """
        canonical = normalize_symbol(symbol)
        transitions = LinkTransitions()
        with self.session_factory() as session:
            position_ids = session.exec(select(Position.id).where(Position.symbol == canonical)).all()
            linked = set(
                session.exec(
                    select(PositionWatchlistLink.position_id).where(
                        PositionWatchlistLink.watchlist_id == watchlist_id,
                        col(PositionWatchlistLink.position_id).in_(position_ids),
                    )
                ).all()
            )
            now = self.clock()
            for position_id in position_ids:
                if position_id in linked:
                    continue
                session.add(
                    PositionWatchlistLink(
                        position_id=position_id, watchlist_id=watchlist_id, status=ACTIVE, linked_at=now
                    )
                )
                transitions.created += 1
            session.commit()
        transitions.reinstated = self.reactivate_by_symbol(canonical, watchlist_id)
        if transitions.total:
            logger.info(
                "Synced links for %s on watchlist %d", canonical, watchlist_id,
                extra={"links": transitions.to_dict()},
            )
        return transitions

    def sync_links_for_position(self, position: Position) -> LinkTransitions:
        """Link one position to every watchlist actively listing its symbol.

        Missing links are created and dropped ones reinstated. Links are never
        dropped here; that only follows a membership removal.
        """
        transitions = LinkTransitions()
        with self.session_factory() as session:
            active_watchlists = set(
                session.exec(
                    select(WatchlistMember.watchlist_id).where(
                        WatchlistMember.symbol == position.symbol,
                        col(WatchlistMember.removed_at).is_(None),
                    )
                ).all()
            )
            links = {
                link.watchlist_id: link
                for link in session.exec(
                    select(PositionWatchlistLink).where(PositionWatchlistLink.position_id == position.id)
                ).all()
            }
            now = self.clock()
            for watchlist_id in sorted(active_watchlists):
                link = links.get(watchlist_id)
                if link is None:
                    session.add(
                        PositionWatchlistLink(
                            position_id=position.id, watchlist_id=watchlist_id, status=ACTIVE, linked_at=now
                        )
                    )
                    transitions.created += 1
                elif link.status == DROPPED:
                    link.status = ACTIVE
                    link.dropped_at = None
                    session.add(link)
                    transitions.reinstated += 1
            session.commit()
        return transitions

    # -- internals ----------------------------------------------------------

    @staticmethod
    def _find(session: Session, position_id: int, watchlist_id: int) -> Optional[PositionWatchlistLink]:
        statement = select(PositionWatchlistLink).where(
            PositionWatchlistLink.position_id == position_id,
            PositionWatchlistLink.watchlist_id == watchlist_id,
        )
        return session.exec(statement).first()

    def _apply_status(self, link: PositionWatchlistLink, status: str) -> None:
        link.status = status
        link.dropped_at = self.clock() if status == DROPPED else None

    def _transition(
        self, position_id: int, watchlist_id: int, status: str
    ) -> Optional[PositionWatchlistLink]:
        with self.session_factory() as session:
            link = self._find(session, position_id, watchlist_id)
            if link is None:
                return None
            self._apply_status(link, status)
            session.add(link)
            session.commit()
            session.refresh(link)
            return link

    def _transition_by_symbol(
        self, symbol: str, watchlist_id: int, *, from_status: str, to_status: str
    ) -> int:
        canonical = normalize_symbol(symbol)
        with self.session_factory() as session:
            statement = (
                select(PositionWatchlistLink)
                .join(Position, col(Position.id) == PositionWatchlistLink.position_id)
                .where(
                    PositionWatchlistLink.watchlist_id == watchlist_id,
                    PositionWatchlistLink.status == from_status,
                    Position.symbol == canonical,
                )
            )
            links = session.exec(statement).all()
            for link in links:
                self._apply_status(link, to_status)
                session.add(link)
            session.commit()
        if links:
            logger.info(
                "Links for %s on watchlist %d moved %s -> %s",
                canonical, watchlist_id, from_status, to_status,
                extra={"count": len(links)},
            )
        return len(links)
