"""Maintenance utilities: counts, orphan cleanup and deletes that report what they removed."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Optional

from ..domain.clock import Clock, utcnow
from ..domain.symbols import normalize_symbol
from ..infra.database import SessionFactory
from ..infra.repositories import (
    SQLModelAccountRepository,
    SQLModelQuoteRepository,
    SQLModelRatingRepository,
    SQLModelSymbolRepository,
    SQLModelTransactionRepository,
    SQLModelWatchlistRepository,
)
from .position_links import PositionLinkManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdminStats:
    """Row counts shown before destructive cleanup operations."""

    orphan_symbols: int
    transactions: int
    quotes_cache: int
    removed_members: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class AdminService:
    def __init__(self, session_factory: SessionFactory, clock: Clock = utcnow):
        self.accounts = SQLModelAccountRepository(session_factory)
        self.symbols = SQLModelSymbolRepository(session_factory, clock)
        self.watchlists = SQLModelWatchlistRepository(session_factory, clock)
        self.ratings = SQLModelRatingRepository(session_factory, clock)
        self.transactions = SQLModelTransactionRepository(session_factory)
        self.quotes = SQLModelQuoteRepository(session_factory, clock)
        self.links = PositionLinkManager(session_factory, clock)

    def stats(self) -> AdminStats:
        return AdminStats(
            orphan_symbols=len(self.symbols.list_orphans()),
            transactions=self.transactions.count(),
            quotes_cache=self.quotes.count(),
            removed_members=self.watchlists.count_removed_members(),
        )

    def delete_orphan_symbols(self) -> int:
        """Remove symbols with no positions and no active membership."""
        deleted = self.symbols.delete_orphans()
        logger.info("Deleted %d orphan symbols", deleted)
        return deleted

    def clear_transactions(self) -> int:
        deleted = self.transactions.delete_all()
        logger.info("Cleared %d transactions", deleted)
        return deleted

    def clear_quotes_cache(self) -> int:
        deleted = self.quotes.clear()
        logger.info("Cleared %d cached quotes", deleted)
        return deleted

    def purge_removed_members(self) -> int:
        """Hard-delete membership rows that were soft-removed."""
        deleted = self.watchlists.purge_removed_members()
        logger.info("Purged %d removed watchlist members", deleted)
        return deleted

    def delete_account(self, account_id: int) -> Optional[dict[str, Any]]:
        """Delete an account and report how many positions went with it."""
        account = self.accounts.get_by_id(account_id)
        if account is None:
            return None
        positions = self.accounts.count_positions(account_id)
        self.accounts.delete(account_id)
        logger.info("Deleted account %s with %d positions", account.name, positions)
        return {"account": account.name, "positions": positions}

    def delete_watchlist(self, watchlist_id: int) -> Optional[dict[str, Any]]:
        watchlist = self.watchlists.get_by_id(watchlist_id)
        if watchlist is None:
            return None
        members = self.watchlists.count_members(watchlist_id)
        ratings = self.ratings.count_for_watchlist(watchlist_id, watchlist.source)
        self.watchlists.delete(watchlist_id)
        logger.info(
            "Deleted watchlist %s with %d members and %d ratings", watchlist.name, members, ratings
        )
        return {"watchlist": watchlist.name, "members": members, "ratings": ratings}

    def remove_symbol_from_watchlist(self, watchlist_id: int, symbol: str) -> Optional[dict[str, Any]]:
        """Soft-remove an active membership and drop the links it backed.

        Returns None when the watchlist does not exist or the symbol is not an
        active member.
        """
        watchlist = self.watchlists.get_by_id(watchlist_id)
        if watchlist is None:
            return None
        canonical = normalize_symbol(symbol)
        if not self.watchlists.remove_member(watchlist_id, canonical):
            return None
        dropped = self.links.mark_dropped_by_symbol(canonical, watchlist_id)
        return {"symbol": canonical, "watchlist": watchlist.name, "links_dropped": dropped}
