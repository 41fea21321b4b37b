"""Persist parsed import files and reconcile memberships and links."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..domain.clock import Clock, utcnow
from ..domain.errors import ImportFormatError
from ..domain.merge import PositionUpdate, RatingUpdate, SymbolUpdate
from ..infra.database import SessionFactory
from ..infra.repositories import (
    RATING_MODELS,
    SQLModelAccountRepository,
    SQLModelPositionRepository,
    SQLModelRatingRepository,
    SQLModelSymbolRepository,
    SQLModelWatchlistRepository,
)
from ..models import Watchlist, WatchlistSource
from .import_csv import RatingsSheet, SchwabStatement, parse_motley_fool_csv, parse_schwab_csv
from .import_excel import parse_seeking_alpha_excel
from .position_links import LinkTransitions, PositionLinkManager

logger = logging.getLogger(__name__)

SCHWAB_BROKER = "Schwab"
SOURCE_LABELS = {
    WatchlistSource.SEEKING_ALPHA.value: "Seeking Alpha",
    WatchlistSource.MOTLEY_FOOL.value: "Motley Fool",
}


@dataclass
class ImportResult:
    """Outcome of an import; ``errors`` lists skipped rows or failure details."""

    success: bool
    message: str
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success, "message": self.message}
        payload.update(self._extra())
        payload["errors"] = list(self.errors) or None
        return payload

    def _extra(self) -> dict[str, Any]:
        return {}


@dataclass
class SchwabImportResult(ImportResult):
    account: Optional[dict[str, Any]] = None
    positions: Optional[dict[str, int]] = None
    links: Optional[LinkTransitions] = None

    def _extra(self) -> dict[str, Any]:
        extra: dict[str, Any] = {}
        if self.account is not None:
            extra["account"] = self.account
        if self.positions is not None:
            extra["positions"] = self.positions
        if self.links is not None:
            extra["links"] = self.links.to_dict()
        return extra


@dataclass
class RatingsImportResult(ImportResult):
    watchlist: Optional[dict[str, Any]] = None
    symbols: Optional[dict[str, int]] = None
    members: Optional[dict[str, int]] = None
    links: Optional[LinkTransitions] = None

    def _extra(self) -> dict[str, Any]:
        extra: dict[str, Any] = {}
        if self.watchlist is not None:
            extra["watchlist"] = self.watchlist
        if self.symbols is not None:
            extra["symbols"] = self.symbols
        if self.members is not None:
            extra["members"] = self.members
        if self.links is not None:
            extra["links"] = self.links.to_dict()
        return extra


class PortfolioImporter:
    """Runs the three import flows against the repositories.

    Each repository call commits on its own, so a failure part-way through
    leaves the rows already processed in place.
    """

    def __init__(self, session_factory: SessionFactory, clock: Clock = utcnow):
        self.clock = clock
        self.accounts = SQLModelAccountRepository(session_factory)
        self.symbols = SQLModelSymbolRepository(session_factory, clock)
        self.positions = SQLModelPositionRepository(session_factory, clock)
        self.watchlists = SQLModelWatchlistRepository(session_factory, clock)
        self.ratings = SQLModelRatingRepository(session_factory, clock)
        self.links = PositionLinkManager(session_factory, clock)

    # -- Schwab -------------------------------------------------------------

    def import_schwab_csv(self, csv_text: str) -> SchwabImportResult:
        logger.info("Starting Schwab positions import")
        try:
            statement = parse_schwab_csv(csv_text)
        except ImportFormatError as exc:
            logger.warning("Rejected Schwab file: %s", exc.message)
            return SchwabImportResult(success=False, message=exc.message, errors=exc.details)

        try:
            return self._store_schwab(statement)
        except Exception as exc:
            logger.exception("Schwab import failed for account %s", statement.account_name)
            return SchwabImportResult(
                success=False, message="Failed to import Schwab CSV", errors=[str(exc)]
            )

    def _store_schwab(self, statement: SchwabStatement) -> SchwabImportResult:
        account = self.accounts.get_by_name(statement.account_name)
        account_created = account is None
        if account is None:
            account = self.accounts.create(
                statement.account_name,
                account_number_suffix=statement.account_suffix,
                broker=SCHWAB_BROKER,
            )
            logger.info("Created account %s", account.name)

        added = updated = 0
        links = LinkTransitions()
        for parsed in statement.positions:
            self.symbols.upsert(SymbolUpdate(symbol=parsed.symbol, company_name=parsed.company_name))
            position, created = self.positions.upsert(
                PositionUpdate(
                    account_id=account.id,
                    symbol=parsed.symbol,
                    shares=parsed.shares,
                    cost_basis=parsed.cost_basis,
                )
            )
            if created:
                added += 1
            else:
                updated += 1
            links += self.links.sync_links_for_position(position)

        for error in statement.errors:
            logger.warning("Schwab row skipped: %s", error)
        logger.info(
            "Imported %d Schwab positions for %s",
            len(statement.positions), account.name,
            extra={"added": added, "updated": updated, "skipped": len(statement.errors)},
        )
        return SchwabImportResult(
            success=True,
            message=f"Imported {len(statement.positions)} positions for {account.name}",
            errors=statement.errors,
            account={"id": account.id, "name": account.name, "created": account_created},
            positions={"added": added, "updated": updated},
            links=links,
        )

    # -- ratings ------------------------------------------------------------

    def import_seeking_alpha_excel(self, file_bytes: bytes, watchlist_id: int) -> RatingsImportResult:
        return self._import_ratings(
            WatchlistSource.SEEKING_ALPHA.value,
            watchlist_id,
            lambda: parse_seeking_alpha_excel(file_bytes),
        )

    def import_motley_fool_csv(self, csv_text: str, watchlist_id: int) -> RatingsImportResult:
        return self._import_ratings(
            WatchlistSource.MOTLEY_FOOL.value,
            watchlist_id,
            lambda: parse_motley_fool_csv(csv_text),
        )

    def _import_ratings(
        self, source: str, watchlist_id: int, parse: Callable[[], RatingsSheet]
    ) -> RatingsImportResult:
        label = SOURCE_LABELS[source]
        logger.info("Starting %s ratings import into watchlist %s", label, watchlist_id)

        watchlist = self.watchlists.get_by_id(watchlist_id)
        if watchlist is None:
            return RatingsImportResult(
                success=False, message=f"Watchlist with ID {watchlist_id} not found"
            )
        if watchlist.source != source:
            return RatingsImportResult(
                success=False, message=f"This watchlist is not a {label} watchlist"
            )

        try:
            sheet = parse()
        except ImportFormatError as exc:
            logger.warning("Rejected %s file: %s", label, exc.message)
            return RatingsImportResult(success=False, message=exc.message, errors=exc.details)

        try:
            return self._store_ratings(source, watchlist, sheet)
        except Exception as exc:
            logger.exception("%s import failed for watchlist %s", label, watchlist.name)
            return RatingsImportResult(
                success=False, message=f"Failed to import {label} file", errors=[str(exc)]
            )

    def _store_ratings(self, source: str, watchlist: Watchlist, sheet: RatingsSheet) -> RatingsImportResult:
        model = RATING_MODELS[source]
        now = self.clock()
        added = updated = members_added = members_removed = 0
        links = LinkTransitions()
        imported: set[str] = set()

        for parsed in sheet.ratings:
            self.symbols.upsert(
                SymbolUpdate(symbol=parsed.symbol, company_name=parsed.company_name, sector=parsed.sector)
            )
            _, member_created = self.watchlists.ensure_active_member(watchlist.id, parsed.symbol, at=now)
            members_added += int(member_created)
            _, created = self.ratings.upsert(
                model,
                RatingUpdate(symbol=parsed.symbol, watchlist_id=watchlist.id, scores=parsed.scores),
                imported_at=now,
            )
            if created:
                added += 1
            else:
                updated += 1
            links += self.links.sync_links_for_symbol(parsed.symbol, watchlist.id)
            imported.add(parsed.symbol)

        # Members missing from a non-empty file have left the watchlist.
        if imported:
            for symbol in self.watchlists.list_active_symbols(watchlist.id):
                if symbol in imported:
                    continue
                self.watchlists.remove_member(watchlist.id, symbol, at=now)
                members_removed += 1
                links.dropped += self.links.mark_dropped_by_symbol(symbol, watchlist.id)

        for error in sheet.errors:
            logger.warning("Ratings row skipped: %s", error)
        logger.info(
            "Imported %d %s ratings for %s",
            len(sheet.ratings), SOURCE_LABELS[source], watchlist.name,
            extra={
                "added": added,
                "updated": updated,
                "members_added": members_added,
                "members_removed": members_removed,
            },
        )
        return RatingsImportResult(
            success=True,
            message=f"Imported {len(sheet.ratings)} ratings for {watchlist.name}",
            errors=sheet.errors,
            watchlist={"id": watchlist.id, "name": watchlist.name},
            symbols={"added": added, "updated": updated},
            members={"added": members_added, "removed": members_removed},
            links=links,
        )
