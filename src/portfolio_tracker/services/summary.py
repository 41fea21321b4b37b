"""Read-side views: holdings per symbol, equal-weight targets and attention items."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func
from sqlmodel import col, select

from ..domain.clock import Clock, utcnow
from ..infra.database import SessionFactory
from ..infra.repositories import SQLModelQuoteRepository, SQLModelWatchlistRepository
from ..models import Position, Symbol
from .position_links import PositionLinkManager

UNDERWEIGHT = "underweight"
OVERWEIGHT = "overweight"
ON_TARGET = "on_target"
NOT_HELD = "not_held"
NO_TARGET = "no_target"
UNKNOWN = "unknown"


@dataclass
class SymbolHolding:
    """Totals for one symbol across every account.

    ``total_cost_basis`` is None unless every contributing position has a basis.
    """

    symbol: str
    company_name: Optional[str]
    sector: Optional[str]
    total_shares: float
    total_cost_basis: Optional[float]
    account_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AllocationLine:
    """Target versus actual value for one active member of a watchlist."""

    watchlist_id: int
    watchlist_name: str
    symbol: str
    target_value: Optional[float]
    actual_value: Optional[float]
    value_source: Optional[str]
    variance_pct: Optional[float]
    status: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def classify_allocation(target: Optional[float], actual: Optional[float], band: float) -> str:
    """Bucket an actual value against its target with a symmetric relative band."""

    if target is None or target <= 0:
        return NO_TARGET
    if actual is None:
        return UNKNOWN
    ratio = actual / target
    if ratio < 1 - band:
        return UNDERWEIGHT
    if ratio > 1 + band:
        return OVERWEIGHT
    return ON_TARGET


class PortfolioSummary:
    """Aggregates recomputed on every read; nothing here writes."""

    def __init__(
        self,
        session_factory: SessionFactory,
        clock: Clock = utcnow,
        *,
        quote_ttl_seconds: float = 300.0,
        allocation_band: float = 0.10,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.quote_ttl_seconds = quote_ttl_seconds
        self.allocation_band = allocation_band
        self.watchlists = SQLModelWatchlistRepository(session_factory, clock)
        self.quotes = SQLModelQuoteRepository(session_factory, clock)
        self.links = PositionLinkManager(session_factory, clock)

    def holdings_by_symbol(self) -> list[SymbolHolding]:
        with self.session_factory() as session:
            statement = (
                select(
                    Position.symbol,
                    Symbol.company_name,
                    Symbol.sector,
                    func.sum(Position.shares),
                    func.sum(Position.cost_basis),
                    func.count(Position.cost_basis),
                    func.count(Position.id),
                    func.count(col(Position.account_id).distinct()),
                )
                .join(Symbol, col(Symbol.symbol) == Position.symbol)
                .where(col(Position.shares) > 0)
                .group_by(Position.symbol, Symbol.company_name, Symbol.sector)
                .order_by(col(Position.symbol))
            )
            rows = session.exec(statement).all()
            return [
                SymbolHolding(
                    symbol=symbol,
                    company_name=company_name,
                    sector=sector,
                    total_shares=float(shares or 0),
                    total_cost_basis=float(cost_basis) if with_basis == positions else None,
                    account_count=int(accounts),
                )
                for symbol, company_name, sector, shares, cost_basis, with_basis, positions, accounts in rows
            ]

    def target_allocations(self) -> list[dict[str, Any]]:
        """Equal-weight target per active member for each watchlist."""
        targets = []
        for watchlist in self.watchlists.list_all():
            members = self.watchlists.count_active_members(watchlist.id)
            per_symbol = None
            if watchlist.dollar_allocation and members:
                per_symbol = watchlist.dollar_allocation / members
            targets.append(
                {
                    "watchlist_id": watchlist.id,
                    "watchlist_name": watchlist.name,
                    "source": watchlist.source,
                    "dollar_allocation": watchlist.dollar_allocation,
                    "active_members": members,
                    "target_per_symbol": per_symbol,
                }
            )
        return targets

    def allocation_variance(self, watchlist_id: int) -> list[AllocationLine]:
        """Compare each active member's held value with its equal-weight target.

        Held value is fresh quote price x shares, falling back to cost basis
        when no fresh quote exists. Members without a held position are
        reported as ``not_held`` (buy signals).
        """
        watchlist = self.watchlists.get_by_id(watchlist_id)
        if watchlist is None:
            return []
        symbols = self.watchlists.list_active_symbols(watchlist_id)
        if not symbols:
            return []

        target = None
        if watchlist.dollar_allocation:
            target = watchlist.dollar_allocation / len(symbols)
        holdings = {holding.symbol: holding for holding in self.holdings_by_symbol()}
        prices = self.quotes.fresh_prices(symbols, self.quote_ttl_seconds)

        lines = []
        for symbol in symbols:
            holding = holdings.get(symbol)
            if holding is None:
                lines.append(
                    AllocationLine(
                        watchlist_id=watchlist.id,
                        watchlist_name=watchlist.name,
                        symbol=symbol,
                        target_value=target,
                        actual_value=0.0,
                        value_source=None,
                        variance_pct=-1.0 if target else None,
                        status=NOT_HELD,
                    )
                )
                continue

            actual, source = self._held_value(holding, prices.get(symbol))
            variance = None
            if target and actual is not None:
                variance = (actual - target) / target
            lines.append(
                AllocationLine(
                    watchlist_id=watchlist.id,
                    watchlist_name=watchlist.name,
                    symbol=symbol,
                    target_value=target,
                    actual_value=actual,
                    value_source=source,
                    variance_pct=variance,
                    status=classify_allocation(target, actual, self.allocation_band),
                )
            )
        return lines

    def all_allocations(self) -> list[AllocationLine]:
        lines: list[AllocationLine] = []
        for watchlist in self.watchlists.list_all():
            lines.extend(self.allocation_variance(watchlist.id))
        return lines

    def needs_attention(self) -> list[dict[str, Any]]:
        """Dropped recommendations, buy signals and out-of-band positions."""
        items: list[dict[str, Any]] = []
        dropped = self.links.get_dropped_links_with_details()
        prices = self.quotes.fresh_prices(
            sorted({link["symbol"] for link in dropped}), self.quote_ttl_seconds
        )
        for link in dropped:
            price = prices.get(link["symbol"])
            items.append(
                {
                    "type": "dropped",
                    "symbol": link["symbol"],
                    "watchlist": link["watchlist_name"],
                    "message": f"{link['symbol']} dropped from {link['watchlist_name']}",
                    "shares": link["shares"],
                    "position_value": None if price is None else price * link["shares"],
                    "dropped_at": _isoformat(link["dropped_at"]),
                }
            )

        for line in self.all_allocations():
            if line.status == NOT_HELD:
                items.append(
                    {
                        "type": "buy_signal",
                        "symbol": line.symbol,
                        "watchlist": line.watchlist_name,
                        "message": f"{line.symbol} is on {line.watchlist_name} but not held",
                        "target_value": line.target_value,
                    }
                )
            elif line.status in (UNDERWEIGHT, OVERWEIGHT):
                items.append(
                    {
                        "type": line.status,
                        "symbol": line.symbol,
                        "watchlist": line.watchlist_name,
                        "message": f"{line.symbol} is {line.status} in {line.watchlist_name}",
                        "target_value": line.target_value,
                        "actual_value": line.actual_value,
                        "variance_pct": line.variance_pct,
                    }
                )
        return items

    @staticmethod
    def _held_value(holding: SymbolHolding, price: Optional[float]) -> tuple[Optional[float], Optional[str]]:
        if price is not None:
            return price * holding.total_shares, "quote"
        if holding.total_cost_basis is not None:
            return holding.total_cost_basis, "cost_basis"
        return None, None


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None
