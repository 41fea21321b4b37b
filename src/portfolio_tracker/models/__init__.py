"""SQLModel table exports."""

from .account import Account
from .link import LinkStatus, PositionWatchlistLink
from .position import Position
from .quote import QuoteCache
from .rating import RISK_TAGS, MotleyFoolRating, SeekingAlphaRating
from .symbol import Symbol
from .transaction import REASON_TYPES, TRANSACTION_TYPES, Transaction
from .watchlist import Watchlist, WatchlistMember, WatchlistSource

__all__ = [
    "Account",
    "LinkStatus",
    "MotleyFoolRating",
    "Position",
    "PositionWatchlistLink",
    "QuoteCache",
    "REASON_TYPES",
    "RISK_TAGS",
    "SeekingAlphaRating",
    "Symbol",
    "TRANSACTION_TYPES",
    "Transaction",
    "Watchlist",
    "WatchlistMember",
    "WatchlistSource",
]
