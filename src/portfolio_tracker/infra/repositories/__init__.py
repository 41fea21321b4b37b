"""Concrete repository implementations using SQLModel."""

from .account import SQLModelAccountRepository
from .position import SQLModelPositionRepository
from .quote import SQLModelQuoteRepository
from .rating import RATING_MODELS, SQLModelRatingRepository
from .symbol import SQLModelSymbolRepository
from .transaction import SQLModelTransactionRepository
from .watchlist import SQLModelWatchlistRepository

__all__ = [
    "RATING_MODELS",
    "SQLModelAccountRepository",
    "SQLModelPositionRepository",
    "SQLModelQuoteRepository",
    "SQLModelRatingRepository",
    "SQLModelSymbolRepository",
    "SQLModelTransactionRepository",
    "SQLModelWatchlistRepository",
]
