"""Domain helpers shared by importers, repositories and views."""

from .clock import Clock, utcnow
from .errors import ImportFormatError, WatchlistMismatchError
from .merge import MergeRule, PositionUpdate, RatingUpdate, SymbolUpdate
from .symbols import normalize_symbol

__all__ = [
    "Clock",
    "ImportFormatError",
    "MergeRule",
    "PositionUpdate",
    "RatingUpdate",
    "SymbolUpdate",
    "WatchlistMismatchError",
    "normalize_symbol",
    "utcnow",
]
