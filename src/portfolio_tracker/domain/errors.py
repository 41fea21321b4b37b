"""Domain exceptions raised by import parsers."""

from __future__ import annotations


class ImportFormatError(ValueError):
    """Raised when an import file does not have the expected structure.

    ``details`` carries extra human-readable lines (expected shape, available
    sheet names, ...) that are surfaced to the operator alongside the message.
    """

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = list(details or [])


class WatchlistMismatchError(LookupError):
    """Raised when an import targets a missing watchlist or one of another source."""
