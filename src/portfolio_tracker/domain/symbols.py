"""Ticker symbol canonicalization."""

from __future__ import annotations

SHARE_CLASS_SEPARATOR = "/"
CANONICAL_SEPARATOR = "."


def normalize_symbol(symbol: str) -> str:
    """Return the canonical form of a ticker used as the join key everywhere.

    Surrounding whitespace is trimmed, letters are uppercased and the broker
    share-class separator is rewritten (``brk/b`` -> ``BRK.B``). Normalizing an
    already canonical symbol returns it unchanged.

    Empty or whitespace-only input is the caller's responsibility; it comes
    back as an empty string.
    """

    return symbol.strip().upper().replace(SHARE_CLASS_SEPARATOR, CANONICAL_SEPARATOR)
