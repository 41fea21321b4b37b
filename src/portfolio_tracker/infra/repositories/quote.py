"""SQLModel implementation of the quote cache repository."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import delete, func
from sqlmodel import select

from ...domain.clock import Clock, utcnow
from ...domain.symbols import normalize_symbol
from ...models import QuoteCache
from ..database import SessionFactory


class SQLModelQuoteRepository:
    """Cached quotes; a stale or missing row simply means no live price."""

    def __init__(self, session_factory: SessionFactory, clock: Clock = utcnow):
        self.session_factory = session_factory
        self.clock = clock

    def get(self, symbol: str) -> Optional[QuoteCache]:
        with self.session_factory() as session:
            return session.get(QuoteCache, normalize_symbol(symbol))

    def get_fresh(self, symbol: str, max_age_seconds: float) -> Optional[QuoteCache]:
        """Return the cached quote only if it was fetched within ``max_age_seconds``."""
        quote = self.get(symbol)
        if quote is None:
            return None
        if self.clock() - quote.fetched_at > timedelta(seconds=max_age_seconds):
            return None
        return quote

    def fresh_prices(self, symbols: list[str], max_age_seconds: float) -> dict[str, float]:
        """Map of symbol -> price for every fresh quote carrying a price."""
        cutoff = self.clock() - timedelta(seconds=max_age_seconds)
        canonical = [normalize_symbol(symbol) for symbol in symbols]
        with self.session_factory() as session:
            statement = select(QuoteCache).where(
                QuoteCache.symbol.in_(canonical),  # type: ignore[attr-defined]
                QuoteCache.fetched_at >= cutoff,
            )
            return {
                quote.symbol: quote.price
                for quote in session.exec(statement).all()
                if quote.price is not None
            }

    def upsert(self, symbol: str, *, fetched_at: datetime | None = None, **fields: Any) -> QuoteCache:
        """Store the latest quote for ``symbol``; the symbol row must exist."""
        canonical = normalize_symbol(symbol)
        unknown = set(fields) - set(QuoteCache.model_fields) - {"symbol", "fetched_at"}
        if unknown:
            raise ValueError(f"Unknown quote fields: {', '.join(sorted(unknown))}")
        with self.session_factory() as session:
            quote = session.get(QuoteCache, canonical) or QuoteCache(symbol=canonical)
            for name, value in fields.items():
                setattr(quote, name, value)
            quote.fetched_at = fetched_at or self.clock()
            session.add(quote)
            session.commit()
            session.refresh(quote)
            return quote

    def count(self) -> int:
        with self.session_factory() as session:
            return int(session.exec(select(func.count()).select_from(QuoteCache)).one())

    def clear(self) -> int:
        with self.session_factory() as session:
            result = session.execute(delete(QuoteCache))
            session.commit()
            return result.rowcount
