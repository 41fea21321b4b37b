"""Cached market data written by the quote collaborator."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from ..domain.clock import utcnow


class QuoteCache(SQLModel, table=True):
    __tablename__: ClassVar[str] = "quote_cache"

    symbol: str = Field(
        primary_key=True, foreign_key="symbol.symbol", ondelete="CASCADE", max_length=32
    )
    exchange: Optional[str] = Field(default=None, max_length=32)
    price: Optional[float] = Field(default=None)
    change: Optional[float] = Field(default=None)
    change_percent: Optional[float] = Field(default=None)
    volume: Optional[int] = Field(default=None)
    high_52w: Optional[float] = Field(default=None)
    low_52w: Optional[float] = Field(default=None)
    market_cap: Optional[float] = Field(default=None)
    pe_ratio: Optional[float] = Field(default=None)
    dividend_yield: Optional[float] = Field(default=None)
    beta: Optional[float] = Field(default=None)
    fetched_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=DateTime())
