"""Watchlists and their membership log."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional

from sqlalchemy import CheckConstraint, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from ..domain.clock import utcnow


class WatchlistSource(str, Enum):
    SEEKING_ALPHA = "seeking_alpha"
    MOTLEY_FOOL = "motley_fool"


class Watchlist(SQLModel, table=True):
    """A named recommendation list sourced from one rating service."""

    __tablename__: ClassVar[str] = "watchlist"
    __table_args__ = (
        CheckConstraint("source IN ('seeking_alpha', 'motley_fool')", name="ck_watchlist_source"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False, unique=True, max_length=128)
    source: str = Field(nullable=False, max_length=32)
    dollar_allocation: Optional[float] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=DateTime())


class WatchlistMember(SQLModel, table=True):
    """One add/remove interval of a symbol in a watchlist.

    Re-adding a symbol after removal appends a new row; the active membership
    is the row whose ``removed_at`` is still null.
    """

    __tablename__: ClassVar[str] = "watchlist_member"
    __table_args__ = (
        UniqueConstraint("watchlist_id", "symbol", "added_at", name="uq_watchlist_member_added"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    watchlist_id: int = Field(
        foreign_key="watchlist.id", ondelete="CASCADE", nullable=False, index=True
    )
    symbol: str = Field(
        foreign_key="symbol.symbol", ondelete="CASCADE", nullable=False, index=True, max_length=32
    )
    added_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=DateTime())
    removed_at: Optional[datetime] = Field(default=None, index=True, sa_type=DateTime())
