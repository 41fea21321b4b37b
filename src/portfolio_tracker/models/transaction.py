"""Buy/sell log entries entered by the operator."""

from __future__ import annotations

from datetime import date, datetime
from typing import ClassVar, Optional

from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import Field, SQLModel

from ..domain.clock import utcnow

TRANSACTION_TYPES = ("BUY", "SELL")
REASON_TYPES = ("watchlist_add", "watchlist_drop", "rebalance", "other")


class Transaction(SQLModel, table=True):
    """A trade record; imports never touch this table."""

    __tablename__: ClassVar[str] = "transaction"
    __table_args__ = (
        CheckConstraint("transaction_type IN ('BUY', 'SELL')", name="ck_transaction_type"),
        CheckConstraint(
            "reason_type IS NULL OR reason_type IN "
            "('watchlist_add', 'watchlist_drop', 'rebalance', 'other')",
            name="ck_transaction_reason_type",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: int = Field(foreign_key="account.id", ondelete="CASCADE", nullable=False, index=True)
    symbol: str = Field(
        foreign_key="symbol.symbol", ondelete="CASCADE", nullable=False, index=True, max_length=32
    )
    transaction_type: str = Field(nullable=False, max_length=4)
    shares: float = Field(nullable=False)
    price_per_share: float = Field(nullable=False)
    total_amount: Optional[float] = Field(default=None)
    transaction_date: date = Field(nullable=False, index=True)
    reason_type: Optional[str] = Field(default=None, max_length=32)
    reason_watchlist_id: Optional[int] = Field(
        default=None, foreign_key="watchlist.id", ondelete="SET NULL"
    )
    reason_notes: Optional[str] = Field(default=None)
    reason_url: Optional[str] = Field(default=None, max_length=512)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=DateTime())
