"""Position held in a brokerage account."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from ..domain.clock import utcnow


class Position(SQLModel, table=True):
    """Latest imported share count for one symbol in one account."""

    __tablename__: ClassVar[str] = "position"
    __table_args__ = (UniqueConstraint("account_id", "symbol", name="uq_position_account_symbol"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: int = Field(foreign_key="account.id", ondelete="CASCADE", nullable=False, index=True)
    symbol: str = Field(
        foreign_key="symbol.symbol", ondelete="CASCADE", nullable=False, index=True, max_length=32
    )
    shares: float = Field(nullable=False)
    cost_basis: Optional[float] = Field(default=None)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=DateTime())
