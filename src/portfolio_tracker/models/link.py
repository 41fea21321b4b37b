"""Per-position recommendation status for a watchlist."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional

from sqlalchemy import CheckConstraint, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from ..domain.clock import utcnow


class LinkStatus(str, Enum):
    ACTIVE = "active"
    DROPPED = "dropped"


class PositionWatchlistLink(SQLModel, table=True):
    """Tracks whether a watchlist still recommends a held position.

    ``active`` -> ``dropped`` when the symbol leaves the watchlist while the
    position is held; ``dropped`` -> ``active`` when it is re-added.
    """

    __tablename__: ClassVar[str] = "position_watchlist_link"
    __table_args__ = (
        UniqueConstraint("position_id", "watchlist_id", name="uq_position_watchlist_link"),
        CheckConstraint("status IN ('active', 'dropped')", name="ck_position_watchlist_link_status"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    position_id: int = Field(foreign_key="position.id", ondelete="CASCADE", nullable=False, index=True)
    watchlist_id: int = Field(
        foreign_key="watchlist.id", ondelete="CASCADE", nullable=False, index=True
    )
    status: str = Field(default=LinkStatus.ACTIVE.value, nullable=False, max_length=16, index=True)
    linked_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=DateTime())
    dropped_at: Optional[datetime] = Field(default=None, sa_type=DateTime())

    def to_dict(self) -> dict:
        return {
            "position_id": self.position_id,
            "watchlist_id": self.watchlist_id,
            "status": self.status,
            "linked_at": self.linked_at,
            "dropped_at": self.dropped_at,
        }
