"""Canonical ticker table."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from ..domain.clock import utcnow


class Symbol(SQLModel, table=True):
    """A ticker referenced by positions, memberships, ratings or transactions."""

    __tablename__: ClassVar[str] = "symbol"

    symbol: str = Field(primary_key=True, max_length=32)
    company_name: Optional[str] = Field(default=None, max_length=255)
    sector: Optional[str] = Field(default=None, max_length=128)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=DateTime())
