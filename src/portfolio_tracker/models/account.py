"""Brokerage account model."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from ..domain.clock import utcnow


class Account(SQLModel, table=True):
    __tablename__: ClassVar[str] = "account"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False, unique=True, max_length=128)
    account_number_suffix: Optional[str] = Field(default=None, max_length=16)
    broker: Optional[str] = Field(default=None, max_length=64)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=DateTime())
