"""Per-source rating snapshots, one row per (symbol, watchlist)."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from sqlalchemy import CheckConstraint, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from ..domain.clock import utcnow

RISK_TAGS = ("Aggressive", "Moderate", "Cautious")


class SeekingAlphaRating(SQLModel, table=True):
    __tablename__: ClassVar[str] = "seeking_alpha_rating"
    __table_args__ = (
        UniqueConstraint("symbol", "watchlist_id", name="uq_seeking_alpha_rating_symbol_watchlist"),
    )

    SCORE_FIELDS: ClassVar[tuple[str, ...]] = (
        "quant_score",
        "sa_analyst_score",
        "wall_st_score",
        "valuation_grade",
        "growth_grade",
        "profitability_grade",
        "momentum_grade",
        "eps_revision_grade",
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    symbol: str = Field(
        foreign_key="symbol.symbol", ondelete="CASCADE", nullable=False, index=True, max_length=32
    )
    watchlist_id: int = Field(foreign_key="watchlist.id", ondelete="CASCADE", nullable=False)
    quant_score: Optional[float] = Field(default=None)
    sa_analyst_score: Optional[float] = Field(default=None)
    wall_st_score: Optional[float] = Field(default=None)
    valuation_grade: Optional[str] = Field(default=None, max_length=4)
    growth_grade: Optional[str] = Field(default=None, max_length=4)
    profitability_grade: Optional[str] = Field(default=None, max_length=4)
    momentum_grade: Optional[str] = Field(default=None, max_length=4)
    eps_revision_grade: Optional[str] = Field(default=None, max_length=4)
    imported_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=DateTime())


class MotleyFoolRating(SQLModel, table=True):
    """Scorecard row; percentage-like fields are stored exactly as exported."""

    __tablename__: ClassVar[str] = "motley_fool_rating"
    __table_args__ = (
        UniqueConstraint("symbol", "watchlist_id", name="uq_motley_fool_rating_symbol_watchlist"),
        CheckConstraint(
            "risk_tag IS NULL OR risk_tag IN ('Aggressive', 'Moderate', 'Cautious')",
            name="ck_motley_fool_rating_risk_tag",
        ),
    )

    SCORE_FIELDS: ClassVar[tuple[str, ...]] = (
        "rec_date",
        "cost_basis",
        "quant_5y",
        "allocation",
        "est_low_return",
        "est_high_return",
        "est_max_drawdown",
        "risk_tag",
        "times_recommended",
        "fcf_growth_1y",
        "gross_margin",
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    symbol: str = Field(
        foreign_key="symbol.symbol", ondelete="CASCADE", nullable=False, index=True, max_length=32
    )
    watchlist_id: int = Field(foreign_key="watchlist.id", ondelete="CASCADE", nullable=False)
    rec_date: Optional[str] = Field(default=None, max_length=32)
    cost_basis: Optional[float] = Field(default=None)
    quant_5y: Optional[float] = Field(default=None)
    allocation: Optional[float] = Field(default=None)
    est_low_return: Optional[float] = Field(default=None)
    est_high_return: Optional[float] = Field(default=None)
    est_max_drawdown: Optional[float] = Field(default=None)
    risk_tag: Optional[str] = Field(default=None, max_length=16)
    times_recommended: Optional[int] = Field(default=None)
    fcf_growth_1y: Optional[float] = Field(default=None)
    gross_margin: Optional[float] = Field(default=None)
    imported_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=DateTime())
