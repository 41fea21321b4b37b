"""Partial-update structures with explicit per-field merge rules.

Each imported entity merges into its stored row with one of two policies:

* ``REPLACE``: the incoming value always wins, including ``None``.
* ``PRESERVE_IF_ABSENT``: the incoming value wins only when it is not ``None``;
  a missing value never erases what is already stored.

Symbols use preserve-if-absent for every descriptive field, positions replace
shares but preserve cost basis, and ratings replace every field.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Optional


class MergeRule(str, Enum):
    REPLACE = "replace"
    PRESERVE_IF_ABSENT = "preserve_if_absent"


def merge_value(rule: MergeRule, current: Any, incoming: Any) -> Any:
    """Resolve a single field according to ``rule``."""

    if rule is MergeRule.REPLACE:
        return incoming
    return current if incoming is None else incoming


class _Update:
    """Mixin applying ``RULES`` to any object exposing the same attribute names."""

    RULES: ClassVar[dict[str, MergeRule]] = {}

    def values(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name in self.RULES}  # type: ignore[arg-type]

    def apply_to(self, target: Any) -> Any:
        """Merge this update into ``target`` in place and return it."""

        for name, incoming in self.values().items():
            current = getattr(target, name, None)
            setattr(target, name, merge_value(self.RULES[name], current, incoming))
        return target


@dataclass
class SymbolUpdate(_Update):
    """Descriptive data for a symbol; known values are never blanked out."""

    symbol: str
    company_name: Optional[str] = None
    sector: Optional[str] = None

    RULES: ClassVar[dict[str, MergeRule]] = {
        "company_name": MergeRule.PRESERVE_IF_ABSENT,
        "sector": MergeRule.PRESERVE_IF_ABSENT,
    }

    def __post_init__(self) -> None:
        # Blank strings carry no information.
        self.company_name = (self.company_name or "").strip() or None
        self.sector = (self.sector or "").strip() or None


@dataclass
class PositionUpdate(_Update):
    """Latest broker snapshot for an (account, symbol) position."""

    account_id: int
    symbol: str
    shares: float
    cost_basis: Optional[float] = None

    RULES: ClassVar[dict[str, MergeRule]] = {
        "shares": MergeRule.REPLACE,
        "cost_basis": MergeRule.PRESERVE_IF_ABSENT,
    }


@dataclass
class RatingUpdate(_Update):
    """Full set of score fields for a rating row; every field is overwritten."""

    symbol: str
    watchlist_id: int
    scores: dict[str, Any] = field(default_factory=dict)

    def values(self) -> dict[str, Any]:
        return dict(self.scores)

    def apply_to(self, target: Any) -> Any:
        for name, incoming in self.scores.items():
            setattr(target, name, merge_value(MergeRule.REPLACE, getattr(target, name, None), incoming))
        return target
