"""SQLModel implementation of rating repositories for both sources."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Type, TypeVar, Union

from sqlalchemy import func
from sqlmodel import col, select

from ...domain.clock import Clock, utcnow
from ...domain.merge import RatingUpdate
from ...domain.symbols import normalize_symbol
from ...models import MotleyFoolRating, SeekingAlphaRating, Watchlist, WatchlistSource
from ..database import SessionFactory

RatingModel = Union[SeekingAlphaRating, MotleyFoolRating]
R = TypeVar("R", SeekingAlphaRating, MotleyFoolRating)

RATING_MODELS: dict[str, Type[RatingModel]] = {
    WatchlistSource.SEEKING_ALPHA.value: SeekingAlphaRating,
    WatchlistSource.MOTLEY_FOOL.value: MotleyFoolRating,
}


class SQLModelRatingRepository:
    """One rating row per (symbol, watchlist), overwritten on every import."""

    def __init__(self, session_factory: SessionFactory, clock: Clock = utcnow):
        self.session_factory = session_factory
        self.clock = clock

    def get(self, model: Type[R], symbol: str, watchlist_id: int) -> Optional[R]:
        with self.session_factory() as session:
            statement = select(model).where(
                model.symbol == normalize_symbol(symbol), model.watchlist_id == watchlist_id
            )
            return session.exec(statement).first()

    def upsert(
        self, model: Type[R], update: RatingUpdate, *, imported_at: datetime | None = None
    ) -> tuple[R, bool]:
        """Full-overwrite upsert keyed on (symbol, watchlist). Returns ``(row, created)``."""
        unknown = set(update.scores) - set(model.SCORE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown {model.__name__} fields: {', '.join(sorted(unknown))}")

        canonical = normalize_symbol(update.symbol)
        # Every score field is written; fields missing from the update become NULL.
        scores = {name: update.scores.get(name) for name in model.SCORE_FIELDS}
        full_update = RatingUpdate(symbol=canonical, watchlist_id=update.watchlist_id, scores=scores)

        with self.session_factory() as session:
            existing = session.exec(
                select(model).where(model.symbol == canonical, model.watchlist_id == update.watchlist_id)
            ).first()
            created = existing is None
            if existing is None:
                existing = model(symbol=canonical, watchlist_id=update.watchlist_id)
            full_update.apply_to(existing)
            existing.imported_at = imported_at or self.clock()
            session.add(existing)
            session.commit()
            session.refresh(existing)
            return existing, created

    def list_for_symbol(self, symbol: str) -> dict[str, list[dict]]:
        """Ratings for a symbol from both services, with watchlist names."""
        canonical = normalize_symbol(symbol)
        combined: dict[str, list[dict]] = {}
        with self.session_factory() as session:
            for source, model in RATING_MODELS.items():
                statement = (
                    select(model, Watchlist)
                    .join(Watchlist, col(Watchlist.id) == model.watchlist_id)
                    .where(model.symbol == canonical)
                    .order_by(col(model.imported_at).desc())
                )
                combined[source] = [
                    {
                        **rating.model_dump(),
                        "watchlist_name": watchlist.name,
                        "watchlist_source": watchlist.source,
                    }
                    for rating, watchlist in session.exec(statement).all()
                ]
        return combined

    def count_for_watchlist(self, watchlist_id: int, source: str) -> int:
        model = RATING_MODELS[WatchlistSource(source).value]
        with self.session_factory() as session:
            statement = select(func.count()).select_from(model).where(model.watchlist_id == watchlist_id)
            return int(session.exec(statement).one())
