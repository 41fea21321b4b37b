"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from .config import BaseConfig
from .domain.clock import Clock, utcnow
from .infra.database import SessionFactory, bootstrap_database
from .infra.repositories import (
    SQLModelAccountRepository,
    SQLModelPositionRepository,
    SQLModelQuoteRepository,
    SQLModelRatingRepository,
    SQLModelSymbolRepository,
    SQLModelTransactionRepository,
    SQLModelWatchlistRepository,
)
from .services import AdminService, PortfolioImporter, PortfolioSummary, PositionLinkManager


@dataclass
class AppContext:
    """Centralized application context with repositories and services."""

    # Configuration
    config: BaseConfig
    engine: Engine
    session_factory: SessionFactory
    clock: Clock

    # Repositories
    account_repo: SQLModelAccountRepository
    symbol_repo: SQLModelSymbolRepository
    position_repo: SQLModelPositionRepository
    watchlist_repo: SQLModelWatchlistRepository
    rating_repo: SQLModelRatingRepository
    transaction_repo: SQLModelTransactionRepository
    quote_repo: SQLModelQuoteRepository

    # Services
    link_manager: PositionLinkManager
    importer: PortfolioImporter
    summary: PortfolioSummary
    admin: AdminService


def create_app_context(config: Optional[BaseConfig] = None, *, clock: Clock = utcnow) -> AppContext:
    """Create the engine, run schema bootstrap and wire every service."""

    if config is None:
        config = BaseConfig()

    engine, session_factory = bootstrap_database(config)

    return AppContext(
        config=config,
        engine=engine,
        session_factory=session_factory,
        clock=clock,
        account_repo=SQLModelAccountRepository(session_factory),
        symbol_repo=SQLModelSymbolRepository(session_factory, clock),
        position_repo=SQLModelPositionRepository(session_factory, clock),
        watchlist_repo=SQLModelWatchlistRepository(session_factory, clock),
        rating_repo=SQLModelRatingRepository(session_factory, clock),
        transaction_repo=SQLModelTransactionRepository(session_factory),
        quote_repo=SQLModelQuoteRepository(session_factory, clock),
        link_manager=PositionLinkManager(session_factory, clock),
        importer=PortfolioImporter(session_factory, clock),
        summary=PortfolioSummary(
            session_factory,
            clock,
            quote_ttl_seconds=config.QUOTE_TTL_SECONDS,
            allocation_band=config.ALLOCATION_BAND,
        ),
        admin=AdminService(session_factory, clock),
    )
