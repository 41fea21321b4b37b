"""Pytest configuration and shared fixtures for portfolio tracker tests.

Every test gets its own SQLite file under ``tmp_path`` with the full schema
bootstrapped, a controllable clock, and factories for the rows most tests need.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from io import BytesIO

import pandas as pd
import pytest

from portfolio_tracker.config import TestingConfig
from portfolio_tracker.context import create_app_context
from portfolio_tracker.domain.merge import PositionUpdate, SymbolUpdate
from portfolio_tracker.infra.database import bootstrap_database
from portfolio_tracker.infra.repositories import (
    SQLModelAccountRepository,
    SQLModelPositionRepository,
    SQLModelSymbolRepository,
    SQLModelWatchlistRepository,
)
from portfolio_tracker.logging_config import ROOT_LOGGER_NAME


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2024, 1, 2, 9, 30)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def config(tmp_path, monkeypatch):
    """Testing configuration rooted in a per-test directory."""

    monkeypatch.delenv("PORTFOLIO_ALLOCATION_BAND", raising=False)
    monkeypatch.delenv("PORTFOLIO_QUOTE_TTL_SECONDS", raising=False)
    monkeypatch.delenv("PORTFOLIO_LOG_LEVEL", raising=False)
    return TestingConfig(tmp_path / "data")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db(config):
    """Bootstrapped (engine, session_factory) pair."""

    engine, session_factory = bootstrap_database(config)
    yield engine, session_factory
    engine.dispose()


@pytest.fixture
def engine(db):
    return db[0]


@pytest.fixture
def session_factory(db):
    return db[1]


@pytest.fixture
def app_context(config, db, clock):
    context = create_app_context(config, clock=clock)
    yield context
    context.engine.dispose()


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Drop handlers installed by setup_logging so they do not leak between tests."""

    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def account_factory(session_factory):
    repo = SQLModelAccountRepository(session_factory)

    def _create_account(name: str = "Individual", suffix: str = "123", broker: str = "Schwab"):
        return repo.create(name, account_number_suffix=suffix, broker=broker)

    return _create_account


@pytest.fixture
def watchlist_factory(session_factory, clock):
    repo = SQLModelWatchlistRepository(session_factory, clock)

    def _create_watchlist(
        name: str = "SA Picks", source: str = "seeking_alpha", dollar_allocation: float | None = None
    ):
        return repo.create(name, source, dollar_allocation)

    return _create_watchlist


@pytest.fixture
def position_factory(session_factory, clock):
    symbols = SQLModelSymbolRepository(session_factory, clock)
    positions = SQLModelPositionRepository(session_factory, clock)

    def _create_position(
        account_id: int,
        symbol: str = "AAPL",
        shares: float = 10,
        cost_basis: float | None = None,
        company_name: str | None = None,
    ):
        symbols.upsert(SymbolUpdate(symbol=symbol, company_name=company_name))
        position, _ = positions.upsert(
            PositionUpdate(account_id=account_id, symbol=symbol, shares=shares, cost_basis=cost_basis)
        )
        return position

    return _create_position


@pytest.fixture
def member_factory(session_factory, clock):
    symbols = SQLModelSymbolRepository(session_factory, clock)
    watchlists = SQLModelWatchlistRepository(session_factory, clock)

    def _add_member(watchlist_id: int, symbol: str):
        symbols.ensure(symbol)
        member, _ = watchlists.ensure_active_member(watchlist_id, symbol)
        return member

    return _add_member


# =============================================================================
# File builders
# =============================================================================


def build_workbook(sheets: dict[str, list[list]]) -> bytes:
    """Serialize ``{sheet name: rows}`` to xlsx bytes; rows are written verbatim."""

    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=name, header=False, index=False)
    return buffer.getvalue()


SA_HEADER = [
    "Symbol",
    "Quant Rating",
    "SA Analyst Ratings",
    "Wall Street Ratings",
    "Valuation",
    "Growth",
    "Profitability",
    "Momentum",
    "EPS Revision",
]


def seeking_alpha_workbook(*rows: list, sheet_name: str = "Ratings") -> bytes:
    return build_workbook({"Summary": [["Exported"]], sheet_name: [SA_HEADER, *rows]})


def schwab_csv(*rows: str, account: str = "Individual", suffix: str = "123") -> str:
    header = f'"Positions for account {account} ...{suffix} as of 09:00 AM ET, 2024/01/02"'
    columns = '"Symbol","Description","Qty (Quantity)","Price","Cost Basis",'
    return "\n".join([header, "", columns, *rows, ""])


MOTLEY_FOOL_HEADER = (
    "Symbol,Company,Sector,Rec Date,Cost Basis,Quant: 5Y,Allocation,Est. Low Return,"
    "Est. High Return,Est. Max Drawdown,cmaTagLabel,Times Rec'd,1Y FCF Growth,Gross Margin"
)


def motley_fool_csv(*rows: str, bom: bool = False) -> str:
    text = "\n".join([MOTLEY_FOOL_HEADER, *rows]) + "\n"
    return ("\ufeff" + text) if bom else text
