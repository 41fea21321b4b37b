"""Schema bootstrap and the link backfill migration."""

from sqlalchemy import DateTime, inspect, text
from sqlmodel import SQLModel

from portfolio_tracker.infra.database import init_database
from portfolio_tracker.infra.repositories import SQLModelWatchlistRepository
from portfolio_tracker.services.position_links import PositionLinkManager


def test_init_database_creates_every_table(engine):
    tables = set(inspect(engine).get_table_names())
    assert {
        "symbol",
        "account",
        "position",
        "watchlist",
        "watchlist_member",
        "seeking_alpha_rating",
        "motley_fool_rating",
        "position_watchlist_link",
        "transaction",
        "quote_cache",
    } <= tables


def test_foreign_keys_enforced(engine):
    with engine.connect() as connection:
        assert connection.execute(text("PRAGMA foreign_keys")).scalar() == 1


def test_backfill_links_from_membership_history(
    engine, session_factory, clock, account_factory, position_factory, watchlist_factory, member_factory, app_context
):
    account = account_factory()
    aapl = position_factory(account.id, "AAPL")
    msft = position_factory(account.id, "MSFT")
    watchlist = watchlist_factory()
    added_at = clock()
    member_factory(watchlist.id, "AAPL")
    member_factory(watchlist.id, "MSFT")
    clock.advance(days=2)
    app_context.watchlist_repo.remove_member(watchlist.id, "MSFT")
    removed_at = clock()

    with engine.begin() as connection:
        connection.execute(text("DROP TABLE position_watchlist_link"))

    init_database(engine)

    links = PositionLinkManager(session_factory, clock)
    aapl_link = links.get_link(aapl.id, watchlist.id)
    msft_link = links.get_link(msft.id, watchlist.id)
    assert aapl_link.status == "active"
    assert aapl_link.linked_at == added_at
    assert aapl_link.dropped_at is None
    assert msft_link.status == "dropped"
    assert msft_link.dropped_at == removed_at


def test_init_database_is_repeatable(engine, account_factory, position_factory, watchlist_factory, member_factory):
    account = account_factory()
    position_factory(account.id, "AAPL")
    watchlist = watchlist_factory()
    member_factory(watchlist.id, "AAPL")

    init_database(engine)

    with engine.connect() as connection:
        count = connection.execute(text("SELECT COUNT(*) FROM position_watchlist_link")).scalar()
    assert count == 0

def test_timestamp_columns_are_plain_datetime(engine):
    columns = [
        (table.name, column)
        for table in SQLModel.metadata.sorted_tables
        for column in table.columns
        if "datetime" in type(column.type).__name__.lower()
    ]
    assert columns
    for table_name, column in columns:
        assert type(column.type) is DateTime, f"{table_name}.{column.name}"
        assert column.type.timezone is False


def test_naive_timestamps_round_trip(session_factory, clock):
    repo = SQLModelWatchlistRepository(session_factory, clock)
    watchlist = repo.create("Naive", "seeking_alpha")

    stored = repo.get_by_id(watchlist.id)
    assert stored.created_at == clock()
    assert stored.created_at.tzinfo is None
