"""Repository behaviour against a real SQLite schema."""

from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from portfolio_tracker.domain.merge import PositionUpdate, RatingUpdate, SymbolUpdate
from portfolio_tracker.infra.repositories import (
    SQLModelAccountRepository,
    SQLModelPositionRepository,
    SQLModelQuoteRepository,
    SQLModelRatingRepository,
    SQLModelSymbolRepository,
    SQLModelTransactionRepository,
    SQLModelWatchlistRepository,
)
from portfolio_tracker.models import MotleyFoolRating, SeekingAlphaRating


@pytest.fixture
def symbols(session_factory, clock):
    return SQLModelSymbolRepository(session_factory, clock)


@pytest.fixture
def positions(session_factory, clock):
    return SQLModelPositionRepository(session_factory, clock)


@pytest.fixture
def watchlists(session_factory, clock):
    return SQLModelWatchlistRepository(session_factory, clock)


@pytest.fixture
def ratings(session_factory, clock):
    return SQLModelRatingRepository(session_factory, clock)


class TestSymbolRepository:
    def test_upsert_normalizes_and_merges_without_blanking(self, symbols):
        symbols.upsert(SymbolUpdate(symbol="brk/b", company_name="Berkshire Hathaway"))
        merged = symbols.upsert(SymbolUpdate(symbol="BRK.B", company_name=None, sector="Financials"))

        assert merged.symbol == "BRK.B"
        assert merged.company_name == "Berkshire Hathaway"
        assert merged.sector == "Financials"
        assert [row.symbol for row in symbols.list_all()] == ["BRK.B"]

    def test_search_matches_ticker_or_name(self, symbols):
        symbols.upsert(SymbolUpdate(symbol="AAPL", company_name="Apple Inc"))
        symbols.upsert(SymbolUpdate(symbol="MSFT", company_name="Microsoft"))

        assert [row.symbol for row in symbols.search("apple")] == ["AAPL"]
        assert [row.symbol for row in symbols.search("msf")] == ["MSFT"]

    def test_orphans_exclude_held_and_active_symbols(
        self, symbols, account_factory, position_factory, watchlist_factory, member_factory, watchlists
    ):
        account = account_factory()
        position_factory(account.id, "AAPL")
        watchlist = watchlist_factory()
        member_factory(watchlist.id, "MSFT")
        member_factory(watchlist.id, "GOOG")
        watchlists.remove_member(watchlist.id, "GOOG")
        symbols.ensure("TSLA")

        assert symbols.list_orphans() == ["GOOG", "TSLA"]
        assert symbols.delete_orphans() == 2
        assert [row.symbol for row in symbols.list_all()] == ["AAPL", "MSFT"]


class TestPositionRepository:
    def test_upsert_replaces_shares_and_preserves_cost_basis(self, positions, symbols, account_factory):
        account = account_factory()
        symbols.ensure("AAPL")

        first, created = positions.upsert(
            PositionUpdate(account_id=account.id, symbol="AAPL", shares=10, cost_basis=1500.0)
        )
        second, created_again = positions.upsert(
            PositionUpdate(account_id=account.id, symbol="aapl", shares=4, cost_basis=None)
        )

        assert created is True
        assert created_again is False
        assert second.id == first.id
        assert second.shares == 4
        assert second.cost_basis == 1500.0
        assert len(positions.list_by_account(account.id)) == 1

    def test_unique_account_symbol_enforced(self, session_factory, symbols, account_factory):
        from portfolio_tracker.models import Position

        account = account_factory()
        symbols.ensure("AAPL")
        with pytest.raises(IntegrityError):
            with session_factory() as session:
                session.add(Position(account_id=account.id, symbol="AAPL", shares=1))
                session.add(Position(account_id=account.id, symbol="AAPL", shares=2))
                session.commit()

    def test_deleting_account_cascades_to_positions(self, positions, account_factory, position_factory):
        accounts = SQLModelAccountRepository(positions.session_factory)
        account = account_factory()
        position_factory(account.id, "AAPL")
        position_factory(account.id, "MSFT")

        assert accounts.count_positions(account.id) == 2
        assert accounts.delete(account.id) is True
        assert positions.list_all() == []
        assert accounts.delete(account.id) is False

    def test_list_enriched_includes_symbol_details(self, positions, account_factory, position_factory):
        account = account_factory()
        position_factory(account.id, "AAPL", company_name="Apple Inc")

        rows = positions.list_enriched(account.id)
        assert rows[0]["symbol"] == "AAPL"
        assert rows[0]["company_name"] == "Apple Inc"


class TestWatchlistMembership:
    def test_rejects_unknown_source(self, watchlists):
        with pytest.raises(ValueError):
            watchlists.create("Other", "morningstar")

    def test_re_adding_appends_history(self, watchlists, watchlist_factory, symbols, clock):
        watchlist = watchlist_factory()
        symbols.ensure("AAPL")

        _, created = watchlists.ensure_active_member(watchlist.id, "AAPL")
        _, created_again = watchlists.ensure_active_member(watchlist.id, "aapl")
        assert (created, created_again) == (True, False)

        clock.advance(days=1)
        assert watchlists.remove_member(watchlist.id, "AAPL") is True
        assert watchlists.remove_member(watchlist.id, "AAPL") is False
        assert watchlists.list_active_symbols(watchlist.id) == []

        clock.advance(days=1)
        watchlists.ensure_active_member(watchlist.id, "AAPL")

        history = watchlists.membership_history(watchlist.id, "AAPL")
        assert len(history) == 2
        assert history[0].removed_at is not None
        assert history[1].removed_at is None
        assert watchlists.count_active_members(watchlist.id) == 1
        assert watchlists.count_removed_members() == 1

    def test_purge_removed_members(self, watchlists, watchlist_factory, member_factory):
        watchlist = watchlist_factory()
        member_factory(watchlist.id, "AAPL")
        member_factory(watchlist.id, "MSFT")
        watchlists.remove_member(watchlist.id, "MSFT")

        assert watchlists.purge_removed_members() == 1
        assert watchlists.count_members(watchlist.id) == 1


class TestRatingRepository:
    def test_upsert_is_unique_per_symbol_and_watchlist(self, ratings, watchlist_factory, symbols, clock):
        watchlist = watchlist_factory()
        symbols.ensure("AAPL")

        first, created = ratings.upsert(
            SeekingAlphaRating,
            RatingUpdate(symbol="AAPL", watchlist_id=watchlist.id, scores={"quant_score": 4.5, "growth_grade": "A"}),
        )
        clock.advance(hours=1)
        second, created_again = ratings.upsert(
            SeekingAlphaRating,
            RatingUpdate(symbol="AAPL", watchlist_id=watchlist.id, scores={"quant_score": 3.1}),
        )

        assert created is True
        assert created_again is False
        assert second.id == first.id
        assert second.quant_score == 3.1
        assert second.growth_grade is None
        assert second.imported_at == clock()
        assert ratings.count_for_watchlist(watchlist.id, "seeking_alpha") == 1

    def test_upsert_rejects_fields_of_other_source(self, ratings, watchlist_factory, symbols):
        watchlist = watchlist_factory(source="motley_fool")
        symbols.ensure("AAPL")
        with pytest.raises(ValueError, match="quant_score"):
            ratings.upsert(
                MotleyFoolRating,
                RatingUpdate(symbol="AAPL", watchlist_id=watchlist.id, scores={"quant_score": 1.0}),
            )

    def test_list_for_symbol_groups_by_source(self, ratings, watchlist_factory, symbols):
        sa = watchlist_factory("SA", "seeking_alpha")
        mf = watchlist_factory("MF", "motley_fool")
        symbols.ensure("AAPL")
        ratings.upsert(SeekingAlphaRating, RatingUpdate("AAPL", sa.id, {"quant_score": 4.0}))
        ratings.upsert(MotleyFoolRating, RatingUpdate("AAPL", mf.id, {"risk_tag": "Moderate"}))

        combined = ratings.list_for_symbol("aapl")
        assert combined["seeking_alpha"][0]["watchlist_name"] == "SA"
        assert combined["motley_fool"][0]["risk_tag"] == "Moderate"


class TestTransactionRepository:
    def test_total_amount_defaults_to_shares_times_price(self, session_factory, account_factory, position_factory):
        repo = SQLModelTransactionRepository(session_factory)
        account = account_factory()
        position_factory(account.id, "AAPL")

        trade = repo.create(
            account_id=account.id,
            symbol="aapl",
            transaction_type="buy",
            shares=5,
            price_per_share=100.0,
            transaction_date=date(2024, 1, 5),
            reason_type="watchlist_add",
        )
        assert trade.transaction_type == "BUY"
        assert trade.total_amount == 500.0
        assert trade.symbol == "AAPL"

        repo.create(
            account_id=account.id,
            symbol="AAPL",
            transaction_type="SELL",
            shares=2,
            price_per_share=120.0,
            total_amount=235.0,
            transaction_date=date(2024, 2, 1),
        )
        assert [t.transaction_type for t in repo.search(account_id=account.id)] == ["SELL", "BUY"]
        assert len(repo.search(start_date=date(2024, 1, 10))) == 1
        assert repo.count() == 2
        assert repo.delete(trade.id) is True
        assert repo.delete(trade.id) is False

    def test_rejects_unknown_type(self, session_factory):
        repo = SQLModelTransactionRepository(session_factory)
        with pytest.raises(ValueError):
            repo.create(
                account_id=1,
                symbol="AAPL",
                transaction_type="HOLD",
                shares=1,
                price_per_share=1,
                transaction_date=date(2024, 1, 1),
            )


class TestQuoteRepository:
    def test_freshness_uses_injected_clock(self, session_factory, symbols, clock):
        quotes = SQLModelQuoteRepository(session_factory, clock)
        symbols.ensure("AAPL")
        quotes.upsert("AAPL", price=190.0)

        assert quotes.get_fresh("AAPL", max_age_seconds=300).price == 190.0
        clock.advance(minutes=6)
        assert quotes.get_fresh("AAPL", max_age_seconds=300) is None
        assert quotes.fresh_prices(["AAPL"], max_age_seconds=300) == {}
        assert quotes.get_fresh("MSFT", max_age_seconds=300) is None
        assert quotes.clear() == 1
