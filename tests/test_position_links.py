"""Position-watchlist link lifecycle."""

import pytest

from conftest import schwab_csv
from portfolio_tracker.services.position_links import PositionLinkManager


@pytest.fixture
def links(session_factory, clock):
    return PositionLinkManager(session_factory, clock)


@pytest.fixture
def held(account_factory, position_factory, watchlist_factory, member_factory):
    """Two accounts holding AAPL, one holding MSFT, and a watchlist listing both."""

    first = account_factory("Individual")
    second = account_factory("Roth IRA", suffix="987")
    watchlist = watchlist_factory()
    member_factory(watchlist.id, "AAPL")
    member_factory(watchlist.id, "MSFT")
    return {
        "watchlist": watchlist,
        "aapl_1": position_factory(first.id, "AAPL", company_name="Apple Inc"),
        "aapl_2": position_factory(second.id, "AAPL", shares=3),
        "msft": position_factory(first.id, "MSFT"),
    }


def test_create_link_is_idempotent_and_forces_active(links, held, clock):
    position, watchlist = held["aapl_1"], held["watchlist"]

    link = links.create_link(position.id, watchlist.id)
    assert link.status == "active"
    assert link.linked_at == clock()

    links.mark_dropped(position.id, watchlist.id)
    again = links.create_link(position.id, watchlist.id)
    assert again.id == link.id
    assert again.status == "active"
    assert again.dropped_at is None
    assert len(links.get_links_for_watchlist(watchlist.id)) == 1


def test_single_transitions_return_none_when_missing(links, held):
    assert links.mark_dropped(held["aapl_1"].id, held["watchlist"].id) is None
    assert links.reactivate(held["aapl_1"].id, held["watchlist"].id) is None
    assert links.get_link(held["aapl_1"].id, held["watchlist"].id) is None


def test_drop_and_reinstate_lifecycle(links, held, clock):
    position, watchlist = held["aapl_1"], held["watchlist"]
    links.create_link(position.id, watchlist.id)

    clock.advance(days=3)
    dropped = links.mark_dropped(position.id, watchlist.id)
    assert dropped.status == "dropped"
    assert dropped.dropped_at == clock()

    clock.advance(days=1)
    reinstated = links.reactivate(position.id, watchlist.id)
    assert reinstated.status == "active"
    assert reinstated.dropped_at is None


def test_bulk_transitions_cover_every_position_on_symbol(links, held):
    watchlist = held["watchlist"]
    for key in ("aapl_1", "aapl_2", "msft"):
        links.create_link(held[key].id, watchlist.id)

    assert links.mark_dropped_by_symbol("aapl", watchlist.id) == 2
    assert links.mark_dropped_by_symbol("AAPL", watchlist.id) == 0
    assert {link["position_id"] for link in links.get_dropped_links()} == {
        held["aapl_1"].id,
        held["aapl_2"].id,
    }
    assert links.reactivate_by_symbol("AAPL", watchlist.id) == 2
    assert links.get_dropped_links() == []
    assert len(links.get_active_links()) == 3


def test_dropped_details_skip_positions_no_longer_held(links, held, app_context, clock):
    watchlist = held["watchlist"]
    links.create_link(held["aapl_1"].id, watchlist.id)
    links.create_link(held["msft"].id, watchlist.id)
    links.mark_dropped(held["aapl_1"].id, watchlist.id)
    clock.advance(hours=1)
    links.mark_dropped(held["msft"].id, watchlist.id)

    details = links.get_dropped_links_with_details()
    assert [d["symbol"] for d in details] == ["MSFT", "AAPL"]
    assert details[1]["company_name"] == "Apple Inc"
    assert details[1]["watchlist_name"] == watchlist.name

    app_context.position_repo.update(held["msft"].id, shares=0)
    assert [d["symbol"] for d in links.get_dropped_links_with_details()] == ["AAPL"]


def test_links_for_position_include_watchlist(links, held):
    links.create_link(held["aapl_1"].id, held["watchlist"].id)
    (link,) = links.get_links_for_position(held["aapl_1"].id)
    assert link["watchlist_name"] == held["watchlist"].name
    assert link["watchlist_source"] == "seeking_alpha"


def test_delete_link(links, held):
    links.create_link(held["aapl_1"].id, held["watchlist"].id)
    assert links.delete_link(held["aapl_1"].id, held["watchlist"].id) is True
    assert links.delete_link(held["aapl_1"].id, held["watchlist"].id) is False


def test_sync_links_for_symbol_creates_then_reinstates(links, held):
    watchlist = held["watchlist"]

    created = links.sync_links_for_symbol("AAPL", watchlist.id)
    assert created.to_dict() == {"created": 2, "reinstated": 0, "dropped": 0}

    links.mark_dropped_by_symbol("AAPL", watchlist.id)
    again = links.sync_links_for_symbol("AAPL", watchlist.id)
    assert again.to_dict() == {"created": 0, "reinstated": 2, "dropped": 0}


def test_sync_links_for_position_only_creates_and_reinstates(links, held, app_context, clock):
    watchlist = held["watchlist"]
    position = held["aapl_1"]

    assert links.sync_links_for_position(position).created == 1

    app_context.watchlist_repo.remove_member(watchlist.id, "AAPL")
    result = links.sync_links_for_position(position)
    assert result.to_dict() == {"created": 0, "reinstated": 0, "dropped": 0}
    assert links.get_link(position.id, watchlist.id).status == "active"

    links.mark_dropped(position.id, watchlist.id)
    clock.advance(days=1)
    app_context.watchlist_repo.ensure_active_member(watchlist.id, "AAPL")
    assert links.sync_links_for_position(position).reinstated == 1


def test_schwab_reimport_keeps_explicit_link(app_context, watchlist_factory):
    export = schwab_csv(
        '"AAPL","APPLE INC","10","$190.00","$1,500.00",',
        '"Account Total","--","--","--","$1,500.00",',
    )
    app_context.importer.import_schwab_csv(export)
    (position,) = app_context.position_repo.list_all()
    watchlist = watchlist_factory("Hand picked")
    app_context.link_manager.create_link(position.id, watchlist.id)

    result = app_context.importer.import_schwab_csv(export)

    assert result.links.dropped == 0
    assert app_context.link_manager.get_link(position.id, watchlist.id).status == "active"


def test_deleting_watchlist_cascades_links(links, held, app_context):
    links.create_link(held["aapl_1"].id, held["watchlist"].id)
    app_context.watchlist_repo.delete(held["watchlist"].id)
    assert links.get_active_links() == []
