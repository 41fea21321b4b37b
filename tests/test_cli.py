"""Click command line interface."""

import json

import pytest
from click.testing import CliRunner

from conftest import motley_fool_csv, schwab_csv
from portfolio_tracker.cli import cli

AAPL_ROW = '"AAPL","APPLE INC","10","$190.00","$1,500.00",'
TOTAL_ROW = '"Account Total","--","--","--","$1,500.00",'


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.setenv("PORTFOLIO_DATA_DIR", str(tmp_path / "cli-data"))
    monkeypatch.setenv("PORTFOLIO_DEV_MODE", "0")
    monkeypatch.delenv("PORTFOLIO_DATABASE_URL", raising=False)
    return CliRunner()


def test_init_db(runner, tmp_path):
    result = runner.invoke(cli, ["init-db"])
    assert result.exit_code == 0, result.output
    assert "portfolio.db" in result.output
    assert (tmp_path / "cli-data" / "portfolio.db").exists()


def test_import_schwab(runner, tmp_path):
    export = tmp_path / "positions.csv"
    export.write_text(schwab_csv(AAPL_ROW, TOTAL_ROW), encoding="utf-8")

    result = runner.invoke(cli, ["import", "schwab", str(export)])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["message"] == "Imported 1 positions for Individual"
    assert payload["positions"] == {"added": 1, "updated": 0}


def test_import_failure_exits_non_zero(runner, tmp_path):
    export = tmp_path / "broken.csv"
    export.write_text("nothing useful\n", encoding="utf-8")

    result = runner.invoke(cli, ["import", "schwab", str(export)])

    assert result.exit_code == 1
    assert "file too short" in result.output


def test_watchlist_create_and_motley_fool_import(runner, tmp_path):
    created = runner.invoke(
        cli, ["watchlist", "create", "Rule Breakers", "--source", "motley_fool", "--allocation", "5000"]
    )
    assert created.exit_code == 0, created.output
    watchlist_id = json.loads(created.output)["id"]

    duplicate = runner.invoke(cli, ["watchlist", "create", "Rule Breakers", "--source", "motley_fool"])
    assert duplicate.exit_code != 0
    assert "already exists" in duplicate.output

    scorecard = tmp_path / "scorecard.csv"
    scorecard.write_text(
        motley_fool_csv("NVDA,NVIDIA Corp,Technology,2024-01-05,480,98,4.5,12,35,-45,Aggressive,3,22,72"),
        encoding="utf-8",
    )
    result = runner.invoke(
        cli, ["import", "motley-fool", str(scorecard), "--watchlist-id", str(watchlist_id)]
    )
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["members"] == {"added": 1, "removed": 0}

    listed = runner.invoke(cli, ["watchlist", "list"])
    assert json.loads(listed.output)[0]["target_per_symbol"] == 5000


def test_needs_attention_empty(runner):
    result = runner.invoke(cli, ["needs-attention"])
    assert result.exit_code == 0
    assert "Nothing needs attention." in result.output


def test_admin_commands(runner):
    stats = runner.invoke(cli, ["admin", "stats"])
    assert stats.exit_code == 0, stats.output
    assert json.loads(stats.output)["orphan_symbols"] == 0

    cleanup = runner.invoke(cli, ["admin", "cleanup-orphans"])
    assert "Deleted 0 orphan symbols" in cleanup.output

    purge = runner.invoke(cli, ["admin", "purge-removed-members", "--yes"])
    assert purge.exit_code == 0
    assert "Purged 0 removed members" in purge.output


def test_help_does_not_touch_the_data_dir(runner, tmp_path):
    for args in (["--help"], ["import", "schwab", "--help"], ["admin", "stats", "--help"]):
        result = runner.invoke(cli, args)
        assert result.exit_code == 0, result.output
    assert not (tmp_path / "cli-data").exists()


def test_watchlist_list_filters_by_source(runner):
    runner.invoke(cli, ["watchlist", "create", "Growth", "--source", "seeking_alpha"])
    runner.invoke(cli, ["watchlist", "create", "Stock Advisor", "--source", "motley_fool"])

    everything = runner.invoke(cli, ["watchlist", "list"])
    assert {row["watchlist_name"] for row in json.loads(everything.output)} == {"Growth", "Stock Advisor"}

    filtered = runner.invoke(cli, ["watchlist", "list", "--source", "motley_fool"])
    assert filtered.exit_code == 0, filtered.output
    assert [row["watchlist_name"] for row in json.loads(filtered.output)] == ["Stock Advisor"]
