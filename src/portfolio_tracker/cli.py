"""Command line interface for imports, attention items and maintenance."""

from __future__ import annotations

import json
from functools import update_wrapper
from pathlib import Path
from typing import Any, Callable

import click

from .config import BaseConfig
from .context import AppContext, create_app_context
from .logging_config import setup_logging
from .models import WatchlistSource


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _finish(result) -> None:
    """Print an import result and exit non-zero when it failed."""

    _echo_json(result.to_dict())
    if not result.success:
        click.get_current_context().exit(1)


_CONTEXT_KEY = "portfolio_tracker.app_context"


def _app_context(ctx: click.Context) -> AppContext:
    """Build the application context on first use and share it across subcommands."""

    app_ctx = ctx.meta.get(_CONTEXT_KEY)
    if app_ctx is None:
        config = BaseConfig()
        setup_logging(config)
        app_ctx = create_app_context(config)
        ctx.meta[_CONTEXT_KEY] = app_ctx
        ctx.find_root().call_on_close(app_ctx.engine.dispose)
    return app_ctx


def pass_app_context(f: Callable[..., Any]) -> Callable[..., Any]:
    """Like ``click.pass_obj`` but opens the database only when the command runs."""

    @click.pass_context
    def new_func(ctx: click.Context, *args: Any, **kwargs: Any) -> Any:
        return ctx.invoke(f, _app_context(ctx), *args, **kwargs)

    return update_wrapper(new_func, f)


@click.group()
def cli() -> None:
    """Portfolio tracker maintenance and import commands.

    Configuration comes from PORTFOLIO_* environment variables or a .env file.
    """


@cli.command("init-db")
@pass_app_context
def init_db(app_ctx: AppContext) -> None:
    """Create tables and run pending data migrations."""

    click.echo(f"Database ready at {app_ctx.config.DATABASE_URL}")


@cli.group("import")
def import_group() -> None:
    """Import broker positions or watchlist ratings."""


@import_group.command("schwab")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@pass_app_context
def import_schwab(app_ctx: AppContext, csv_file: Path) -> None:
    """Import a Schwab positions CSV export."""

    _finish(app_ctx.importer.import_schwab_csv(csv_file.read_text(encoding="utf-8-sig")))


@import_group.command("seeking-alpha")
@click.argument("xlsx_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--watchlist-id", type=int, required=True)
@pass_app_context
def import_seeking_alpha(app_ctx: AppContext, xlsx_file: Path, watchlist_id: int) -> None:
    """Import a Seeking Alpha ratings spreadsheet into a watchlist."""

    _finish(app_ctx.importer.import_seeking_alpha_excel(xlsx_file.read_bytes(), watchlist_id))


@import_group.command("motley-fool")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--watchlist-id", type=int, required=True)
@pass_app_context
def import_motley_fool(app_ctx: AppContext, csv_file: Path, watchlist_id: int) -> None:
    """Import a Motley Fool scorecard CSV into a watchlist."""

    _finish(app_ctx.importer.import_motley_fool_csv(csv_file.read_text(encoding="utf-8"), watchlist_id))


@cli.group("watchlist")
def watchlist_group() -> None:
    """Manage watchlists."""


@watchlist_group.command("create")
@click.argument("name")
@click.option(
    "--source",
    type=click.Choice([source.value for source in WatchlistSource]),
    required=True,
)
@click.option("--allocation", type=float, default=None, help="Dollar allocation for the list.")
@pass_app_context
def create_watchlist(app_ctx: AppContext, name: str, source: str, allocation: float | None) -> None:
    """Create a watchlist that ratings can be imported into."""

    if app_ctx.watchlist_repo.get_by_name(name) is not None:
        raise click.ClickException(f"Watchlist {name!r} already exists")
    watchlist = app_ctx.watchlist_repo.create(name, source, allocation)
    _echo_json(watchlist.model_dump())


@watchlist_group.command("list")
@click.option("--source", type=click.Choice([source.value for source in WatchlistSource]), default=None)
@pass_app_context
def list_watchlists(app_ctx: AppContext, source: str | None) -> None:
    """Show each watchlist with its equal-weight target per symbol."""

    targets = app_ctx.summary.target_allocations()
    if source is not None:
        wanted = {watchlist.id for watchlist in app_ctx.watchlist_repo.list_by_source(source)}
        targets = [target for target in targets if target["watchlist_id"] in wanted]
    _echo_json(targets)


@cli.command("needs-attention")
@pass_app_context
def needs_attention(app_ctx: AppContext) -> None:
    """List dropped recommendations, buy signals and out-of-band holdings."""

    items = app_ctx.summary.needs_attention()
    if not items:
        click.echo("Nothing needs attention.")
        return
    for item in items:
        click.echo(f"[{item['type']}] {item['message']}")


@cli.group("admin")
def admin_group() -> None:
    """Database maintenance."""


@admin_group.command("stats")
@pass_app_context
def admin_stats(app_ctx: AppContext) -> None:
    _echo_json(app_ctx.admin.stats().to_dict())


@admin_group.command("cleanup-orphans")
@pass_app_context
def cleanup_orphans(app_ctx: AppContext) -> None:
    """Delete symbols with no positions and no active membership."""

    deleted = app_ctx.admin.delete_orphan_symbols()
    click.echo(f"Deleted {deleted} orphan symbols")


@admin_group.command("purge-removed-members")
@click.confirmation_option(prompt="Permanently delete removed watchlist members?")
@pass_app_context
def purge_removed_members(app_ctx: AppContext) -> None:
    deleted = app_ctx.admin.purge_removed_members()
    click.echo(f"Purged {deleted} removed members")


def init_app(app) -> None:
    """Register the command group on a Flask app as ``flask portfolio ...``."""

    app.cli.add_command(cli, name="portfolio")


def main() -> None:  # pragma: no cover - console script entry point
    cli()
