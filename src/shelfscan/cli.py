"""Command-line entry point."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import click

from shelfscan.config import Settings
from shelfscan.errors import ShelfscanError
from shelfscan.logs import configure_logging
from shelfscan.state import open_state

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from shelfscan.models.availability import AvailabilityRow
    from shelfscan.models.hardcover import WantToReadEntry
    from shelfscan.models.search import SearchResult
    from shelfscan.state import AppState


def _run(settings: Settings, action: Callable[[AppState], Awaitable[Any]]) -> Any:
    async def _main() -> Any:
        async with open_state(settings) as state:
            return await action(state)

    try:
        return asyncio.run(_main())
    except ShelfscanError as exc:
        raise click.ClickException(f"{exc.code}: {exc.message}") from exc


def _format_result(result: SearchResult) -> str:
    line = result.title
    if result.series_name:
        line += f" (#{result.series_read_order} in {result.series_name})"
    creators = ", ".join(f"{c.name} ({c.role})" for c in result.creators)
    return f"{result.id}\t{line}\t{creators}\towned by {result.library_count} libraries"


def _format_row(row: AvailabilityRow) -> str:
    marker = "*" if row.favorite else " "
    freshness = "live" if row.fresh else "cached"
    return (
        f"{marker} {row.library.name:<40} owned={row.owned_count:<3} "
        f"available={row.available_count:<3} holds={row.holds_count:<4} "
        f"wait={row.estimated_wait_days:<4} [{freshness}]"
    )


def _format_want_to_read(entry: WantToReadEntry) -> str:
    best = entry.available_now
    if best is None:
        return f"{entry.result.id}\t{entry.result.title}\tnot found at favorites"
    copies = best.most_available_copies
    status = f"available at {best.library_id} ({copies} cop{'ies' if copies != 1 else 'y'})"
    others = best.total_libraries - 1
    if others:
        status += f" and {others} other{'s' if others > 1 else ''}"
    return f"{entry.result.id}\t{entry.result.title}\t{status}\t{best.libby_link}"


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Search titles and check availability across libraries."""
    settings = Settings()
    configure_logging(settings.logging)
    ctx.obj = settings


@cli.command()
@click.argument("term")
@click.option("--narrow", is_flag=True, help="Use the constrained-width debounce delay.")
@click.pass_obj
def search(settings: Settings, term: str, narrow: bool) -> None:
    """Search for TERM and print ranked results."""

    async def action(state: AppState) -> list[SearchResult]:
        failures: list[ShelfscanError] = []
        controller = state.search_controller(narrow=narrow, on_error=failures.append)
        controller.on_input(term)
        await controller.wait()
        if failures:
            raise failures[0]
        return controller.results

    for result in _run(settings, action):
        click.echo(_format_result(result))


@cli.command()
@click.argument("media_id")
@click.option("--refresh/--no-refresh", default=False, help="Refresh favorite libraries live.")
@click.option("--all", "refresh_all", is_flag=True, help="Also refresh non-favorite libraries.")
@click.pass_obj
def availability(settings: Settings, media_id: str, refresh: bool, refresh_all: bool) -> None:
    """Show per-library availability of MEDIA_ID."""

    async def action(state: AppState):
        snapshot = await state.loader.load(media_id)
        if refresh or refresh_all:
            await state.scheduler.refresh_favorites(snapshot)
        if refresh_all:
            await state.scheduler.refresh_non_favorites(snapshot)
        await state.scheduler.drain(snapshot)
        return snapshot

    snapshot = _run(settings, action)
    click.echo(f"{snapshot.title}: owned by {snapshot.library_count} libraries")
    rows = sorted(
        snapshot.rows,
        key=lambda r: (not r.favorite, -r.available_count, r.estimated_wait_days),
    )
    for row in rows:
        click.echo(_format_row(row))


@cli.group()
def favorites() -> None:
    """Manage favorite libraries."""


@favorites.command("list")
@click.pass_obj
def favorites_list(settings: Settings) -> None:
    for library_id in sorted(_run(settings, lambda state: state.favorites.load())):
        click.echo(library_id)


@favorites.command("add")
@click.argument("library_id")
@click.pass_obj
def favorites_add(settings: Settings, library_id: str) -> None:
    _run(settings, lambda state: state.favorites.add(library_id))


@favorites.command("remove")
@click.argument("library_id")
@click.pass_obj
def favorites_remove(settings: Settings, library_id: str) -> None:
    _run(settings, lambda state: state.favorites.remove(library_id))


@cli.command()
@click.pass_obj
def libraries(settings: Settings) -> None:
    """List every known library, favorites marked with ``*``."""

    async def action(state: AppState):
        return await state.api.libraries(), await state.favorites.load()

    catalog, favorite_ids = _run(settings, action)
    for library in catalog:
        marker = "*" if library.id in favorite_ids else " "
        consortium = " (consortium)" if library.is_consortium else ""
        click.echo(
            f"{marker} {library.id}\t{library.legacy_numeric_id}\t{library.name}{consortium}"
        )


@cli.command()
@click.argument("username")
@click.option("--filters", default="", help="Extra search terms that narrow the shelf.")
@click.pass_obj
def hardcover(settings: Settings, username: str, filters: str) -> None:
    """Check USERNAME's Hardcover want-to-read shelf at favorite libraries."""
    entries = _run(settings, lambda state: state.hardcover.check(username, filters))
    for entry in entries:
        click.echo(_format_want_to_read(entry))


@cli.command()
@click.argument("left")
@click.argument("right")
@click.pass_obj
def diff(settings: Settings, left: str, right: str) -> None:
    """Titles LEFT owns that RIGHT does not."""
    for entry in _run(settings, lambda state: state.comparison.diff(left, right)) or []:
        click.echo(f"{entry.id}\t{entry.title}\towned={entry.owned_count}")


@cli.command()
@click.argument("left")
@click.argument("right")
@click.pass_obj
def intersect(settings: Settings, left: str, right: str) -> None:
    """Titles both LEFT and RIGHT own."""
    for entry in _run(settings, lambda state: state.comparison.intersect(left, right)) or []:
        click.echo(
            f"{entry.id}\t{entry.title}\t"
            f"left={entry.left.available_count}/{entry.left.owned_count}\t"
            f"right={entry.right.available_count}/{entry.right.owned_count}"
        )


@cli.command()
@click.argument("library_id")
@click.pass_obj
def unique(settings: Settings, library_id: str) -> None:
    """Titles only LIBRARY_ID owns."""
    result = _run(settings, lambda state: state.comparison.unique(library_id))
    if result is None:
        return
    for entry in result.unique:
        click.echo(f"{entry.id}\t{entry.title}\towned={entry.owned_count}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
