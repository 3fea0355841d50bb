import asyncio
import logging
import sys

import click
from pydantic import ValidationError

from .config import get_search_config
from .coordinator import create_coordinator
from .data_models.search import AggregateState, GeoFilter, SearchIntent, SearchPage
from .data_models.settings import SearchSettings
from .exceptions import SearchFailure
from .geo import DEFAULT_RADIUS_M
from .utils import check_search_endpoint
from .version import __version__


def _load_settings(ctx: click.Context) -> SearchSettings:
    try:
        return get_search_config()
    except ValueError as e:
        click.echo(str(e), err=True)
        sys.stderr.flush()
        ctx.exit(1)


def _parse_lat_lng(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> tuple[float, float] | None:
    if value is None:
        return None
    try:
        lat, lng = (float(part) for part in value.split(","))
    except ValueError:
        raise click.BadParameter("expected 'lat,lng', e.g. 22.28,114.16") from None
    return lat, lng


def _describe(record: object) -> str:
    name = getattr(record, "name_en", None) or getattr(record, "name_tc", None)
    district = getattr(record, "district_en", None)
    label = name or getattr(record, "id", repr(record))
    return f"{label} ({district})" if district else str(label)


async def _run_search(
    settings: SearchSettings, intent: SearchIntent, pages: int
) -> AggregateState:
    coordinator = create_coordinator(settings)

    def on_page(page: SearchPage) -> None:
        click.echo(f"-- page {page.page_index} --")
        for record in page.records:
            click.echo(f"  {_describe(record)}")

    coordinator.subscribe_page(on_page)
    coordinator.subscribe_metadata(
        lambda metadata: click.echo(f"   {metadata.total_hits} restaurants match")
    )
    try:
        await coordinator.search(intent)
        for _ in range(pages - 1):
            task = coordinator.load_more()
            if task is None:
                break
            await task
        return coordinator.current_state()
    finally:
        await coordinator.aclose()


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug logging.")
def cli(*, verbose: bool) -> None:
    """Restaurant search CLI - paginated search against the restaurant API."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)


@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Check that the configured search endpoint answers."""
    settings = _load_settings(ctx)
    try:
        total = asyncio.run(check_search_endpoint(settings))
    except SearchFailure as e:
        click.echo(e.user_message(), err=True)
        ctx.exit(1)
    click.echo(f"OK: {settings.search_url} ({total} restaurants)")


@cli.command()
@click.argument("query", default="")
@click.option("--district", "-d", "districts", multiple=True, help="District code.")
@click.option("--keyword", "-k", "keywords", multiple=True, help="Keyword code.")
@click.option(
    "--near",
    callback=_parse_lat_lng,
    help="Search around 'lat,lng'.",
)
@click.option("--radius", default=DEFAULT_RADIUS_M, type=int, help="Radius in meters.")
@click.option("--language", default=None, help="Language code sent to the API.")
@click.option("--pages", default=1, type=click.IntRange(min=1), help="Pages to load.")
@click.option("--page-size", default=None, type=click.IntRange(min=1))
@click.pass_context
def search(
    ctx: click.Context,
    query: str,
    districts: tuple[str, ...],
    keywords: tuple[str, ...],
    near: tuple[float, float] | None,
    radius: int,
    language: str | None,
    pages: int,
    page_size: int | None,
) -> None:
    """Search restaurants and print each page as it arrives."""
    settings = _load_settings(ctx)
    try:
        geo = (
            GeoFilter(latitude=near[0], longitude=near[1], radius_m=radius)
            if near
            else None
        )
        intent = SearchIntent.fresh(
            query,
            districts=districts or settings.default_districts or (),
            keywords=keywords,
            geo=geo,
            language=language,
            page_size=page_size or settings.page_size,
        )
    except ValidationError as e:
        raise click.UsageError(str(e)) from e

    state = asyncio.run(_run_search(settings, intent, pages))
    if state.error:
        click.echo(state.error.message, err=True)
        ctx.exit(1)
    if state.total_pages == 0:
        click.echo("No restaurants match")
        return
    click.echo(
        f"Loaded {len(state.records)} of {state.total_hits} "
        f"(page {state.current_page + 1} of {state.total_pages})"
    )


def main() -> None:
    """Main entry point for the CLI."""
    cli()
