"""CLI command for running the official-updates cascade once.

Bypasses the cache, so every run hits the sources.

Usage:
    aegis official-updates
    aegis official-updates --format json
    aegis official-updates --max-items 5
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import orjson
import typer

from aegis.aggregator.aggregator import SourceAggregator
from aegis.aggregator.fetch import PageFetcher
from aegis.cache.memory import InMemoryCacheStore
from aegis.config import settings
from aegis.observability import LogContext

if TYPE_CHECKING:
    from rich.console import Console

app = typer.Typer(help="Fetch official updates from government and relief sources")


async def collect(max_items: int) -> list[dict[str, Any]]:
    """Run the cascade with a throwaway cache and return item dicts."""
    fetcher = PageFetcher(user_agent=settings.aggregator_user_agent)
    try:
        aggregator = SourceAggregator.from_settings(InMemoryCacheStore(), fetcher, settings)
        aggregator.max_items = max_items
        with LogContext(request_id="cli-official-updates", user_id="system"):
            items = await aggregator.run_cascade()
    finally:
        await fetcher.close()
    return [item.to_dict() for item in items]


@app.callback(invoke_without_command=True)
def official_updates(
    max_items: int = typer.Option(
        settings.aggregator_max_items,
        "--max-items",
        "-n",
        min=1,
        help="Maximum number of updates to collect",
    ),
    output_format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: text, json",
    ),
) -> None:
    """Run the structured-page, feed and heading tiers until one yields updates."""
    from rich.console import Console

    items = asyncio.run(collect(max_items))

    if output_format == "json":
        typer.echo(orjson.dumps(items, option=orjson.OPT_INDENT_2).decode())
        return

    console = Console()
    _print_table(console, items)
    if not items:
        raise typer.Exit(code=1)


def _print_table(console: Console, items: list[dict[str, Any]]) -> None:
    from rich.table import Table

    if not items:
        console.print("[yellow]No official updates found[/yellow]")
        return

    table = Table(title=f"Official updates ({len(items)})")
    table.add_column("Source", style="cyan")
    table.add_column("Title")
    table.add_column("Published", style="dim")
    for item in items:
        table.add_row(item["source"], item["title"], item["pubDate"])
    console.print(table)
