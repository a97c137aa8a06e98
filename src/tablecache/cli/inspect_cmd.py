"""CLI command for inspecting a table's key set.

Usage:
    tablecache inspect users
    tablecache inspect users --limit 50
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from tablecache.cache.keys import CacheKeys
from tablecache.cache.mapping import TableMappingIndex
from tablecache.cache.redis import close_redis, get_redis
from tablecache.config import settings


def inspect(
    table: str = typer.Argument(..., help="Table name"),
    redis_url: str = typer.Option(
        None,
        "--redis-url",
        "-u",
        help="Redis URL (defaults to REDIS_URL)",
    ),
    limit: int = typer.Option(
        10,
        "--limit",
        "-n",
        min=0,
        help="Maximum number of keys to list",
    ),
) -> None:
    """Show how many cache keys depend on TABLE and list some of them."""
    console = Console()
    size, sample = asyncio.run(_inspect(table, redis_url, limit))

    console.print(f"[bold]{settings.namespace}:{settings.mapping_prefix}:{table}[/bold]")
    console.print(f"  [blue]Keys:[/blue] {size}")
    if not sample:
        return

    keys = CacheKeys(settings.namespace, settings.data_prefix, settings.mapping_prefix)
    listing = Table("Prefix", "Tables", "Digest")
    for key in sample:
        parts = keys.parse_key(key)
        if parts is None:
            listing.add_row("?", "?", key)
        else:
            listing.add_row(parts["prefix"], parts["tables"], parts["digest"])
    console.print(listing)


async def _inspect(table: str, redis_url: str | None, limit: int) -> tuple[int, list[str]]:
    store = await get_redis(redis_url)
    try:
        keys = CacheKeys(settings.namespace, settings.data_prefix, settings.mapping_prefix)
        index = TableMappingIndex(store, keys)
        size = await index.size(table)

        sample: list[str] = []
        cursor = 0
        while len(sample) < limit:
            cursor, batch = await index.scan_from(table, cursor, settings.batch_key_count)
            sample.extend(batch[: limit - len(sample)])
            if cursor == 0:
                break
        return size, sample
    finally:
        await close_redis()
