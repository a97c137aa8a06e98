"""CLI command for invalidating cached queries by table.

Usage:
    tablecache invalidate users
    tablecache invalidate users orders --batch-size 500
    tablecache invalidate users --redis-url redis://cache:6379/1 --format json
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from tablecache.cache.invalidation import BatchInvalidator
from tablecache.cache.keys import CacheKeys
from tablecache.cache.mapping import TableMappingIndex
from tablecache.cache.redis import close_redis, get_redis
from tablecache.config import settings
from tablecache.errors import StoreError
from tablecache.observability.logging import configure_logging
from tablecache.observability.metrics import get_metrics


def invalidate(
    tables: list[str] = typer.Argument(
        ...,
        help="Tables whose cached queries should be evicted",
    ),
    redis_url: str = typer.Option(
        None,
        "--redis-url",
        "-u",
        help="Redis URL (defaults to REDIS_URL)",
    ),
    batch_size: int = typer.Option(
        None,
        "--batch-size",
        "-b",
        min=1,
        help="Keys per SSCAN batch (defaults to TABLECACHE_BATCH_KEY_COUNT)",
    ),
    output_format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: text, json",
    ),
) -> None:
    """Evict every cached query that read any of TABLES."""
    import json

    console = Console()
    configure_logging(json_format=settings.log_json, level=settings.log_level)

    try:
        counts = asyncio.run(_invalidate(tables, redis_url, batch_size or settings.batch_key_count))
    except StoreError as e:
        console.print(f"[red]Invalidation failed:[/red] {e}")
        raise typer.Exit(code=1) from e

    if output_format == "json":
        console.print(json.dumps(counts, indent=2))
        return

    for table, count in counts.items():
        console.print(f"[green]✓[/green] {table}: {count} key(s) evicted")
    console.print(f"[blue]Total:[/blue] {sum(counts.values())}")


async def _invalidate(tables: list[str], redis_url: str | None, batch_size: int) -> dict[str, int]:
    store = await get_redis(redis_url)
    try:
        keys = CacheKeys(
            namespace=settings.namespace,
            data_prefix=settings.data_prefix,
            mapping_prefix=settings.mapping_prefix,
        )
        invalidator = BatchInvalidator(
            store,
            TableMappingIndex(store, keys),
            batch_size,
            metrics=get_metrics(),
        )
        return await invalidator.invalidate_tables(tables)
    finally:
        await close_redis()
