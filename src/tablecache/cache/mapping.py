"""Table mapping index.

For every table a Redis set holds the cache keys whose query touched that
table. Sets are read with SSCAN in bounded batches because they can grow
without limit between invalidations.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence

from tablecache.cache.keys import CacheKeys
from tablecache.cache.redis import KeyValueStore, decode_member


class TableMappingIndex:
    """Registry of cache keys per table."""

    def __init__(self, store: KeyValueStore, keys: CacheKeys):
        self.store = store
        self.keys = keys

    async def record(self, table: str, key: str) -> None:
        """Add ``key`` to the table's set. Idempotent."""
        await self.store.sadd(self.keys.mapping_key(table), key)

    async def record_all(self, tables: Sequence[str], key: str) -> None:
        """Add ``key`` to the set of every table in ``tables``."""
        await asyncio.gather(*(self.record(table, key) for table in tables))

    async def remove(self, table: str, *keys: str) -> None:
        """Remove keys from the table's set."""
        if keys:
            await self.store.srem(self.keys.mapping_key(table), *keys)

    async def size(self, table: str) -> int:
        """Number of keys currently recorded for ``table``."""
        return int(await self.store.scard(self.keys.mapping_key(table)))

    async def scan_from(self, table: str, cursor: int, batch_size: int) -> tuple[int, list[str]]:
        """Run one SSCAN step.

        Returns the next cursor and the batch; a cursor of 0 means the
        scan is complete.
        """
        next_cursor, members = await self.store.sscan(
            self.keys.mapping_key(table),
            cursor=cursor,
            match=self.keys.member_pattern(),
            count=batch_size,
        )
        return int(next_cursor), [decode_member(m) for m in members]

    async def scan(self, table: str, batch_size: int) -> AsyncIterator[list[str]]:
        """Iterate over the table's set in batches of roughly ``batch_size``.

        Empty batches are skipped. Keys added or removed while the scan is
        running may or may not be returned.
        """
        cursor = 0
        while True:
            cursor, members = await self.scan_from(table, cursor, batch_size)
            if members:
                yield members
            if cursor == 0:
                break
