"""Table-based cache invalidation.

Evicts every cached query result that depends on a table without scanning
the whole cache namespace: the table's mapping set is read with SSCAN in
batches of ``batch_key_count`` and each batch is deleted from the cache and
removed from the set.

The sweep is best-effort and takes no lock. A key recorded while a sweep is
running may survive it; it then expires with its ttl. A read that
repopulates a key right after the sweep is fine, it caches current data.

Example:
    invalidator = BatchInvalidator(redis, index, batch_key_count=1000)

    # After writing to the users table
    evicted = await invalidator.invalidate_tables(["users"])
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from redis.exceptions import RedisError

from tablecache.errors import StoreError

if TYPE_CHECKING:
    from tablecache.cache.mapping import TableMappingIndex
    from tablecache.cache.redis import KeyValueStore
    from tablecache.observability.metrics import CacheMetrics

logger = logging.getLogger(__name__)


class BatchInvalidator:
    """Evicts cached entries by table using the mapping index."""

    def __init__(
        self,
        store: KeyValueStore,
        index: TableMappingIndex,
        batch_key_count: int,
        log: logging.Logger | None = None,
        metrics: CacheMetrics | None = None,
    ):
        if batch_key_count <= 0:
            raise ValueError("batch_key_count must be positive")
        self.store = store
        self.index = index
        self.batch_key_count = batch_key_count
        self.log = log or logger
        self.metrics = metrics

    async def invalidate_tables(self, tables: Sequence[str]) -> dict[str, int]:
        """Invalidate all cached entries for each table.

        Tables are swept concurrently and independently. Every sweep runs to
        completion before this returns, even when another one fails.

        Returns:
            Number of evicted keys per table.

        Raises:
            StoreError: A sweep failed; the first failure is raised
        """
        unique = list(dict.fromkeys(tables))
        results = await asyncio.gather(
            *(self.invalidate_table(t) for t in unique),
            return_exceptions=True,
        )

        counts: dict[str, int] = {}
        failures: list[BaseException] = []
        for table, result in zip(unique, results):
            if isinstance(result, BaseException):
                failures.append(result)
            else:
                counts[table] = result

        if failures:
            if len(failures) > 1:
                self.log.error(f"{len(failures)} table sweeps failed; completed: {counts}")
            raise failures[0]
        return counts

    async def invalidate_table(self, table: str) -> int:
        """Invalidate all cached entries recorded for one table.

        Returns the number of keys evicted.
        """
        evicted = 0
        batches = 0
        try:
            async for batch in self.index.scan(table, self.batch_key_count):
                await asyncio.gather(
                    self.store.delete(*batch),
                    self.index.remove(table, *batch),
                )
                evicted += len(batch)
                batches += 1
        except RedisError as e:
            if self.metrics:
                self.metrics.store_error(self.index.keys.namespace, "invalidate")
            raise StoreError("invalidate", str(e)) from e

        if self.metrics:
            self.metrics.invalidated(self.index.keys.namespace, table, evicted)
        self.log.info(
            f"Executed (invalidate): table/{table}",
            extra={"table": table, "evicted": evicted, "batches": batches},
        )
        return evicted
