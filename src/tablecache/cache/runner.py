"""Cache-aside runner.

Read path for one data source:

1. Resolve the per-call bypass from the first argument (query options).
2. Derive the cache key from ``{method, args}`` and the tables touched.
3. GET the key; on a hit, return the cached value.
4. On a miss, call the data source and normalize its result.
5. Concurrently SETEX the value and SADD the key to every table's set.

Step 5 is not atomic. If the process dies between the two writes the entry
is not indexed and only its ttl removes it. Failures in step 5 are logged;
the caller still gets the data-source result.

Example:
    runner = CacheAsideRunner(await get_redis(), ModelDataSource(User, sessions))

    user = await runner.execute("find_one", ["users"], [QueryOptions(where={"id": 1})])

    # After a write to users
    await runner.invalidate_tables(["users"])
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import orjson
from redis.exceptions import RedisError

from tablecache.cache.bypass import should_read_cache
from tablecache.cache.invalidation import BatchInvalidator
from tablecache.cache.keys import CacheKeys, QueryDescriptor, encode_value
from tablecache.cache.mapping import TableMappingIndex
from tablecache.config import CacheSettings
from tablecache.config import settings as default_settings
from tablecache.errors import ConfigurationError, StoreError, UnsupportedMethod
from tablecache.records import normalize_result

if TYPE_CHECKING:
    from tablecache.cache.redis import KeyValueStore
    from tablecache.observability.metrics import CacheMetrics

logger = logging.getLogger(__name__)

# Store failures the read path survives
STORE_ERRORS = (RedisError, StoreError, ConnectionError, OSError)


class CacheAsideRunner:
    """Serves named data-source reads through the cache.

    The store is shared and external; the runner only owns its key layout
    and settings, which are fixed at construction.
    """

    def __init__(
        self,
        store: KeyValueStore | None,
        source: Any,
        settings: CacheSettings | None = None,
        log: logging.Logger | None = None,
        metrics: CacheMetrics | None = None,
    ):
        if store is None:
            raise ConfigurationError("A key-value store is required")
        if source is None:
            raise ConfigurationError("A data source is required")

        self.settings = settings or default_settings
        self.store = store
        self.source = source
        self.log = log or logger
        self.metrics = metrics

        self.keys = CacheKeys(
            namespace=self.settings.namespace,
            data_prefix=self.settings.data_prefix,
            mapping_prefix=self.settings.mapping_prefix,
        )
        self.index = TableMappingIndex(store, self.keys)
        self.invalidator = BatchInvalidator(
            store,
            self.index,
            self.settings.batch_key_count,
            log=self.log,
            metrics=metrics,
        )

    @property
    def namespace(self) -> str:
        return self.settings.namespace

    @property
    def ttl(self) -> int:
        return self.settings.ttl

    def key(
        self,
        descriptor: QueryDescriptor,
        tables: Sequence[str],
        prefix: str | None = None,
    ) -> str | None:
        """Derive the cache key for a query in this runner's namespace."""
        return self.keys.data_key(descriptor, tables, prefix)

    def _operation(self, method: str) -> Any:
        declared = getattr(self.source, "operations", None)
        if declared is not None:
            supported = method in declared
        else:
            supported = not method.startswith("_")
        operation = getattr(self.source, method, None) if supported else None
        if not inspect.iscoroutinefunction(operation):
            raise UnsupportedMethod(method)
        return operation

    def _to_log(self, descriptor: QueryDescriptor, key: str) -> None:
        self.log.info(
            f"Executed (cache): key/{key}",
            extra={
                "cache_key": key,
                "query": {"method": descriptor.method, "params": repr(descriptor.params)},
            },
        )

    async def execute(
        self,
        method: str,
        tables: Sequence[str],
        args: Sequence[Any] = (),
    ) -> Any:
        """Run ``source.<method>(*args)`` through the cache.

        Args:
            method: Name of the data-source operation
            tables: Tables the query reads, used for key layout and invalidation
            args: Call arguments; the first is the query options

        Raises:
            UnsupportedMethod: The data source has no such operation
        """
        self._operation(method)
        args = tuple(args)

        options = args[0] if args else None
        if not should_read_cache(options, self.settings.read_cache):
            if self.metrics:
                self.metrics.bypass(self.namespace)
            return await self.run_from_source(method, args)

        descriptor = QueryDescriptor(method=method, params=args)
        key = self.key(descriptor, tables)
        if key is None:
            return await self.run_from_source(method, args)

        cached = await self._get_cached(key)
        if cached is not None:
            self._to_log(descriptor, key)
            if self.metrics:
                self.metrics.hit(self.namespace)
            return orjson.loads(cached)

        if self.metrics:
            self.metrics.miss(self.namespace)
        data = await self.run_from_source(method, args)

        try:
            payload = encode_value(data)
        except TypeError as e:
            if self.metrics:
                self.metrics.uncacheable(self.namespace)
            self.log.warning(
                f"Result not cacheable for {key}: {e}",
                extra={"cache_key": key, "query": {"method": method}},
            )
            return data

        results = await asyncio.gather(
            self.store.setex(key, self.ttl, payload),
            self.set_cache_map(key, tables),
            return_exceptions=True,
        )
        for operation, result in zip(("setex", "sadd"), results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                self._store_failed(operation, key, result)

        return data

    async def _get_cached(self, key: str) -> Any:
        try:
            return await self.store.get(key)
        except STORE_ERRORS as e:
            self._store_failed("get", key, e)
            return None

    def _store_failed(self, operation: str, key: str, error: Exception) -> None:
        if self.metrics:
            self.metrics.store_error(self.namespace, operation)
        self.log.warning(
            f"Cache store {operation} failed for {key}: {error}",
            extra={"cache_key": key, "operation": operation},
        )

    async def run_from_source(self, method: str, args: Sequence[Any]) -> Any:
        """Call the data source directly and normalize its result.

        Data-source exceptions propagate unchanged.
        """
        operation = self._operation(method)
        return normalize_result(await operation(*args))

    async def set_cache(self, key: str, data: Any) -> None:
        """Store a serialized result under ``key`` with the runner's ttl."""
        await self.store.setex(key, self.ttl, encode_value(data))

    async def set_cache_map(self, key: str, tables: Sequence[str]) -> None:
        """Record ``key`` in the mapping set of every table."""
        await self.index.record_all(tables, key)

    async def clear_cache(self, key: str) -> None:
        """Delete a single cache entry."""
        await self.store.delete(key)

    async def invalidate_tables(self, tables: Sequence[str]) -> dict[str, int]:
        """Evict every cached entry that depends on any of ``tables``."""
        return await self.invalidator.invalidate_tables(tables)
