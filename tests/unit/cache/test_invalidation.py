"""Tests for batch invalidation."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from tablecache.cache.invalidation import BatchInvalidator
from tablecache.cache.keys import CacheKeys
from tablecache.cache.mapping import TableMappingIndex
from tablecache.errors import StoreError

KEYS = CacheKeys(namespace="ns", data_prefix="cache", mapping_prefix="keymap")


async def seed(store, table: str, count: int) -> list[str]:
    """Cache ``count`` entries and record them for ``table``."""
    keys = [f"ns:cache:{table}:{n:040x}" for n in range(count)]
    for key in keys:
        await store.setex(key, 60, b"{}")
        await store.sadd(KEYS.mapping_key(table), key)
    return keys


def make_invalidator(store, batch_key_count: int = 1000, **kwargs) -> BatchInvalidator:
    return BatchInvalidator(store, TableMappingIndex(store, KEYS), batch_key_count, **kwargs)


class TestInvalidateTable:
    """Tests for single-table sweeps."""

    @pytest.mark.asyncio
    async def test_removes_all_entries_over_several_batches(self, store) -> None:
        """More keys than one batch are all evicted and the set ends empty."""
        keys = await seed(store, "users", 25)

        evicted = await make_invalidator(store, batch_key_count=10).invalidate_table("users")

        assert evicted == 25
        assert all(key not in store.values for key in keys)
        assert store.members(KEYS.mapping_key("users")) == set()
        assert store.calls.count("sscan") > 1

    @pytest.mark.asyncio
    async def test_other_tables_untouched(self, store) -> None:
        await seed(store, "users", 3)
        orders = await seed(store, "orders", 2)

        await make_invalidator(store).invalidate_table("users")

        assert all(key in store.values for key in orders)
        assert store.members(KEYS.mapping_key("orders")) == set(orders)

    @pytest.mark.asyncio
    async def test_empty_table(self, store) -> None:
        assert await make_invalidator(store).invalidate_table("users") == 0

    @pytest.mark.asyncio
    async def test_logs_event(self, store, caplog: pytest.LogCaptureFixture) -> None:
        await seed(store, "users", 2)

        with caplog.at_level(logging.INFO, logger="tablecache.cache.invalidation"):
            await make_invalidator(store).invalidate_table("users")

        record = next(r for r in caplog.records if "invalidate" in r.getMessage())
        assert record.table == "users"
        assert record.evicted == 2

    @pytest.mark.asyncio
    async def test_counts_metrics(self, store) -> None:
        await seed(store, "users", 4)
        metrics = MagicMock()

        await make_invalidator(store, metrics=metrics).invalidate_table("users")

        metrics.invalidated.assert_called_once_with("ns", "users", 4)

    @pytest.mark.asyncio
    async def test_store_error_is_wrapped(self) -> None:
        mock_store = AsyncMock()
        mock_store.sscan = AsyncMock(side_effect=RedisConnectionError("down"))

        with pytest.raises(StoreError) as exc_info:
            await make_invalidator(mock_store).invalidate_table("users")

        assert exc_info.value.operation == "invalidate"

    def test_batch_key_count_must_be_positive(self, store) -> None:
        with pytest.raises(ValueError):
            make_invalidator(store, batch_key_count=0)


class TestInvalidateTables:
    """Tests for multi-table sweeps."""

    @pytest.mark.asyncio
    async def test_returns_counts_per_table(self, store) -> None:
        await seed(store, "users", 3)
        await seed(store, "orders", 5)

        counts = await make_invalidator(store, batch_key_count=2).invalidate_tables(
            ["users", "orders", "users"]
        )

        assert counts == {"users": 3, "orders": 5}
        assert store.sets == {}

    @pytest.mark.asyncio
    async def test_failed_sweep_waits_for_the_others(self, store) -> None:
        """When one table fails, the others finish before the error is raised."""
        users = await seed(store, "users", 30)
        scan = store.sscan

        async def sscan(name, *args, **kwargs):
            if name == KEYS.mapping_key("orders"):
                raise RedisConnectionError("down")
            await asyncio.sleep(0)
            return await scan(name, *args, **kwargs)

        store.sscan = sscan

        with pytest.raises(StoreError):
            await make_invalidator(store, batch_key_count=5).invalidate_tables(
                ["orders", "users"]
            )

        assert all(key not in store.values for key in users)
        assert store.members(KEYS.mapping_key("users")) == set()

    @pytest.mark.asyncio
    async def test_shared_key_evicted_once(self, store) -> None:
        """A key recorded under two tables is gone after either sweep."""
        key = "ns:cache:users_orders:" + "a" * 40
        await store.setex(key, 60, b"[]")
        await store.sadd(KEYS.mapping_key("users"), key)
        await store.sadd(KEYS.mapping_key("orders"), key)

        await make_invalidator(store).invalidate_tables(["users"])

        assert key not in store.values
        # The orders set still references it until orders is invalidated
        assert store.members(KEYS.mapping_key("orders")) == {key}
