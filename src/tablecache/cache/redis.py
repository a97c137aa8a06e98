"""Redis store for tablecache.

Any object with the async methods of ``KeyValueStore`` can back the cache;
in production this is a redis-py asyncio client from ``get_redis()``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import redis.asyncio as redis

from tablecache.config import settings

if TYPE_CHECKING:
    from redis.asyncio import Redis

# Module-level connection pool
_redis_client: Redis | None = None


class KeyValueStore(Protocol):
    """The store operations the cache layer relies on."""

    async def get(self, name: str) -> Any: ...

    async def setex(self, name: str, time: int, value: Any) -> Any: ...

    async def delete(self, *names: str) -> int: ...

    async def sadd(self, name: str, *values: str) -> int: ...

    async def sscan(
        self,
        name: str,
        cursor: int = 0,
        match: str | None = None,
        count: int | None = None,
    ) -> tuple[int, list[Any]]: ...

    async def srem(self, name: str, *values: str) -> int: ...

    async def scard(self, name: str) -> int: ...


async def get_redis(url: str | None = None) -> Redis:
    """Get or create the Redis client.

    Uses connection pooling for efficient connection management.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(  # type: ignore[no-untyped-call]
            url or settings.redis_url,
            encoding="utf-8",
            decode_responses=False,  # Values are orjson bytes
        )
    return _redis_client


async def close_redis() -> None:
    """Close Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


def decode_member(member: bytes | str) -> str:
    """Decode a set member returned by a bytes-mode client."""
    return member.decode() if isinstance(member, bytes) else member
