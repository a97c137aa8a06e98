"""Per-call cache bypass control.

Query options carry an explicit ``cache_mode`` field instead of a magic
filter key, so the override can never collide with a real column filter
and never contributes to the cache key.

Resolution:
- options missing, or without a ``where`` clause: never read the cache
- ``CacheMode.FORCE_BYPASS``: skip the cache
- ``CacheMode.FORCE_USE``: read the cache
- ``CacheMode.DEFAULT``: use the runner's ``read_cache`` setting
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class CacheMode(str, Enum):
    """Per-call cache override."""

    DEFAULT = "default"
    FORCE_BYPASS = "force_bypass"
    FORCE_USE = "force_use"


@dataclass(frozen=True)
class QueryOptions:
    """Options for a single read operation.

    Mirrors the usual ORM finder options. ``where`` maps column names to
    values; ``order`` is a sequence of column names, a leading ``-`` means
    descending.
    """

    where: Mapping[str, Any] | None = None
    attributes: tuple[str, ...] | None = None
    order: tuple[str, ...] | None = None
    limit: int | None = None
    offset: int | None = None
    cache_mode: CacheMode = field(default=CacheMode.DEFAULT, compare=False)

    def key_params(self) -> dict[str, Any]:
        """Return the fields that identify the query, without ``cache_mode``."""
        params: dict[str, Any] = {}
        if self.where is not None:
            params["where"] = dict(self.where)
        if self.attributes is not None:
            params["attributes"] = list(self.attributes)
        if self.order is not None:
            params["order"] = list(self.order)
        if self.limit is not None:
            params["limit"] = self.limit
        if self.offset is not None:
            params["offset"] = self.offset
        return params

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "QueryOptions":
        """Build options from a plain mapping (``{"where": {...}, "limit": 10}``)."""
        attributes = options.get("attributes")
        order = options.get("order")
        return cls(
            where=options.get("where"),
            attributes=tuple(attributes) if attributes is not None else None,
            order=tuple(order) if order is not None else None,
            limit=options.get("limit"),
            offset=options.get("offset"),
        )


def should_read_cache(options: Any, default: bool) -> bool:
    """Decide whether a call may be served from the cache.

    Args:
        options: First call argument, conventionally the query options
        default: The runner's ``read_cache`` setting

    Returns:
        True if the cache should be consulted.
    """
    if isinstance(options, QueryOptions):
        if options.where is None:
            return False
        if options.cache_mode is CacheMode.FORCE_BYPASS:
            return False
        if options.cache_mode is CacheMode.FORCE_USE:
            return True
        return default

    if isinstance(options, Mapping):
        if options.get("where") is None:
            return False
        return default

    return False
