"""Cache key schema for tablecache.

Data key format: {namespace}:{data_prefix}:{tables}:{digest}
Mapping key format: {namespace}:{mapping_prefix}:{table}

Where:
- namespace: shared prefix for everything this layer writes
- tables: the query's table names joined by "_"
- digest: SHA-1 hex of the canonical JSON of {method, params}

Canonical JSON sorts mapping keys, so two descriptors whose params are
structurally equal always produce the same key.
"""

from __future__ import annotations

import dataclasses
import hashlib
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import orjson

from tablecache.cache.bypass import QueryOptions
from tablecache.records import is_record, record_to_dict

DIGEST_LENGTH = 40

_ORJSON_OPTIONS = (
    orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS | orjson.OPT_PASSTHROUGH_DATACLASS
)

# Characters with special meaning in Redis MATCH patterns
_GLOB_SPECIAL = frozenset("*?[]\\")


@dataclass(frozen=True)
class QueryDescriptor:
    """One logical read operation, used only to derive a cache key."""

    method: str
    params: tuple[Any, ...] = ()
    sql: str | None = None


def json_default(obj: Any) -> Any:
    """Encode params that orjson does not serialize natively."""
    if isinstance(obj, QueryOptions):
        return obj.key_params()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=repr)
    if isinstance(obj, Decimal):
        return str(obj)
    if is_record(obj):
        return record_to_dict(obj)
    raise TypeError(f"Type is not cacheable: {type(obj).__name__}")


def canonical_bytes(method: str, params: Sequence[Any]) -> bytes:
    """Serialize ``{method, params}`` deterministically."""
    return orjson.dumps(
        {"method": method, "params": list(params)},
        default=json_default,
        option=_ORJSON_OPTIONS,
    )


def encode_value(value: Any) -> bytes:
    """Serialize a query result for storage."""
    return orjson.dumps(value, default=json_default, option=_ORJSON_OPTIONS)


def escape_glob(text: str) -> str:
    """Escape ``text`` so a Redis MATCH pattern matches it literally."""
    return "".join(f"\\{c}" if c in _GLOB_SPECIAL else c for c in text)


def derive_key(
    descriptor: QueryDescriptor,
    tables: Sequence[str],
    prefix: str,
    *,
    namespace: str,
) -> str | None:
    """Derive the cache key for a query.

    Returns None for raw SQL descriptors, which are never cached.
    """
    if descriptor.sql:
        return None
    if not descriptor.method or not descriptor.method.isidentifier():
        raise ValueError(f"Invalid query method: {descriptor.method!r}")

    digest = hashlib.sha1(  # nosec B324 - cache key, not a security boundary
        canonical_bytes(descriptor.method, descriptor.params)
    ).hexdigest()
    return ":".join([namespace, prefix, "_".join(tables), digest])


class CacheKeys:
    """Cache key generator bound to one namespace."""

    def __init__(self, namespace: str, data_prefix: str, mapping_prefix: str):
        self.namespace = namespace
        self.data_prefix = data_prefix
        self.mapping_prefix = mapping_prefix

    def data_key(
        self,
        descriptor: QueryDescriptor,
        tables: Sequence[str],
        prefix: str | None = None,
    ) -> str | None:
        """Key for a cached query result."""
        return derive_key(
            descriptor,
            tables,
            prefix if prefix is not None else self.data_prefix,
            namespace=self.namespace,
        )

    def mapping_key(self, table: str) -> str:
        """Key for the set of cache keys that depend on ``table``."""
        return f"{self.namespace}:{self.mapping_prefix}:{table}"

    def member_pattern(self) -> str:
        """SSCAN match pattern for the members of a mapping set."""
        return f"{escape_glob(self.namespace)}:*"

    def parse_key(self, key: str) -> dict[str, str] | None:
        """Parse a data key into its components.

        Returns None if the key doesn't match the expected format.
        """
        parts = key.split(":")
        if len(parts) != 4 or parts[0] != self.namespace:
            return None
        if len(parts[3]) != DIGEST_LENGTH:
            return None

        return {
            "namespace": parts[0],
            "prefix": parts[1],
            "tables": parts[2],
            "digest": parts[3],
        }