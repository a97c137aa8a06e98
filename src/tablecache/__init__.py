"""tablecache: cache-aside reads with table-based invalidation."""

from tablecache.cache import (
    BatchInvalidator,
    CacheAsideRunner,
    CacheKeys,
    CacheMode,
    QueryDescriptor,
    QueryOptions,
    TableMappingIndex,
)
from tablecache.config import CacheSettings
from tablecache.errors import CacheError, ConfigurationError, StoreError, UnsupportedMethod

__version__ = "0.1.0"

__all__ = [
    "BatchInvalidator",
    "CacheAsideRunner",
    "CacheKeys",
    "CacheMode",
    "CacheSettings",
    "QueryDescriptor",
    "QueryOptions",
    "TableMappingIndex",
    "CacheError",
    "ConfigurationError",
    "StoreError",
    "UnsupportedMethod",
]
