"""Cache layer for tablecache.

Provides Redis caching with the cache-aside pattern:
- Query results are cached under keys derived from {method, params}
- Each key is indexed under every table its query read
- Table invalidation scans the index in batches instead of the keyspace
- TTL-based expiration bounds anything the index misses
"""

from tablecache.cache.bypass import CacheMode, QueryOptions, should_read_cache
from tablecache.cache.invalidation import BatchInvalidator
from tablecache.cache.keys import CacheKeys, QueryDescriptor, derive_key
from tablecache.cache.mapping import TableMappingIndex
from tablecache.cache.redis import KeyValueStore, close_redis, get_redis
from tablecache.cache.runner import CacheAsideRunner

__all__ = [
    # Keys
    "CacheKeys",
    "QueryDescriptor",
    "derive_key",
    # Bypass
    "CacheMode",
    "QueryOptions",
    "should_read_cache",
    # Store
    "KeyValueStore",
    "get_redis",
    "close_redis",
    # Read and invalidation paths
    "CacheAsideRunner",
    "TableMappingIndex",
    "BatchInvalidator",
]
