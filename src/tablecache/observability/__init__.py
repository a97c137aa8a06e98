"""Observability module for tablecache.

Provides structured logging and Prometheus counters for cache hits,
misses, bypasses, store errors and invalidations.
"""

from tablecache.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    configure_logging,
)
from tablecache.observability.metrics import (
    CacheMetrics,
    get_metrics,
    metrics_registry,
)

__all__ = [
    # Logging
    "configure_logging",
    "JsonFormatter",
    "ConsoleFormatter",
    # Metrics
    "CacheMetrics",
    "metrics_registry",
    "get_metrics",
]
