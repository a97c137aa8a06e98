"""Prometheus metrics for tablecache.

Counters:
- tablecache_hits_total / tablecache_misses_total: read path outcomes
- tablecache_bypass_total: reads that skipped the cache
- tablecache_store_errors_total: store failures by operation
- tablecache_uncacheable_total: results that could not be serialized
- tablecache_invalidated_keys_total: keys evicted by table

Usage:
    from tablecache.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.hit(settings.namespace)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, Counter, generate_latest

from tablecache.config import settings

logger = logging.getLogger(__name__)


class NoOpMetric:
    """No-op metric for when metrics are disabled."""

    def labels(self, **kwargs: Any) -> "NoOpMetric":
        """Return self for chaining."""
        return self

    def inc(self, amount: float = 1) -> None:
        """No-op."""
        pass


@dataclass
class CacheMetrics:
    """Registry for cache counters."""

    hits_total: Any = field(default_factory=NoOpMetric)
    misses_total: Any = field(default_factory=NoOpMetric)
    bypass_total: Any = field(default_factory=NoOpMetric)
    store_errors_total: Any = field(default_factory=NoOpMetric)
    uncacheable_total: Any = field(default_factory=NoOpMetric)
    invalidated_keys_total: Any = field(default_factory=NoOpMetric)

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: Any = field(default=None, repr=False)

    def initialize(self, enabled: bool = True) -> None:
        """Create the Prometheus counters once per process."""
        if self._initialized:
            return

        if not enabled:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = REGISTRY

        self.hits_total = Counter(
            "tablecache_hits_total",
            "Reads served from the cache",
            ["namespace"],
        )
        self.misses_total = Counter(
            "tablecache_misses_total",
            "Reads that fell through to the data source",
            ["namespace"],
        )
        self.bypass_total = Counter(
            "tablecache_bypass_total",
            "Reads that skipped the cache",
            ["namespace"],
        )
        self.store_errors_total = Counter(
            "tablecache_store_errors_total",
            "Key-value store failures",
            ["namespace", "operation"],
        )
        self.uncacheable_total = Counter(
            "tablecache_uncacheable_total",
            "Source results that could not be serialized for the cache",
            ["namespace"],
        )
        self.invalidated_keys_total = Counter(
            "tablecache_invalidated_keys_total",
            "Cache keys evicted by table invalidation",
            ["namespace", "table"],
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def hit(self, namespace: str) -> None:
        self.hits_total.labels(namespace=namespace).inc()

    def miss(self, namespace: str) -> None:
        self.misses_total.labels(namespace=namespace).inc()

    def bypass(self, namespace: str) -> None:
        self.bypass_total.labels(namespace=namespace).inc()

    def store_error(self, namespace: str, operation: str) -> None:
        self.store_errors_total.labels(namespace=namespace, operation=operation).inc()

    def uncacheable(self, namespace: str) -> None:
        self.uncacheable_total.labels(namespace=namespace).inc()

    def invalidated(self, namespace: str, table: str, count: int) -> None:
        if count:
            self.invalidated_keys_total.labels(namespace=namespace, table=table).inc(count)

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = CacheMetrics()


def get_metrics() -> CacheMetrics:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize(enabled=settings.enable_metrics)
    return metrics_registry
