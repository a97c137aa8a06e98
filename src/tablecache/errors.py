"""Exceptions raised by the table cache layer."""

from __future__ import annotations


class CacheError(Exception):
    """Base exception for tablecache."""


class ConfigurationError(CacheError):
    """A required collaborator or setting is missing."""


class UnsupportedMethod(CacheError):
    """The data source has no operation with the requested name."""

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Data source does not support '{method}' method")


class StoreError(CacheError):
    """The key-value store failed while serving a cache operation."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"Store {operation} failed: {message}")
