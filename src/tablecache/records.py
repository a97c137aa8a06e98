"""Conversion of data-source results into plain, serializable values."""

from __future__ import annotations

from typing import Any

from sqlalchemy import inspect
from sqlalchemy.orm import InstanceState


def is_record(obj: Any) -> bool:
    """True if ``obj`` is an instance of an SQLAlchemy mapped class."""
    if isinstance(obj, type):
        return False
    return isinstance(inspect(obj, raiseerr=False), InstanceState)


def record_to_dict(obj: Any) -> dict[str, Any]:
    """Column attributes of a mapped instance as a plain dict."""
    state = inspect(obj)
    return {attr.key: getattr(obj, attr.key) for attr in state.mapper.column_attrs}


def normalize_result(result: Any) -> Any:
    """Normalize a data-source result before it is cached.

    - no result (None, 0, empty): returned as-is
    - sequences: returned as-is, records inside are encoded on write
    - a single mapped record: converted to a plain dict
    - anything else: returned as-is
    """
    if not result:
        return result
    if isinstance(result, (list, tuple)):
        return result
    if is_record(result):
        return record_to_dict(result)
    return result
