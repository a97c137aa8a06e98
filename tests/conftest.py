"""Global pytest configuration and fixtures.

Provides an in-memory async store with the subset of Redis semantics the
cache layer uses (SETEX, GET, DEL, SADD, SREM, SCARD, cursor SSCAN).
"""

from __future__ import annotations

import re
from typing import Any

import pytest

from tablecache.config import CacheSettings


def _glob(pattern: str) -> re.Pattern[str]:
    """Compile a Redis MATCH pattern (`*`, `?`, `[abc]` and backslash escapes)."""
    parts = []
    chars = iter(pattern)
    for c in chars:
        if c == "\\":
            parts.append(re.escape(next(chars, "\\")))
        elif c == "*":
            parts.append(".*")
        elif c == "?":
            parts.append(".")
        elif c == "[":
            members = []
            for d in chars:
                if d == "]":
                    break
                if d == "\\":
                    d = next(chars, "\\")
                members.append(re.escape(d))
            parts.append(f"[{''.join(members)}]" if members else "(?!)")
        else:
            parts.append(re.escape(c))
    return re.compile("".join(parts), re.DOTALL)


class InMemoryStore:
    """Async key-value store backed by dicts.

    SSCAN cursors remember the last member returned, so members removed
    between calls never cause later members to be skipped.
    """

    def __init__(self) -> None:
        self.values: dict[str, bytes] = {}
        self.ttls: dict[str, int] = {}
        self.sets: dict[str, set[str]] = {}
        self.calls: list[str] = []
        self._cursors: dict[int, str] = {}
        self._last_cursor = 0

    async def get(self, name: str) -> bytes | None:
        self.calls.append("get")
        return self.values.get(name)

    async def setex(self, name: str, time: int, value: bytes | str) -> bool:
        self.calls.append("setex")
        self.values[name] = value.encode() if isinstance(value, str) else value
        self.ttls[name] = time
        return True

    async def delete(self, *names: str) -> int:
        self.calls.append("delete")
        deleted = 0
        for name in names:
            if self.values.pop(name, None) is not None:
                self.ttls.pop(name, None)
                deleted += 1
            elif self.sets.pop(name, None) is not None:
                deleted += 1
        return deleted

    async def sadd(self, name: str, *values: str) -> int:
        self.calls.append("sadd")
        members = self.sets.setdefault(name, set())
        before = len(members)
        members.update(values)
        return len(members) - before

    async def srem(self, name: str, *values: str) -> int:
        self.calls.append("srem")
        members = self.sets.get(name, set())
        removed = len(members & set(values))
        members.difference_update(values)
        if not members:
            self.sets.pop(name, None)
        return removed

    async def scard(self, name: str) -> int:
        return len(self.sets.get(name, ()))

    async def sscan(
        self,
        name: str,
        cursor: int = 0,
        match: str | None = None,
        count: int | None = None,
    ) -> tuple[int, list[bytes]]:
        self.calls.append("sscan")
        members = sorted(
            m for m in self.sets.get(name, ()) if match is None or _glob(match).fullmatch(m)
        )
        if cursor:
            after = self._cursors.pop(cursor)
            members = [m for m in members if m > after]

        batch = members[: count or 10]
        if len(batch) == len(members):
            return 0, [m.encode() for m in batch]

        self._last_cursor += 1
        self._cursors[self._last_cursor] = batch[-1]
        return self._last_cursor, [m.encode() for m in batch]

    def members(self, name: str) -> set[str]:
        return set(self.sets.get(name, ()))


class FailingStore(InMemoryStore):
    """Store whose listed operations raise ConnectionError."""

    def __init__(self, *failing: str) -> None:
        super().__init__()
        for name in failing:
            setattr(self, name, self._failure(name))

    @staticmethod
    def _failure(name: str) -> Any:
        async def fail(*args: Any, **kwargs: Any) -> Any:
            raise ConnectionError(f"{name} unavailable")

        return fail


@pytest.fixture
def store() -> InMemoryStore:
    """Fresh in-memory store."""
    return InMemoryStore()


@pytest.fixture
def cache_settings() -> CacheSettings:
    """Settings with defaults, isolated from the environment."""
    return CacheSettings(_env_file=None)


@pytest.fixture
def failing_store() -> type[FailingStore]:
    """Factory for stores with broken operations: ``failing_store("get")``."""
    return FailingStore
