"""In-memory fake cache store for testing.

Dict-backed implementation of the LintCache protocol.
No SQLAlchemy, no I/O — instant operations for unit tests.
"""

from __future__ import annotations

from gptlint.linting.schemas import CacheEntry, LintResult


class FakeLintCache:
    """Dict-backed LintCache that records every call."""

    def __init__(self) -> None:
        self._store: dict[str, CacheEntry] = {}
        self.get_calls = 0
        self.set_calls = 0
        self.flush_calls = 0

    async def get(self, key: str) -> CacheEntry | None:
        self.get_calls += 1
        return self._store.get(key)

    async def set(self, key: str, result: LintResult) -> None:
        self.set_calls += 1
        self._store[key] = CacheEntry(cache_key=key, result=result)

    async def flush(self) -> None:
        self.flush_calls += 1

    def __len__(self) -> int:
        return len(self._store)

    def keys(self) -> list[str]:
        return list(self._store)


class BrokenLintCache:
    """LintCache whose every operation fails, like a locked database."""

    def __init__(self, error: Exception | None = None) -> None:
        self._error = error or OSError("database is locked")

    async def get(self, key: str) -> CacheEntry | None:
        raise self._error

    async def set(self, key: str, result: LintResult) -> None:
        raise self._error

    async def flush(self) -> None:
        raise self._error
