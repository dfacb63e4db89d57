"""Protocol-based cache store interface.

The SQL implementation satisfies this protocol structurally (no
inheritance). Test doubles can be plain classes or mocks matching the
same signature.
"""

from typing import Protocol

from gptlint.linting.schemas import CacheEntry, LintResult


class LintCache(Protocol):
    async def get(self, key: str) -> CacheEntry | None: ...
    async def set(self, key: str, result: LintResult) -> None: ...
    async def flush(self) -> None: ...
