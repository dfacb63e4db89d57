"""SQL implementation of the LintCache protocol."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import TYPE_CHECKING

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from gptlint.linting.schemas import CacheEntry, LintResult
from gptlint.models.base import Base
from gptlint.models.cache_entry import LintCacheEntry

if TYPE_CHECKING:
    from gptlint.config import Settings

logger = logging.getLogger(__name__)


class SqlLintCache:
    """Persistent lint cache with buffered writes.

    ``set`` only records the entry in memory; ``flush`` writes every
    pending entry in a single transaction, so a crash mid-run loses
    (and later recomputes) unflushed entries but never leaves a partial
    row behind. ``get`` consults pending entries before the database.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._session_factory = async_sessionmaker(
            engine, expire_on_commit=False
        )
        self._pending: dict[str, CacheEntry] = {}

    async def __aenter__(self) -> SqlLintCache:
        try:
            await self.create_schema()
        except Exception:
            await self._engine.dispose()
            raise
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        # A failed flush on exit is logged, not raised
        try:
            await self.flush()
        except Exception:
            logger.warning(
                "event=cache_flush_failed pending=%d",
                len(self._pending),
                exc_info=True,
            )
        finally:
            await self._engine.dispose()

    async def create_schema(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def get(self, key: str) -> CacheEntry | None:
        pending = self._pending.get(key)
        if pending is not None:
            return pending

        async with self._session_factory() as session:
            row = await session.get(LintCacheEntry, key)
            if row is None:
                return None
            result_json = row.result_json
            created_at = row.created_at

        try:
            result = LintResult.model_validate_json(result_json)
        except ValidationError:
            logger.warning("event=cache_entry_corrupt key=%s", key)
            return None
        return CacheEntry(
            cache_key=key, result=result, created_at=created_at
        )

    async def set(self, key: str, result: LintResult) -> None:
        # Last write wins; equal keys hold equivalent results.
        self._pending[key] = CacheEntry(cache_key=key, result=result)

    async def flush(self) -> None:
        if not self._pending:
            return
        batch = dict(self._pending)
        async with self._session_factory() as session, session.begin():
            for entry in batch.values():
                await session.merge(
                    LintCacheEntry(
                        cache_key=entry.cache_key,
                        result_json=entry.result.model_dump_json(),
                        created_at=entry.created_at,
                    )
                )
        # Keep anything re-set while the transaction was open
        for key, entry in batch.items():
            if self._pending.get(key) is entry:
                del self._pending[key]
        logger.info("event=cache_flushed entries=%d", len(batch))

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def count(self) -> int:
        """Number of persisted entries (excludes pending writes)."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count()).select_from(LintCacheEntry)
            )
            return result.scalar_one()


def open_lint_cache(settings: Settings) -> SqlLintCache | None:
    """Build the configured cache store, or None when caching is off.

    Use as ``async with cache:`` to create the schema on entry and
    flush pending writes on exit.
    """
    if not settings.cache_enabled:
        return None
    from gptlint.config import create_cache_engine

    return SqlLintCache(create_cache_engine(settings.cache_url))
