"""Bounded-concurrency worker pool.

One primitive for every fan-out in gptlint: the dispatcher bounds
backend calls with it, and evals bound rules with a second instance.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


class BoundedPool:
    """At most ``concurrency`` holders of ``slot()`` at any moment."""

    def __init__(self, concurrency: int, name: str = "pool") -> None:
        if concurrency < 1:
            msg = f"concurrency must be >= 1, got {concurrency}"
            raise ValueError(msg)
        self.name = name
        self.concurrency = concurrency
        self._semaphore = asyncio.Semaphore(concurrency)
        self._in_flight = 0
        self._peak_in_flight = 0

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        async with self._semaphore:
            self._in_flight += 1
            self._peak_in_flight = max(
                self._peak_in_flight, self._in_flight
            )
            try:
                yield
            finally:
                self._in_flight -= 1

    async def map[T, R](
        self,
        items: Sequence[T],
        worker: Callable[[T], Awaitable[R]],
    ) -> list[R]:
        """Run ``worker`` on every item, each inside a slot.

        Results keep input order regardless of completion order. A
        worker exception propagates to the caller once every sibling
        has finished; siblings are never cancelled by it.
        """

        async def _run(item: T) -> R:
            async with self.slot():
                return await worker(item)

        outcomes = await asyncio.gather(
            *(_run(item) for item in items), return_exceptions=True
        )
        results: list[R] = []
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
            results.append(outcome)
        return results

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        return self._peak_in_flight
