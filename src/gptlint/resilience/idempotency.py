"""In-flight lint task deduplication.

IdempotencyGuard prevents duplicate concurrent backend calls for the
same cache key. If task A is computing key ``k`` and task B arrives
with the same key (same file content, rule and model), B awaits A's
result instead of paying for a second completion.

Single-process only — the guard lives on one TaskDispatcher.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field


@dataclass
class _InFlight[T]:
    key: str
    event: asyncio.Event = field(default_factory=asyncio.Event)
    result: T | None = None
    error: BaseException | None = None


class IdempotencyGuard[T]:
    """Deduplicates in-flight async operations by key.

    Usage::

        guard: IdempotencyGuard[LintResult] = IdempotencyGuard()
        result, shared = await guard.execute(cache_key, compute)
    """

    def __init__(self) -> None:
        self._in_flight: dict[str, _InFlight[T]] = {}
        self._lock = asyncio.Lock()

    async def execute(
        self,
        key: str,
        operation: Callable[[], Awaitable[T]],
    ) -> tuple[T, bool]:
        """Run operation, deduplicating by key.

        Returns ``(result, shared)`` where ``shared`` is True when the
        caller awaited another caller's execution. Errors from the
        owning execution propagate to every waiter.
        """
        tracker: _InFlight[T] | None = None
        async with self._lock:
            existing = self._in_flight.get(key)
            if existing is None:
                tracker = _InFlight(key=key)
                self._in_flight[key] = tracker

        # Waiting case: lock released, await result
        if existing is not None:
            await existing.event.wait()
            if existing.error is not None:
                raise existing.error
            return existing.result, True  # type: ignore[return-value]

        if tracker is None:
            raise RuntimeError("unreachable: tracker unset")
        try:
            result = await operation()
            tracker.result = result
            return result, False
        except BaseException as exc:
            tracker.error = exc
            raise
        finally:
            tracker.event.set()
            async with self._lock:
                self._in_flight.pop(key, None)

    @property
    def active_keys(self) -> list[str]:
        """Return currently in-flight operation keys."""
        return list(self._in_flight.keys())
