"""Tests for BoundedPool."""

from __future__ import annotations

import asyncio

import pytest

from gptlint.linting.pool import BoundedPool


class TestBoundedPool:
    def test_rejects_non_positive_concurrency(self) -> None:
        with pytest.raises(ValueError, match="concurrency"):
            BoundedPool(0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("concurrency", [1, 4, 8])
    async def test_never_exceeds_bound(self, concurrency: int) -> None:
        pool = BoundedPool(concurrency)
        active = 0
        peak = 0

        async def _work(i: int) -> int:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return i

        results = await pool.map(list(range(20)), _work)
        assert results == list(range(20))
        assert peak == concurrency
        assert pool.peak_in_flight == concurrency
        assert pool.in_flight == 0

    @pytest.mark.asyncio
    async def test_results_keep_input_order(self) -> None:
        """Later items finishing first does not reorder results."""
        pool = BoundedPool(4)

        async def _work(i: int) -> int:
            await asyncio.sleep(0.01 * (4 - i))
            return i * 10

        assert await pool.map([0, 1, 2, 3], _work) == [0, 10, 20, 30]

    @pytest.mark.asyncio
    async def test_exception_propagates_after_siblings_finish(
        self,
    ) -> None:
        pool = BoundedPool(2)
        finished: list[int] = []

        async def _work(i: int) -> int:
            if i == 0:
                raise RuntimeError("boom")
            await asyncio.sleep(0.01)
            finished.append(i)
            return i

        with pytest.raises(RuntimeError, match="boom"):
            await pool.map([0, 1, 2], _work)
        assert sorted(finished) == [1, 2]

    @pytest.mark.asyncio
    async def test_empty_input(self) -> None:
        async def _work(i: int) -> int:
            return i

        assert await BoundedPool(3).map([], _work) == []
