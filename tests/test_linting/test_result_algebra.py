"""Tests for the LintResult / EvalStats merge operators."""

from __future__ import annotations

import random
from collections import Counter

import pytest
from pydantic import ValidationError

from gptlint.constants import ConfidenceLevel
from gptlint.linting.result import (
    create_eval_stats,
    create_lint_result,
    fold_eval_stats,
    fold_lint_results,
    merge_eval_stats,
    merge_lint_results,
)
from gptlint.linting.schemas import (
    EvalStats,
    LintError,
    LintResult,
    TaskFailure,
)
from gptlint.resilience.errors import ErrorClass

SEEDS = range(20)


def _random_lint_result(rng: random.Random) -> LintResult:
    errors = tuple(
        LintError(
            rule_name=f"rule-{rng.randint(0, 3)}",
            file_path=f"src/{rng.randint(0, 9)}.ts",
            message=f"message {rng.randint(0, 99)}",
            line=rng.choice([None, rng.randint(1, 200)]),
            confidence=rng.choice(list(ConfidenceLevel)),
        )
        for _ in range(rng.randint(0, 3))
    )
    failures = tuple(
        TaskFailure(
            rule_name="rule-x",
            file_path=f"src/{rng.randint(0, 9)}.py",
            error_class=rng.choice(list(ErrorClass)),
            message="boom",
        )
        for _ in range(rng.randint(0, 1))
    )
    return LintResult(
        lint_errors=errors,
        task_failures=failures,
        num_tasks=rng.randint(0, 5),
        num_cache_hits=rng.randint(0, 5),
        num_cache_misses=rng.randint(0, 5),
        num_retries=rng.randint(0, 3),
        num_input_tokens=rng.randint(0, 1000),
        num_output_tokens=rng.randint(0, 1000),
        latency_ms=rng.randint(0, 120_000),
    )


def _random_eval_stats(rng: random.Random) -> EvalStats:
    return EvalStats(
        num_rules=rng.randint(0, 2),
        num_files=rng.randint(0, 10),
        num_true_positives=rng.randint(0, 5),
        num_false_positives=rng.randint(0, 5),
        num_true_negatives=rng.randint(0, 5),
        num_false_negatives=rng.randint(0, 5),
        num_unexpected_errors=rng.randint(0, 2),
    )


def _counters(result: LintResult) -> dict[str, object]:
    return result.model_dump(exclude={"lint_errors", "task_failures"})


class TestLintResultMerge:
    @pytest.mark.parametrize("seed", SEEDS)
    def test_identity(self, seed: int) -> None:
        """merge(identity, x) == merge(x, identity) == x."""
        x = _random_lint_result(random.Random(seed))
        assert merge_lint_results(create_lint_result(), x) == x
        assert merge_lint_results(x, create_lint_result()) == x

    @pytest.mark.parametrize("seed", SEEDS)
    def test_associative(self, seed: int) -> None:
        rng = random.Random(seed)
        a, b, c = (_random_lint_result(rng) for _ in range(3))
        left = merge_lint_results(merge_lint_results(a, b), c)
        right = merge_lint_results(a, merge_lint_results(b, c))
        assert left == right

    @pytest.mark.parametrize("seed", SEEDS)
    def test_commutative_up_to_error_order(self, seed: int) -> None:
        """Counters match exactly; errors match as a multiset."""
        rng = random.Random(seed)
        a, b = _random_lint_result(rng), _random_lint_result(rng)
        ab = merge_lint_results(a, b)
        ba = merge_lint_results(b, a)
        assert _counters(ab) == _counters(ba)
        assert Counter(ab.lint_errors) == Counter(ba.lint_errors)
        assert Counter(ab.task_failures) == Counter(ba.task_failures)

    def test_errors_from_one_operand_stay_contiguous(self) -> None:
        rng = random.Random(7)
        a = _random_lint_result(rng).model_copy(
            update={
                "lint_errors": (
                    LintError(rule_name="r", file_path="a", message="1"),
                    LintError(rule_name="r", file_path="a", message="2"),
                )
            }
        )
        b = _random_lint_result(rng)
        merged = merge_lint_results(a, b)
        assert merged.lint_errors[:2] == a.lint_errors

    def test_counters_are_summed(self) -> None:
        a = LintResult(num_tasks=2, num_cache_hits=1, num_retries=1)
        b = LintResult(num_tasks=3, num_cache_misses=3, num_input_tokens=7)
        merged = merge_lint_results(a, b)
        assert merged.num_tasks == 5
        assert merged.num_cache_hits == 1
        assert merged.num_cache_misses == 3
        assert merged.num_retries == 1
        assert merged.num_input_tokens == 7

    def test_latencies_sum_identically_in_any_grouping(self) -> None:
        """Tree reduction and left fold agree on latency."""
        parts = [LintResult(latency_ms=ms) for ms in (1, 2, 3, 7, 11)]
        tree = merge_lint_results(
            merge_lint_results(parts[0], parts[1]),
            merge_lint_results(
                parts[2], merge_lint_results(parts[3], parts[4])
            ),
        )
        assert tree == fold_lint_results(parts)
        assert tree.latency_ms == 24

    def test_fractional_latency_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LintResult(latency_ms=0.1)

    def test_inputs_are_not_mutated(self) -> None:
        a = LintResult(num_tasks=1)
        b = LintResult(num_tasks=2)
        merge_lint_results(a, b)
        assert a.num_tasks == 1
        assert b.num_tasks == 2


class TestFoldLintResults:
    def test_empty_fold_is_identity(self) -> None:
        assert fold_lint_results([]) == create_lint_result()

    @pytest.mark.parametrize("seed", SEEDS)
    def test_fold_is_independent_of_grouping(self, seed: int) -> None:
        rng = random.Random(seed)
        results = [_random_lint_result(rng) for _ in range(6)]
        whole = fold_lint_results(results)
        split = merge_lint_results(
            fold_lint_results(results[:2]), fold_lint_results(results[2:])
        )
        assert whole == split

    @pytest.mark.parametrize("seed", SEEDS)
    def test_fold_counters_independent_of_order(self, seed: int) -> None:
        rng = random.Random(seed)
        results = [_random_lint_result(rng) for _ in range(6)]
        shuffled = list(results)
        rng.shuffle(shuffled)
        assert _counters(fold_lint_results(results)) == _counters(
            fold_lint_results(shuffled)
        )

    def test_unexpected_errors_counted_from_failures(self) -> None:
        failure = TaskFailure(
            rule_name="r",
            file_path="a.py",
            error_class=ErrorClass.TIMEOUT,
            message="timed out",
        )
        folded = fold_lint_results(
            [LintResult(task_failures=(failure,)), LintResult()]
        )
        assert folded.num_unexpected_errors == 1
        assert not folded.ok


class TestEvalStatsMerge:
    @pytest.mark.parametrize("seed", SEEDS)
    def test_identity(self, seed: int) -> None:
        x = _random_eval_stats(random.Random(seed))
        assert merge_eval_stats(create_eval_stats(), x) == x
        assert merge_eval_stats(x, create_eval_stats()) == x

    @pytest.mark.parametrize("seed", SEEDS)
    def test_associative_and_commutative(self, seed: int) -> None:
        rng = random.Random(seed)
        a, b, c = (_random_eval_stats(rng) for _ in range(3))
        assert merge_eval_stats(
            merge_eval_stats(a, b), c
        ) == merge_eval_stats(a, merge_eval_stats(b, c))
        assert merge_eval_stats(a, b) == merge_eval_stats(b, a)

    def test_fold(self) -> None:
        stats = fold_eval_stats(
            [
                EvalStats(num_files=1, num_true_positives=1),
                EvalStats(num_files=1, num_false_negatives=1),
                EvalStats(num_unexpected_errors=1),
            ]
        )
        assert stats.num_files == 2
        assert stats.num_true_positives == 1
        assert stats.num_false_negatives == 1
        assert stats.num_unexpected_errors == 1


class TestEvalStatsRatios:
    def test_ratios(self) -> None:
        stats = EvalStats(
            num_true_positives=3,
            num_false_positives=1,
            num_true_negatives=4,
            num_false_negatives=2,
        )
        assert stats.precision == pytest.approx(0.75)
        assert stats.recall == pytest.approx(0.6)
        assert stats.accuracy == pytest.approx(0.7)
        assert stats.f1_score == pytest.approx(2 * 0.75 * 0.6 / 1.35)

    def test_undefined_ratios_are_none(self) -> None:
        """No positives predicted or present → precision/recall undefined."""
        stats = EvalStats(num_true_negatives=3)
        assert stats.precision is None
        assert stats.recall is None
        assert stats.f1_score is None
        assert stats.accuracy == 1.0

    def test_empty_stats_have_no_accuracy(self) -> None:
        assert create_eval_stats().accuracy is None
