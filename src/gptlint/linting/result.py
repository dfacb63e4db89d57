"""Merge operators for lint results and eval statistics.

Both operators are associative with an empty identity, so task
outcomes can be folded in any grouping. Counters are commutative;
error sequences keep ``a``'s errors before ``b``'s, so results are
commutative up to the order of errors between tasks.
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import reduce

from gptlint.linting.schemas import EvalStats, LintResult


def create_lint_result() -> LintResult:
    """Identity element for ``merge_lint_results``."""
    return LintResult()


def create_eval_stats() -> EvalStats:
    """Identity element for ``merge_eval_stats``."""
    return EvalStats()


def merge_lint_results(a: LintResult, b: LintResult) -> LintResult:
    return LintResult(
        lint_errors=a.lint_errors + b.lint_errors,
        task_failures=a.task_failures + b.task_failures,
        num_tasks=a.num_tasks + b.num_tasks,
        num_cache_hits=a.num_cache_hits + b.num_cache_hits,
        num_cache_misses=a.num_cache_misses + b.num_cache_misses,
        num_retries=a.num_retries + b.num_retries,
        num_input_tokens=a.num_input_tokens + b.num_input_tokens,
        num_output_tokens=a.num_output_tokens + b.num_output_tokens,
        latency_ms=a.latency_ms + b.latency_ms,
    )


def merge_eval_stats(a: EvalStats, b: EvalStats) -> EvalStats:
    return EvalStats(
        num_rules=a.num_rules + b.num_rules,
        num_files=a.num_files + b.num_files,
        num_true_positives=a.num_true_positives + b.num_true_positives,
        num_false_positives=a.num_false_positives + b.num_false_positives,
        num_true_negatives=a.num_true_negatives + b.num_true_negatives,
        num_false_negatives=a.num_false_negatives + b.num_false_negatives,
        num_unexpected_errors=(
            a.num_unexpected_errors + b.num_unexpected_errors
        ),
    )


def fold_lint_results(results: Iterable[LintResult]) -> LintResult:
    return reduce(merge_lint_results, results, create_lint_result())


def fold_eval_stats(stats: Iterable[EvalStats]) -> EvalStats:
    return reduce(merge_eval_stats, stats, create_eval_stats())
