"""Score rules against labeled fixtures (precision / recall).

Each eval file is linted on its own and its result classified against
the directory it came from: ``correct`` files should produce no errors,
``incorrect`` files at least one. Per-file outcomes are EvalStats
values folded with ``merge_eval_stats``; nothing is counted by mutating
shared state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine, Sequence
from pathlib import Path
from typing import Any

from gptlint.constants import (
    EVAL_FILE_CONCURRENCY,
    EVAL_RULE_CONCURRENCY,
    EvalLabel,
    EvalOutcome,
    RuleScope,
)
from gptlint.ingestion.files import resolve_eval_files
from gptlint.linting.dispatcher import TaskDispatcher
from gptlint.linting.orchestrator import (
    matches_globs,
    validate_linter_inputs,
)
from gptlint.linting.pool import BoundedPool
from gptlint.linting.result import fold_eval_stats, fold_lint_results
from gptlint.linting.schemas import (
    EvalReport,
    EvalStats,
    LintResult,
    LintTask,
    ModelConfig,
    Rule,
    RuleEvaluation,
    SourceFile,
)
from gptlint.resilience.errors import ConfigurationError

logger = logging.getLogger(__name__)

_OUTCOME_STATS: dict[EvalOutcome, EvalStats] = {
    EvalOutcome.TRUE_POSITIVE: EvalStats(num_files=1, num_true_positives=1),
    EvalOutcome.FALSE_POSITIVE: EvalStats(
        num_files=1, num_false_positives=1
    ),
    EvalOutcome.TRUE_NEGATIVE: EvalStats(num_files=1, num_true_negatives=1),
    EvalOutcome.FALSE_NEGATIVE: EvalStats(
        num_files=1, num_false_negatives=1
    ),
    # Unclassified files do not count toward num_files
    EvalOutcome.UNEXPECTED_ERROR: EvalStats(num_unexpected_errors=1),
}
_HITS = frozenset({EvalOutcome.TRUE_POSITIVE, EvalOutcome.TRUE_NEGATIVE})


def classify(result: LintResult, expect_violations: bool) -> EvalOutcome:
    """Label one file's lint outcome against its ground truth."""
    if result.task_failures:
        return EvalOutcome.UNEXPECTED_ERROR
    if expect_violations:
        return (
            EvalOutcome.TRUE_POSITIVE
            if result.lint_errors
            else EvalOutcome.FALSE_NEGATIVE
        )
    return (
        EvalOutcome.FALSE_POSITIVE
        if result.lint_errors
        else EvalOutcome.TRUE_NEGATIVE
    )


def classify_outcome(
    result: LintResult, expect_violations: bool
) -> EvalStats:
    """EvalStats contribution of a single eval file."""
    return _OUTCOME_STATS[classify(result, expect_violations)]


async def _evaluate_label(
    rule: Rule,
    files: Sequence[SourceFile],
    label: EvalLabel,
    *,
    dispatcher: TaskDispatcher,
    model_config: ModelConfig,
    file_concurrency: int,
) -> tuple[EvalStats, LintResult]:
    expect_violations = label == EvalLabel.INCORRECT
    tasks = [LintTask(f, rule, model_config) for f in files]
    results = await dispatcher.run(tasks, file_concurrency)

    stats: list[EvalStats] = []
    for file, result in zip(files, results, strict=True):
        outcome = classify(result, expect_violations)
        log = logger.info if outcome in _HITS else logger.warning
        log(
            "event=eval_file_classified rule=%s file=%s label=%s"
            " outcome=%s errors=%d",
            rule.name,
            file.file_path,
            label.value,
            outcome.value,
            len(result.lint_errors),
        )
        stats.append(_OUTCOME_STATS[outcome])
    return fold_eval_stats(stats), fold_lint_results(results)


async def evaluate_rule(
    rule: Rule,
    correct_files: Sequence[SourceFile],
    incorrect_files: Sequence[SourceFile],
    *,
    dispatcher: TaskDispatcher,
    model_config: ModelConfig,
    file_concurrency: int = EVAL_FILE_CONCURRENCY,
    concurrent_labels: bool = False,
) -> RuleEvaluation:
    """Evaluate one rule over its correct and incorrect fixtures.

    With ``concurrent_labels`` the two label sets are dispatched at the
    same time; the stats are the same either way.
    """
    def _label(
        files: Sequence[SourceFile], label: EvalLabel
    ) -> Coroutine[Any, Any, tuple[EvalStats, LintResult]]:
        return _evaluate_label(
            rule,
            files,
            label,
            dispatcher=dispatcher,
            model_config=model_config,
            file_concurrency=file_concurrency,
        )

    if concurrent_labels:
        outcomes = await asyncio.gather(
            _label(correct_files, EvalLabel.CORRECT),
            _label(incorrect_files, EvalLabel.INCORRECT),
        )
    else:
        # Second coroutine is only created once the first has finished
        outcomes = [
            await _label(correct_files, EvalLabel.CORRECT),
            await _label(incorrect_files, EvalLabel.INCORRECT),
        ]

    stats = fold_eval_stats(
        [EvalStats(num_rules=1), *(s for s, _ in outcomes)]
    )
    lint_result = fold_lint_results(r for _, r in outcomes)
    logger.info(
        "event=rule_evaluated rule=%s files=%d tp=%d fp=%d tn=%d fn=%d"
        " unexpected_errors=%d",
        rule.name,
        stats.num_files,
        stats.num_true_positives,
        stats.num_false_positives,
        stats.num_true_negatives,
        stats.num_false_negatives,
        stats.num_unexpected_errors,
    )
    return RuleEvaluation(
        rule_name=rule.name, stats=stats, lint_result=lint_result
    )


def _evaluable(rule: Rule) -> bool:
    if rule.scope != RuleScope.FILE:
        logger.info(
            "event=rule_skipped reason=project_scope rule=%s", rule.name
        )
        return False
    if not rule.description.strip():
        logger.warning(
            "event=rule_skipped reason=empty_description rule=%s",
            rule.name,
        )
        return False
    return True


async def evaluate_rules(
    rules: Sequence[Rule],
    *,
    evals_dir: Path,
    dispatcher: TaskDispatcher,
    model_config: ModelConfig,
    rule_concurrency: int = EVAL_RULE_CONCURRENCY,
    file_concurrency: int = EVAL_FILE_CONCURRENCY,
    only_positive: bool = False,
    only_negative: bool = False,
    file_filter: Sequence[str] = (),
    cwd: Path | None = None,
) -> EvalReport:
    """Evaluate every rule against ``<evals_dir>/<rule>/{correct,incorrect}``.

    ``only_positive`` keeps just the incorrect (violating) fixtures,
    ``only_negative`` just the correct ones. ``file_filter`` narrows
    fixtures with gitignore-style globs.
    """
    validate_linter_inputs(None, rules)
    if only_positive and only_negative:
        msg = "only_positive and only_negative are mutually exclusive"
        raise ConfigurationError(msg)

    root = cwd or Path.cwd()
    patterns = tuple(file_filter)

    def _fixtures(rule: Rule, label: EvalLabel) -> list[SourceFile]:
        files = resolve_eval_files(evals_dir, rule.name, label, cwd=root)
        return [f for f in files if matches_globs(f.file_path, patterns)]

    async def _run(rule: Rule) -> RuleEvaluation:
        try:
            correct = (
                [] if only_positive else _fixtures(rule, EvalLabel.CORRECT)
            )
            incorrect = (
                [] if only_negative else _fixtures(rule, EvalLabel.INCORRECT)
            )
        except OSError:
            logger.warning(
                "event=eval_fixtures_unreadable rule=%s",
                rule.name,
                exc_info=True,
            )
            return RuleEvaluation(
                rule_name=rule.name,
                stats=EvalStats(num_rules=1, num_unexpected_errors=1),
            )
        return await evaluate_rule(
            rule,
            correct,
            incorrect,
            dispatcher=dispatcher,
            model_config=model_config,
            file_concurrency=file_concurrency,
        )

    selected = [r for r in rules if _evaluable(r)]
    logger.info(
        "event=eval_start rules=%d rule_concurrency=%d file_concurrency=%d",
        len(selected),
        rule_concurrency,
        file_concurrency,
    )
    pool = BoundedPool(rule_concurrency, name="eval-rules")
    evaluations = await pool.map(selected, _run)

    return EvalReport(
        stats=fold_eval_stats(e.stats for e in evaluations),
        rule_stats={e.rule_name: e.stats for e in evaluations},
        lint_result=fold_lint_results(e.lint_result for e in evaluations),
    )
