"""Human-readable and JSON renderings of lint and eval results."""

from __future__ import annotations

import json
import logging

from gptlint.linting.schemas import EvalReport, EvalStats, LintResult

logger = logging.getLogger(__name__)


def format_lint_errors(result: LintResult) -> str:
    """One line per lint error, then one per unexpected task error."""
    lines: list[str] = []
    for error in result.lint_errors:
        location = error.file_path
        if error.line is not None:
            location += f":{error.line}"
        lines.append(
            f"{location}  {error.severity.value}  {error.message}"
            f"  [{error.rule_name}]"
        )
        if error.code_snippet:
            snippet = error.code_snippet.strip().splitlines()[0]
            lines.append(f"    {snippet}")
    for failure in result.task_failures:
        lines.append(
            f"{failure.file_path}  unexpected error"
            f" ({failure.error_class.value})  {failure.message}"
            f"  [{failure.rule_name}]"
        )
    return "\n".join(lines)


def format_lint_summary(result: LintResult) -> str:
    parts = [
        f"{len(result.lint_errors)} lint errors",
        f"{result.num_unexpected_errors} unexpected errors",
        f"{result.num_tasks} tasks",
        f"{result.num_cache_hits} cached",
    ]
    if result.num_retries:
        parts.append(f"{result.num_retries} retries")
    tokens = result.num_input_tokens + result.num_output_tokens
    if tokens:
        parts.append(f"{tokens} tokens")
    return ", ".join(parts)


def _ratio(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.2%}"


def format_eval_stats(stats: EvalStats, *, label: str = "total") -> str:
    return (
        f"{label}: files={stats.num_files}"
        f" tp={stats.num_true_positives}"
        f" fp={stats.num_false_positives}"
        f" tn={stats.num_true_negatives}"
        f" fn={stats.num_false_negatives}"
        f" errors={stats.num_unexpected_errors}"
        f" precision={_ratio(stats.precision)}"
        f" recall={_ratio(stats.recall)}"
        f" f1={_ratio(stats.f1_score)}"
    )


def format_eval_report(report: EvalReport) -> str:
    """Per-rule lines sorted by rule name, then the totals."""
    lines = [
        format_eval_stats(report.rule_stats[name], label=name)
        for name in sorted(report.rule_stats)
    ]
    lines.append(
        format_eval_stats(
            report.stats, label=f"total ({report.stats.num_rules} rules)"
        )
    )
    return "\n".join(lines)


def lint_result_json(result: LintResult) -> str:
    data = result.model_dump(mode="json")
    data["num_unexpected_errors"] = result.num_unexpected_errors
    return json.dumps(data, indent=2)


def eval_report_json(report: EvalReport) -> str:
    def _stats(stats: EvalStats) -> dict[str, object]:
        return {
            **stats.model_dump(mode="json"),
            "precision": stats.precision,
            "recall": stats.recall,
            "accuracy": stats.accuracy,
            "f1_score": stats.f1_score,
        }

    return json.dumps(
        {
            "stats": _stats(report.stats),
            "rule_stats": {
                name: _stats(report.rule_stats[name])
                for name in sorted(report.rule_stats)
            },
        },
        indent=2,
    )


def log_lint_result_stats(result: LintResult) -> None:
    logger.info(
        "event=lint_complete tasks=%d lint_errors=%d unexpected_errors=%d"
        " cache_hits=%d cache_misses=%d retries=%d input_tokens=%d"
        " output_tokens=%d",
        result.num_tasks,
        len(result.lint_errors),
        result.num_unexpected_errors,
        result.num_cache_hits,
        result.num_cache_misses,
        result.num_retries,
        result.num_input_tokens,
        result.num_output_tokens,
    )


def log_eval_stats(report: EvalReport) -> None:
    stats = report.stats
    logger.info(
        "event=eval_complete rules=%d files=%d tp=%d fp=%d tn=%d fn=%d"
        " unexpected_errors=%d precision=%s recall=%s f1=%s",
        stats.num_rules,
        stats.num_files,
        stats.num_true_positives,
        stats.num_false_positives,
        stats.num_true_negatives,
        stats.num_false_negatives,
        stats.num_unexpected_errors,
        _ratio(stats.precision),
        _ratio(stats.recall),
        _ratio(stats.f1_score),
    )
