"""Build lint tasks from files × rules, dispatch them, fold the results."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from functools import lru_cache

import pathspec

from gptlint.constants import LINT_CONCURRENCY, PROJECT_FILE_PATH, RuleScope
from gptlint.linting.dispatcher import TaskDispatcher
from gptlint.linting.result import fold_lint_results
from gptlint.linting.schemas import (
    LintResult,
    LintTask,
    ModelConfig,
    Rule,
    SourceFile,
)
from gptlint.resilience.errors import ConfigurationError

logger = logging.getLogger(__name__)


def validate_linter_inputs(
    files: Sequence[SourceFile] | None,
    rules: Sequence[Rule],
) -> None:
    """Fail fast on inputs no run could succeed with.

    ``files`` may be None for callers (evals) that resolve files per
    rule later.
    """
    if not rules:
        raise ConfigurationError("No rules to lint with")
    seen: set[str] = set()
    dupes: list[str] = []
    for rule in rules:
        if rule.name in seen:
            dupes.append(rule.name)
        seen.add(rule.name)
    if dupes:
        raise ConfigurationError(
            f"Duplicate rule names: {', '.join(sorted(set(dupes)))}"
        )
    if files is not None and not files:
        raise ConfigurationError("No source files to lint")


@lru_cache(maxsize=256)
def _spec(patterns: tuple[str, ...]) -> pathspec.PathSpec:
    return pathspec.PathSpec.from_lines("gitwildmatch", patterns)


def matches_globs(
    file_path: str,
    include: tuple[str, ...] = (),
    exclude: tuple[str, ...] = (),
) -> bool:
    """gitignore-style include/exclude test; empty include matches all."""
    if include and not _spec(include).match_file(file_path):
        return False
    return not (exclude and _spec(exclude).match_file(file_path))


def rule_applies_to(rule: Rule, file_path: str) -> bool:
    """Apply the rule's include/exclude globs to a relative path."""
    return matches_globs(file_path, rule.include, rule.exclude)


def build_project_file(files: Sequence[SourceFile]) -> SourceFile:
    """Concatenate files into the single input of a project-scoped rule."""
    content = "\n\n".join(
        f"// File: {f.file_path}\n{f.content}" for f in files
    )
    return SourceFile(file_path=PROJECT_FILE_PATH, content=content)


def build_lint_tasks(
    files: Sequence[SourceFile],
    rules: Sequence[Rule],
    model_config: ModelConfig,
) -> list[LintTask]:
    """Expand files × rules into tasks, honouring scope and globs.

    Rules without a description are skipped with a warning: there is
    nothing to ask the model.
    """
    tasks: list[LintTask] = []
    for rule in rules:
        if not rule.description.strip():
            logger.warning(
                "event=rule_skipped reason=empty_description rule=%s",
                rule.name,
            )
            continue
        matching = [f for f in files if rule_applies_to(rule, f.file_path)]
        if rule.scope == RuleScope.PROJECT:
            if matching:
                tasks.append(
                    LintTask(build_project_file(matching), rule, model_config)
                )
            continue
        tasks.extend(LintTask(f, rule, model_config) for f in matching)
    return tasks


async def lint_files(
    files: Sequence[SourceFile],
    rules: Sequence[Rule],
    *,
    dispatcher: TaskDispatcher,
    model_config: ModelConfig,
    concurrency: int = LINT_CONCURRENCY,
) -> LintResult:
    """Lint every applicable (file, rule) pair into one LintResult.

    Results are folded in task order, so the aggregate is the same
    however the backend calls happen to complete.
    """
    tasks = build_lint_tasks(files, rules, model_config)
    logger.info(
        "event=lint_start files=%d rules=%d tasks=%d concurrency=%d",
        len(files),
        len(rules),
        len(tasks),
        concurrency,
    )
    results = await dispatcher.run(tasks, concurrency)
    lint_result = fold_lint_results(results)
    logger.info(
        "event=lint_done tasks=%d errors=%d unexpected_errors=%d"
        " cache_hits=%d",
        lint_result.num_tasks,
        len(lint_result.lint_errors),
        lint_result.num_unexpected_errors,
        lint_result.num_cache_hits,
    )
    return lint_result


async def lint_file(
    file: SourceFile,
    rule: Rule,
    *,
    dispatcher: TaskDispatcher,
    model_config: ModelConfig,
) -> LintResult:
    """Lint a single (file, rule) pair, ignoring the rule's globs."""
    [result] = await dispatcher.run(
        [LintTask(file, rule, model_config)], concurrency=1
    )
    return result
