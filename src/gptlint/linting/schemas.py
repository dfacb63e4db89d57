"""Pydantic models for the lint data flow.

Every model is frozen: files, rules and model configs are shared
read-only across concurrent tasks, and results are only ever combined
through the merge operators in ``gptlint.linting.result``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import cached_property
from pathlib import PurePosixPath
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gptlint.constants import (
    LLM_MAX_OUTPUT_TOKENS,
    PROMPT_VERSION,
    ConfidenceLevel,
    RuleScope,
    Severity,
)
from gptlint.linting.cache_key import compute_cache_key
from gptlint.linting.rule_utils import is_valid_rule_name
from gptlint.resilience.errors import ErrorClass

_FROZEN = ConfigDict(frozen=True)

# Extension → language hint used in prompts and example fences
LANGUAGE_BY_SUFFIX: dict[str, str] = {
    ".py": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "c_sharp",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".sh": "bash",
    ".md": "markdown",
}


def _sha256(payload: str) -> str:
    return hashlib.sha256(payload.encode()).hexdigest()


def _canonical_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


class SourceFile(BaseModel):
    """Immutable snapshot of one file under analysis."""

    model_config = _FROZEN

    file_path: str
    content: str

    @cached_property
    def fingerprint(self) -> str:
        return _sha256(self.content)

    @property
    def language(self) -> str:
        return LANGUAGE_BY_SUFFIX.get(
            PurePosixPath(self.file_path).suffix.lower(), ""
        )


class RuleExample(BaseModel):
    """A fenced code example attached to a rule definition."""

    model_config = _FROZEN

    code: str
    language: str | None = None


class Rule(BaseModel):
    """A named natural-language linting policy."""

    model_config = _FROZEN

    name: str
    description: str = ""
    title: str = ""
    scope: RuleScope = RuleScope.FILE
    # Examples that violate the rule / examples that satisfy it
    positive_examples: tuple[RuleExample, ...] = ()
    negative_examples: tuple[RuleExample, ...] = ()
    # gitignore-style globs restricting which files the rule applies to
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    source: str | None = None

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        if not is_valid_rule_name(v):
            raise ValueError(f"Invalid rule name: {v!r}")
        return v

    @cached_property
    def fingerprint(self) -> str:
        """Hash over every field that changes what the model is asked."""
        return _sha256(
            _canonical_json({
                "name": self.name,
                "title": self.title,
                "description": self.description,
                "scope": str(self.scope),
                "positive_examples": [
                    e.model_dump() for e in self.positive_examples
                ],
                "negative_examples": [
                    e.model_dump() for e in self.negative_examples
                ],
            })
        )


class ModelConfig(BaseModel):
    """Backend invocation parameters, fixed for a run."""

    model_config = _FROZEN

    model: str
    temperature: float = 0.0
    max_tokens: int = LLM_MAX_OUTPUT_TOKENS
    prompt_version: str = PROMPT_VERSION

    @cached_property
    def fingerprint(self) -> str:
        return _sha256(
            _canonical_json({
                "model": self.model,
                "temperature": self.temperature,
                "max_tokens": self.max_tokens,
                "prompt_version": self.prompt_version,
            })
        )


@dataclass(frozen=True)
class LintTask:
    """One (file, rule, model config) unit of work."""

    file: SourceFile
    rule: Rule
    model_config: ModelConfig

    @property
    def cache_key(self) -> str:
        return compute_cache_key(
            self.file.fingerprint,
            self.rule.fingerprint,
            self.model_config.fingerprint,
        )


class LintError(BaseModel):
    """One reported rule violation."""

    model_config = _FROZEN

    rule_name: str
    file_path: str
    message: str
    line: int | None = None
    end_line: int | None = None
    column: int | None = None
    code_snippet: str = ""
    confidence: ConfidenceLevel = ConfidenceLevel.MEDIUM
    severity: Severity = Severity.ERROR


class TaskFailure(BaseModel):
    """A task that ended in an unexpected error, not a lint verdict."""

    model_config = _FROZEN

    rule_name: str
    file_path: str
    error_class: ErrorClass
    message: str


class LintResult(BaseModel):
    """Outcome of one or more lint tasks.

    Counters are summed and error sequences concatenated by
    ``merge_lint_results``; instances are never mutated.
    """

    model_config = _FROZEN

    lint_errors: tuple[LintError, ...] = ()
    task_failures: tuple[TaskFailure, ...] = ()
    num_tasks: int = 0
    num_cache_hits: int = 0
    num_cache_misses: int = 0
    num_retries: int = 0
    num_input_tokens: int = 0
    num_output_tokens: int = 0
    # Whole milliseconds
    latency_ms: int = 0

    @property
    def num_unexpected_errors(self) -> int:
        return len(self.task_failures)

    @property
    def ok(self) -> bool:
        """No lint errors and no unexpected task errors."""
        return not self.lint_errors and not self.task_failures


class EvalStats(BaseModel):
    """Labeled-eval counters; ratios are derived on demand."""

    model_config = _FROZEN

    num_rules: int = 0
    num_files: int = 0
    num_true_positives: int = 0
    num_false_positives: int = 0
    num_true_negatives: int = 0
    num_false_negatives: int = 0
    num_unexpected_errors: int = 0

    @property
    def precision(self) -> float | None:
        denom = self.num_true_positives + self.num_false_positives
        return self.num_true_positives / denom if denom else None

    @property
    def recall(self) -> float | None:
        denom = self.num_true_positives + self.num_false_negatives
        return self.num_true_positives / denom if denom else None

    @property
    def accuracy(self) -> float | None:
        total = (
            self.num_true_positives
            + self.num_false_positives
            + self.num_true_negatives
            + self.num_false_negatives
        )
        if not total:
            return None
        return (self.num_true_positives + self.num_true_negatives) / total

    @property
    def f1_score(self) -> float | None:
        p, r = self.precision, self.recall
        if p is None or r is None or p + r == 0:
            return None
        return 2 * p * r / (p + r)


class RuleEvaluation(BaseModel):
    """Eval outcome for one rule."""

    model_config = _FROZEN

    rule_name: str
    stats: EvalStats = Field(default_factory=EvalStats)
    lint_result: LintResult = Field(default_factory=LintResult)


class EvalReport(BaseModel):
    """Eval outcome across all rules."""

    model_config = _FROZEN

    stats: EvalStats = Field(default_factory=EvalStats)
    rule_stats: dict[str, EvalStats] = Field(
        default_factory=lambda: dict[str, EvalStats]()
    )
    lint_result: LintResult = Field(default_factory=LintResult)


class CacheEntry(BaseModel):
    """A completed task result as held by the cache store."""

    model_config = _FROZEN

    cache_key: str
    result: LintResult
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
