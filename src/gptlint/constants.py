"""Shared constants — single source of truth for cross-module values.

All magic strings and numbers that appear in 2+ files belong here.
StrEnum members are str-compatible, so downstream code (JSON, SQL,
log lines) works unchanged.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class RuleScope(StrEnum):
    """Granularity a rule is applied at."""

    FILE = "file"
    PROJECT = "project"


class EvalLabel(StrEnum):
    """Ground-truth label directories under the evals root."""

    CORRECT = "correct"
    INCORRECT = "incorrect"


class EvalOutcome(StrEnum):
    """Classification of a single labeled eval file."""

    TRUE_POSITIVE = "true_positive"
    FALSE_POSITIVE = "false_positive"
    TRUE_NEGATIVE = "true_negative"
    FALSE_NEGATIVE = "false_negative"
    UNEXPECTED_ERROR = "unexpected_error"


class ConfidenceLevel(StrEnum):
    """Qualitative confidence labels from the LLM."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Severity(StrEnum):
    """Severity of a reported lint error."""

    ERROR = "error"
    WARNING = "warning"


# ── Rule Names ───────────────────────────────────────────

# Optional @scope, then a name; at most one /segment.
RULE_NAME_PATTERN = r"^@?[a-zA-Z][\w-]*(/[a-zA-Z][\w-]*)?$"

# ── Circuit Breaker Configuration ────────────────────────

CB_LLM_FAILURE_THRESHOLD = 5
CB_LLM_RECOVERY_TIMEOUT = 30

# ── Retry Strategy ───────────────────────────────────────

RETRY_MAX_ATTEMPTS = 3
RETRY_INITIAL_WAIT = 2.0
RETRY_MAX_WAIT = 30.0

# ── LLM Output ───────────────────────────────────────────

LLM_MAX_OUTPUT_TOKENS = 4096

# Bump when LINT_SYSTEM_PROMPT or the message layout changes so
# stale cache entries stop matching.
PROMPT_VERSION = "1"

# ── Concurrency Defaults ─────────────────────────────────

LINT_CONCURRENCY = 16
EVAL_RULE_CONCURRENCY = 4
EVAL_FILE_CONCURRENCY = 8

# ── Misc ─────────────────────────────────────────────────

PROJECT_FILE_PATH = "<project>"
BINARY_DETECTION_BUFFER = 8192
ERROR_TRUNCATION_CHARS = 200

# Exit codes for the CLI
EXIT_OK = 0
EXIT_LINT_ERRORS = 1
EXIT_UNEXPECTED_ERRORS = 2
