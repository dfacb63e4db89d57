"""Cache store implementations behind the LintCache protocol."""

from gptlint.repositories.cache_repo import SqlLintCache, open_lint_cache
from gptlint.repositories.protocols import LintCache

__all__ = [
    "LintCache",
    "SqlLintCache",
    "open_lint_cache",
]
