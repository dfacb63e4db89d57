"""SQLAlchemy ORM models."""

from gptlint.models.base import Base
from gptlint.models.cache_entry import LintCacheEntry

__all__ = [
    "Base",
    "LintCacheEntry",
]
