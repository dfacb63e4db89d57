"""LintCacheEntry ORM model — one completed lint task per cache key."""

from datetime import UTC, datetime

from sqlalchemy import String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from gptlint.models.base import Base


class LintCacheEntry(Base):
    __tablename__ = "lint_cache_entries"

    cache_key: Mapped[str] = mapped_column(String(64), primary_key=True)
    result_json: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )
