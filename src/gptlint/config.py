"""Environment-based configuration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from gptlint.constants import (
    EVAL_FILE_CONCURRENCY,
    EVAL_RULE_CONCURRENCY,
    LINT_CONCURRENCY,
    LLM_MAX_OUTPUT_TOKENS,
    PROMPT_VERSION,
    RETRY_INITIAL_WAIT,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_WAIT,
)
from gptlint.linting.dispatcher import RetryPolicy
from gptlint.linting.schemas import ModelConfig

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Reads from .env file and environment variables."""

    # LLM Provider (litellm picks these up from the environment)
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # Model
    litellm_model: str = "openai/gpt-4o-mini"
    llm_temperature: float = 0.0
    llm_max_output_tokens: int = Field(default=LLM_MAX_OUTPUT_TOKENS, ge=1)
    llm_timeout_seconds: float = Field(default=60, gt=0)
    prompt_version: str = PROMPT_VERSION

    # Concurrency
    lint_concurrency: int = Field(default=LINT_CONCURRENCY, ge=1)
    eval_rule_concurrency: int = Field(default=EVAL_RULE_CONCURRENCY, ge=1)
    eval_file_concurrency: int = Field(default=EVAL_FILE_CONCURRENCY, ge=1)

    # Retry policy (transient failures only)
    retry_max_attempts: int = Field(default=RETRY_MAX_ATTEMPTS, ge=1)
    retry_initial_wait: float = Field(default=RETRY_INITIAL_WAIT, ge=0)
    retry_max_wait: float = Field(default=RETRY_MAX_WAIT, ge=0)

    # Cache
    cache_enabled: bool = True
    cache_url: str = "sqlite:///.gptlint/cache.db"

    # Inputs
    rules_dir: Path = Path("rules")
    evals_dir: Path = Path("fixtures/evals")
    include: Annotated[list[str], NoDecode] = []
    exclude: Annotated[list[str], NoDecode] = []
    skip_directories: list[str] = [
        "node_modules",
        "vendor",
        ".venv",
        "__pycache__",
        "build",
        "dist",
        "target",
        ".git",
        ".gptlint",
    ]

    # Logging
    log_level: str = "INFO"

    @field_validator("include", "exclude", mode="before")
    @classmethod
    def _parse_patterns(cls, v: Any) -> Any:
        """Accept comma-separated string or JSON array."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("litellm_model")
    @classmethod
    def _validate_model(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("litellm_model must not be empty")
        return v.strip()

    def to_model_config(self) -> ModelConfig:
        """Backend parameters that participate in cache keys."""
        return ModelConfig(
            model=self.litellm_model,
            temperature=self.llm_temperature,
            max_tokens=self.llm_max_output_tokens,
            prompt_version=self.prompt_version,
        )

    def to_retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.retry_max_attempts,
            initial_wait=self.retry_initial_wait,
            max_wait=self.retry_max_wait,
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "",
        "extra": "ignore",
    }


def create_cache_engine(
    url: str, *, echo: bool = False
) -> AsyncEngine:
    """Create the async SQLite engine backing the lint cache.

    Handles URL conversion (sqlite:/// → sqlite+aiosqlite:///), creates
    the database directory, and sets WAL mode via a pool-connect event
    listener so it fires once per raw DBAPI connection.
    """
    if url.startswith("sqlite:///"):
        db_path = url[len("sqlite:///"):]
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        db_url = "sqlite+aiosqlite:///" + db_path
    else:
        db_url = url
    engine = create_async_engine(db_url, echo=echo)

    @event.listens_for(engine.sync_engine, "connect")
    def _set_wal_mode(
        dbapi_conn: object,
        _connection_record: object,
    ) -> None:
        cursor = dbapi_conn.cursor()  # type: ignore[attr-defined]
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    logger.debug("event=cache_engine_created url=%s", db_url)
    return engine
