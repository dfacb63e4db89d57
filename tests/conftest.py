"""Shared test fixtures — rule and file factories, SQLite cache."""

import os

# Force demo API keys for all tests: no real LLM calls.
# These are set unconditionally at import time, so even if you have
# real keys in your shell environment, pytest overwrites them before
# any Settings() is created.
os.environ["ANTHROPIC_API_KEY"] = "for-demo-purposes-only"
os.environ["OPENAI_API_KEY"] = "for-demo-purposes-only"

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from circuitbreaker import CircuitBreakerMonitor

from gptlint.config import create_cache_engine
from gptlint.linting.backend import _breaker_registry
from gptlint.linting.dispatcher import RetryPolicy
from gptlint.linting.schemas import (
    ModelConfig,
    Rule,
    RuleExample,
    SourceFile,
)
from gptlint.repositories.cache_repo import SqlLintCache

SECRETS_RULE_DESCRIPTION = (
    "API keys, passwords and tokens must not be hardcoded as string "
    "literals. Read them from the environment instead."
)


@pytest.fixture(autouse=True)
def _reset_breakers() -> None:
    """Reset circuit breakers between tests."""
    _breaker_registry.clear()
    for cb in CircuitBreakerMonitor.get_circuits():
        cb.reset()  # type: ignore[union-attr]


@pytest.fixture
def make_rule() -> Callable[..., Rule]:
    """Factory for file-scoped rules with a description."""

    def _make(name: str = "no-hardcoded-secrets", **kwargs: Any) -> Rule:
        fields: dict[str, Any] = {
            "name": name,
            "title": "Don't hardcode secrets",
            "description": SECRETS_RULE_DESCRIPTION,
            "positive_examples": (
                RuleExample(code='const key = "sk-live-1"', language="ts"),
            ),
            "negative_examples": (
                RuleExample(code="const key = process.env.KEY", language="ts"),
            ),
        }
        fields.update(kwargs)
        return Rule.model_validate(fields)

    return _make


@pytest.fixture
def make_file() -> Callable[..., SourceFile]:
    """Factory for source files; content defaults to a unique comment."""

    def _make(
        path: str = "src/a.ts", content: str | None = None
    ) -> SourceFile:
        return SourceFile(
            file_path=path,
            content=content if content is not None else f"// {path}\n",
        )

    return _make


@pytest.fixture
def rule(make_rule: Callable[..., Rule]) -> Rule:
    return make_rule()


@pytest.fixture
def model_config() -> ModelConfig:
    return ModelConfig(model="test/fake-model")


@pytest.fixture
def no_wait_policy() -> RetryPolicy:
    """Three attempts, zero backoff."""
    return RetryPolicy(max_attempts=3, initial_wait=0, max_wait=0)


@pytest_asyncio.fixture
async def sql_cache(tmp_path: Path):
    """File-backed SQLite cache, schema created, flushed on teardown."""
    engine = create_cache_engine(f"sqlite:///{tmp_path / 'cache.db'}")
    async with SqlLintCache(engine) as cache:
        yield cache
