"""Chat-completion backend: litellm behind a per-model circuit breaker."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import litellm
from circuitbreaker import (  # pyright: ignore[reportUnknownVariableType]
    CircuitBreaker,
    CircuitBreakerError,
)
from litellm.exceptions import RateLimitError as LitellmRateLimitError

from gptlint.constants import (
    CB_LLM_FAILURE_THRESHOLD,
    CB_LLM_RECOVERY_TIMEOUT,
)
from gptlint.linting.schemas import ModelConfig

logger = logging.getLogger(__name__)

# litellm stubs have partially unknown types: typed alias
if TYPE_CHECKING:
    _acompletion: Callable[..., Coroutine[Any, Any, Any]]
else:
    _acompletion = litellm.acompletion

type ChatMessages = list[dict[str, str]]


@dataclass(frozen=True)
class Completion:
    """Raw completion text plus token accounting."""

    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


# Anything that turns rendered messages into a completion. Must raise
# on failure; the dispatcher classifies and retries.
type Backend = Callable[[ChatMessages, ModelConfig], Awaitable[Completion]]


def _is_non_rate_limit_error(
    thrown_type: type, thrown_value: BaseException
) -> bool:
    """Return True if NOT a rate limit error (should count as CB failure).

    Rate limit errors are backpressure, not outages, so they are
    excluded from circuit breaker failure tracking.
    """
    return not issubclass(thrown_type, LitellmRateLimitError)


# Per-model circuit breaker registry: each model gets independent
# failure tracking.
_breaker_registry: dict[str, CircuitBreaker] = {}  # pyright: ignore[reportUnknownVariableType]


def _get_breaker(model: str) -> CircuitBreaker:  # pyright: ignore[reportUnknownParameterType]
    """Get or create a circuit breaker for the given model."""
    if model not in _breaker_registry:
        _breaker_registry[model] = CircuitBreaker(  # pyright: ignore[reportUnknownMemberType]
            failure_threshold=CB_LLM_FAILURE_THRESHOLD,
            recovery_timeout=CB_LLM_RECOVERY_TIMEOUT,
            expected_exception=_is_non_rate_limit_error,
            name=f"llm_{model}",
        )
    return _breaker_registry[model]


async def litellm_backend(
    messages: ChatMessages,
    model_config: ModelConfig,
) -> Completion:
    """Circuit-breaker-protected litellm completion in JSON mode.

    - Each model has its own breaker; it opens after consecutive
      non-rate-limit failures and raises ``CircuitBreakerError``
      until the recovery timeout passes.
    - No retries here: the dispatcher owns the retry policy and the
      per-call timeout.
    """
    model = model_config.model
    breaker = _get_breaker(model)
    if breaker.opened:  # pyright: ignore[reportUnknownMemberType]
        raise CircuitBreakerError(breaker)  # pyright: ignore[reportUnknownArgumentType]
    with breaker:  # pyright: ignore[reportUnknownMemberType]
        response: Any = await _acompletion(
            model=model,
            messages=messages,
            temperature=model_config.temperature,
            max_tokens=model_config.max_tokens,
            response_format={"type": "json_object"},
        )

    usage: Any = getattr(response, "usage", None)
    input_tokens: int = getattr(usage, "prompt_tokens", 0) or 0
    output_tokens: int = getattr(usage, "completion_tokens", 0) or 0
    logger.debug(
        "event=llm_completion model=%s input_tokens=%d output_tokens=%d",
        model,
        input_tokens,
        output_tokens,
    )

    return Completion(
        content=str(response.choices[0].message.content or ""),
        model=model,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
    )
