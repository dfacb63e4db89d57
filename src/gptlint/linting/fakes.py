"""In-process fake completion backend for testing.

Satisfies the ``Backend`` callable contract without litellm or network
I/O. Records every call and the peak number of concurrent calls.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

from gptlint.linting.backend import ChatMessages, Completion
from gptlint.linting.schemas import ModelConfig

# Returns completion text, or an exception to raise for this call
type Responder = Callable[[ChatMessages, ModelConfig], str | BaseException]


def completion_json(*violations: dict[str, Any]) -> str:
    """Serialize violations the way the lint prompt asks for them."""
    return json.dumps({"violations": list(violations)})


def _no_violations(
    _messages: ChatMessages, _model_config: ModelConfig
) -> str:
    return completion_json()


class FakeBackend:
    """Async backend answering every call through ``respond``."""

    def __init__(
        self,
        respond: Responder = _no_violations,
        *,
        delay: float = 0.0,
        input_tokens: int = 10,
        output_tokens: int = 5,
    ) -> None:
        self._respond = respond
        self._delay = delay
        self._input_tokens = input_tokens
        self._output_tokens = output_tokens
        self.calls: list[ChatMessages] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    async def __call__(
        self, messages: ChatMessages, model_config: ModelConfig
    ) -> Completion:
        self.calls.append(messages)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            # Always yield so concurrent callers overlap
            await asyncio.sleep(self._delay)
            outcome = self._respond(messages, model_config)
        finally:
            self.in_flight -= 1
        if isinstance(outcome, BaseException):
            raise outcome
        return Completion(
            content=outcome,
            model=model_config.model,
            input_tokens=self._input_tokens,
            output_tokens=self._output_tokens,
        )

    @property
    def call_count(self) -> int:
        return len(self.calls)


def user_prompt(messages: ChatMessages) -> str:
    """The user message of a rendered lint prompt."""
    return next(m["content"] for m in messages if m["role"] == "user")
