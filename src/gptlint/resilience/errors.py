"""Error taxonomy and classification for lint task failures.

Classifies exceptions by category to decide:
- whether the dispatcher retries a task (transient/server/timeout/malformed)
- how an unexpected error is reported (timeout vs auth vs open circuit)

Configuration errors are a separate family: they fail the run before
any task is dispatched.
"""

from __future__ import annotations

from enum import Enum

from circuitbreaker import CircuitBreakerError


class ErrorClass(Enum):
    TRANSIENT = "transient"  # 429, network errors: retryable
    SERVER = "server"  # 500, 502, 503: retryable
    TIMEOUT = "timeout"  # deadline exceeded: retryable with backoff
    MALFORMED = "malformed"  # unparseable completion: retryable
    CLIENT = "client"  # 400, 401, 403: do NOT retry
    CIRCUIT_OPEN = "circuit_open"  # breaker tripped: do NOT retry
    ABORTED = "aborted"  # run aborted before the task started
    UNKNOWN = "unknown"  # unclassified: do NOT retry


class ConfigurationError(ValueError):
    """Invalid linter inputs: bad rule names, empty rule set, bad flags."""


class TaskError(Exception):
    """A lint task failure carrying its own classification."""

    error_class: ErrorClass = ErrorClass.UNKNOWN

    def __init__(
        self,
        message: str,
        error_class: ErrorClass | None = None,
    ) -> None:
        super().__init__(message)
        if error_class is not None:
            self.error_class = error_class


class TransientTaskError(TaskError):
    error_class = ErrorClass.TRANSIENT


class PermanentTaskError(TaskError):
    error_class = ErrorClass.CLIENT


class MalformedCompletionError(TransientTaskError):
    """The completion could not be parsed into lint errors."""

    error_class = ErrorClass.MALFORMED


def classify_error(error: BaseException) -> ErrorClass:
    """Classify an error to determine handling strategy.

    Checks typed errors and structured attributes first (status_code),
    falls back to string matching for untyped exceptions.
    """
    # 1. Errors that carry their own classification
    if isinstance(error, TaskError):
        return error.error_class
    if isinstance(error, CircuitBreakerError):
        return ErrorClass.CIRCUIT_OPEN

    # 2. Structured status_code attribute (httpx, openai, litellm)
    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        if status_code in (408, 429):
            return ErrorClass.TRANSIENT
        if 400 <= status_code < 500:
            return ErrorClass.CLIENT
        if 500 <= status_code < 600:
            return ErrorClass.SERVER

    # 3. Timeout types
    if isinstance(error, TimeoutError):
        return ErrorClass.TIMEOUT

    # 4. Fall back to string matching for untyped exceptions
    msg = str(error).lower()

    if "timeout" in msg or "timed out" in msg:
        return ErrorClass.TIMEOUT
    if "429" in msg or "rate limit" in msg or "rate_limit" in msg:
        return ErrorClass.TRANSIENT
    if any(code in msg for code in ("500", "502", "503", "504")):
        return ErrorClass.SERVER
    if "econnrefused" in msg or "connection" in msg:
        return ErrorClass.TRANSIENT
    if any(code in msg for code in ("400", "401", "403", "404")):
        return ErrorClass.CLIENT

    return ErrorClass.UNKNOWN


_RETRYABLE = frozenset({
    ErrorClass.TRANSIENT,
    ErrorClass.SERVER,
    ErrorClass.TIMEOUT,
    ErrorClass.MALFORMED,
})


def is_retryable(error: BaseException) -> bool:
    """Return True if the error category supports retry."""
    return classify_error(error) in _RETRYABLE
