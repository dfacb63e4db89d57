"""Bounded, cached, failure-isolated execution of lint tasks."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from gptlint.constants import (
    ERROR_TRUNCATION_CHARS,
    RETRY_INITIAL_WAIT,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_WAIT,
    RuleScope,
)
from gptlint.linting.backend import Backend, ChatMessages, Completion
from gptlint.linting.completion import parse_lint_completion
from gptlint.linting.pool import BoundedPool
from gptlint.linting.schemas import (
    CacheEntry,
    LintError,
    LintResult,
    LintTask,
    ModelConfig,
    Rule,
    SourceFile,
    TaskFailure,
)
from gptlint.prompts import build_lint_messages
from gptlint.repositories.protocols import LintCache
from gptlint.resilience.errors import (
    ErrorClass,
    TaskError,
    classify_error,
    is_retryable,
)
from gptlint.resilience.idempotency import IdempotencyGuard

logger = logging.getLogger(__name__)

type RenderFn = Callable[[SourceFile, Rule], ChatMessages]
type ParseFn = Callable[[str, SourceFile, Rule], tuple[LintError, ...]]


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff for transient task failures."""

    max_attempts: int = RETRY_MAX_ATTEMPTS
    initial_wait: float = RETRY_INITIAL_WAIT
    max_wait: float = RETRY_MAX_WAIT

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            msg = f"max_attempts must be >= 1, got {self.max_attempts}"
            raise ValueError(msg)


class TaskDispatcher:
    """Runs lint tasks against a backend with a cache in front.

    - Cache hits resolve without a backend call or a concurrency slot.
    - Misses share one ``BoundedPool`` per ``run`` call; concurrent misses
      with the same cache key share a single computation.
    - Transient failures are retried per ``RetryPolicy``; anything still
      failing becomes a ``TaskFailure`` in that task's slot and never
      disturbs sibling tasks.
    - Successful results are written to the cache before being returned.
      Cache errors are logged and treated as misses.
    """

    def __init__(
        self,
        backend: Backend,
        cache: LintCache | None = None,
        *,
        retry_policy: RetryPolicy | None = None,
        timeout_seconds: float | None = None,
        dry_run: bool = False,
        render: RenderFn = build_lint_messages,
        parse: ParseFn = parse_lint_completion,
    ) -> None:
        self._backend = backend
        self._cache = cache
        self._retry_policy = retry_policy or RetryPolicy()
        self._timeout_seconds = timeout_seconds
        self._dry_run = dry_run
        self._render = render
        self._parse = parse
        self._guard: IdempotencyGuard[LintResult] = IdempotencyGuard()
        self._aborted = False

    def abort(self) -> None:
        """Stop starting new backend calls; in-flight calls finish."""
        if not self._aborted:
            logger.warning("event=dispatch_aborted")
        self._aborted = True

    @property
    def aborted(self) -> bool:
        return self._aborted

    async def run(
        self,
        tasks: Sequence[LintTask],
        concurrency: int,
    ) -> list[LintResult]:
        """Resolve every task; results match ``tasks`` index for index."""
        pool = BoundedPool(concurrency, name="dispatch")
        results = await asyncio.gather(
            *(self._resolve(task, pool) for task in tasks)
        )
        return list(results)

    async def _resolve(
        self, task: LintTask, pool: BoundedPool
    ) -> LintResult:
        start = time.monotonic()
        key = task.cache_key

        entry = await self._cache_get(key)
        if entry is not None:
            logger.debug(
                "event=cache_hit rule=%s file=%s",
                task.rule.name,
                task.file.file_path,
            )
            return _as_cache_hit(entry.result, task, _elapsed_ms(start))

        if self._dry_run:
            return LintResult(num_tasks=1, num_cache_misses=1)

        result, shared = await self._guard.execute(
            key, lambda: self._compute(task, key, pool)
        )
        if shared:
            return _as_cache_hit(result, task, _elapsed_ms(start))
        return result

    async def _compute(
        self, task: LintTask, key: str, pool: BoundedPool
    ) -> LintResult:
        """Call the backend for one task. Never raises ``Exception``."""
        start = time.monotonic()
        attempts = 0
        input_tokens = 0
        output_tokens = 0
        try:
            async with pool.slot():
                if self._aborted:
                    raise TaskError(
                        "run aborted before task started",
                        ErrorClass.ABORTED,
                    )
                messages = self._render(task.file, task.rule)
                async for attempt in self._retrying(task):
                    with attempt:
                        attempts = attempt.retry_state.attempt_number
                        completion = await self._call_backend(
                            messages, task.model_config
                        )
                        input_tokens += completion.input_tokens
                        output_tokens += completion.output_tokens
                        lint_errors = self._parse(
                            completion.content, task.file, task.rule
                        )
        except Exception as exc:
            return _as_failure(
                task,
                exc,
                retries=max(attempts - 1, 0),
                latency_ms=_elapsed_ms(start),
            )

        result = LintResult(
            lint_errors=lint_errors,
            num_tasks=1,
            num_cache_misses=1,
            num_retries=attempts - 1,
            num_input_tokens=input_tokens,
            num_output_tokens=output_tokens,
            latency_ms=_elapsed_ms(start),
        )
        await self._cache_set(key, result)
        logger.debug(
            "event=lint_task_done rule=%s file=%s errors=%d attempts=%d",
            task.rule.name,
            task.file.file_path,
            len(lint_errors),
            attempts,
        )
        return result

    def _retrying(self, task: LintTask) -> AsyncRetrying:
        policy = self._retry_policy

        def _log_retry(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            logger.info(
                "event=lint_task_retry rule=%s file=%s attempt=%d"
                " error_class=%s",
                task.rule.name,
                task.file.file_path,
                state.attempt_number,
                classify_error(exc).value if exc else "none",
            )

        return AsyncRetrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=wait_exponential_jitter(
                initial=policy.initial_wait, max=policy.max_wait
            ),
            retry=retry_if_exception(is_retryable),
            before_sleep=_log_retry,
            reraise=True,
        )

    async def _call_backend(
        self, messages: ChatMessages, model_config: ModelConfig
    ) -> Completion:
        async with asyncio.timeout(self._timeout_seconds):
            return await self._backend(messages, model_config)

    async def _cache_get(self, key: str) -> CacheEntry | None:
        if self._cache is None:
            return None
        try:
            return await self._cache.get(key)
        except Exception:
            logger.warning(
                "event=cache_get_failed key=%s", key, exc_info=True
            )
            return None

    async def _cache_set(self, key: str, result: LintResult) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.set(key, result)
        except Exception:
            logger.warning(
                "event=cache_set_failed key=%s", key, exc_info=True
            )


def _elapsed_ms(start: float) -> int:
    return round((time.monotonic() - start) * 1000)


def _rebind(result: LintResult, task: LintTask) -> LintResult:
    """Point a shared or cached result at this task's file path.

    Cache keys ignore paths, so a hit may come from an identical file
    elsewhere. Project-scoped results name their own files and are
    left alone.
    """
    if task.rule.scope == RuleScope.PROJECT:
        return result
    path = task.file.file_path
    return result.model_copy(
        update={
            "lint_errors": tuple(
                e.model_copy(update={"file_path": path})
                for e in result.lint_errors
            ),
            "task_failures": tuple(
                f.model_copy(update={"file_path": path})
                for f in result.task_failures
            ),
        }
    )


def _as_cache_hit(
    result: LintResult, task: LintTask, latency_ms: int
) -> LintResult:
    rebound = _rebind(result, task)
    return LintResult(
        lint_errors=rebound.lint_errors,
        task_failures=rebound.task_failures,
        num_tasks=1,
        num_cache_hits=1,
        latency_ms=latency_ms,
    )


def _as_failure(
    task: LintTask,
    exc: Exception,
    *,
    retries: int,
    latency_ms: int,
) -> LintResult:
    error_class = classify_error(exc)
    message = str(exc)[:ERROR_TRUNCATION_CHARS] or type(exc).__name__
    logger.warning(
        "event=lint_task_failed rule=%s file=%s error_class=%s error=%s",
        task.rule.name,
        task.file.file_path,
        error_class.value,
        message,
    )
    return LintResult(
        task_failures=(
            TaskFailure(
                rule_name=task.rule.name,
                file_path=task.file.file_path,
                error_class=error_class,
                message=message,
            ),
        ),
        num_tasks=1,
        num_cache_misses=1,
        num_retries=retries,
        latency_ms=latency_ms,
    )
