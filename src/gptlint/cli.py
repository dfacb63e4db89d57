"""CLI entry point — ``gptlint lint`` and ``gptlint eval``."""

from __future__ import annotations

# Phase 1: Singleton logging: before any transitive litellm imports
from gptlint.logging_config import setup_logging

setup_logging()

import argparse  # noqa: E402
import asyncio  # noqa: E402
import contextlib  # noqa: E402
import logging  # noqa: E402
import signal  # noqa: E402
import sys  # noqa: E402
from collections.abc import AsyncIterator, Sequence  # noqa: E402
from pathlib import Path  # noqa: E402
from typing import Any  # noqa: E402

from gptlint import __version__  # noqa: E402
from gptlint.config import Settings  # noqa: E402
from gptlint.constants import (  # noqa: E402
    EXIT_LINT_ERRORS,
    EXIT_OK,
    EXIT_UNEXPECTED_ERRORS,
)
from gptlint.ingestion.files import resolve_files  # noqa: E402
from gptlint.ingestion.rules import resolve_rules  # noqa: E402
from gptlint.linting.backend import litellm_backend  # noqa: E402
from gptlint.linting.dispatcher import TaskDispatcher  # noqa: E402
from gptlint.linting.evals import evaluate_rules  # noqa: E402
from gptlint.linting.orchestrator import (  # noqa: E402
    lint_files,
    validate_linter_inputs,
)
from gptlint.linting.schemas import (  # noqa: E402
    EvalReport,
    LintResult,
    Rule,
    SourceFile,
)
from gptlint.logging_config import (  # noqa: E402
    cleanup_third_party_handlers,
    set_log_level,
)
from gptlint.reporting import (  # noqa: E402
    eval_report_json,
    format_eval_report,
    format_lint_errors,
    format_lint_summary,
    lint_result_json,
    log_eval_stats,
    log_lint_result_stats,
)
from gptlint.repositories import LintCache, open_lint_cache  # noqa: E402
from gptlint.resilience.errors import ConfigurationError  # noqa: E402

# Phase 2: Clear litellm's duplicate handlers after all imports
cleanup_third_party_handlers()

logger = logging.getLogger(__name__)


def main(argv: Sequence[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"gptlint {__version__}")
        return

    if args.command == "lint":
        sys.exit(_run_lint(args))
    elif args.command == "eval":
        sys.exit(_run_eval(args))
    else:
        parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="gptlint",
        description="Lint code with natural-language rules checked by an LLM.",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    # Options shared by both subcommands
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--rules-dir",
        default=None,
        help="Directory of rule markdown files (default: from settings)",
    )
    common.add_argument(
        "--rule",
        "-r",
        action="append",
        default=[],
        help="Only use this rule (repeatable)",
    )
    common.add_argument(
        "--model",
        "-m",
        default=None,
        help="litellm model name (default: from settings)",
    )
    common.add_argument(
        "--no-cache",
        action="store_true",
        help="Disable the persistent lint cache",
    )
    common.add_argument(
        "--format",
        "-f",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    sub = parser.add_subparsers(dest="command")

    lint = sub.add_parser(
        "lint",
        parents=[common],
        help="Lint files in the current directory",
    )
    lint.add_argument(
        "include",
        nargs="*",
        help="gitignore-style globs to lint (default: all files)",
    )
    lint.add_argument(
        "--exclude",
        "-e",
        action="append",
        default=[],
        help="gitignore-style glob to skip (repeatable)",
    )
    lint.add_argument(
        "--concurrency",
        "-c",
        type=int,
        default=None,
        help="Max concurrent backend calls (default: from settings)",
    )
    lint.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolve tasks and the cache without calling the backend",
    )

    ev = sub.add_parser(
        "eval",
        parents=[common],
        help="Score rules against labeled fixtures",
    )
    ev.add_argument(
        "--evals-dir",
        default=None,
        help="Root of <rule>/{correct,incorrect} fixtures",
    )
    ev.add_argument(
        "--files",
        action="append",
        default=[],
        help="Only evaluate fixtures matching this glob (repeatable)",
    )
    polarity = ev.add_mutually_exclusive_group()
    polarity.add_argument(
        "--only-positive",
        action="store_true",
        help="Only evaluate incorrect (violating) fixtures",
    )
    polarity.add_argument(
        "--only-negative",
        action="store_true",
        help="Only evaluate correct fixtures",
    )
    ev.add_argument(
        "--rule-concurrency",
        type=int,
        default=None,
        help="Max rules evaluated at once (default: from settings)",
    )
    ev.add_argument(
        "--file-concurrency",
        type=int,
        default=None,
        help="Max fixtures per rule at once (default: from settings)",
    )

    return parser


def _load_settings(args: argparse.Namespace) -> Settings:
    """Settings from env/.env, with explicit CLI flags taking priority."""
    overrides: dict[str, Any] = {}
    if args.model:
        overrides["litellm_model"] = args.model
    if args.rules_dir:
        overrides["rules_dir"] = Path(args.rules_dir)
    if args.no_cache:
        overrides["cache_enabled"] = False
    if getattr(args, "concurrency", None) is not None:
        overrides["lint_concurrency"] = args.concurrency
    if getattr(args, "evals_dir", None):
        overrides["evals_dir"] = Path(args.evals_dir)
    if getattr(args, "rule_concurrency", None) is not None:
        overrides["eval_rule_concurrency"] = args.rule_concurrency
    if getattr(args, "file_concurrency", None) is not None:
        overrides["eval_file_concurrency"] = args.file_concurrency
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    return Settings(**overrides)


def _configure(
    args: argparse.Namespace,
) -> tuple[Settings, list[Rule]] | None:
    # ConfigurationError and pydantic's ValidationError are ValueErrors
    try:
        settings = _load_settings(args)
        set_log_level(settings.log_level)
        rules = resolve_rules(settings.rules_dir, args.rule)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return None
    return settings, rules


def _run_lint(args: argparse.Namespace) -> int:
    """Execute the lint command; returns the process exit code."""
    configured = _configure(args)
    if configured is None:
        return EXIT_LINT_ERRORS
    settings, rules = configured

    try:
        files = resolve_files(
            Path.cwd(),
            include=args.include or settings.include,
            exclude=[*settings.exclude, *args.exclude],
            skip_dirs=settings.skip_directories,
        )
        validate_linter_inputs(files, rules)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_LINT_ERRORS

    result = asyncio.run(
        _lint(settings, files, rules, dry_run=args.dry_run)
    )
    log_lint_result_stats(result)

    if args.format == "json":
        print(lint_result_json(result))
    else:
        report = format_lint_errors(result)
        if report:
            print(report)
        print(format_lint_summary(result))
    return _exit_code(result)


def _run_eval(args: argparse.Namespace) -> int:
    """Execute the eval command; returns the process exit code."""
    configured = _configure(args)
    if configured is None:
        return EXIT_LINT_ERRORS
    settings, rules = configured

    try:
        report = asyncio.run(
            _eval(
                settings,
                rules,
                only_positive=args.only_positive,
                only_negative=args.only_negative,
                file_filter=args.files,
            )
        )
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_LINT_ERRORS

    log_eval_stats(report)
    if args.format == "json":
        print(eval_report_json(report))
    else:
        print(format_eval_report(report))
    if report.stats.num_unexpected_errors:
        return EXIT_UNEXPECTED_ERRORS
    return EXIT_OK


def _exit_code(result: LintResult) -> int:
    if result.lint_errors:
        return EXIT_LINT_ERRORS
    if result.task_failures:
        return EXIT_UNEXPECTED_ERRORS
    return EXIT_OK


@contextlib.asynccontextmanager
async def _dispatcher(
    settings: Settings, *, dry_run: bool = False
) -> AsyncIterator[TaskDispatcher]:
    """A dispatcher over the configured cache, aborted on Ctrl-C.

    The cache is flushed on exit, including after an abort, so work
    finished before the interrupt is kept. A broken cache never fails
    the run: it is skipped on open and a failed flush is only logged.
    """
    async with contextlib.AsyncExitStack() as stack:
        cache = await _enter_cache(settings, stack)
        dispatcher = TaskDispatcher(
            litellm_backend,
            cache,
            retry_policy=settings.to_retry_policy(),
            timeout_seconds=settings.llm_timeout_seconds,
            dry_run=dry_run,
        )
        loop = asyncio.get_running_loop()
        # Not available on Windows event loops
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signal.SIGINT, dispatcher.abort)
            stack.callback(loop.remove_signal_handler, signal.SIGINT)
        yield dispatcher


async def _enter_cache(
    settings: Settings, stack: contextlib.AsyncExitStack
) -> LintCache | None:
    """Open the configured cache on ``stack``, or run without one.

    A cache that cannot be created or opened is logged and skipped.
    """
    try:
        cache = open_lint_cache(settings)
        if cache is not None:
            await stack.enter_async_context(cache)
    except Exception:
        logger.warning(
            "event=cache_unavailable url=%s",
            settings.cache_url,
            exc_info=True,
        )
        return None
    return cache


async def _lint(
    settings: Settings,
    files: list[SourceFile],
    rules: list[Rule],
    *,
    dry_run: bool = False,
) -> LintResult:
    async with _dispatcher(settings, dry_run=dry_run) as dispatcher:
        return await lint_files(
            files,
            rules,
            dispatcher=dispatcher,
            model_config=settings.to_model_config(),
            concurrency=settings.lint_concurrency,
        )


async def _eval(
    settings: Settings,
    rules: list[Rule],
    *,
    only_positive: bool,
    only_negative: bool,
    file_filter: list[str],
) -> EvalReport:
    async with _dispatcher(settings) as dispatcher:
        return await evaluate_rules(
            rules,
            evals_dir=settings.evals_dir,
            dispatcher=dispatcher,
            model_config=settings.to_model_config(),
            rule_concurrency=settings.eval_rule_concurrency,
            file_concurrency=settings.eval_file_concurrency,
            only_positive=only_positive,
            only_negative=only_negative,
            file_filter=file_filter,
        )


if __name__ == "__main__":
    main()
