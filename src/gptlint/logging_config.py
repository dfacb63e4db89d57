"""Singleton logging configuration — two-phase initialization.

Phase 1: setup_logging() — call BEFORE litellm is imported.
  Sets LITELLM_LOG and configures the root logger on stderr, so
  lint output on stdout stays machine-readable.

Phase 2: cleanup_third_party_handlers() — call AFTER all imports.
  Clears litellm's own StreamHandlers so records are emitted once.

set_log_level() can be called any time afterwards, e.g. once the
CLI has parsed ``--verbose`` or loaded settings.
"""

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers kept at WARNING regardless of our level
_SUPPRESSED_LOGGERS = (
    "LiteLLM",
    "LiteLLM Router",
    "LiteLLM Proxy",
    "openai._base_client",
    "httpx",
    "aiosqlite",
    "sqlalchemy.engine",
)

_LITELLM_LOGGERS = ("LiteLLM", "LiteLLM Router", "LiteLLM Proxy")

_phase1_done = False
_phase2_done = False


def setup_logging(level: str = "WARNING") -> None:
    """Phase 1: configure the root logger. Idempotent."""
    global _phase1_done  # noqa: PLW0603
    if _phase1_done:
        return
    _phase1_done = True

    # litellm._logging reads this at import time
    os.environ.setdefault("LITELLM_LOG", "WARNING")

    logging.basicConfig(
        level=_parse_level(level),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        stream=sys.stderr,
    )

    for name in _SUPPRESSED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def cleanup_third_party_handlers() -> None:
    """Phase 2: drop litellm's duplicate handlers. Idempotent."""
    global _phase2_done  # noqa: PLW0603
    if _phase2_done:
        return
    _phase2_done = True

    for name in _LITELLM_LOGGERS:
        lg = logging.getLogger(name)
        lg.handlers.clear()
        lg.propagate = True


def set_log_level(level: str) -> None:
    """Change the root level without touching suppressed loggers."""
    logging.getLogger().setLevel(_parse_level(level))


def _parse_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        msg = f"Unknown log level: {level!r}"
        raise ValueError(msg)
    return value
