"""Tests for two-phase singleton logging configuration."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from unittest.mock import patch

import pytest

from gptlint.logging_config import (
    _SUPPRESSED_LOGGERS,
    LOG_DATEFMT,
    LOG_FORMAT,
    cleanup_third_party_handlers,
    set_log_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _reset_flags() -> Iterator[None]:
    """Reset singleton flags and root level around each test."""
    import gptlint.logging_config as mod

    root_level = logging.getLogger().level
    mod._phase1_done = False
    mod._phase2_done = False
    yield
    logging.getLogger().setLevel(root_level)


def test_setup_logging_is_idempotent() -> None:
    """Phase 1 executes once even when called twice."""
    with patch("gptlint.logging_config.logging.basicConfig") as mock_bc:
        setup_logging()
        setup_logging()  # second call is no-op
        mock_bc.assert_called_once()


def test_setup_logging_uses_format_and_stderr() -> None:
    with patch("gptlint.logging_config.logging.basicConfig") as mock_bc:
        setup_logging("debug")
    kwargs = mock_bc.call_args.kwargs
    assert kwargs["format"] == LOG_FORMAT
    assert kwargs["datefmt"] == LOG_DATEFMT
    assert kwargs["level"] == logging.DEBUG


def test_litellm_log_env_var_set() -> None:
    """Phase 1 sets LITELLM_LOG=WARNING before litellm import."""
    os.environ.pop("LITELLM_LOG", None)
    setup_logging()
    assert os.environ.get("LITELLM_LOG") == "WARNING"


def test_litellm_log_env_var_preserves_existing() -> None:
    """Phase 1 uses setdefault — doesn't overwrite user-set value."""
    os.environ["LITELLM_LOG"] = "ERROR"
    try:
        setup_logging()
        assert os.environ["LITELLM_LOG"] == "ERROR"
    finally:
        os.environ["LITELLM_LOG"] = "WARNING"


def test_third_party_loggers_suppressed() -> None:
    setup_logging("DEBUG")
    for name in _SUPPRESSED_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING


def test_cleanup_clears_litellm_handlers() -> None:
    lg = logging.getLogger("LiteLLM")
    lg.addHandler(logging.StreamHandler())
    lg.propagate = False
    cleanup_third_party_handlers()
    assert lg.handlers == []
    assert lg.propagate is True


def test_cleanup_is_idempotent() -> None:
    cleanup_third_party_handlers()
    lg = logging.getLogger("LiteLLM")
    handler = logging.StreamHandler()
    lg.addHandler(handler)
    try:
        cleanup_third_party_handlers()  # no-op second time
        assert handler in lg.handlers
    finally:
        lg.removeHandler(handler)


def test_set_log_level() -> None:
    set_log_level("error")
    assert logging.getLogger().level == logging.ERROR


def test_set_log_level_rejects_unknown() -> None:
    with pytest.raises(ValueError, match="Unknown log level"):
        set_log_level("chatty")
