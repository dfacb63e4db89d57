"""Parse a JSON completion into lint errors."""

from __future__ import annotations

import json
import logging
from typing import Any, cast

from gptlint.constants import ConfidenceLevel, RuleScope
from gptlint.linting.schemas import LintError, Rule, SourceFile
from gptlint.resilience.errors import MalformedCompletionError

logger = logging.getLogger(__name__)

_CONFIDENCE_VALUES = frozenset(c.value for c in ConfidenceLevel)


def parse_lint_completion(
    content: str, file: SourceFile, rule: Rule
) -> tuple[LintError, ...]:
    """Turn ``{"violations": [...]}`` into LintErrors.

    Raises MalformedCompletionError when the payload is not JSON or is
    not shaped like a violations object, so the task is retried rather
    than silently read as "no errors". Entries the model itself marks
    ``"violation": false`` are dropped.
    """
    try:
        data: Any = json.loads(_strip_code_fence(content))
    except json.JSONDecodeError as exc:
        raise MalformedCompletionError(
            f"completion is not valid JSON: {exc.msg}"
        ) from exc

    if not isinstance(data, dict):
        raise MalformedCompletionError("completion is not a JSON object")
    raw_violations = cast(dict[str, Any], data).get("violations")
    if not isinstance(raw_violations, list):
        raise MalformedCompletionError(
            "completion has no 'violations' array"
        )

    errors: list[LintError] = []
    for raw_item in cast(list[Any], raw_violations):
        if not isinstance(raw_item, dict):
            logger.debug(
                "event=completion_item_skipped rule=%s file=%s",
                rule.name,
                file.file_path,
            )
            continue
        item = cast(dict[str, Any], raw_item)
        if item.get("violation") is False:
            continue
        errors.append(
            LintError(
                rule_name=rule.name,
                file_path=_file_path(item, file, rule),
                message=str(item.get("message") or rule.title or rule.name),
                line=_optional_int(item.get("line")),
                end_line=_optional_int(item.get("end_line")),
                column=_optional_int(item.get("column")),
                code_snippet=str(item.get("code_snippet") or ""),
                confidence=_confidence(item.get("confidence")),
            )
        )
    return tuple(errors)


def _strip_code_fence(content: str) -> str:
    """Remove a ```json ... ``` wrapper some models add anyway."""
    text = content.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        text = text[first_newline + 1:] if first_newline != -1 else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text


def _optional_int(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _confidence(value: Any) -> ConfidenceLevel:
    text = str(value).lower()
    if text in _CONFIDENCE_VALUES:
        return ConfidenceLevel(text)
    return ConfidenceLevel.MEDIUM


def _file_path(item: dict[str, Any], file: SourceFile, rule: Rule) -> str:
    # Project-scoped prompts cover many files; the model names which one.
    if rule.scope == RuleScope.PROJECT and item.get("file_path"):
        return str(item["file_path"])
    return file.file_path
