"""Tests for parsing JSON completions into lint errors."""

from __future__ import annotations

import json
from collections.abc import Callable

import pytest

from gptlint.constants import ConfidenceLevel, RuleScope
from gptlint.linting.completion import parse_lint_completion
from gptlint.linting.fakes import completion_json
from gptlint.linting.schemas import Rule, SourceFile
from gptlint.resilience.errors import (
    ErrorClass,
    MalformedCompletionError,
    classify_error,
    is_retryable,
)


@pytest.fixture
def file(make_file: Callable[..., SourceFile]) -> SourceFile:
    return make_file("src/config.ts", 'const key = "sk-live-1"\n')


class TestParseLintCompletion:
    def test_empty_violations(self, file: SourceFile, rule: Rule) -> None:
        assert parse_lint_completion(completion_json(), file, rule) == ()

    def test_violation_fields(self, file: SourceFile, rule: Rule) -> None:
        content = completion_json(
            {
                "line": 1,
                "end_line": 1,
                "code_snippet": 'const key = "sk-live-1"',
                "message": "Hardcoded API key",
                "confidence": "high",
                "violation": True,
            }
        )
        [error] = parse_lint_completion(content, file, rule)
        assert error.rule_name == rule.name
        assert error.file_path == "src/config.ts"
        assert error.line == 1
        assert error.end_line == 1
        assert error.message == "Hardcoded API key"
        assert error.confidence == ConfidenceLevel.HIGH

    def test_retracted_violations_dropped(
        self, file: SourceFile, rule: Rule
    ) -> None:
        """violation: false → model changed its mind, not an error."""
        content = completion_json(
            {"message": "keep", "violation": True},
            {"message": "drop", "violation": False},
        )
        errors = parse_lint_completion(content, file, rule)
        assert [e.message for e in errors] == ["keep"]

    def test_code_fence_stripped(self, file: SourceFile, rule: Rule) -> None:
        content = "```json\n" + completion_json({"message": "m"}) + "\n```"
        assert len(parse_lint_completion(content, file, rule)) == 1

    def test_lenient_field_coercion(
        self, file: SourceFile, rule: Rule
    ) -> None:
        """Bad line numbers/confidence degrade to defaults."""
        content = completion_json(
            {"line": "not-a-number", "confidence": "certain"}
        )
        [error] = parse_lint_completion(content, file, rule)
        assert error.line is None
        assert error.confidence == ConfidenceLevel.MEDIUM
        assert error.message == rule.title

    def test_non_dict_items_skipped(
        self, file: SourceFile, rule: Rule
    ) -> None:
        content = json.dumps({"violations": ["oops", {"message": "m"}]})
        assert len(parse_lint_completion(content, file, rule)) == 1

    def test_file_scope_ignores_reported_path(
        self, file: SourceFile, rule: Rule
    ) -> None:
        content = completion_json({"file_path": "elsewhere.ts"})
        [error] = parse_lint_completion(content, file, rule)
        assert error.file_path == "src/config.ts"

    def test_project_scope_uses_reported_path(
        self, file: SourceFile, make_rule: Callable[..., Rule]
    ) -> None:
        rule = make_rule(scope=RuleScope.PROJECT)
        content = completion_json({"file_path": "src/other.ts"})
        [error] = parse_lint_completion(content, file, rule)
        assert error.file_path == "src/other.ts"


class TestMalformedCompletions:
    @pytest.mark.parametrize(
        "content",
        [
            "I think this file is fine!",
            "[]",
            '{"errors": []}',
            '{"violations": "none"}',
            "",
        ],
    )
    def test_malformed_raises(
        self, content: str, file: SourceFile, rule: Rule
    ) -> None:
        with pytest.raises(MalformedCompletionError):
            parse_lint_completion(content, file, rule)

    def test_malformed_is_classified_and_retryable(
        self, file: SourceFile, rule: Rule
    ) -> None:
        with pytest.raises(MalformedCompletionError) as exc_info:
            parse_lint_completion("nope", file, rule)
        assert classify_error(exc_info.value) == ErrorClass.MALFORMED
        assert is_retryable(exc_info.value)
