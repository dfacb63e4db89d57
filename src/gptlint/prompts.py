"""LLM prompts for gptlint.

Any change to LINT_SYSTEM_PROMPT or to the layout produced by
build_lint_messages must bump ``PROMPT_VERSION`` in constants.py so
cached verdicts from the old prompt stop matching.
"""

from __future__ import annotations

from gptlint.constants import RuleScope
from gptlint.linting.schemas import Rule, RuleExample, SourceFile

LINT_SYSTEM_PROMPT = """\
You are gptlint, an expert code reviewer enforcing exactly ONE lint rule. \
You are given the rule, optional examples, and a source file. Report every \
place in the source file that violates the rule.

## Output Requirements

Return a JSON object with a single field:

- violations: Array of violations, empty when the file follows the rule. Each has:
  - file_path: Path of the file containing the violation (taken from the \
`// File: <path>` header when several files are given).
  - line: 1-based line number where the violation starts.
  - end_line: 1-based line number where it ends (same as line if one line).
  - code_snippet: The offending code, copied verbatim.
  - message: One sentence explaining why this code violates the rule.
  - confidence: "high", "medium", or "low".
  - violation: true if this really violates the rule, false if on reflection \
it does not.

## What You ALWAYS Do
- Judge ONLY against the given rule, nothing else.
- Copy code snippets verbatim from the source file.
- Return {"violations": []} when there is nothing to report.

## What You NEVER Do
- Report style issues unrelated to the rule.
- Invent code that is not in the source file.
- Return markdown, prose, or anything other than valid JSON.
"""


def _format_examples(
    heading: str, examples: tuple[RuleExample, ...]
) -> str:
    blocks = [
        f"```{e.language or ''}\n{e.code.rstrip()}\n```" for e in examples
    ]
    return f"### {heading}\n\n" + "\n\n".join(blocks)


def format_rule(rule: Rule) -> str:
    """Render a rule definition as markdown for the user prompt."""
    parts = [f"# Rule: {rule.name}"]
    if rule.title:
        parts.append(f"## {rule.title}")
    parts.append(rule.description.strip())
    if rule.positive_examples:
        parts.append(
            _format_examples("Incorrect code", rule.positive_examples)
        )
    if rule.negative_examples:
        parts.append(
            _format_examples("Correct code", rule.negative_examples)
        )
    return "\n\n".join(parts)


def build_lint_messages(
    file: SourceFile, rule: Rule
) -> list[dict[str, str]]:
    """Build the chat messages for one (file, rule) task."""
    subject = (
        "the following project files"
        if rule.scope == RuleScope.PROJECT
        else f"the file `{file.file_path}`"
    )
    user_prompt = (
        f"{format_rule(rule)}\n\n---\n\n"
        f"Check {subject} against the rule above.\n\n"
        f"```{file.language}\n{file.content}\n```"
    )
    return [
        {"role": "system", "content": LINT_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]
