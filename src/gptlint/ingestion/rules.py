"""Load rule definitions from markdown files with YAML front matter.

A rule file looks like::

    ---
    name: no-hardcoded-secrets
    scope: file
    include: ["src/**"]
    ---
    # Don't hardcode secrets

    Description the model is asked to enforce...

    ### Incorrect

    ```ts
    const apiKey = "sk-live-123"
    ```

    ### Correct

    ```ts
    const apiKey = process.env.API_KEY
    ```

Everything before the first example heading is the description.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from gptlint.constants import RuleScope
from gptlint.linting.schemas import Rule, RuleExample
from gptlint.resilience.errors import ConfigurationError

logger = logging.getLogger(__name__)

_FRONT_MATTER_RE = re.compile(r"\A---\s*\n(.*?)\n---\s*(?:\n|\Z)", re.DOTALL)
_TITLE_RE = re.compile(r"^#\s+(.+?)\s*$")
_EXAMPLE_HEADING_RE = re.compile(
    r"^#{2,4}\s+(incorrect|bad|correct|good)\b.*$",
    re.IGNORECASE | re.MULTILINE,
)
_CODE_BLOCK_RE = re.compile(
    r"^```([\w+-]*)[^\n]*\n(.*?)^```", re.DOTALL | re.MULTILINE
)

# Example headings whose code blocks violate the rule
_POSITIVE_HEADINGS = frozenset({"incorrect", "bad"})


def parse_rule(
    text: str, *, default_name: str, source: str | None = None
) -> Rule:
    """Parse one rule document.

    Raises ``ConfigurationError`` for malformed front matter or an
    invalid rule name.
    """
    meta, body = _split_front_matter(text, source or default_name)

    lines = body.strip().splitlines()
    title = str(meta.get("title") or "")
    if lines and (match := _TITLE_RE.match(lines[0])):
        title = title or match.group(1)
        lines = lines[1:]
    body = "\n".join(lines)

    headings = list(_EXAMPLE_HEADING_RE.finditer(body))
    description = body[: headings[0].start()] if headings else body

    positive: list[RuleExample] = []
    negative: list[RuleExample] = []
    for i, heading in enumerate(headings):
        end = headings[i + 1].start() if i + 1 < len(headings) else len(body)
        target = (
            positive
            if heading.group(1).lower() in _POSITIVE_HEADINGS
            else negative
        )
        target.extend(_code_examples(body[heading.end():end]))

    try:
        return Rule(
            name=str(meta.get("name") or default_name),
            title=title,
            description=description.strip(),
            scope=RuleScope(str(meta.get("scope", RuleScope.FILE))),
            positive_examples=tuple(positive),
            negative_examples=tuple(negative),
            include=_string_tuple(meta.get("include")),
            exclude=_string_tuple(meta.get("exclude")),
            source=source,
        )
    except (ValidationError, ValueError) as exc:
        msg = f"Invalid rule definition in {source or default_name}: {exc}"
        raise ConfigurationError(msg) from exc


def load_rule(path: Path) -> Rule:
    """Load a single rule file; the file stem is the default name."""
    if not path.is_file():
        msg = f"Rule file not found: {path}"
        raise ConfigurationError(msg)
    return parse_rule(
        path.read_text(encoding="utf-8"),
        default_name=path.stem,
        source=str(path),
    )


def resolve_rules(
    rules_dir: Path, names: Sequence[str] = ()
) -> list[Rule]:
    """Load every ``*.md`` rule under ``rules_dir``, sorted by name.

    ``names`` restricts the result to those rules; naming a rule that
    does not exist is a ConfigurationError, as are duplicate names.
    """
    if not rules_dir.is_dir():
        msg = f"Rules directory not found: {rules_dir}"
        raise ConfigurationError(msg)

    rules: dict[str, Rule] = {}
    for path in sorted(rules_dir.rglob("*.md")):
        if path.name.lower() == "readme.md":
            continue
        rule = load_rule(path)
        if rule.name in rules:
            msg = (
                f"Duplicate rule name '{rule.name}' in {path} and "
                f"{rules[rule.name].source}"
            )
            raise ConfigurationError(msg)
        rules[rule.name] = rule

    if names:
        unknown = sorted(set(names) - rules.keys())
        if unknown:
            msg = f"Unknown rules: {', '.join(unknown)}"
            raise ConfigurationError(msg)
        rules = {n: r for n, r in rules.items() if n in set(names)}

    logger.info(
        "event=rules_resolved dir=%s rules=%d", rules_dir, len(rules)
    )
    return [rules[name] for name in sorted(rules)]


def _split_front_matter(
    text: str, source: str
) -> tuple[dict[str, Any], str]:
    match = _FRONT_MATTER_RE.match(text)
    if match is None:
        return {}, text
    try:
        raw = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        msg = f"Invalid front matter in {source}: {exc}"
        raise ConfigurationError(msg) from exc
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        msg = f"Front matter in {source} must be a mapping"
        raise ConfigurationError(msg)
    return raw, text[match.end():]


def _code_examples(section: str) -> list[RuleExample]:
    return [
        RuleExample(code=m.group(2).rstrip("\n"), language=m.group(1) or None)
        for m in _CODE_BLOCK_RE.finditer(section)
    ]


def _string_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)
