"""Rule name validation."""

import re

from gptlint.constants import RULE_NAME_PATTERN

_RULE_NAME_RE = re.compile(RULE_NAME_PATTERN)


def is_valid_rule_name(name: str) -> bool:
    """Return True for names like ``foo-bar`` or ``@scope/foo``."""
    return bool(_RULE_NAME_RE.fullmatch(name))
