"""
Placeholder variables embedded in prompt content.

Three notations are recognized: `[name]`, `${name}` and `{{name}}`.
"""

import re
from typing import List, Mapping

PLACEHOLDER_RE = re.compile(r"\[(?P<bracket>[^\[\]]+?)\]|\$\{(?P<dollar>[^{}]+?)\}|\{\{(?P<brace>[^{}]+?)\}\}")


def _name(match: re.Match) -> str:
    return (match.group("bracket") or match.group("dollar") or match.group("brace")).strip()


def extract_variables(content: str) -> List[str]:
    """Distinct placeholder names in first-seen order."""
    seen: List[str] = []
    for m in PLACEHOLDER_RE.finditer(content or ""):
        name = _name(m)
        if name and name not in seen:
            seen.append(name)
    return seen


def fill_variables(content: str, values: Mapping[str, str]) -> str:
    """Substitute provided values; unknown placeholders stay as written."""
    def replace(m: re.Match) -> str:
        name = _name(m)
        if name in values and values[name] is not None:
            return str(values[name])
        return m.group(0)

    return PLACEHOLDER_RE.sub(replace, content or "")
