"""
URL-style pattern templates.

A template such as ``/users/{userId}/profile`` contains ``{name}`` tokens.
Compilation extracts the placeholder names in first-occurrence order without
duplicates; interpolation substitutes every occurrence of each token.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

PLACEHOLDER_PATTERN = re.compile(r"\{([a-zA-Z_][a-zA-Z0-9_]*)\}")


class PatternSyntaxError(ValueError):
    """Raised for malformed placeholder tokens."""

    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__(message)


def compile_pattern(template: str) -> list[str]:
    """
    Extract the placeholders of a template.

    Args:
        template: Template text with ``{name}`` tokens

    Returns:
        Placeholder names, ordered by first occurrence, de-duplicated

    Raises:
        PatternSyntaxError: On an unclosed ``{``, a stray ``}`` or an invalid name
    """
    placeholders: list[str] = []
    pos = 0
    while pos < len(template):
        char = template[pos]
        if char == "}":
            raise PatternSyntaxError("E402", f"unexpected '}}' at offset {pos} in pattern {template!r}")
        if char != "{":
            pos += 1
            continue
        end = template.find("}", pos)
        if end == -1:
            raise PatternSyntaxError("E402", f"unclosed '{{' at offset {pos} in pattern {template!r}")
        match = PLACEHOLDER_PATTERN.fullmatch(template, pos, end + 1)
        if match is None:
            token = template[pos : end + 1]
            raise PatternSyntaxError("E401", f"invalid placeholder {token!r} in pattern {template!r}")
        if match.group(1) not in placeholders:
            placeholders.append(match.group(1))
        pos = end + 1
    return placeholders


def interpolate(template: str, values: Mapping[str, str]) -> str:
    """
    Substitute every placeholder of ``template`` with its value.

    Raises:
        KeyError: If a placeholder has no value
    """
    return PLACEHOLDER_PATTERN.sub(lambda m: str(values[m.group(1)]), template)
