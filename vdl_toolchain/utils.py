"""
Utility functions for the VDL toolchain.

Identifier case conversion shared by the analyzer and the code generators.
"""

import keyword
import re
import textwrap

# Regex pattern to split text into words, handling camelCase boundaries
_WORD_PATTERN = re.compile(r"[a-z]+|[A-Z]+(?![a-z])|[A-Z][a-z]*|[0-9]+")


def _normalize_separators(text: str) -> str:
    """Normalize separators (underscores, hyphens, dots) to spaces."""
    return text.replace("_", " ").replace("-", " ").replace(".", " ")


def _split_into_words(text: str) -> list[str]:
    """Split text into words, handling camelCase boundaries."""
    return _WORD_PATTERN.findall(_normalize_separators(text))


def to_pascal_case(text: str) -> str:
    """Convert snake_case, camelCase, or space-separated text to PascalCase.

    Examples:
        "first_name" -> "FirstName"
        "FIRST_NAME" -> "FirstName"
        "actionTemplate" -> "ActionTemplate"
        "Full" -> "Full"
    """
    if not text:
        return ""
    return "".join(word.capitalize() for word in _split_into_words(text))


def to_camel_case(text: str) -> str:
    """Convert text to camelCase ("user_id" -> "userId")."""
    pascal = to_pascal_case(text)
    if not pascal:
        return ""
    return pascal[0].lower() + pascal[1:]


def to_snake_case(text: str) -> str:
    """Convert text to snake_case ("userId" -> "user_id")."""
    return "_".join(word.lower() for word in _split_into_words(text))


def to_upper_snake_case(text: str) -> str:
    """Convert text to UPPER_SNAKE_CASE ("InProgress" -> "IN_PROGRESS")."""
    return to_snake_case(text).upper()


PYTHON_RESERVED = frozenset(keyword.kwlist) | {
    "dict",
    "list",
    "str",
    "int",
    "float",
    "bool",
    "type",
    "format",
    "input",
    "id",
}

TYPESCRIPT_RESERVED = frozenset(
    {
        "break",
        "case",
        "catch",
        "class",
        "const",
        "continue",
        "debugger",
        "default",
        "delete",
        "do",
        "else",
        "enum",
        "export",
        "extends",
        "false",
        "finally",
        "for",
        "function",
        "if",
        "import",
        "in",
        "instanceof",
        "new",
        "null",
        "return",
        "super",
        "switch",
        "this",
        "throw",
        "true",
        "try",
        "typeof",
        "var",
        "void",
        "while",
        "with",
        "let",
        "static",
        "yield",
        "await",
    }
)


def escape_identifier(name: str, reserved: frozenset[str]) -> str:
    """Append an underscore to names that collide with reserved words."""
    if name in reserved:
        return f"{name}_"
    return name


def normalize_doc(text: str | None) -> str | None:
    """Dedent and strip a documentation block; blank docs become None."""
    if text is None:
        return None
    normalized = textwrap.dedent(text.strip("\n")).strip()
    return normalized or None
