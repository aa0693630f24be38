"""
Schema AST module.

Contains the parsed-document AST, its parser and the multi-file loader.
"""

from __future__ import annotations

from .loader import SchemaLoader, parse_json_document
from .nodes import Program, SourceFile
from .parser import SchemaParser

__all__ = [
    "Program",
    "SchemaLoader",
    "SchemaParser",
    "SourceFile",
    "parse_json_document",
]
