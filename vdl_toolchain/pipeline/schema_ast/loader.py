"""
Multi-file schema loader.

Follows ``includes`` from an entry file and returns every reachable file in
merge order: a file's includes (recursively, in listed order) come before the
file itself, and a file reached through several paths is loaded once.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ...errors import CompileError, Diagnostic
from .nodes import Program, SourceFile
from .parser import SchemaParser

logger = logging.getLogger(__name__)

# Turns raw source text into the parsed document form.
ParseFn = Callable[[str, str], dict[str, Any]]


def parse_json_document(text: str, path: str) -> dict[str, Any]:
    """Default parse callable: the source file holds its parsed document as JSON."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise CompileError([Diagnostic(path, e.lineno, e.colno, "E005", f"invalid document: {e.msg}")]) from e


class SchemaLoader:
    """Loads an entry file and everything it includes."""

    def __init__(self, parse: ParseFn | None = None):
        """
        Initialize the loader.

        Args:
            parse: Callable turning ``(text, path)`` into a parsed document
        """
        self._parse = parse or parse_json_document
        self._parser = SchemaParser()

    def load(self, entry: str | Path) -> Program:
        """
        Load ``entry`` and all transitively included files.

        Raises:
            CompileError: If a file is missing, malformed or includes form a cycle
        """
        entry_path = Path(entry).resolve()
        program = Program(entry=str(entry_path))
        loaded: set[Path] = set()
        self._load(entry_path, program, loaded, stack=[], origin=None)
        logger.debug("Loaded %d schema file(s) from %s", len(program.files), entry_path)
        return program

    def _load(
        self,
        path: Path,
        program: Program,
        loaded: set[Path],
        stack: list[Path],
        origin: Diagnostic | None,
    ) -> None:
        if path in stack:
            cycle = " -> ".join(str(p) for p in stack[stack.index(path) :] + [path])
            where = origin or Diagnostic(str(path), 1, 1, "", "")
            raise CompileError([Diagnostic(where.file, where.line, where.column, "E002", f"circular include: {cycle}")])
        if path in loaded:
            return

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            where = origin or Diagnostic(str(path), 1, 1, "", "")
            raise CompileError([Diagnostic(where.file, where.line, where.column, "E001", f"cannot read {path}: {e.strerror or e}")]) from e

        source: SourceFile = self._parser.parse(self._parse(text, str(path)), str(path), text)

        stack.append(path)
        for include in source.includes:
            include_path = (path.parent / include).resolve()
            self._load(include_path, program, loaded, stack, Diagnostic(str(path), 1, 1, "", ""))
        stack.pop()

        loaded.add(path)
        program.files.append(source)
