"""
Parsed-document reader that builds an AST.

Phase 1 of the pipeline: turn the parsed form of one VDL source file into
AST nodes without resolving spreads or references.
"""

from __future__ import annotations

import logging
from typing import Any

from ...errors import CompileError, Diagnostic
from .nodes import (
    ConstDeclNode,
    DeclarationNode,
    DocDeclNode,
    EnumDeclNode,
    EnumMemberNode,
    FieldBlockNode,
    FieldNode,
    OperationNode,
    PatternDeclNode,
    Position,
    RpcDeclNode,
    SourceFile,
    TypeDeclNode,
    TypeExprNode,
)

logger = logging.getLogger(__name__)

ARRAY_SUFFIX = "[]"


class SchemaParser:
    """Parses a VDL document dictionary into a SourceFile AST."""

    def __init__(self) -> None:
        self._path = ""
        self._diagnostics: list[Diagnostic] = []

    def parse(self, document: dict[str, Any], path: str, text: str = "") -> SourceFile:
        """
        Parse one document into a SourceFile.

        Args:
            document: The parsed document (``includes`` and ``declarations``)
            path: Path of the source file, used in diagnostics
            text: Raw source text, forwarded verbatim to plugins

        Returns:
            SourceFile with its declarations in source order

        Raises:
            CompileError: If the document is structurally malformed
        """
        self._path = path
        self._diagnostics = []

        if not isinstance(document, dict):
            self._error(None, "E005", "document must be an object")
            raise CompileError(self._diagnostics)

        source = SourceFile(path=path, text=text)
        includes = document.get("includes") or []
        if not isinstance(includes, list) or not all(isinstance(i, str) for i in includes):
            self._error(None, "E005", "includes must be a list of paths")
        else:
            source.includes = list(includes)

        for raw in document.get("declarations") or []:
            if not isinstance(raw, dict):
                self._error(None, "E005", "declaration must be an object")
                continue
            kind = raw.get("kind")
            if kind == "doc":
                source.docs.append(DocDeclNode(position=self._position(raw), content=str(raw.get("content", ""))))
                continue
            decl = self._parse_declaration(kind, raw)
            if decl is not None:
                source.declarations.append(decl)

        if self._diagnostics:
            raise CompileError(self._diagnostics)

        logger.debug("Parsed %s: %d declarations", path, len(source.declarations))
        return source

    def _parse_declaration(self, kind: Any, raw: dict[str, Any]) -> DeclarationNode | None:
        name = raw.get("name")
        if not isinstance(name, str) or not name:
            self._error(raw, "E005", f"{kind or 'declaration'} is missing a name")
            return None

        common = {
            "position": self._position(raw),
            "name": name,
            "doc": raw.get("doc"),
            "deprecated": self._deprecated(raw),
        }

        if kind == "type":
            return TypeDeclNode(body=self._parse_block(raw), **common)
        if kind == "enum":
            members = [self._parse_member(m) for m in raw.get("members") or []]
            return EnumDeclNode(members=members, **common)
        if kind == "const":
            return ConstDeclNode(const_type=raw.get("type"), value=raw.get("value"), **common)
        if kind == "pattern":
            return PatternDeclNode(template=str(raw.get("template", "")), **common)
        if kind == "rpc":
            return RpcDeclNode(
                procs=self._parse_operations(raw.get("procs")),
                streams=self._parse_operations(raw.get("streams")),
                docs=[str(d) for d in raw.get("docs") or []],
                **common,
            )

        self._error(raw, "E005", f"unknown declaration kind {kind!r}")
        return None

    def _parse_block(self, raw: Any, owner: dict[str, Any] | None = None) -> FieldBlockNode:
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            self._error(owner, "E005", f"field block must be an object, got {type(raw).__name__}")
            return FieldBlockNode(position=self._position(owner))
        block = FieldBlockNode(position=self._position(raw))
        for spread in raw.get("spreads") or []:
            if isinstance(spread, str):
                block.spreads.append(spread)
            else:
                self._error(raw, "E005", "spread must name a type")
        for raw_field in raw.get("fields") or []:
            field = self._parse_field(raw_field)
            if field is not None:
                block.fields.append(field)
        return block

    def _parse_field(self, raw: Any) -> FieldNode | None:
        if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
            self._error(raw if isinstance(raw, dict) else None, "E005", "field must be an object with a name")
            return None
        position = self._position(raw)
        type_expr = self._parse_type_expr(raw.get("type"), raw)
        if type_expr is None:
            return None
        return FieldNode(
            position=position,
            name=raw["name"],
            type_expr=type_expr,
            optional=bool(raw.get("optional", False)),
            doc=raw.get("doc"),
            deprecated=self._deprecated(raw),
        )

    def _parse_type_expr(self, expr: Any, owner: dict[str, Any]) -> TypeExprNode | None:
        position = self._position(owner)
        if isinstance(expr, str):
            return self._parse_type_string(expr.strip(), owner)

        if isinstance(expr, dict):
            dims = expr.get("dims", 0)
            if not isinstance(dims, int) or dims < 0:
                self._error(owner, "E005", f"invalid array dimensions {dims!r}")
                return None
            if "object" in expr:
                if not isinstance(expr["object"], dict):
                    self._error(owner, "E005", "inline object must be an object with fields")
                    return None
                return TypeExprNode(position=position, inline=self._parse_block(expr["object"]), dims=dims)
            if "map" in expr:
                value = self._parse_type_expr(expr["map"], owner)
                if value is None:
                    return None
                return TypeExprNode(position=position, map_value=value, dims=dims)
            if isinstance(expr.get("name"), str):
                inner = self._parse_type_string(expr["name"].strip(), owner)
                if inner is None:
                    return None
                inner.dims += dims
                return inner

        self._error(owner, "E005", f"invalid type expression {expr!r}")
        return None

    def _parse_type_string(self, text: str, owner: dict[str, Any]) -> TypeExprNode | None:
        """Parse ``Name``, ``Name[][]`` or ``map<Expr>[]`` forms."""
        dims = 0
        while text.endswith(ARRAY_SUFFIX):
            text = text[: -len(ARRAY_SUFFIX)].rstrip()
            dims += 1

        position = self._position(owner)
        if text.startswith("map<") and text.endswith(">"):
            value = self._parse_type_string(text[4:-1].strip(), owner)
            if value is None:
                return None
            return TypeExprNode(position=position, map_value=value, dims=dims)

        if not text.isidentifier():
            self._error(owner, "E005", f"invalid type expression {text!r}")
            return None
        return TypeExprNode(position=position, name=text, dims=dims)

    def _parse_member(self, raw: Any) -> EnumMemberNode:
        if isinstance(raw, str):
            return EnumMemberNode(position=self._position(None), name=raw)
        if not isinstance(raw, dict):
            self._error(None, "E005", "enum member must be a name or an object")
            return EnumMemberNode()
        value = raw.get("value")
        if isinstance(value, bool) or not isinstance(value, (int, str, type(None))):
            self._error(raw, "E005", f"enum member value must be a string or integer, got {value!r}")
            value = None
        return EnumMemberNode(
            position=self._position(raw),
            name=str(raw.get("name", "")),
            value=value,
            doc=raw.get("doc"),
            deprecated=self._deprecated(raw),
        )

    def _parse_operations(self, raw: Any) -> list[OperationNode]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            self._error(None, "E005", "procs and streams must be lists of operations")
            return []
        operations = [self._parse_operation(op) for op in raw]
        return [op for op in operations if op is not None]

    def _parse_operation(self, raw: Any) -> OperationNode | None:
        if not isinstance(raw, dict):
            self._error(None, "E005", f"operation must be an object, got {raw!r}")
            return None
        return OperationNode(
            position=self._position(raw),
            name=str(raw.get("name", "")),
            input=self._parse_block(raw.get("input"), raw),
            output=self._parse_block(raw.get("output"), raw),
            doc=raw.get("doc"),
            deprecated=self._deprecated(raw),
        )

    @staticmethod
    def _deprecated(raw: dict[str, Any]) -> str | None:
        """Return the deprecation message, ``""`` for a bare marker, None if not deprecated."""
        value = raw.get("deprecated")
        if value is None or value is False:
            return None
        if value is True:
            return ""
        return str(value)

    def _position(self, raw: dict[str, Any] | None) -> Position:
        raw = raw or {}
        return Position(file=self._path, line=int(raw.get("line", 1)), column=int(raw.get("column", 1)))

    def _error(self, raw: dict[str, Any] | None, code: str, message: str) -> None:
        position = self._position(raw)
        self._diagnostics.append(Diagnostic(position.file, position.line, position.column, code, message))
