"""
Reference resolver for field type expressions.

Resolves the raw type expression of a field into a TypeRef: primitive names,
declared enums and types, arrays, string-keyed maps and inline objects.
"""

from __future__ import annotations

import difflib
from collections.abc import Callable

from ...errors import Diagnostic
from ...utils import to_pascal_case
from ..schema_ast.nodes import FieldBlockNode, Position, TypeExprNode
from .ir_nodes import PRIMITIVE_TYPES, EnumType, FieldDef, TypeRef

# Resolves the fields of an inline object block under a synthesized name.
BlockResolver = Callable[[FieldBlockNode, str], tuple[FieldDef, ...]]


class TypeReferenceResolver:
    """Resolves type expressions against the declared types and enums."""

    def __init__(self, type_names: set[str], enum_types: dict[str, EnumType], resolve_block: BlockResolver):
        """
        Initialize the resolver.

        Args:
            type_names: Names of all declared record types
            enum_types: Literal kind of every declared enum, by name
            resolve_block: Callback resolving an inline object block
        """
        self.type_names = type_names
        self.enum_types = enum_types
        self.resolve_block = resolve_block
        self.diagnostics: list[Diagnostic] = []

    def resolve(self, expr: TypeExprNode, owner: str, field_name: str) -> TypeRef | None:
        """
        Resolve the type expression of field ``field_name`` declared in ``owner``.

        Returns:
            The TypeRef, or None when a name could not be resolved (a
            diagnostic is recorded)
        """
        base = self._resolve_base(expr, owner, field_name)
        if base is None:
            return None
        if expr.dims > 0:
            return TypeRef.array(base, expr.dims)
        return base

    def _resolve_base(self, expr: TypeExprNode, owner: str, field_name: str) -> TypeRef | None:
        if expr.inline is not None:
            object_name = owner + to_pascal_case(field_name)
            return TypeRef.object(object_name, self.resolve_block(expr.inline, object_name))

        if expr.map_value is not None:
            value = self.resolve(expr.map_value, owner, field_name)
            return TypeRef.map(value) if value is not None else None

        name = expr.name or ""
        if name in PRIMITIVE_TYPES:
            return TypeRef.primitive(name)
        if name in self.enum_types:
            return TypeRef.enum(name, self.enum_types[name])
        if name in self.type_names:
            return TypeRef.named(name)

        self._unresolved(name, owner, field_name, expr.position)
        return None

    def _unresolved(self, name: str, owner: str, field_name: str, position: Position) -> None:
        message = f"type {name!r} of field {owner}.{field_name} is not declared"
        candidates = sorted(self.type_names | set(self.enum_types) | set(PRIMITIVE_TYPES))
        suggestions = difflib.get_close_matches(name, candidates, n=3)
        if suggestions:
            message += f" (did you mean {', '.join(repr(s) for s in suggestions)}?)"
        self.diagnostics.append(Diagnostic(position.file, position.line, position.column, "E201", message))
