"""
AST (Abstract Syntax Tree) node definitions for parsed VDL documents.

These nodes represent the declarations of one or more source files before
any spread expansion, reference resolution or merging takes place.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Position:
    """Source location of a declaration (for error messages)."""

    file: str = ""
    line: int = 1
    column: int = 1


@dataclass
class SchemaNode:
    """Base class for all AST nodes."""

    position: Position = field(default_factory=Position)


@dataclass
class TypeExprNode(SchemaNode):
    """A raw, unresolved type expression.

    Exactly one of ``name``, ``map_value`` or ``inline`` is set. ``dims`` is the
    number of array dimensions wrapped around that base.
    """

    name: str | None = None
    map_value: TypeExprNode | None = None
    inline: FieldBlockNode | None = None
    dims: int = 0


@dataclass
class FieldNode(SchemaNode):
    """A field declaration inside a type body or an operation block."""

    name: str = ""
    type_expr: TypeExprNode = field(default_factory=TypeExprNode)
    optional: bool = False
    doc: str | None = None
    deprecated: str | None = None


@dataclass
class FieldBlockNode(SchemaNode):
    """A body of fields with the spreads it composes, in declaration order."""

    fields: list[FieldNode] = field(default_factory=list)
    spreads: list[str] = field(default_factory=list)


@dataclass
class DeclarationNode(SchemaNode):
    """Base class for top-level declarations."""

    name: str = ""
    doc: str | None = None
    deprecated: str | None = None

    # Declaration kind used for duplicate detection
    KIND = ""


@dataclass
class TypeDeclNode(DeclarationNode):
    """A named record type."""

    body: FieldBlockNode = field(default_factory=FieldBlockNode)

    KIND = "type"


@dataclass
class EnumMemberNode(SchemaNode):
    """An enum member; ``value`` is an ``int`` or ``str`` literal when given."""

    name: str = ""
    value: int | str | None = None
    doc: str | None = None
    deprecated: str | None = None


@dataclass
class EnumDeclNode(DeclarationNode):
    """A named enumeration."""

    members: list[EnumMemberNode] = field(default_factory=list)

    KIND = "enum"


@dataclass
class ConstDeclNode(DeclarationNode):
    """A named constant."""

    const_type: str | None = None
    value: str | int | float | bool | None = None

    KIND = "const"


@dataclass
class PatternDeclNode(DeclarationNode):
    """A named URL-style template with ``{placeholder}`` tokens."""

    template: str = ""

    KIND = "pattern"


@dataclass
class OperationNode(SchemaNode):
    """A procedure or stream declared inside an RPC."""

    name: str = ""
    input: FieldBlockNode = field(default_factory=FieldBlockNode)
    output: FieldBlockNode = field(default_factory=FieldBlockNode)
    doc: str | None = None
    deprecated: str | None = None


@dataclass
class RpcDeclNode(DeclarationNode):
    """A named RPC service grouping procedures and streams."""

    procs: list[OperationNode] = field(default_factory=list)
    streams: list[OperationNode] = field(default_factory=list)
    docs: list[str] = field(default_factory=list)

    KIND = "rpc"


@dataclass
class DocDeclNode(SchemaNode):
    """A standalone documentation block."""

    content: str = ""


@dataclass
class SourceFile:
    """One parsed source file."""

    path: str = ""
    text: str = ""
    includes: list[str] = field(default_factory=list)
    declarations: list[DeclarationNode] = field(default_factory=list)
    docs: list[DocDeclNode] = field(default_factory=list)


@dataclass
class Program:
    """All source files reachable from an entry file, in merge order."""

    entry: str = ""
    files: list[SourceFile] = field(default_factory=list)

    @property
    def schema_text(self) -> str:
        """Concatenated raw text of every file, in merge order."""
        return "".join(f.text for f in self.files)

    def declarations(self) -> list[DeclarationNode]:
        return [d for f in self.files for d in f.declarations]

    def docs(self) -> list[DocDeclNode]:
        return [d for f in self.files for d in f.docs]
