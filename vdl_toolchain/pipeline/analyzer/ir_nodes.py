"""
IR (Intermediate Representation) node definitions.

These nodes represent the analyzed and resolved schema, ready for code
generation. All spreads are expanded, all references are resolved and all
collections are ordered deterministically. Nodes are frozen: one IR value is
built per compile and shared read-only by every generator and plugin.

The JSON form uses camelCase keys and omits absent values instead of writing
``null``.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any


class TypeKind(str, Enum):
    """Kind of type in the IR."""

    PRIMITIVE = "primitive"  # string, int, float, bool, datetime
    TYPE = "type"  # A named record type
    ENUM = "enum"  # A named enumeration
    ARRAY = "array"  # Element type with one or more dimensions
    MAP = "map"  # String-keyed map of a value type
    OBJECT = "object"  # Anonymous inline record


class EnumType(str, Enum):
    """Literal kind shared by all members of an enum."""

    STRING = "string"
    INT = "int"


class ConstType(str, Enum):
    """Type of a constant's value."""

    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"


PRIMITIVE_TYPES = ("string", "int", "float", "bool", "datetime")


def _put(d: dict[str, Any], key: str, value: Any) -> None:
    """Set ``key`` only when ``value`` is present."""
    if value is not None:
        d[key] = value


@dataclass(frozen=True)
class Deprecation:
    """Deprecation marker; an empty message means deprecated without a note."""

    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message} if self.message else {}

    @staticmethod
    def from_dict(d: dict[str, Any] | None) -> Deprecation | None:
        if d is None:
            return None
        return Deprecation(message=d.get("message") or "")


def _deprecation_dict(deprecated: Deprecation | None) -> dict[str, Any] | None:
    return deprecated.to_dict() if deprecated is not None else None


@dataclass(frozen=True)
class TypeRef:
    """A resolved type reference. Only the attributes relevant to ``kind`` are set."""

    kind: TypeKind = TypeKind.PRIMITIVE
    primitive_name: str | None = None
    type_name: str | None = None
    enum_name: str | None = None
    enum_type: EnumType | None = None
    array_type: TypeRef | None = None
    array_dims: int = 0
    map_type: TypeRef | None = None
    object_name: str | None = None
    object_fields: tuple[FieldDef, ...] | None = None

    @staticmethod
    def primitive(name: str) -> TypeRef:
        return TypeRef(kind=TypeKind.PRIMITIVE, primitive_name=name)

    @staticmethod
    def named(name: str) -> TypeRef:
        return TypeRef(kind=TypeKind.TYPE, type_name=name)

    @staticmethod
    def enum(name: str, enum_type: EnumType) -> TypeRef:
        return TypeRef(kind=TypeKind.ENUM, enum_name=name, enum_type=enum_type)

    @staticmethod
    def array(element: TypeRef, dims: int) -> TypeRef:
        return TypeRef(kind=TypeKind.ARRAY, array_type=element, array_dims=dims)

    @staticmethod
    def map(value: TypeRef) -> TypeRef:
        return TypeRef(kind=TypeKind.MAP, map_type=value)

    @staticmethod
    def object(name: str, fields: tuple[FieldDef, ...]) -> TypeRef:
        return TypeRef(kind=TypeKind.OBJECT, object_name=name, object_fields=fields)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"kind": self.kind.value}
        _put(d, "primitiveName", self.primitive_name)
        _put(d, "typeName", self.type_name)
        _put(d, "enumName", self.enum_name)
        _put(d, "enumType", self.enum_type.value if self.enum_type else None)
        _put(d, "arrayType", self.array_type.to_dict() if self.array_type else None)
        if self.kind == TypeKind.ARRAY:
            d["arrayDims"] = self.array_dims
        _put(d, "mapType", self.map_type.to_dict() if self.map_type else None)
        _put(d, "objectName", self.object_name)
        if self.object_fields is not None:
            d["objectFields"] = [f.to_dict() for f in self.object_fields]
        return d

    @staticmethod
    def from_dict(d: dict[str, Any]) -> TypeRef:
        array_type = d.get("arrayType")
        map_type = d.get("mapType")
        object_fields = d.get("objectFields")
        enum_type = d.get("enumType")
        return TypeRef(
            kind=TypeKind(d["kind"]),
            primitive_name=d.get("primitiveName"),
            type_name=d.get("typeName"),
            enum_name=d.get("enumName"),
            enum_type=EnumType(enum_type) if enum_type else None,
            array_type=TypeRef.from_dict(array_type) if array_type else None,
            array_dims=d.get("arrayDims") or 0,
            map_type=TypeRef.from_dict(map_type) if map_type else None,
            object_name=d.get("objectName"),
            object_fields=tuple(FieldDef.from_dict(f) for f in object_fields) if object_fields is not None else None,
        )


@dataclass(frozen=True)
class FieldDef:
    """A field of a type, inline object or operation payload."""

    name: str
    type_ref: TypeRef
    optional: bool = False
    doc: str | None = None
    deprecated: Deprecation | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "typeRef": self.type_ref.to_dict()}
        if self.optional:
            d["optional"] = True
        _put(d, "doc", self.doc)
        _put(d, "deprecated", _deprecation_dict(self.deprecated))
        return d

    @staticmethod
    def from_dict(d: dict[str, Any]) -> FieldDef:
        return FieldDef(
            name=d["name"],
            type_ref=TypeRef.from_dict(d["typeRef"]),
            optional=bool(d.get("optional", False)),
            doc=d.get("doc"),
            deprecated=Deprecation.from_dict(d.get("deprecated")),
        )


def _fields(items: list[dict[str, Any]] | None) -> tuple[FieldDef, ...]:
    return tuple(FieldDef.from_dict(f) for f in items or [])


@dataclass(frozen=True)
class TypeDef:
    """A named record type with spreads already inlined."""

    name: str
    fields: tuple[FieldDef, ...] = ()
    doc: str | None = None
    deprecated: Deprecation | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "fields": [f.to_dict() for f in self.fields]}
        _put(d, "doc", self.doc)
        _put(d, "deprecated", _deprecation_dict(self.deprecated))
        return d

    @staticmethod
    def from_dict(d: dict[str, Any]) -> TypeDef:
        return TypeDef(
            name=d["name"],
            fields=_fields(d.get("fields")),
            doc=d.get("doc"),
            deprecated=Deprecation.from_dict(d.get("deprecated")),
        )


@dataclass(frozen=True)
class EnumMember:
    """An enum member; ``value`` is the literal text of its wire value."""

    name: str
    value: str
    doc: str | None = None
    deprecated: Deprecation | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "value": self.value}
        _put(d, "doc", self.doc)
        _put(d, "deprecated", _deprecation_dict(self.deprecated))
        return d

    @staticmethod
    def from_dict(d: dict[str, Any]) -> EnumMember:
        return EnumMember(
            name=d["name"],
            value=str(d["value"]),
            doc=d.get("doc"),
            deprecated=Deprecation.from_dict(d.get("deprecated")),
        )


@dataclass(frozen=True)
class EnumDef:
    """An enumeration whose members share one literal kind."""

    name: str
    enum_type: EnumType = EnumType.STRING
    members: tuple[EnumMember, ...] = ()
    doc: str | None = None
    deprecated: Deprecation | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "name": self.name,
            "enumType": self.enum_type.value,
            "members": [m.to_dict() for m in self.members],
        }
        _put(d, "doc", self.doc)
        _put(d, "deprecated", _deprecation_dict(self.deprecated))
        return d

    @staticmethod
    def from_dict(d: dict[str, Any]) -> EnumDef:
        return EnumDef(
            name=d["name"],
            enum_type=EnumType(d.get("enumType") or "string"),
            members=tuple(EnumMember.from_dict(m) for m in d.get("members") or []),
            doc=d.get("doc"),
            deprecated=Deprecation.from_dict(d.get("deprecated")),
        )


@dataclass(frozen=True)
class ConstantDef:
    """A named constant; ``value`` is its textual literal."""

    name: str
    const_type: ConstType
    value: str
    doc: str | None = None
    deprecated: Deprecation | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "constType": self.const_type.value, "value": self.value}
        _put(d, "doc", self.doc)
        _put(d, "deprecated", _deprecation_dict(self.deprecated))
        return d

    @staticmethod
    def from_dict(d: dict[str, Any]) -> ConstantDef:
        return ConstantDef(
            name=d["name"],
            const_type=ConstType(d["constType"]),
            value=str(d["value"]),
            doc=d.get("doc"),
            deprecated=Deprecation.from_dict(d.get("deprecated")),
        )


@dataclass(frozen=True)
class PatternDef:
    """A URL-style template and its ordered, de-duplicated placeholders."""

    name: str
    template: str
    placeholders: tuple[str, ...] = ()
    doc: str | None = None
    deprecated: Deprecation | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "template": self.template, "placeholders": list(self.placeholders)}
        _put(d, "doc", self.doc)
        _put(d, "deprecated", _deprecation_dict(self.deprecated))
        return d

    @staticmethod
    def from_dict(d: dict[str, Any]) -> PatternDef:
        return PatternDef(
            name=d["name"],
            template=d["template"],
            placeholders=tuple(d.get("placeholders") or []),
            doc=d.get("doc"),
            deprecated=Deprecation.from_dict(d.get("deprecated")),
        )


@dataclass(frozen=True)
class OperationDef:
    """A procedure or stream tagged with the RPC that declares it.

    For procedures ``output`` is the response payload; for streams it is the
    payload of each emitted event.
    """

    name: str
    rpc_name: str
    input: tuple[FieldDef, ...] = ()
    output: tuple[FieldDef, ...] = ()
    doc: str | None = None
    deprecated: Deprecation | None = None

    @property
    def path(self) -> str:
        """Route of the operation, ``/Rpc/Operation``."""
        return f"/{self.rpc_name}/{self.name}"

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "rpcName": self.rpc_name,
            "name": self.name,
            "input": [f.to_dict() for f in self.input],
            "output": [f.to_dict() for f in self.output],
        }
        _put(d, "doc", self.doc)
        _put(d, "deprecated", _deprecation_dict(self.deprecated))
        return d

    @staticmethod
    def from_dict(d: dict[str, Any]) -> OperationDef:
        return OperationDef(
            name=d["name"],
            rpc_name=d["rpcName"],
            input=_fields(d.get("input")),
            output=_fields(d.get("output")),
            doc=d.get("doc"),
            deprecated=Deprecation.from_dict(d.get("deprecated")),
        )


ProcedureDef = OperationDef
StreamDef = OperationDef


@dataclass(frozen=True)
class RpcDef:
    """An RPC service with its procedures and streams in declaration order."""

    name: str
    procs: tuple[OperationDef, ...] = ()
    streams: tuple[OperationDef, ...] = ()
    docs: tuple[str, ...] = ()
    doc: str | None = None
    deprecated: Deprecation | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "name": self.name,
            "procs": [p.to_dict() for p in self.procs],
            "streams": [s.to_dict() for s in self.streams],
        }
        if self.docs:
            d["docs"] = list(self.docs)
        _put(d, "doc", self.doc)
        _put(d, "deprecated", _deprecation_dict(self.deprecated))
        return d

    @staticmethod
    def from_dict(d: dict[str, Any]) -> RpcDef:
        return RpcDef(
            name=d["name"],
            procs=tuple(OperationDef.from_dict(p) for p in d.get("procs") or []),
            streams=tuple(OperationDef.from_dict(s) for s in d.get("streams") or []),
            docs=tuple(d.get("docs") or []),
            doc=d.get("doc"),
            deprecated=Deprecation.from_dict(d.get("deprecated")),
        )


@dataclass(frozen=True)
class DocDef:
    """A standalone documentation block."""

    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"content": self.content}

    @staticmethod
    def from_dict(d: dict[str, Any]) -> DocDef:
        return DocDef(content=d["content"])


@dataclass(frozen=True)
class IR:
    """The complete intermediate representation."""

    types: tuple[TypeDef, ...] = ()
    enums: tuple[EnumDef, ...] = ()
    constants: tuple[ConstantDef, ...] = ()
    patterns: tuple[PatternDef, ...] = ()
    rpcs: tuple[RpcDef, ...] = ()
    procedures: tuple[OperationDef, ...] = ()
    streams: tuple[OperationDef, ...] = ()
    docs: tuple[DocDef, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "types": [t.to_dict() for t in self.types],
            "enums": [e.to_dict() for e in self.enums],
            "constants": [c.to_dict() for c in self.constants],
            "patterns": [p.to_dict() for p in self.patterns],
            "rpcs": [r.to_dict() for r in self.rpcs],
            "procedures": [p.to_dict() for p in self.procedures],
            "streams": [s.to_dict() for s in self.streams],
            "docs": [d.to_dict() for d in self.docs],
        }

    def to_json(self, minify: bool = False) -> str:
        if minify:
            return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> IR:
        """Decode an IR document; missing or ``null`` collections decode as empty."""
        return IR(
            types=tuple(TypeDef.from_dict(t) for t in d.get("types") or []),
            enums=tuple(EnumDef.from_dict(e) for e in d.get("enums") or []),
            constants=tuple(ConstantDef.from_dict(c) for c in d.get("constants") or []),
            patterns=tuple(PatternDef.from_dict(p) for p in d.get("patterns") or []),
            rpcs=tuple(RpcDef.from_dict(r) for r in d.get("rpcs") or []),
            procedures=tuple(OperationDef.from_dict(p) for p in d.get("procedures") or []),
            streams=tuple(OperationDef.from_dict(s) for s in d.get("streams") or []),
            docs=tuple(DocDef.from_dict(x) for x in d.get("docs") or []),
        )

    @staticmethod
    def from_json(text: str) -> IR:
        return IR.from_dict(json.loads(text))

    def inline_objects(self) -> Iterator[TypeRef]:
        """Yield every inline object reference, parents before children."""
        for type_def in self.types:
            yield from _walk_fields(type_def.fields)
        for op in self.procedures + self.streams:
            yield from _walk_fields(op.input)
            yield from _walk_fields(op.output)


def _walk_fields(fields: tuple[FieldDef, ...]) -> Iterator[TypeRef]:
    for f in fields:
        yield from _walk_type(f.type_ref)


def _walk_type(type_ref: TypeRef) -> Iterator[TypeRef]:
    if type_ref.kind == TypeKind.OBJECT:
        yield type_ref
        yield from _walk_fields(type_ref.object_fields or ())
    elif type_ref.kind == TypeKind.ARRAY and type_ref.array_type is not None:
        yield from _walk_type(type_ref.array_type)
    elif type_ref.kind == TypeKind.MAP and type_ref.map_type is not None:
        yield from _walk_type(type_ref.map_type)
