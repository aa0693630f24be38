"""
Schema analyzer that transforms the AST to IR.

Phase 2 of the pipeline: merge the declarations of all loaded files, expand
spreads, resolve type references, compile patterns, flatten RPC operations
and build the IR ready for code generation.
"""

from __future__ import annotations

import logging
import math

from ...errors import CompileError, Diagnostic
from ...utils import normalize_doc, to_pascal_case
from ..schema_ast.nodes import (
    ConstDeclNode,
    DeclarationNode,
    EnumDeclNode,
    FieldBlockNode,
    OperationNode,
    PatternDeclNode,
    Position,
    Program,
    RpcDeclNode,
    TypeDeclNode,
)
from .ir_nodes import (
    IR,
    ConstantDef,
    ConstType,
    Deprecation,
    DocDef,
    EnumDef,
    EnumMember,
    EnumType,
    FieldDef,
    OperationDef,
    PatternDef,
    RpcDef,
    TypeDef,
    TypeKind,
    TypeRef,
)
from .patterns import PatternSyntaxError, compile_pattern
from .reference_resolver import TypeReferenceResolver
from .spread_resolver import SpreadResolver

logger = logging.getLogger(__name__)

# Duplicate declaration codes, by declaration kind
DUPLICATE_CODES = {
    "type": "E801",
    "enum": "E802",
    "const": "E803",
    "pattern": "E805",
    "rpc": "E806",
}


def _deprecation(message: str | None) -> Deprecation | None:
    return Deprecation(message) if message is not None else None


class SchemaAnalyzer:
    """Analyzes a loaded program and builds the IR."""

    def __init__(self) -> None:
        self.diagnostics: list[Diagnostic] = []

        # Will be set during analysis
        self.types: dict[str, TypeDeclNode] = {}
        self.enums: dict[str, EnumDeclNode] = {}
        self.ref_resolver: TypeReferenceResolver | None = None
        self.spread_resolver: SpreadResolver | None = None

        # Fully expanded fields of each type, filled in spread order
        self._materialized: dict[str, tuple[FieldDef, ...]] = {}

        # Synthesized record names (inline objects, operation payloads) and where they come from
        self._synthesized: dict[str, Position] = {}

    def analyze(self, program: Program) -> IR:
        """
        Analyze the program and build the IR.

        Args:
            program: All loaded source files, in merge order

        Returns:
            The complete IR

        Raises:
            CompileError: With every diagnostic found, if any
        """
        self.diagnostics = []
        self._materialized = {}
        self._synthesized = {}

        registry = self._register(program.declarations())
        self.types = registry["type"]
        self.enums = registry["enum"]

        enum_defs = [e for e in (self._build_enum(d) for d in self.enums.values()) if e is not None]
        enum_types = {e.name: e.enum_type for e in enum_defs}

        self.ref_resolver = TypeReferenceResolver(set(self.types), enum_types, self._resolve_inline_block)
        self.spread_resolver = SpreadResolver(self.types)

        order = self.spread_resolver.resolve_order()
        for name in order or []:
            self._materialized[name] = self._resolve_block(self.types[name].body, name)

        type_defs = [
            TypeDef(
                name=name,
                fields=self._materialized[name],
                doc=normalize_doc(decl.doc),
                deprecated=_deprecation(decl.deprecated),
            )
            for name, decl in self.types.items()
            if name in self._materialized
        ]
        self._check_required_cycles(type_defs)

        constants = [c for c in (self._build_constant(d) for d in registry["const"].values()) if c is not None]
        patterns = [p for p in (self._build_pattern(d) for d in registry["pattern"].values()) if p is not None]
        rpcs = [self._build_rpc(d) for d in registry["rpc"].values()]

        docs = []
        for doc in program.docs():
            content = normalize_doc(doc.content)
            if content is not None:
                docs.append(DocDef(content=content))

        self.diagnostics.extend(self.spread_resolver.diagnostics)
        self.diagnostics.extend(self.ref_resolver.diagnostics)
        if self.diagnostics:
            raise CompileError(self.diagnostics)

        ir = IR(
            types=tuple(sorted(type_defs, key=lambda t: t.name)),
            enums=tuple(sorted(enum_defs, key=lambda e: e.name)),
            constants=tuple(sorted(constants, key=lambda c: c.name)),
            patterns=tuple(sorted(patterns, key=lambda p: p.name)),
            rpcs=tuple(rpcs),
            procedures=tuple(op for rpc in rpcs for op in rpc.procs),
            streams=tuple(op for rpc in rpcs for op in rpc.streams),
            docs=tuple(docs),
        )
        logger.debug(
            "Built IR: %d types, %d enums, %d constants, %d patterns, %d rpcs",
            len(ir.types),
            len(ir.enums),
            len(ir.constants),
            len(ir.patterns),
            len(ir.rpcs),
        )
        return ir

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def _register(self, declarations: list[DeclarationNode]) -> dict[str, dict]:
        """Index declarations by kind and name, reporting duplicates."""
        registry: dict[str, dict] = {kind: {} for kind in DUPLICATE_CODES}
        for decl in declarations:
            seen = registry[decl.KIND]
            if decl.name in seen:
                self._error(
                    decl.position,
                    DUPLICATE_CODES[decl.KIND],
                    f"{decl.KIND} {decl.name!r} is already declared at {self._where(seen[decl.name].position)}",
                )
                continue
            other_kind = {"type": "enum", "enum": "type"}.get(decl.KIND)
            if other_kind and decl.name in registry[other_kind]:
                self._error(
                    decl.position,
                    "E804",
                    f"{decl.KIND} {decl.name!r} collides with {other_kind} declared at "
                    f"{self._where(registry[other_kind][decl.name].position)}",
                )
                continue
            seen[decl.name] = decl
        return registry

    def _build_enum(self, decl: EnumDeclNode) -> EnumDef | None:
        value_kinds = {type(m.value) for m in decl.members if m.value is not None}
        if len(value_kinds) > 1:
            self._error(decl.position, "E301", f"enum {decl.name!r} mixes string and integer values")
            return None
        enum_type = EnumType.INT if value_kinds == {int} else EnumType.STRING

        members = []
        names: dict[str, str] = {}
        values: dict[str, str] = {}
        for member in decl.members:
            name = to_pascal_case(member.name)
            if not name:
                self._error(member.position, "E005", f"enum {decl.name!r} has a member without a name")
                continue
            if enum_type == EnumType.INT and member.value is None:
                self._error(member.position, "E302", f"member {member.name!r} of int enum {decl.name!r} needs a value")
                continue
            value = str(member.value) if member.value is not None else member.name
            if name in names:
                self._error(member.position, "E304", f"enum {decl.name!r} declares member {name!r} twice")
                continue
            if value in values:
                self._error(
                    member.position,
                    "E303",
                    f"enum {decl.name!r} uses value {value!r} for both {values[value]!r} and {name!r}",
                )
                continue
            names[name] = value
            values[value] = name
            members.append(
                EnumMember(
                    name=name,
                    value=value,
                    doc=normalize_doc(member.doc),
                    deprecated=_deprecation(member.deprecated),
                )
            )

        return EnumDef(
            name=decl.name,
            enum_type=enum_type,
            members=tuple(members),
            doc=normalize_doc(decl.doc),
            deprecated=_deprecation(decl.deprecated),
        )

    def _build_constant(self, decl: ConstDeclNode) -> ConstantDef | None:
        value = decl.value
        declared = decl.const_type
        if declared is None:
            if isinstance(value, bool):
                declared = "bool"
            elif isinstance(value, int):
                declared = "int"
            elif isinstance(value, float):
                declared = "float"
            else:
                declared = "string"

        try:
            const_type = ConstType(declared)
            literal = self._const_literal(const_type, value)
        except ValueError:
            self._error(decl.position, "E208", f"constant {decl.name!r} has invalid {declared} value {value!r}")
            return None

        return ConstantDef(
            name=decl.name,
            const_type=const_type,
            value=literal,
            doc=normalize_doc(decl.doc),
            deprecated=_deprecation(decl.deprecated),
        )

    @staticmethod
    def _const_literal(const_type: ConstType, value: object) -> str:
        """Render a constant as its textual literal; raises ValueError when it does not fit."""
        if value is None:
            raise ValueError("missing value")
        if const_type == ConstType.STRING:
            if not isinstance(value, str):
                raise ValueError("not a string")
            return value
        if const_type == ConstType.BOOL:
            if isinstance(value, bool):
                return "true" if value else "false"
            if value in ("true", "false"):
                return value
            raise ValueError("not a bool")
        if isinstance(value, bool):
            raise ValueError("bool is not numeric")
        if const_type == ConstType.INT:
            if isinstance(value, float):
                raise ValueError("not an int")
            return str(int(value))
        number = float(value)
        if not math.isfinite(number):
            raise ValueError("not a finite float")
        return repr(number)

    def _build_pattern(self, decl: PatternDeclNode) -> PatternDef | None:
        try:
            placeholders = compile_pattern(decl.template)
        except PatternSyntaxError as e:
            self._error(decl.position, e.code, f"pattern {decl.name!r}: {e}")
            return None
        return PatternDef(
            name=decl.name,
            template=decl.template,
            placeholders=tuple(placeholders),
            doc=normalize_doc(decl.doc),
            deprecated=_deprecation(decl.deprecated),
        )

    def _build_rpc(self, decl: RpcDeclNode) -> RpcDef:
        seen: set[str] = set()
        procs = []
        streams = []
        for nodes, bucket in ((decl.procs, procs), (decl.streams, streams)):
            for node in nodes:
                if node.name in seen:
                    self._error(node.position, "E702", f"rpc {decl.name!r} declares operation {node.name!r} twice")
                    continue
                seen.add(node.name)
                bucket.append(self._build_operation(decl.name, node))

        docs = [d for d in (normalize_doc(doc) for doc in decl.docs) if d is not None]
        return RpcDef(
            name=decl.name,
            procs=tuple(procs),
            streams=tuple(streams),
            docs=tuple(docs),
            doc=normalize_doc(decl.doc),
            deprecated=_deprecation(decl.deprecated),
        )

    def _build_operation(self, rpc_name: str, node: OperationNode) -> OperationDef:
        prefix = f"{rpc_name}{to_pascal_case(node.name)}"
        self._claim_record_name(f"{prefix}Input", node.position, "operation input")
        self._claim_record_name(f"{prefix}Output", node.position, "operation output")
        return OperationDef(
            name=node.name,
            rpc_name=rpc_name,
            input=self._resolve_operation_block(node.input, f"{prefix}Input"),
            output=self._resolve_operation_block(node.output, f"{prefix}Output"),
            doc=normalize_doc(node.doc),
            deprecated=_deprecation(node.deprecated),
        )

    def _resolve_operation_block(self, block: FieldBlockNode, owner: str) -> tuple[FieldDef, ...]:
        # Operation blocks are not part of the type graph, so check their targets here
        self.spread_resolver.check_targets(block, owner)
        return self._resolve_block(block, owner)

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    def _resolve_block(self, block: FieldBlockNode, owner: str) -> tuple[FieldDef, ...]:
        """Expand spreads, then resolve local fields.

        Spread fields come first, in spread declaration order, followed by the
        block's own fields. A name provided twice is an error.
        """
        fields: list[FieldDef] = []
        origin: dict[str, str] = {}

        for spread in block.spreads:
            # Unknown targets and cycles are reported by the spread resolver
            for spread_field in self._materialized.get(spread, ()):
                if spread_field.name in origin:
                    self._error(
                        block.position,
                        "E203",
                        f"field {spread_field.name!r} of {owner!r} comes from both {origin[spread_field.name]} "
                        f"and spread {spread!r}",
                    )
                    continue
                origin[spread_field.name] = f"spread {spread!r}"
                fields.append(spread_field)

        for field in block.fields:
            if field.name in origin:
                code = "E701" if origin[field.name] == "local" else "E203"
                self._error(
                    field.position,
                    code,
                    f"field {field.name!r} of {owner!r} is already provided by {origin[field.name]}",
                )
                continue
            origin[field.name] = "local"
            type_ref = self.ref_resolver.resolve(field.type_expr, owner, field.name)
            if type_ref is None:
                continue
            fields.append(
                FieldDef(
                    name=field.name,
                    type_ref=type_ref,
                    optional=field.optional,
                    doc=normalize_doc(field.doc),
                    deprecated=_deprecation(field.deprecated),
                )
            )

        return tuple(fields)

    def _resolve_inline_block(self, block: FieldBlockNode, object_name: str) -> tuple[FieldDef, ...]:
        self._claim_record_name(object_name, block.position, "inline object")
        return self._resolve_block(block, object_name)

    def _claim_record_name(self, name: str, position: Position, what: str) -> None:
        """Reserve a synthesized record name; it must not clash with any other record."""
        if name in self.types or name in self.enums:
            self._error(position, "E804", f"{what} name {name!r} collides with a declared type or enum")
        elif name in self._synthesized:
            self._error(
                position,
                "E804",
                f"{what} name {name!r} collides with the record synthesized at "
                f"{self._where(self._synthesized[name])}",
            )
        else:
            self._synthesized[name] = position

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _check_required_cycles(self, type_defs: list[TypeDef]) -> None:
        """Report types that reach themselves through required fields only.

        Arrays and maps do not break a cycle; an optional field anywhere on the
        path does.
        """
        required_refs = {t.name: self._required_refs(t.fields) for t in type_defs}
        on_path: list[str] = []
        done: set[str] = set()
        cycles: list[list[str]] = []

        def visit(name: str) -> None:
            on_path.append(name)
            for target in required_refs.get(name, ()):
                if target in on_path:
                    cycles.append(on_path[on_path.index(target) :] + [target])
                elif target not in done:
                    visit(target)
            on_path.pop()
            done.add(name)

        for name in sorted(required_refs):
            if name not in done:
                visit(name)

        reported: set[frozenset[str]] = set()
        for cycle in cycles:
            if frozenset(cycle) in reported:
                continue
            reported.add(frozenset(cycle))
            self._error(
                self.types[cycle[0]].position,
                "E601",
                "circular type dependency: " + " -> ".join(cycle),
            )

    def _required_refs(self, fields: tuple[FieldDef, ...]) -> list[str]:
        refs: list[str] = []
        for field in fields:
            if not field.optional:
                refs.extend(self._type_refs(field.type_ref))
        return refs

    def _type_refs(self, type_ref: TypeRef) -> list[str]:
        if type_ref.kind == TypeKind.TYPE:
            return [type_ref.type_name]
        if type_ref.kind == TypeKind.ARRAY:
            return self._type_refs(type_ref.array_type)
        if type_ref.kind == TypeKind.MAP:
            return self._type_refs(type_ref.map_type)
        if type_ref.kind == TypeKind.OBJECT:
            return self._required_refs(type_ref.object_fields or ())
        return []

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    @staticmethod
    def _where(position: Position) -> str:
        return f"{position.file}:{position.line}:{position.column}"

    def _error(self, position: Position, code: str, message: str) -> None:
        self.diagnostics.append(Diagnostic(position.file, position.line, position.column, code, message))
