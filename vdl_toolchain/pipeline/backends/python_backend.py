"""
Python code generation backend.

Generates a Python package of dataclasses, enums, constants, pattern helpers,
a route catalog and service stubs from IR.
"""

from __future__ import annotations

import logging
from typing import Any

from ...utils import PYTHON_RESERVED, to_pascal_case, to_snake_case, to_upper_snake_case
from ..analyzer.ir_nodes import IR, ConstType, Deprecation, EnumType, FieldDef, TypeKind, TypeRef
from ..output import GeneratedFile
from .base import CodeBackend, RecordDef

logger = logging.getLogger(__name__)


def docstring(doc: str | None, deprecated: Deprecation | None, indent: str = "    ") -> str | None:
    """Render the body of a docstring, or None when there is nothing to say."""
    parts = [doc] if doc else []
    if deprecated is not None:
        parts.append(f"Deprecated: {deprecated.message}" if deprecated.message else "Deprecated.")
    if not parts:
        return None
    text = "\n\n".join(parts).replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    if text.endswith('"'):
        text = text[:-1] + '\\"'
    lines = text.split("\n")
    if len(lines) == 1:
        return text
    return "\n".join(indent + line if line else "" for line in lines)[len(indent) :] + "\n" + indent


class PythonBackend(CodeBackend):
    """Python code generation backend."""

    TEMPLATE_LANG = "python"
    RESERVED = PYTHON_RESERVED | {"to_dict", "from_dict", "from_value"}

    TYPE_MAP = {
        "string": "str",
        "int": "int",
        "float": "float",
        "bool": "bool",
        "datetime": "datetime",
    }

    # Runtime helpers of the generated types module, by primitive
    DECODERS = {
        "string": "_decode_str",
        "int": "_decode_int",
        "float": "_decode_float",
        "bool": "_decode_bool",
        "datetime": "_decode_datetime",
    }

    def generate(self, ir: IR) -> list[GeneratedFile]:
        """Generate the Python package files from IR."""
        files: list[GeneratedFile] = []
        modules: list[tuple[str, list[str]]] = []

        records = self.records(ir)
        if self.options.gen_types and (records or ir.enums):
            exports = [e.name for e in ir.enums] + [r.name for r in records]
            files.append(self._generate_types(ir, records, exports))
            modules.append(("types", exports))

        if self.options.gen_constants and ir.constants:
            exports = self.unique_identifiers([c.name for c in ir.constants], to_upper_snake_case)
            files.append(self._generate_constants(ir, exports))
            modules.append(("constants", exports))

        if self.options.gen_patterns and ir.patterns:
            patterns = self._pattern_contexts(ir)
            files.append(GeneratedFile("patterns.py", self.render("patterns.py.jinja2", patterns=patterns)))
            modules.append(("patterns", [p["function"] for p in patterns]))

        if self.options.gen_rpc and ir.rpcs:
            files.append(GeneratedFile("catalog.py", self.render("catalog.py.jinja2", ir=ir)))
            modules.append(("catalog", ["OperationType", "OperationDefinition", "VDL_PROCEDURES", "VDL_STREAMS", "VDL_ROUTES", "operation_type"]))
            if self.options.gen_types:
                services = self._service_contexts(ir)
                imports = sorted({name for s in services for m in s["methods"] for name in m["imports"]})
                files.append(GeneratedFile("services.py", self.render("services.py.jinja2", services=services, imports=imports)))
                modules.append(("services", [s["name"] for s in services]))

        if not files:
            logger.warning("Python generator has nothing to emit")
        files.append(GeneratedFile("__init__.py", self.render("__init__.py.jinja2", modules=modules)))
        return files

    def translate_type(self, type_ref: TypeRef) -> str:
        """Translate an IR type to a Python type hint."""
        if type_ref.kind == TypeKind.PRIMITIVE:
            return self.TYPE_MAP[type_ref.primitive_name]
        if type_ref.kind == TypeKind.TYPE:
            return type_ref.type_name
        if type_ref.kind == TypeKind.ENUM:
            return type_ref.enum_name
        if type_ref.kind == TypeKind.OBJECT:
            return type_ref.object_name
        if type_ref.kind == TypeKind.MAP:
            return f"dict[str, {self.translate_type(type_ref.map_type)}]"
        hint = self.translate_type(type_ref.array_type)
        for _ in range(type_ref.array_dims):
            hint = f"list[{hint}]"
        return hint

    def decoder(self, type_ref: TypeRef) -> str:
        """Expression evaluating to a callable that decodes a JSON value of this type."""
        if type_ref.kind == TypeKind.PRIMITIVE:
            return self.DECODERS[type_ref.primitive_name]
        if type_ref.kind == TypeKind.ENUM:
            return f"_decode_enum({type_ref.enum_name})"
        if type_ref.kind in (TypeKind.TYPE, TypeKind.OBJECT):
            return f"{self.translate_type(type_ref)}.from_dict"
        if type_ref.kind == TypeKind.MAP:
            return f"_decode_map({self.decoder(type_ref.map_type)})"
        decoder = self.decoder(type_ref.array_type)
        for _ in range(type_ref.array_dims):
            decoder = f"_decode_list({decoder})"
        return decoder

    def encoder(self, type_ref: TypeRef) -> str:
        """Expression evaluating to a callable that encodes a value of this type to JSON."""
        if type_ref.kind == TypeKind.PRIMITIVE:
            return "_encode_datetime" if type_ref.primitive_name == "datetime" else "_encode_value"
        if type_ref.kind == TypeKind.ENUM:
            return "_encode_enum"
        if type_ref.kind in (TypeKind.TYPE, TypeKind.OBJECT):
            return "_encode_record"
        if type_ref.kind == TypeKind.MAP:
            return f"_encode_map({self.encoder(type_ref.map_type)})"
        encoder = self.encoder(type_ref.array_type)
        for _ in range(type_ref.array_dims):
            encoder = f"_encode_list({encoder})"
        return encoder

    def _generate_types(self, ir: IR, records: list[RecordDef], exports: list[str]) -> GeneratedFile:
        enums = []
        for enum_def in ir.enums:
            identifiers = self.unique_identifiers([m.name for m in enum_def.members], to_upper_snake_case)
            members = [
                {
                    "identifier": identifier,
                    "literal": member.value if enum_def.enum_type == EnumType.INT else repr(member.value),
                    "doc": member.doc,
                }
                for identifier, member in zip(identifiers, enum_def.members)
            ]
            enums.append(
                {
                    "def": enum_def,
                    "is_int": enum_def.enum_type == EnumType.INT,
                    "members": members,
                    "docstring": docstring(enum_def.doc, enum_def.deprecated),
                }
            )

        content = self.render(
            "types.py.jinja2",
            enums=enums,
            records=[self._record_context(r) for r in records],
            exports=exports,
        )
        return GeneratedFile("types.py", content)

    def _record_context(self, record: RecordDef) -> dict[str, Any]:
        identifiers = dict(zip([f.name for f in record.fields], self.unique_identifiers([f.name for f in record.fields], to_snake_case)))
        return {
            "name": record.name,
            "docstring": docstring(record.doc, record.deprecated),
            # Dataclass declaration order: required fields first
            "declared": [self._field_context(f, identifiers[f.name]) for f in self.order_fields(record.fields)],
            # Wire order, used for encoding
            "fields": [self._field_context(f, identifiers[f.name]) for f in record.fields],
        }

    def _field_context(self, field: FieldDef, identifier: str) -> dict[str, Any]:
        return {
            "identifier": identifier,
            "wire_literal": repr(field.name),
            "hint": self.translate_type(field.type_ref),
            "optional": field.optional,
            "decoder": self.decoder(field.type_ref),
            "encoder": self.encoder(field.type_ref),
            "doc": field.doc,
            "deprecated": field.deprecated,
        }

    def _generate_constants(self, ir: IR, exports: list[str]) -> GeneratedFile:
        constants = []
        for identifier, constant in zip(exports, ir.constants):
            if constant.const_type == ConstType.STRING:
                literal = repr(constant.value)
            elif constant.const_type == ConstType.BOOL:
                literal = "True" if constant.value == "true" else "False"
            else:
                literal = constant.value
            constants.append(
                {
                    "identifier": identifier,
                    "hint": {"string": "str"}.get(constant.const_type.value, constant.const_type.value),
                    "literal": literal,
                    "doc": constant.doc,
                }
            )
        return GeneratedFile("constants.py", self.render("constants.py.jinja2", constants=constants))

    def _pattern_contexts(self, ir: IR) -> list[dict[str, Any]]:
        functions = self.unique_identifiers([p.name for p in ir.patterns], to_snake_case)
        patterns = []
        for function, pattern in zip(functions, ir.patterns):
            args = dict(zip(pattern.placeholders, self.unique_identifiers(list(pattern.placeholders), to_snake_case)))
            parts = [args[text] if is_placeholder else repr(text) for is_placeholder, text in self.pattern_segments(pattern.template)]
            patterns.append(
                {
                    "function": function,
                    "args": list(args.values()),
                    "expression": " + ".join(parts) or repr(""),
                    "docstring": docstring(pattern.doc or f"Build a path from {pattern.template!r}.", pattern.deprecated),
                }
            )
        return patterns

    def _service_contexts(self, ir: IR) -> list[dict[str, Any]]:
        services = []
        for rpc in ir.rpcs:
            operations = list(rpc.procs) + list(rpc.streams)
            methods = self.unique_identifiers([op.name for op in operations], to_snake_case)
            service_methods = []
            for method, op in zip(methods, operations):
                prefix = f"{op.rpc_name}{to_pascal_case(op.name)}"
                is_stream = op in rpc.streams
                service_methods.append(
                    {
                        "name": method,
                        "input": f"{prefix}Input",
                        "output": f"Iterator[{prefix}Output]" if is_stream else f"{prefix}Output",
                        "imports": [f"{prefix}Input", f"{prefix}Output"],
                        "docstring": docstring(op.doc, op.deprecated, "        "),
                    }
                )
            services.append(
                {
                    "name": f"{rpc.name}Service",
                    "docstring": docstring(rpc.doc, rpc.deprecated),
                    "methods": service_methods,
                }
            )
        return services
