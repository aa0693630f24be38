"""
TypeScript code generation backend.

Generates interfaces with encode/decode functions, const-object enums,
constants, pattern helpers, a route catalog and service interfaces from IR.
"""

from __future__ import annotations

import json
from typing import Any

from ...utils import TYPESCRIPT_RESERVED, to_camel_case, to_pascal_case, to_upper_snake_case
from ..analyzer.ir_nodes import IR, ConstType, EnumType, FieldDef, TypeKind, TypeRef
from ..output import GeneratedFile
from .base import CodeBackend, RecordDef


def _comment(doc: str | None, deprecated: Any, indent: str = "") -> str | None:
    """Render a JSDoc block, or None when there is nothing to say."""
    lines = doc.split("\n") if doc else []
    if deprecated is not None:
        lines.append(f"@deprecated {deprecated.message}".rstrip())
    if not lines:
        return None
    body = "\n".join(f"{indent} * {line}".rstrip() for line in (line.replace("*/", "*\\/") for line in lines))
    return f"/**\n{body}\n{indent} */"


class TypeScriptBackend(CodeBackend):
    """TypeScript code generation backend."""

    TEMPLATE_LANG = "typescript"
    RESERVED = TYPESCRIPT_RESERVED

    TYPE_MAP = {
        "string": "string",
        "int": "number",
        "float": "number",
        "bool": "boolean",
        "datetime": "Date",
    }

    DECODERS = {
        "string": "decodeString",
        "int": "decodeInt",
        "float": "decodeFloat",
        "bool": "decodeBool",
        "datetime": "decodeDate",
    }

    def generate(self, ir: IR) -> list[GeneratedFile]:
        """Generate the TypeScript module files from IR."""
        files: list[GeneratedFile] = []
        modules: list[str] = []

        records = self.records(ir)
        if self.options.gen_types and (records or ir.enums):
            files.append(self._generate_types(ir, records))
            modules.append("types")

        if self.options.gen_constants and ir.constants:
            files.append(GeneratedFile("constants.ts", self.render("constants.ts.jinja2", constants=self._constant_contexts(ir))))
            modules.append("constants")

        if self.options.gen_patterns and ir.patterns:
            files.append(GeneratedFile("patterns.ts", self.render("patterns.ts.jinja2", patterns=self._pattern_contexts(ir))))
            modules.append("patterns")

        if self.options.gen_rpc and ir.rpcs:
            # Service interfaces refer to the generated payload types
            services = self._service_contexts(ir) if self.options.gen_types else []
            imports = sorted({name for s in services for m in s["methods"] for name in m["imports"]})
            content = self.render("catalog.ts.jinja2", ir=ir, services=services, imports=imports)
            files.append(GeneratedFile("catalog.ts", content))
            modules.append("catalog")

        files.append(GeneratedFile("index.ts", self.render("index.ts.jinja2", modules=modules)))
        return files

    def translate_type(self, type_ref: TypeRef) -> str:
        """Translate an IR type to a TypeScript type."""
        if type_ref.kind == TypeKind.PRIMITIVE:
            return self.TYPE_MAP[type_ref.primitive_name]
        if type_ref.kind == TypeKind.TYPE:
            return type_ref.type_name
        if type_ref.kind == TypeKind.ENUM:
            return type_ref.enum_name
        if type_ref.kind == TypeKind.OBJECT:
            return type_ref.object_name
        if type_ref.kind == TypeKind.MAP:
            return f"Record<string, {self.translate_type(type_ref.map_type)}>"
        element = self.translate_type(type_ref.array_type)
        if " " in element:
            element = f"({element})"
        return element + "[]" * type_ref.array_dims

    def decoder(self, type_ref: TypeRef) -> str:
        if type_ref.kind == TypeKind.PRIMITIVE:
            return self.DECODERS[type_ref.primitive_name]
        if type_ref.kind == TypeKind.ENUM:
            return f"decodeEnum(parse{type_ref.enum_name}, {json.dumps(type_ref.enum_name)})"
        if type_ref.kind in (TypeKind.TYPE, TypeKind.OBJECT):
            return f"decode{self.translate_type(type_ref)}"
        if type_ref.kind == TypeKind.MAP:
            return f"decodeMap({self.decoder(type_ref.map_type)})"
        decoder = self.decoder(type_ref.array_type)
        for _ in range(type_ref.array_dims):
            decoder = f"decodeArray({decoder})"
        return decoder

    def encoder(self, type_ref: TypeRef) -> str:
        if type_ref.kind == TypeKind.PRIMITIVE:
            return "encodeDate" if type_ref.primitive_name == "datetime" else "encodeValue"
        if type_ref.kind == TypeKind.ENUM:
            return "encodeValue"
        if type_ref.kind in (TypeKind.TYPE, TypeKind.OBJECT):
            return f"encode{self.translate_type(type_ref)}"
        if type_ref.kind == TypeKind.MAP:
            return f"encodeMap({self.encoder(type_ref.map_type)})"
        encoder = self.encoder(type_ref.array_type)
        for _ in range(type_ref.array_dims):
            encoder = f"encodeArray({encoder})"
        return encoder

    def _generate_types(self, ir: IR, records: list[RecordDef]) -> GeneratedFile:
        enums = []
        for enum_def in ir.enums:
            keys = self.unique_identifiers([m.name for m in enum_def.members], to_pascal_case)
            enums.append(
                {
                    "name": enum_def.name,
                    "comment": _comment(enum_def.doc, enum_def.deprecated),
                    "members": [
                        {
                            "key": key,
                            "literal": member.value if enum_def.enum_type == EnumType.INT else json.dumps(member.value),
                            "comment": _comment(member.doc, member.deprecated, "  "),
                        }
                        for key, member in zip(keys, enum_def.members)
                    ],
                }
            )
        content = self.render("types.ts.jinja2", enums=enums, records=[self._record_context(r) for r in records])
        return GeneratedFile("types.ts", content)

    def _record_context(self, record: RecordDef) -> dict[str, Any]:
        identifiers = self.unique_identifiers([f.name for f in record.fields], to_camel_case)
        return {
            "name": record.name,
            "comment": _comment(record.doc, record.deprecated),
            "fields": [self._field_context(f, identifier) for f, identifier in zip(record.fields, identifiers)],
        }

    def _field_context(self, field: FieldDef, identifier: str) -> dict[str, Any]:
        return {
            "identifier": identifier,
            "wire_literal": json.dumps(field.name),
            "type": self.translate_type(field.type_ref),
            "optional": field.optional,
            "decoder": self.decoder(field.type_ref),
            "encoder": self.encoder(field.type_ref),
            "comment": _comment(field.doc, field.deprecated, "  "),
        }

    def _constant_contexts(self, ir: IR) -> list[dict[str, Any]]:
        identifiers = self.unique_identifiers([c.name for c in ir.constants], to_upper_snake_case)
        return [
            {
                "identifier": identifier,
                "literal": json.dumps(constant.value) if constant.const_type == ConstType.STRING else constant.value,
                "comment": _comment(constant.doc, constant.deprecated),
            }
            for identifier, constant in zip(identifiers, ir.constants)
        ]

    def _pattern_contexts(self, ir: IR) -> list[dict[str, Any]]:
        functions = self.unique_identifiers([p.name for p in ir.patterns], to_camel_case)
        patterns = []
        for function, pattern in zip(functions, ir.patterns):
            args = dict(zip(pattern.placeholders, self.unique_identifiers(list(pattern.placeholders), to_camel_case)))
            parts = [args[text] if is_placeholder else json.dumps(text) for is_placeholder, text in self.pattern_segments(pattern.template)]
            patterns.append(
                {
                    "function": function,
                    "args": list(args.values()),
                    "expression": " + ".join(parts) or '""',
                    "comment": _comment(pattern.doc or f"Builds a path from `{pattern.template}`.", pattern.deprecated),
                }
            )
        return patterns

    def _service_contexts(self, ir: IR) -> list[dict[str, Any]]:
        services = []
        for rpc in ir.rpcs:
            operations = [(op, False) for op in rpc.procs] + [(op, True) for op in rpc.streams]
            methods = self.unique_identifiers([op.name for op, _ in operations], to_camel_case)
            service_methods = []
            for method, (op, is_stream) in zip(methods, operations):
                prefix = f"{op.rpc_name}{to_pascal_case(op.name)}"
                output = f"AsyncIterable<{prefix}Output>" if is_stream else f"Promise<{prefix}Output>"
                service_methods.append(
                    {
                        "name": method,
                        "input": f"{prefix}Input",
                        "output": output,
                        "imports": [f"{prefix}Input", f"{prefix}Output"],
                        "comment": _comment(op.doc, op.deprecated, "  "),
                    }
                )
            services.append(
                {
                    "name": f"{rpc.name}Service",
                    "comment": _comment(rpc.doc, rpc.deprecated),
                    "methods": service_methods,
                }
            )
        return services
