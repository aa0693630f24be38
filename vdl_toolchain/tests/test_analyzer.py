"""Tests for IR building: merging, spreads, references, enums, constants and RPC flattening."""

import time

import pytest

from vdl_toolchain.errors import CompileError
from vdl_toolchain.pipeline.analyzer import (
    ConstType,
    Deprecation,
    EnumType,
    SchemaAnalyzer,
    TypeKind,
)
from vdl_toolchain.pipeline.schema_ast import SchemaLoader


def field(name, type_, optional=False, **extra):
    return {"name": name, "type": type_, "optional": optional, **extra}


def type_decl(name, fields=(), spreads=(), **extra):
    return {"kind": "type", "name": name, "fields": list(fields), "spreads": list(spreads), **extra}


def compile_errors(compile_schema, declarations) -> list[str]:
    with pytest.raises(CompileError) as excinfo:
        compile_schema(declarations)
    return [d.code for d in excinfo.value.diagnostics]


def fields_of(ir, type_name):
    return [f.name for f in next(t for t in ir.types if t.name == type_name).fields]


class TestSpreads:
    def test_spread_fields_come_first(self, sample_ir):
        assert fields_of(sample_ir, "User") == ["id", "createdAt", "email", "age", "score", "role", "tags", "attributes", "address"]
        assert fields_of(sample_ir, "BaseEntity") == ["id", "createdAt"]

    def test_spread_across_files(self, write_schema):
        write_schema("base.vdl", [type_decl("BaseEntity", [field("id", "string")])])
        entry = write_schema(
            "main.vdl",
            [type_decl("User", [field("owner", "Account")], spreads=["BaseEntity"]), type_decl("Account", spreads=["BaseEntity"])],
            includes=["base.vdl"],
        )

        ir = SchemaAnalyzer().analyze(SchemaLoader().load(entry))

        assert fields_of(ir, "User") == ["id", "owner"]
        assert fields_of(ir, "Account") == ["id"]

    def test_transitive_spreads_in_any_declaration_order(self, compile_schema):
        ir = compile_schema(
            [
                type_decl("C", [field("c", "int")], spreads=["B"]),
                type_decl("B", [field("b", "int")], spreads=["A"]),
                type_decl("A", [field("a", "int")]),
            ]
        )
        assert fields_of(ir, "C") == ["a", "b", "c"]

    def test_conflict_with_local_field(self, compile_schema):
        errors = compile_errors(
            compile_schema,
            [type_decl("Base", [field("id", "string")]), type_decl("User", [field("id", "int")], spreads=["Base"])],
        )
        assert errors == ["E203"]

    def test_conflict_between_spreads(self, compile_schema):
        errors = compile_errors(
            compile_schema,
            [
                type_decl("A", [field("id", "string")]),
                type_decl("B", [field("id", "string")]),
                type_decl("User", spreads=["A", "B"]),
            ],
        )
        assert errors == ["E203"]

    def test_duplicate_local_field(self, compile_schema):
        errors = compile_errors(compile_schema, [type_decl("User", [field("id", "string"), field("id", "int")])])
        assert errors == ["E701"]

    def test_unknown_spread_target(self, compile_schema):
        errors = compile_errors(compile_schema, [type_decl("User", spreads=["Missing"])])
        assert errors == ["E202"]

    def test_spread_cycle(self, compile_schema):
        with pytest.raises(CompileError) as excinfo:
            compile_schema([type_decl("A", spreads=["B"]), type_decl("B", spreads=["A"])])
        [diagnostic] = excinfo.value.diagnostics
        assert diagnostic.code == "E204"
        assert "circular spread" in diagnostic.message

    def test_spread_in_operation_block(self, compile_schema):
        ir = compile_schema(
            [
                type_decl("Paging", [field("page", "int"), field("size", "int")]),
                {
                    "kind": "rpc",
                    "name": "Users",
                    "procs": [{"name": "List", "input": {"spreads": ["Paging"], "fields": [field("query", "string")]}}],
                },
            ]
        )
        assert [f.name for f in ir.procedures[0].input] == ["page", "size", "query"]

    def test_unknown_spread_in_operation_block(self, compile_schema):
        errors = compile_errors(
            compile_schema,
            [{"kind": "rpc", "name": "Users", "procs": [{"name": "List", "input": {"spreads": ["Paging"]}}]}],
        )
        assert errors == ["E202"]


class TestReferences:
    def test_type_refs(self, sample_ir):
        user = next(t for t in sample_ir.types if t.name == "User")
        by_name = {f.name: f for f in user.fields}

        assert by_name["email"].type_ref.primitive_name == "string"
        assert by_name["createdAt"].type_ref.primitive_name == "datetime"
        assert by_name["role"].type_ref.kind == TypeKind.ENUM
        assert by_name["role"].type_ref.enum_type == EnumType.STRING
        assert by_name["tags"].type_ref.kind == TypeKind.ARRAY
        assert by_name["tags"].type_ref.array_dims == 1
        assert by_name["attributes"].type_ref.map_type.primitive_name == "int"
        assert by_name["age"].optional is True
        assert by_name["email"].optional is False

    def test_inline_object_name(self, sample_ir):
        user = next(t for t in sample_ir.types if t.name == "User")
        address = next(f for f in user.fields if f.name == "address")

        assert address.type_ref.kind == TypeKind.OBJECT
        assert address.type_ref.object_name == "UserAddress"
        assert [f.name for f in address.type_ref.object_fields] == ["city", "zip"]

    def test_inline_object_in_operation(self, compile_schema):
        ir = compile_schema(
            [
                {
                    "kind": "rpc",
                    "name": "Users",
                    "procs": [
                        {
                            "name": "search",
                            "input": {"fields": [field("filter", {"object": {"fields": [field("name", "string")]}, "dims": 1})]},
                        }
                    ],
                }
            ]
        )
        filter_ref = ir.procedures[0].input[0].type_ref
        assert filter_ref.kind == TypeKind.ARRAY
        assert filter_ref.array_type.object_name == "UsersSearchInputFilter"

    def test_inline_object_name_collision(self, compile_schema):
        errors = compile_errors(
            compile_schema,
            [type_decl("UserAddress"), type_decl("User", [field("address", {"object": {"fields": []}})])],
        )
        assert errors == ["E804"]

    def test_inline_objects_with_same_synthesized_name(self, compile_schema):
        with pytest.raises(CompileError) as excinfo:
            compile_schema(
                [
                    type_decl("User", [field("homeAddress", {"object": {"fields": [field("street", "string")]}})]),
                    type_decl("UserHome", [field("address", {"object": {"fields": [field("zip", "string")]}})]),
                ]
            )
        [diagnostic] = excinfo.value.diagnostics
        assert diagnostic.code == "E804"
        assert "'UserHomeAddress'" in diagnostic.message

    def test_inline_object_named_like_operation_payload(self, compile_schema):
        errors = compile_errors(
            compile_schema,
            [
                type_decl("Users", [field("getUserInput", {"object": {"fields": []}})]),
                {"kind": "rpc", "name": "Users", "procs": [{"name": "GetUser"}]},
            ],
        )
        assert errors == ["E804"]

    def test_operation_payload_named_like_declared_type(self, compile_schema):
        with pytest.raises(CompileError) as excinfo:
            compile_schema(
                [
                    type_decl("UsersGetUserInput", [field("id", "string")]),
                    {"kind": "rpc", "name": "Users", "procs": [{"name": "GetUser"}]},
                ]
            )
        [diagnostic] = excinfo.value.diagnostics
        assert diagnostic.code == "E804"
        assert "'UsersGetUserInput'" in diagnostic.message

    def test_operation_payloads_with_same_name(self, compile_schema):
        errors = compile_errors(
            compile_schema,
            [
                {"kind": "rpc", "name": "Users", "procs": [{"name": "GetUser"}]},
                {"kind": "rpc", "name": "UsersGet", "procs": [{"name": "User"}]},
            ],
        )
        assert errors == ["E804", "E804"]

    def test_unresolved_reference_suggests_names(self, compile_schema):
        with pytest.raises(CompileError) as excinfo:
            compile_schema([type_decl("User"), type_decl("Team", [field("owner", "Usr")])])
        [diagnostic] = excinfo.value.diagnostics
        assert diagnostic.code == "E201"
        assert "'User'" in diagnostic.message

    def test_required_cycle(self, compile_schema):
        errors = compile_errors(
            compile_schema,
            [type_decl("A", [field("b", "B")]), type_decl("B", [field("a", "A")])],
        )
        assert errors == ["E601"]

    def test_required_cycle_through_array(self, compile_schema):
        errors = compile_errors(compile_schema, [type_decl("Node", [field("children", "Node[]")])])
        assert errors == ["E601"]

    def test_required_cycle_check_on_wide_dag(self, compile_schema):
        depth = 40
        declarations = [
            type_decl(f"Level{i}", [field("left", f"Level{i + 1}"), field("right", f"Level{i + 1}")])
            for i in range(depth)
        ]
        declarations.append(type_decl(f"Level{depth}", [field("value", "int")]))

        start = time.perf_counter()
        ir = compile_schema(declarations)
        elapsed = time.perf_counter() - start

        assert len(ir.types) == depth + 1
        assert elapsed < 5

    def test_optional_field_breaks_cycle(self, compile_schema):
        ir = compile_schema([type_decl("Node", [field("parent", "Node", optional=True)])])
        assert fields_of(ir, "Node") == ["parent"]


class TestDeclarations:
    def test_duplicates_across_files(self, write_schema):
        write_schema("other.vdl", [type_decl("User"), {"kind": "const", "name": "limit", "value": 1}])
        entry = write_schema(
            "main.vdl",
            [type_decl("User"), {"kind": "const", "name": "limit", "value": 2}],
            includes=["other.vdl"],
        )

        with pytest.raises(CompileError) as excinfo:
            SchemaAnalyzer().analyze(SchemaLoader().load(entry))
        assert sorted(d.code for d in excinfo.value.diagnostics) == ["E801", "E803"]
        assert "other.vdl" in excinfo.value.diagnostics[0].message

    def test_type_enum_collision(self, compile_schema):
        errors = compile_errors(compile_schema, [type_decl("Role"), {"kind": "enum", "name": "Role", "members": ["A"]}])
        assert errors == ["E804"]

    def test_all_errors_reported_together(self, compile_schema):
        errors = compile_errors(
            compile_schema,
            [
                type_decl("User", [field("team", "Missing")]),
                {"kind": "pattern", "name": "Broken", "template": "/x/{id"},
                {"kind": "const", "name": "limit", "type": "int", "value": "many"},
            ],
        )
        assert sorted(errors) == ["E201", "E208", "E402"]

    def test_sorted_by_name(self, compile_schema):
        ir = compile_schema(
            [
                type_decl("Zebra"),
                type_decl("Apple"),
                {"kind": "enum", "name": "Z", "members": ["A"]},
                {"kind": "enum", "name": "B", "members": ["A"]},
            ]
        )
        assert [t.name for t in ir.types] == ["Apple", "Zebra"]
        assert [e.name for e in ir.enums] == ["B", "Z"]

    def test_docs_and_deprecation(self, compile_schema):
        ir = compile_schema(
            [
                {"kind": "doc", "content": "\n    Overview\n    of the API\n"},
                type_decl("User", [field("name", "string", deprecated="use fullName")], doc="  A user.  ", deprecated=True),
                {"kind": "doc", "content": "   "},
            ]
        )
        user = ir.types[0]
        assert [d.content for d in ir.docs] == ["Overview\nof the API"]
        assert user.doc == "A user."
        assert user.deprecated == Deprecation("")
        assert user.fields[0].deprecated == Deprecation("use fullName")


class TestEnums:
    def test_string_enum_values_default_to_names(self, sample_ir):
        role = next(e for e in sample_ir.enums if e.name == "Role")
        assert role.enum_type == EnumType.STRING
        assert [(m.name, m.value) for m in role.members] == [("Admin", "Admin"), ("Member", "Member")]

    def test_int_enum(self, sample_ir):
        priority = next(e for e in sample_ir.enums if e.name == "Priority")
        assert priority.enum_type == EnumType.INT
        assert [(m.name, m.value) for m in priority.members] == [("Low", "1"), ("High", "2")]

    @pytest.mark.parametrize(
        "members,code",
        [
            ([{"name": "A", "value": 1}, {"name": "B", "value": "b"}], "E301"),
            ([{"name": "A", "value": 1}, {"name": "B"}], "E302"),
            ([{"name": "A", "value": "x"}, {"name": "B", "value": "x"}], "E303"),
            (["A", "A"], "E304"),
        ],
    )
    def test_invalid_members(self, compile_schema, members, code):
        assert compile_errors(compile_schema, [{"kind": "enum", "name": "E", "members": members}]) == [code]


class TestConstants:
    @pytest.mark.parametrize(
        "decl,const_type,value",
        [
            ({"value": 3}, ConstType.INT, "3"),
            ({"value": 1.5}, ConstType.FLOAT, "1.5"),
            ({"type": "float", "value": 3}, ConstType.FLOAT, "3.0"),
            ({"value": True}, ConstType.BOOL, "true"),
            ({"type": "bool", "value": "false"}, ConstType.BOOL, "false"),
            ({"value": "hello"}, ConstType.STRING, "hello"),
            ({"type": "int", "value": "42"}, ConstType.INT, "42"),
        ],
    )
    def test_literals(self, compile_schema, decl, const_type, value):
        ir = compile_schema([{"kind": "const", "name": "c", **decl}])
        assert (ir.constants[0].const_type, ir.constants[0].value) == (const_type, value)

    @pytest.mark.parametrize(
        "decl",
        [{"type": "int", "value": 2.5}, {"type": "bool", "value": 1}, {"type": "string", "value": 3}, {"type": "bytes", "value": "x"}],
    )
    def test_invalid(self, compile_schema, decl):
        assert compile_errors(compile_schema, [{"kind": "const", "name": "c", **decl}]) == ["E208"]


class TestRpcFlattening:
    def test_operations_flattened(self, sample_ir):
        [rpc] = sample_ir.rpcs
        assert rpc.doc == "User management."
        assert [(p.rpc_name, p.name) for p in sample_ir.procedures] == [("Users", "GetUser")]
        assert [(s.rpc_name, s.name) for s in sample_ir.streams] == [("Users", "Watch")]
        assert sample_ir.procedures[0].path == "/Users/GetUser"
        assert [f.name for f in sample_ir.streams[0].output] == ["user", "priority"]
        assert rpc.procs == sample_ir.procedures

    def test_declaration_order_kept(self, compile_schema):
        ir = compile_schema(
            [
                {"kind": "rpc", "name": "Zeta", "procs": [{"name": "B"}, {"name": "A"}]},
                {"kind": "rpc", "name": "Alpha", "procs": [{"name": "C"}]},
            ]
        )
        assert [r.name for r in ir.rpcs] == ["Zeta", "Alpha"]
        assert [p.path for p in ir.procedures] == ["/Zeta/B", "/Zeta/A", "/Alpha/C"]

    def test_duplicate_operation(self, compile_schema):
        errors = compile_errors(
            compile_schema,
            [{"kind": "rpc", "name": "Users", "procs": [{"name": "Get"}], "streams": [{"name": "Get"}]}],
        )
        assert errors == ["E702"]

    def test_duplicate_rpc(self, compile_schema):
        errors = compile_errors(compile_schema, [{"kind": "rpc", "name": "Users"}, {"kind": "rpc", "name": "Users"}])
        assert errors == ["E806"]
