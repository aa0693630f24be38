"""Tests for the Python generator.

The generated package is written to tmp_path and imported, so these tests
exercise the emitted runtime code, not only its text.
"""

from __future__ import annotations

import ast
import importlib.util
import itertools
import sys

import pytest

from vdl_toolchain.pipeline.backends import PythonBackend
from vdl_toolchain.pipeline.backends.base import GENERATION_COMMENT
from vdl_toolchain.pipeline.config import GeneratorOptions
from vdl_toolchain.pipeline.output import AtomicWriter

_package_ids = itertools.count()


@pytest.fixture
def load_generated(tmp_path):
    """Write generated files as a package and import it."""
    loaded: list[str] = []

    def load(files):
        name = f"vdl_generated_{next(_package_ids)}"
        root = tmp_path / name
        AtomicWriter(root).write_all(files)
        spec = importlib.util.spec_from_file_location(name, root / "__init__.py", submodule_search_locations=[str(root)])
        package = importlib.util.module_from_spec(spec)
        sys.modules[name] = package
        loaded.append(name)
        spec.loader.exec_module(package)
        return package

    yield load

    for name in list(sys.modules):
        if any(name == n or name.startswith(n + ".") for n in loaded):
            del sys.modules[name]


@pytest.fixture
def generated(sample_ir, load_generated):
    return load_generated(PythonBackend().generate(sample_ir))


USER_DATA = {
    "id": "u1",
    "createdAt": "2024-01-02T03:04:05+00:00",
    "email": "ada@example.com",
    "score": 3,
    "role": "Admin",
    "address": {"city": "Paris"},
}


class TestGeneratedFiles:
    def test_files(self, sample_ir):
        files = PythonBackend().generate(sample_ir)
        assert [f.path for f in files] == [
            "types.py",
            "constants.py",
            "patterns.py",
            "catalog.py",
            "services.py",
            "__init__.py",
        ]
        for generated_file in files:
            ast.parse(generated_file.content)
            assert generated_file.content.startswith(f"# {GENERATION_COMMENT}\n")

    def test_deterministic(self, sample_ir):
        first = PythonBackend().generate(sample_ir)
        second = PythonBackend({"gen_types": True}).generate(sample_ir)
        assert first == second

    def test_category_suppressed(self, sample_ir):
        files = PythonBackend(GeneratorOptions(gen_patterns=False, gen_rpc=False)).generate(sample_ir)
        paths = [f.path for f in files]
        init = next(f for f in files if f.path == "__init__.py").content

        assert paths == ["types.py", "constants.py", "__init__.py"]
        assert "patterns" not in init
        assert "catalog" not in init

    def test_services_need_types(self, sample_ir):
        files = PythonBackend({"gen_types": False}).generate(sample_ir)
        assert [f.path for f in files] == ["constants.py", "patterns.py", "catalog.py", "__init__.py"]

    def test_empty_schema(self, compile_schema, load_generated):
        files = PythonBackend().generate(compile_schema([]))
        assert [f.path for f in files] == ["__init__.py"]
        assert load_generated(files).__all__ == []

    def test_no_generation_comment(self, sample_ir):
        files = PythonBackend({"add_generation_comment": False}).generate(sample_ir)
        assert all(GENERATION_COMMENT not in f.content for f in files)

    def test_docstrings(self, sample_ir):
        types = next(f for f in PythonBackend().generate(sample_ir) if f.path == "types.py").content
        assert 'class BaseEntity:\n    """Common fields."""' in types


class TestRecords:
    def test_round_trip(self, generated):
        user = generated.User.from_dict(USER_DATA)
        encoded = user.to_dict()

        assert encoded == USER_DATA
        assert list(encoded) == ["id", "createdAt", "email", "score", "role", "address"]
        assert generated.User.from_dict(encoded).to_dict() == encoded
        assert generated.User.from_dict(encoded) == user

    def test_field_names(self, generated):
        user = generated.User.from_dict(USER_DATA)
        assert user.id_ == "u1"
        assert user.created_at.year == 2024
        assert user.role is generated.Role.ADMIN
        assert user.address == generated.UserAddress(city="Paris")

    def test_absent_optional_not_emitted(self, generated):
        user = generated.User.from_dict(USER_DATA)
        assert user.age is None
        assert user.tags is None
        assert "age" not in user.to_dict()
        assert "zip" not in user.to_dict()["address"]

    def test_optional_values_round_trip(self, generated):
        data = dict(USER_DATA, age=36, tags=["a", "b"], attributes={"x": 1})
        assert generated.User.from_dict(data).to_dict() == data

    def test_null_optional_is_absent(self, generated):
        user = generated.User.from_dict(dict(USER_DATA, age=None))
        assert "age" not in user.to_dict()

    def test_missing_required_fails(self, generated):
        data = dict(USER_DATA)
        del data["email"]
        with pytest.raises(ValueError, match="email"):
            generated.User.from_dict(data)

    def test_numeric_coercion(self, generated):
        user = generated.User.from_dict(dict(USER_DATA, age=3.0, score=3))
        assert user.age == 3 and type(user.age) is int
        assert user.score == 3.0 and type(user.score) is float

    def test_fractional_int_rejected(self, generated):
        with pytest.raises(ValueError):
            generated.User.from_dict(dict(USER_DATA, age=3.5))

    def test_wrong_types_rejected(self, generated):
        with pytest.raises(TypeError):
            generated.User.from_dict(dict(USER_DATA, email=5))
        with pytest.raises(TypeError):
            generated.User.from_dict(dict(USER_DATA, age=True))
        with pytest.raises(TypeError):
            generated.User.from_dict(["not", "an", "object"])

    def test_unknown_enum_value_in_record(self, generated):
        with pytest.raises(ValueError, match="Role"):
            generated.User.from_dict(dict(USER_DATA, role="Owner"))

    def test_operation_payloads(self, generated):
        payload = generated.UsersWatchOutput.from_dict({"user": USER_DATA, "priority": 2})
        assert payload.priority is generated.Priority.HIGH
        assert payload.to_dict() == {"user": USER_DATA, "priority": 2}
        assert generated.UsersGetUserInput(user_id="42").to_dict() == {"userId": "42"}

    def test_reserved_words(self, compile_schema, load_generated):
        ir = compile_schema(
            [{"kind": "type", "name": "Token", "fields": [{"name": "class", "type": "string"}, {"name": "from", "type": "int[][]"}]}]
        )
        package = load_generated(PythonBackend().generate(ir))

        token = package.Token.from_dict({"class": "a", "from": [[1], [2, 3]]})
        assert token.class_ == "a"
        assert token.from_ == [[1], [2, 3]]
        assert token.to_dict() == {"class": "a", "from": [[1], [2, 3]]}


class TestEnums:
    def test_string_enum(self, generated):
        assert generated.Role.from_value("Member") is generated.Role.MEMBER
        assert generated.Role.ADMIN.value == "Admin"

    def test_int_enum(self, generated):
        assert generated.Priority.from_value(1) is generated.Priority.LOW
        assert generated.Priority.HIGH == 2

    def test_unknown_value_is_none(self, generated):
        assert generated.Role.from_value("Owner") is None
        assert generated.Priority.from_value(99) is None
        assert generated.Priority.from_value(True) is None


class TestOtherModules:
    def test_constants(self, generated):
        assert generated.MAX_USERS == 100
        assert generated.API_NAME == "users"

    def test_patterns(self, generated):
        assert generated.user_profile("42") == "/users/42/profile"

    def test_repeated_placeholder(self, compile_schema, load_generated):
        ir = compile_schema([{"kind": "pattern", "name": "Copy", "template": "/{id}/copy/{id}"}])
        package = load_generated(PythonBackend().generate(ir))
        assert package.copy("7") == "/7/copy/7"

    def test_catalog(self, generated):
        assert generated.operation_type("/Users/GetUser") is generated.OperationType.PROC
        assert generated.operation_type("/Users/Watch") is generated.OperationType.STREAM
        assert generated.operation_type("/Users/Missing") is None
        assert [op.path for op in generated.VDL_PROCEDURES] == ["/Users/GetUser"]

    def test_service_stub(self, generated):
        service = generated.UsersService
        assert service.__abstractmethods__ == frozenset({"get_user", "watch"})

        class Impl(service):
            def get_user(self, input_):
                return generated.UsersGetUserOutput(user=generated.User.from_dict(USER_DATA))

            def watch(self, input_):
                yield from ()

        assert Impl().get_user(generated.UsersGetUserInput(user_id="u1")).user.email == "ada@example.com"
