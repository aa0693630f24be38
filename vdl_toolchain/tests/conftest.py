"""Shared fixtures: schema files on disk and compiled IR."""

from __future__ import annotations

import copy
import json

import pytest

from vdl_toolchain.pipeline.analyzer import SchemaAnalyzer
from vdl_toolchain.pipeline.schema_ast import SchemaLoader


@pytest.fixture
def write_schema(tmp_path):
    """Write a parsed VDL document under tmp_path and return its path."""

    def write(name, declarations, includes=None):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        document = {"declarations": declarations}
        if includes:
            document["includes"] = includes
        path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        return path

    return write


@pytest.fixture
def compile_schema(write_schema):
    """Compile a single-file schema to IR."""

    def compile_(declarations):
        path = write_schema("main.vdl", declarations)
        return SchemaAnalyzer().analyze(SchemaLoader().load(path))

    return compile_


def _field(name, type_, optional=False, **extra):
    return {"name": name, "type": type_, "optional": optional, **extra}


_SAMPLE_DECLARATIONS = [
    {
        "kind": "type",
        "name": "BaseEntity",
        "doc": "Common fields.",
        "fields": [_field("id", "string"), _field("createdAt", "datetime")],
    },
    {
        "kind": "type",
        "name": "User",
        "spreads": ["BaseEntity"],
        "fields": [
            _field("email", "string"),
            _field("age", "int", optional=True),
            _field("score", "float"),
            _field("role", "Role"),
            _field("tags", "string[]", optional=True),
            _field("attributes", "map<int>", optional=True),
            _field("address", {"object": {"fields": [_field("city", "string"), _field("zip", "string", optional=True)]}}),
        ],
    },
    {"kind": "enum", "name": "Role", "members": ["Admin", "Member"]},
    {"kind": "enum", "name": "Priority", "members": [{"name": "Low", "value": 1}, {"name": "High", "value": 2}]},
    {"kind": "const", "name": "maxUsers", "value": 100},
    {"kind": "const", "name": "apiName", "value": "users"},
    {"kind": "pattern", "name": "UserProfile", "template": "/users/{userId}/profile"},
    {
        "kind": "rpc",
        "name": "Users",
        "doc": "User management.",
        "procs": [
            {
                "name": "GetUser",
                "input": {"fields": [_field("userId", "string")]},
                "output": {"fields": [_field("user", "User")]},
            }
        ],
        "streams": [
            {
                "name": "Watch",
                "input": {"fields": [_field("userId", "string")]},
                "output": {"fields": [_field("user", "User"), _field("priority", "Priority", optional=True)]},
            }
        ],
    },
]


@pytest.fixture
def sample_declarations():
    """A schema exercising every declaration kind."""
    return copy.deepcopy(_SAMPLE_DECLARATIONS)


@pytest.fixture
def sample_ir(compile_schema, sample_declarations):
    return compile_schema(sample_declarations)
