"""
Analyzer module.

Contains spread expansion, reference resolution, pattern compilation and IR
building.
"""

from __future__ import annotations

from .analyzer import SchemaAnalyzer
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
    ProcedureDef,
    RpcDef,
    StreamDef,
    TypeDef,
    TypeKind,
    TypeRef,
)
from .patterns import compile_pattern, interpolate

__all__ = [
    "IR",
    "ConstantDef",
    "ConstType",
    "Deprecation",
    "DocDef",
    "EnumDef",
    "EnumMember",
    "EnumType",
    "FieldDef",
    "OperationDef",
    "PatternDef",
    "ProcedureDef",
    "RpcDef",
    "SchemaAnalyzer",
    "StreamDef",
    "TypeDef",
    "TypeKind",
    "TypeRef",
    "compile_pattern",
    "interpolate",
]
