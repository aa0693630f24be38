"""
Pipeline - VDL schema compiler and code generators.

This module provides a multi-phase architecture for turning VDL schemas
into code:

1. Phase 1 (Loader/Parser): Read the entry schema and its includes into a Program
2. Phase 2 (Analyzer): Expand spreads, resolve references and build the IR
3. Phase 3 (Backends/Plugins): Generate files per target, concurrently
4. Phase 4 (Output): Atomically write each target's files
"""

from __future__ import annotations

from .analyzer import IR, SchemaAnalyzer
from .config import GeneratorOptions, IrOptions, ProjectConfig, TargetConfig, TargetKind
from .generator import PipelineGenerator, RunReport, TargetResult
from .output import AtomicWriter, GeneratedFile
from .plugin import PluginRequest, PluginResponse, PluginRunner
from .schema_ast import Program, SchemaLoader, SchemaParser

__all__ = [
    "IR",
    "AtomicWriter",
    "GeneratedFile",
    "GeneratorOptions",
    "IrOptions",
    "PipelineGenerator",
    "PluginRequest",
    "PluginResponse",
    "PluginRunner",
    "Program",
    "ProjectConfig",
    "RunReport",
    "SchemaAnalyzer",
    "SchemaLoader",
    "SchemaParser",
    "TargetConfig",
    "TargetKind",
    "TargetResult",
]
