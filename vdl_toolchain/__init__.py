"""VDL Toolchain

A Python package for compiling VDL schemas into a language-neutral IR and
generating code from it. Ships Python, TypeScript and IR JSON generators
and runs external generator plugins over a JSON stdin/stdout protocol.
"""

__version__ = "0.1.0"

from .errors import CompileError, ConfigError, Diagnostic, GeneratorError, OutputError, VdlError
from .pipeline import (
    IR,
    AtomicWriter,
    PipelineGenerator,
    PluginRunner,
    ProjectConfig,
    RunReport,
    SchemaAnalyzer,
    SchemaLoader,
)

__all__ = [
    "IR",
    "AtomicWriter",
    "CompileError",
    "ConfigError",
    "Diagnostic",
    "GeneratorError",
    "OutputError",
    "PipelineGenerator",
    "PluginRunner",
    "ProjectConfig",
    "RunReport",
    "SchemaAnalyzer",
    "SchemaLoader",
    "VdlError",
]
