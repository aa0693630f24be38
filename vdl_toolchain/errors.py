"""
Exception taxonomy for the VDL toolchain.

Compile-time problems are collected as diagnostics and raised together as a
single CompileError before any generator runs. Generator and output failures
are scoped to one target so that the other targets of a run can complete.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class VdlError(Exception):
    """Base class for all toolchain errors."""


@dataclass(frozen=True)
class Diagnostic:
    """A single compile diagnostic attached to a source location."""

    file: str
    line: int
    column: int
    code: str
    message: str

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}: error[{self.code}]: {self.message}"


class ConfigError(VdlError):
    """Raised when the project configuration is invalid."""


class CompileError(VdlError):
    """Raised when the schema cannot be turned into a valid IR."""

    def __init__(self, diagnostics: list[Diagnostic]):
        self.diagnostics = list(diagnostics)
        super().__init__("\n".join(str(d) for d in self.diagnostics))


class GeneratorError(VdlError):
    """Raised when a single generation target fails."""

    def __init__(self, message: str, target: str | None = None):
        self.target = target
        super().__init__(message)


class BackendError(GeneratorError):
    """Raised when a built-in generator cannot render its output."""


class PluginLaunchError(GeneratorError):
    """Raised when the plugin command cannot be started."""


class PluginExitError(GeneratorError):
    """Raised when a plugin exits with a non-zero status."""

    def __init__(self, exit_code: int, stderr: str, target: str | None = None):
        self.exit_code = exit_code
        self.stderr = stderr
        message = f"plugin exited with code {exit_code}"
        if stderr.strip():
            message += f": {stderr.strip()}"
        super().__init__(message, target)


class PluginResponseError(GeneratorError):
    """Raised when plugin stdout is not a valid response document."""


class PluginTimeoutError(GeneratorError):
    """Raised when a plugin does not finish before its deadline."""

    def __init__(self, timeout: float, target: str | None = None):
        self.timeout = timeout
        super().__init__(f"plugin timed out after {timeout:g}s and was killed", target)


class OutputError(VdlError):
    """Raised when generated files cannot be written."""

    def __init__(self, message: str, path: Path | str, target: str | None = None):
        self.path = Path(path)
        self.target = target
        super().__init__(f"{message}: {path}")
