"""
Configuration for the generation pipeline.

A project names one schema entry file and a list of targets. Each target is
either a built-in generator or an external plugin command, writing into its
own output directory.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any

from ..errors import ConfigError

DEFAULT_PLUGIN_TIMEOUT = 60.0


class TargetKind(str, Enum):
    """What produces a target's files."""

    PYTHON = "python"
    TYPESCRIPT = "typescript"
    IR = "ir"
    PLUGIN = "plugin"


@dataclass(frozen=True)
class GeneratorOptions:
    """Options shared by the built-in language generators."""

    # Emit record types, enums and operation payload types
    gen_types: bool = True

    # Emit the constants module
    gen_constants: bool = True

    # Emit the pattern helper functions
    gen_patterns: bool = True

    # Emit the route catalog and service stubs
    gen_rpc: bool = True

    # Add "generated, do not edit" comment at top of each file
    add_generation_comment: bool = True

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> GeneratorOptions:
        """Create options from a dictionary, ignoring unknown keys."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (d or {}).items() if k in names})

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class IrOptions:
    """Options of the IR JSON generator."""

    filename: str = "ir.json"
    minify: bool = False

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> IrOptions:
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (d or {}).items() if k in names})

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class TargetConfig:
    """One generation target."""

    kind: TargetKind = TargetKind.IR
    output: Path = Path(".")
    name: str = ""

    # Free-form options: generator options for built-ins, passed through verbatim to plugins
    options: Any = None

    # Plugin argv (command followed by its literal arguments)
    command: list[str] = field(default_factory=list)
    timeout: float = DEFAULT_PLUGIN_TIMEOUT

    # Empty the output directory before writing a successful result
    clean: bool = False

    @staticmethod
    def from_dict(d: dict[str, Any], base_dir: Path | None = None, index: int = 0) -> TargetConfig:
        """Create a target from a dictionary; relative paths resolve against ``base_dir``."""
        if not isinstance(d, dict):
            raise ConfigError(f"target #{index} must be an object")
        try:
            kind = TargetKind(d.get("target"))
        except ValueError:
            choices = ", ".join(k.value for k in TargetKind)
            raise ConfigError(f"target #{index} has unknown kind {d.get('target')!r} (expected one of {choices})") from None

        output = d.get("output")
        if not isinstance(output, str) or not output:
            raise ConfigError(f"target #{index} ({kind.value}) needs an output directory")

        command = d.get("command") or []
        if isinstance(command, str):
            command = [command]
        args = d.get("args") or []
        if not isinstance(command, list) or not isinstance(args, list):
            raise ConfigError(f"target #{index}: command and args must be lists of strings")
        command = [str(c) for c in command + args]
        if kind == TargetKind.PLUGIN and not command:
            raise ConfigError(f"plugin target #{index} needs a command")

        options = d.get("options")
        if kind != TargetKind.PLUGIN and options is not None and not isinstance(options, dict):
            raise ConfigError(f"target #{index} ({kind.value}): options must be an object")

        timeout = d.get("timeout", DEFAULT_PLUGIN_TIMEOUT)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigError(f"target #{index}: timeout must be a positive number of seconds")

        output_path = Path(output)
        if base_dir is not None and not output_path.is_absolute():
            output_path = base_dir / output_path

        return TargetConfig(
            kind=kind,
            output=output_path,
            name=d.get("name") or f"{kind.value}:{output}",
            options=options,
            command=command,
            timeout=float(timeout),
            clean=bool(d.get("clean", False)),
        )


@dataclass
class ProjectConfig:
    """Configuration of one compile: a schema entry file and its targets."""

    schema: Path = Path("main.vdl")
    targets: list[TargetConfig] = field(default_factory=list)

    # Maximum number of targets generated concurrently (None = one per target)
    max_workers: int | None = None

    @staticmethod
    def from_dict(d: dict[str, Any], base_dir: Path | None = None) -> ProjectConfig:
        """Create a project config from a dictionary."""
        if not isinstance(d, dict):
            raise ConfigError("configuration must be an object")
        schema = d.get("schema")
        if not isinstance(schema, str) or not schema:
            raise ConfigError("configuration needs a 'schema' entry file")
        schema_path = Path(schema)
        if base_dir is not None and not schema_path.is_absolute():
            schema_path = base_dir / schema_path

        targets = [TargetConfig.from_dict(t, base_dir, i) for i, t in enumerate(d.get("targets") or [])]
        names = [t.name for t in targets]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigError(f"duplicate target names: {', '.join(duplicates)}")

        return ProjectConfig(schema=schema_path, targets=targets, max_workers=d.get("max_workers"))

    @staticmethod
    def load(path: str | Path) -> ProjectConfig:
        """Read a JSON project file; relative paths resolve against its directory."""
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise ConfigError(f"cannot read configuration {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"invalid configuration {path}: {e}") from e
        return ProjectConfig.from_dict(data, path.resolve().parent)
