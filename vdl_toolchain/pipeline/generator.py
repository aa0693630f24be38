"""
Pipeline generator.

Orchestrates one compile:

1. Load: read the entry schema and its includes into a Program
2. Analyze: merge declarations and build the IR (all diagnostics at once)
3. Generate: run every target concurrently, each one isolated from the others
4. Write: atomically write each successful target's files
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

import jinja2

from .. import __version__
from ..errors import BackendError, GeneratorError, OutputError
from .analyzer import IR, SchemaAnalyzer
from .backends import get_backend
from .config import ProjectConfig, TargetConfig, TargetKind
from .output import AtomicWriter, GeneratedFile
from .plugin import PluginRequest, PluginRunner
from .schema_ast import Program, SchemaLoader

logger = logging.getLogger(__name__)


@dataclass
class TargetResult:
    """Outcome of one target."""

    name: str
    output: Path
    written: list[Path] = field(default_factory=list)
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunReport:
    """Outcome of a whole run, one result per target in configuration order."""

    results: list[TargetResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failures(self) -> list[TargetResult]:
        return [r for r in self.results if not r.ok]

    def summary(self) -> str:
        lines = []
        for result in self.results:
            if result.ok:
                lines.append(f"{result.name}: ok ({len(result.written)} file(s))")
            else:
                lines.append(f"{result.name}: FAILED: {result.error}")
        return "\n".join(lines)


class PipelineGenerator:
    """
    Compiles a schema and runs every configured target.

    Example:
        generator = PipelineGenerator(ProjectConfig.load("vdl.json"))
        report = generator.generate()
        if not report.ok:
            print(report.summary())
    """

    def __init__(
        self,
        config: ProjectConfig,
        loader: SchemaLoader | None = None,
        stderr: IO[str] | None = None,
    ):
        """
        Initialize the generator.

        Args:
            config: Schema entry file and targets
            loader: Schema loader (default: JSON documents from disk)
            stderr: Stream plugin stderr is forwarded to (default: sys.stderr)
        """
        self.config = config
        self.loader = loader or SchemaLoader()
        self.stderr = stderr
        self.program: Program | None = None
        self.ir: IR | None = None

    def build(self) -> IR:
        """
        Load and analyze the schema.

        Raises:
            CompileError: With every diagnostic found; no target runs
        """
        logger.debug("Loading %s", self.config.schema)
        self.program = self.loader.load(self.config.schema)
        logger.debug("Analyzing %d file(s)", len(self.program.files))
        self.ir = SchemaAnalyzer().analyze(self.program)
        return self.ir

    def generate(self) -> RunReport:
        """
        Build the IR and run all targets.

        A failing target does not stop the others; its error is recorded in
        its TargetResult.
        """
        if self.ir is None:
            self.build()

        targets = self.config.targets
        if not targets:
            logger.warning("No targets configured")
            return RunReport()

        workers = self.config.max_workers or len(targets)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="vdl-target") as pool:
            results = list(pool.map(self._run_target, targets))
        return RunReport(results)

    def _run_target(self, target: TargetConfig) -> TargetResult:
        result = TargetResult(name=target.name, output=target.output)
        try:
            files = self.generate_files(target)
            writer = AtomicWriter(target.output, target.name)
            result.written = writer.write_all(files, clean=target.clean)
            logger.info("%s: wrote %d file(s) to %s", target.name, len(result.written), target.output)
        except (GeneratorError, OutputError) as e:
            logger.debug("%s failed: %s", target.name, e)
            result.error = e
        except Exception as e:
            logger.exception("%s failed unexpectedly", target.name)
            error = BackendError(f"{target.kind.value} generator failed: {type(e).__name__}: {e}", target.name)
            error.__cause__ = e
            result.error = error
        return result

    def generate_files(self, target: TargetConfig) -> list[GeneratedFile]:
        """Produce a target's files without writing them."""
        if self.ir is None:
            self.build()

        if target.kind == TargetKind.PLUGIN:
            request = PluginRequest(
                version=__version__,
                schema=self.program.schema_text,
                ir=self.ir,
                options=target.options,
            )
            runner = PluginRunner(target.command, target.timeout, self.stderr, target.name)
            return list(runner.run(request).files)

        backend_class = get_backend(target.kind.value)
        try:
            return backend_class(target.options).generate(self.ir)
        except GeneratorError as e:
            e.target = e.target or target.name
            raise
        except (jinja2.TemplateError, TypeError, ValueError) as e:
            raise BackendError(f"{target.kind.value} generator failed: {e}", target.name) from e
