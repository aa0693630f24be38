import logging
import sys
from pathlib import Path

import click

from . import __version__
from .errors import CompileError, ConfigError
from .pipeline import PipelineGenerator, ProjectConfig, SchemaAnalyzer, SchemaLoader


def _report_compile_error(error: CompileError) -> None:
    for diagnostic in error.diagnostics:
        click.echo(str(diagnostic), err=True)
    click.echo(f"{len(error.diagnostics)} error(s)", err=True)


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log pipeline progress to stderr")
@click.version_option(__version__, prog_name="vdl")
def vdl(verbose):
    """Compile VDL schemas and generate code from them."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@vdl.command()
@click.option("--config", "-c", default="vdl.json", type=click.Path(dir_okay=False, resolve_path=True))
def generate(config):
    """Run every target of a project configuration."""
    try:
        project = ProjectConfig.load(config)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    generator = PipelineGenerator(project)
    try:
        report = generator.generate()
    except CompileError as e:
        _report_compile_error(e)
        sys.exit(2)

    if not report.ok:
        click.echo(report.summary(), err=True)
        click.echo(f"{len(report.failures)} of {len(report.results)} target(s) failed", err=True)
        sys.exit(1)


@vdl.command()
@click.argument("schema", type=click.Path(exists=True, dir_okay=False, resolve_path=True))
@click.option("--output", "-o", default=None, type=click.Path(dir_okay=False, resolve_path=True))
@click.option("--minify", is_flag=True, default=False, help="Write compact JSON")
def ir(schema, output, minify):
    """Print the IR of SCHEMA as JSON."""
    try:
        program = SchemaLoader().load(schema)
        document = SchemaAnalyzer().analyze(program).to_json(minify=minify)
    except CompileError as e:
        _report_compile_error(e)
        sys.exit(2)

    if output is None:
        click.echo(document)
    else:
        Path(output).write_text(document + "\n", encoding="utf-8")
