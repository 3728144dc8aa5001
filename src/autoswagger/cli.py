"""CLI entry point for autoswagger."""

import logging
import sys
from pathlib import Path

import click

from autoswagger.config import load_settings
from autoswagger.errors import ConfigError, OutputWriteError
from autoswagger.generator.document import DocumentGenerator
from autoswagger.writer import save_document


@click.group()
def main():
    """Generate OpenAPI documentation from application code."""
    pass


@main.command()
@click.option("--config", "config_path", default=None, type=click.Path(path_type=Path), help="Configuration file (default: ./autoswagger.yaml).")
@click.option("-o", "--output", default=None, type=click.Path(path_type=Path), help="Output file path; overrides output_file.")
@click.option("-v", "--verbose", is_flag=True, help="Log every fallback and skipped route.")
def generate(config_path: Path | None, output: Path | None, verbose: bool):
    """Generate the OpenAPI document and write it to disk."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(config_path, output_file=str(output) if output else None)
    except ConfigError as exc:
        click.echo(str(exc), err=True)
        sys.exit(2)

    # the host application's modules are importable from the working directory
    if "" not in sys.path and str(Path.cwd()) not in sys.path:
        sys.path.insert(0, str(Path.cwd()))

    target = Path(settings.output_file)
    click.echo("Generating OpenAPI documentation...")
    document = DocumentGenerator(settings).generate()

    try:
        path = save_document(document, target)
    except OutputWriteError as exc:
        click.echo(f"Failed to save OpenAPI documentation to file: {target}", err=True)
        click.echo(exc.reason, err=True)
        sys.exit(1)

    click.echo(f"OpenAPI documentation generated successfully at: {path}")
