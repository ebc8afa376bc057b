"""
Converts Pandoc/Quarto fenced divs, labeled math, and shortcodes to directive syntax,
or converts directive fences back. Prints the result to stdout unless --in-place is given.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import click
from .config import ConfigError, build_config
from .constants import DIALECTS
from .filesystem import DocumentGuard, resolve_document_path, resolve_size_limit
from .pipeline import NormalizeFileError, Stage, normalize_document

__all__ = ["cli"]

LOG_LEVEL_ENV_VAR = "PANDOC_DIRECTIVES_LOG_LEVEL"

# Round trips need a formatter, which only library callers can supply
CLI_STAGES = (Stage.PREPROCESS.value, Stage.POSTPROCESS.value)

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False, debug: bool = False) -> None:
    """Send log records to stderr at the level selected by flags or environment.

    Raises:
        click.ClickException: If the environment names an unknown level.
    """
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    else:
        level = os.environ.get(LOG_LEVEL_ENV_VAR, "WARNING").upper()

    if not isinstance(logging.getLevelName(level), int):
        raise click.ClickException(f"Invalid value for {LOG_LEVEL_ENV_VAR}: {level}")

    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@click.command()
@click.version_option(package_name="pandoc-directives")
@click.option("--dialect", type=click.Choice(DIALECTS), help="Source dialect")
@click.option(
    "--stage",
    type=click.Choice(CLI_STAGES),
    default=Stage.PREPROCESS.value,
    show_default=True,
    help="Conversion stage to run",
)
@click.option("--shortcodes/--no-shortcodes", default=None, help="Rewrite {{< >}} shortcodes")
@click.option("--math-labels/--no-math-labels", default=None, help="Rewrite $$ math blocks")
@click.option("--in-place", is_flag=True, help="Rewrite the file instead of printing")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.argument("filepath", type=click.Path(exists=True, dir_okay=False))
def cli(
    filepath: str,
    dialect: str | None = None,
    stage: str = Stage.PREPROCESS.value,
    shortcodes: bool | None = None,
    math_labels: bool | None = None,
    in_place: bool = False,
    verbose: bool = False,
    debug: bool = False,
):
    """
    Entry point for converting a Markdown file between Pandoc and directive syntax.

    Args:
        filepath: Path to the Markdown file to process.
        dialect: Override for the source dialect.
        stage: Conversion stage (`preprocess` or `postprocess`).
        shortcodes: Override for shortcode rewriting.
        math_labels: Override for math block rewriting.
        in_place: Replace the file content instead of printing it.
        verbose: Log informational messages to stderr.
        debug: Log debug messages to stderr.

    Raises:
        click.BadParameter: If the path or configuration is invalid.
        click.ClickException: If reading, converting, or writing the file fails.

    Examples:
        pandoc-directives index.qmd --stage preprocess
        pandoc-directives notes.md --dialect pandoc --stage postprocess --in-place
    """
    configure_logging(verbose=verbose, debug=debug)

    base_dir = Path.cwd().resolve()
    try:
        filepath = resolve_document_path(filepath, base_dir)
    except ValueError as error:
        raise click.BadParameter(str(error)) from error
    try:
        config = build_config(
            filepath.parent,
            dialect=dialect,
            enable_shortcodes=shortcodes,
            enable_math_labels=math_labels,
        )
    except ConfigError as error:
        raise click.BadParameter(str(error)) from error

    try:
        max_file_size = resolve_size_limit(config.max_file_size)
    except ValueError as error:
        raise click.ClickException(str(error)) from error

    document = DocumentGuard(filepath, max_file_size)
    try:
        output = normalize_document(document, Stage(stage), config)
    except NormalizeFileError as error:
        raise click.ClickException(str(error)) from error

    if not in_place:
        click.echo(output, nl=False)
        return

    try:
        document.replace(output, warn=lambda message: click.echo(message, err=True))
    except IOError as error:
        raise click.ClickException(str(error)) from error
    logger.info("Rewrote %s", filepath)


if __name__ == "__main__":
    cli()
