"""Compose preprocessing, formatting, and postprocessing."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from pathlib import Path

from .config import ConfigError, DirectiveConfig, preprocess_options, validate_config
from .filesystem import DocumentGuard, resolve_size_limit
from .models import PreprocessOptions
from .postprocess import postprocess_pandoc_syntax
from .preprocess import preprocess_pandoc_syntax

logger = logging.getLogger(__name__)

Formatter = Callable[[str], str]

ROUNDTRIP_WITHOUT_FORMATTER = (
    "The roundtrip stage needs a formatter; without one, math and shortcode "
    "directives would be written back as directive syntax"
)


class Stage(Enum):
    """Which part of the conversion to run.

    Attributes:
        PREPROCESS: Pandoc/Quarto syntax to directive syntax.
        POSTPROCESS: Directive syntax back to Pandoc fences.
        ROUNDTRIP: Preprocess, format, then postprocess. Only the formatter
            turns math and shortcode directives back into Pandoc syntax, so
            this stage cannot run without one.
    """

    PREPROCESS = "preprocess"
    POSTPROCESS = "postprocess"
    ROUNDTRIP = "roundtrip"


def normalize_text(
    text: str,
    stage: Stage = Stage.PREPROCESS,
    options: PreprocessOptions | None = None,
    formatter: Formatter | None = None,
) -> str:
    """Run one stage of the conversion over `text`.

    Args:
        text: Document text.
        stage: Stage to run.
        options: Preprocessing toggles; defaults to all rewrites enabled.
        formatter: Directive-aware parse-and-serialize step applied between
            the two rewrites during a round trip.

    Returns:
        str: Transformed text.

    Raises:
        ValueError: If `stage` is `Stage.ROUNDTRIP` and no formatter is given.

    Examples:
        normalize_text("$$ x $$")  # ":::math\\nx\\n:::"
        normalize_text("::::div{.a}\\n::::", Stage.POSTPROCESS)  # "::: {.a}\\n:::"
    """
    if stage is Stage.ROUNDTRIP and formatter is None:
        raise ValueError(ROUNDTRIP_WITHOUT_FORMATTER)
    if stage is Stage.POSTPROCESS:
        return postprocess_pandoc_syntax(text)

    directive_text = preprocess_pandoc_syntax(text, options)
    if stage is Stage.PREPROCESS:
        return directive_text
    return postprocess_pandoc_syntax(formatter(directive_text))


class NormalizeFileError(Exception):
    """Raised when converting a Markdown file fails."""


def normalize_document(
    document: DocumentGuard,
    stage: Stage = Stage.PREPROCESS,
    config: DirectiveConfig | None = None,
    formatter: Formatter | None = None,
) -> str:
    """Read a guarded document and run one stage of the conversion over it.

    The guard keeps the snapshot taken while reading, so the caller can hand
    the result to `DocumentGuard.replace` afterwards.

    Args:
        document: Guard for the Markdown file.
        stage: Stage to run.
        config: Configuration selecting the dialect toggles; defaults to a new
            `DirectiveConfig` when omitted.
        formatter: Parse-and-serialize step, required for `Stage.ROUNDTRIP`.

    Returns:
        str: Transformed file content.

    Raises:
        NormalizeFileError: If the configuration or stage is invalid, or the
            file cannot be read or decoded.
    """
    config = config or DirectiveConfig()
    try:
        validate_config(config)
    except ConfigError as error:
        raise NormalizeFileError(str(error)) from error
    if stage is Stage.ROUNDTRIP and formatter is None:
        raise NormalizeFileError(ROUNDTRIP_WITHOUT_FORMATTER)

    try:
        content = document.read()
    except UnicodeDecodeError as error:
        error_message = f"Invalid UTF-8 sequence in {document.filepath}: {error}"
        raise NormalizeFileError(error_message) from error
    except IOError as error:
        raise NormalizeFileError(str(error)) from error

    logger.debug(
        "Running %s stage on %s (dialect: %s)", stage.value, document.filepath, config.dialect
    )
    return normalize_text(content, stage, preprocess_options(config), formatter)


def normalize_file(
    filepath: Path,
    stage: Stage = Stage.PREPROCESS,
    config: DirectiveConfig | None = None,
    formatter: Formatter | None = None,
) -> str:
    """Read a Markdown file and run one stage of the conversion over it.

    The size limit is the configured `max_file_size`, unless the
    `PANDOC_DIRECTIVES_MAX_FILE_SIZE` environment variable overrides it.

    Raises:
        NormalizeFileError: See `normalize_document`; also raised when the
            environment size limit is invalid.

    Examples:
        text = normalize_file(Path("index.qmd"), Stage.PREPROCESS)
    """
    config = config or DirectiveConfig()
    try:
        max_size = resolve_size_limit(config.max_file_size)
    except ValueError as error:
        raise NormalizeFileError(str(error)) from error
    return normalize_document(DocumentGuard(filepath, max_size), stage, config, formatter)
