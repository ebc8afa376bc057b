"""
pandoc-directives: convert Pandoc/Quarto markdown to and from directive syntax.

This package can be used both as a CLI tool and as a library.

CLI Usage:
    pandoc-directives index.qmd

Library Usage:
    from pandoc_directives import postprocess_pandoc_syntax, preprocess_pandoc_syntax

    directive_text = preprocess_pandoc_syntax("::: {.note}\\ntext\\n:::")
    # ... parse and serialize with a directive-aware markdown library ...
    pandoc_text = postprocess_pandoc_syntax(directive_text)
"""

from .config import ConfigError, DirectiveConfig
from .filesystem import DocumentGuard
from .models import PreprocessOptions
from .pipeline import (
    NormalizeFileError,
    Stage,
    normalize_document,
    normalize_file,
    normalize_text,
)
from .postprocess import postprocess_pandoc_syntax
from .preprocess import preprocess_pandoc_syntax
from .safety import get_protected_ranges, is_protected

__version__ = "0.1.0"

__all__ = [
    # Core functionality
    "preprocess_pandoc_syntax",
    "postprocess_pandoc_syntax",
    "get_protected_ranges",
    "is_protected",
    # Pipeline
    "normalize_text",
    "normalize_file",
    "normalize_document",
    "DocumentGuard",
    "Stage",
    # Data models
    "PreprocessOptions",
    "DirectiveConfig",
    # Exceptions
    "ConfigError",
    "NormalizeFileError",
    # Version
    "__version__",
]
