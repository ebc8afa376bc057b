"""Constants used across the pandoc-directives package."""

from __future__ import annotations

import re

# Math blocks (matched against the stripped line)
MATH_MARKER = "$$"
MATH_FENCE_PATTERN = re.compile(r"^\$\$\s*(\{.*\})?$")
SINGLE_LINE_MATH_PREFIX = re.compile(r"^\$\$.+\$\$")
SINGLE_LINE_MATH_PATTERN = re.compile(r"^\$\$(.+)\$\$\s*(\{.*\})?$")

# Shortcodes: {{< name args >}} on a line of their own
SHORTCODE_MARKER = "{{<"
SHORTCODE_PATTERN = re.compile(r"^(\s*)\{\{<\s(.+)\s>\}\}(\s*)$")

# Pandoc fenced divs
DIV_CLOSE_PATTERN = re.compile(r"^(:{3,})\s*$")
DIV_OPEN_PATTERN = re.compile(r"^(:{3,})\s*(\w[\w-]*)?\s*(\{[^}]+\})?")
PANDOC_FENCE = ":::"

# Directive fences produced by the preprocessor
DIRECTIVE_OPEN_PATTERN = re.compile(r"^(:{4,})(\w[\w-]*)(\{[^}]+\})?")
DIRECTIVE_CLOSE_PATTERN = re.compile(r"^:{4,}\s*$")
GENERIC_DIRECTIVE_NAMES = ("div", "qmd")
DEFAULT_DIRECTIVE_NAME = "div"
MATH_DIRECTIVE_NAME = "math"
SHORTCODE_DIRECTIVE_NAME = "shortcode"

# Outer divs get longer fences: depth 0 -> 5, depth 1 -> 4, deeper -> 3
OUTER_FENCE_LENGTH = 5
MIN_FENCE_LENGTH = 3

# Dialects
DIALECT_QUARTO = "quarto"
DIALECT_PANDOC = "pandoc"
DIALECTS = (DIALECT_QUARTO, DIALECT_PANDOC)

# Files
MARKDOWN_EXTENSIONS = (".md", ".markdown", ".qmd", ".rmd")
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
