"""Data models for pandoc-directives."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto


class PreprocessState(Enum):
    """Preprocessor states used while scanning Markdown content.

    Attributes:
        NORMAL: Default state for regular text.
        IN_MATH_BLOCK: Inside a ``$$`` display math block awaiting its close.
    """

    NORMAL = auto()
    IN_MATH_BLOCK = auto()


@dataclass
class PreprocessOptions:
    """Toggles for the dialect-specific rewrites.

    Attributes:
        enable_shortcodes: Rewrite ``{{< ... >}}`` lines to leaf directives.
        enable_math_labels: Rewrite ``$$`` blocks to ``:::math`` directives.
    """

    enable_shortcodes: bool = True
    enable_math_labels: bool = True


@dataclass
class PreprocessContext:
    """Encapsulate preprocessor state for one pass over a document.

    Attributes:
        state: Current preprocessor state.
        div_stack: Colon-fence lengths of the currently open divs.
        math_buffer: Raw lines collected inside an open math block.
        math_open_line: The line that opened the current math block.
        offset: Offset of the current line's first character in the source.
        line_ending: Carriage return that ended the current line, if any.
    """

    state: PreprocessState = PreprocessState.NORMAL
    div_stack: list[int] = field(default_factory=list)
    math_buffer: list[str] = field(default_factory=list)
    math_open_line: str | None = None
    offset: int = 0
    line_ending: str = ""
