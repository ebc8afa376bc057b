"""Rewrite directive fences back to Pandoc fenced divs."""

from __future__ import annotations

from .constants import (
    DIRECTIVE_CLOSE_PATTERN,
    DIRECTIVE_OPEN_PATTERN,
    GENERIC_DIRECTIVE_NAMES,
    PANDOC_FENCE,
)


def _pandoc_open_fence(name: str, attrs: str | None) -> str:
    if name in GENERIC_DIRECTIVE_NAMES:
        return f"{PANDOC_FENCE} {attrs}" if attrs else PANDOC_FENCE
    return f"{PANDOC_FENCE} {name}{attrs or ''}"


def postprocess_pandoc_syntax(text: str) -> str:
    """Normalize directive fences of four or more colons to ``:::``.

    The depth-encoded fence lengths added by preprocessing are discarded, so
    every div comes back as a uniform three-colon Pandoc fence. Rewritten
    lines keep their own ``\\r\\n`` or ``\\n`` ending.

    Args:
        text: Serialized document in directive syntax.

    Returns:
        str: Text with ``::::name{attrs}`` openers rewritten to
            ``::: name{attrs}`` (``::: {attrs}`` for generic divs) and
            ``::::`` closers rewritten to ``:::``.

    Examples:
        postprocess_pandoc_syntax(":::::div{.note}\\ntext\\n:::::")
        # "::: {.note}\\ntext\\n:::"
        postprocess_pandoc_syntax("::::callout{.tip}")  # "::: callout{.tip}"
    """
    result = []

    for raw_line in text.split("\n"):
        line = raw_line.removesuffix("\r")
        line_ending = raw_line[len(line):]

        open_match = DIRECTIVE_OPEN_PATTERN.match(line)
        if open_match:
            _, name, attrs = open_match.groups()
            result.append(_pandoc_open_fence(name, attrs) + line_ending)
            continue

        if DIRECTIVE_CLOSE_PATTERN.match(line):
            result.append(PANDOC_FENCE + line_ending)
            continue

        result.append(raw_line)

    return "\n".join(result)
