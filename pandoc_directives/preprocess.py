"""Rewrite Pandoc/Quarto syntax into CommonMark directive syntax.

Pandoc writes fenced divs as ``::: {.class}`` or ``::: name {.class}``, while
the generic directive grammar expects ``:::name{.class}``. The directive
grammar also needs an outer fence to be at least as long as any fence it
encloses, so divs are re-fenced by nesting depth:

    :::::div{.outer}
    ::::div{.inner}
    :::div{.innermost}

Quarto additionally labels display math (``$$ ... $$ {#eq-label}``) and
embeds shortcodes (``{{< video url >}}``); those become ``:::math{#eq-label}``
container directives and ``::shortcode{raw="..."}`` leaf directives.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .constants import (
    DEFAULT_DIRECTIVE_NAME,
    DIV_CLOSE_PATTERN,
    DIV_OPEN_PATTERN,
    MATH_DIRECTIVE_NAME,
    MATH_FENCE_PATTERN,
    MATH_MARKER,
    MIN_FENCE_LENGTH,
    OUTER_FENCE_LENGTH,
    PANDOC_FENCE,
    SHORTCODE_DIRECTIVE_NAME,
    SHORTCODE_MARKER,
    SHORTCODE_PATTERN,
    SINGLE_LINE_MATH_PATTERN,
    SINGLE_LINE_MATH_PREFIX,
)
from .models import PreprocessContext, PreprocessOptions, PreprocessState
from .safety import Range, get_protected_ranges, is_protected

logger = logging.getLogger(__name__)


def fence_length_for_depth(depth: int) -> int:
    """Return the colon count used for a div opened at nesting `depth`.

    Examples:
        fence_length_for_depth(0)  # 5
        fence_length_for_depth(1)  # 4
        fence_length_for_depth(7)  # 3
    """
    return max(MIN_FENCE_LENGTH, OUTER_FENCE_LENGTH - depth)


def _math_directive(ctx: PreprocessContext, attrs: str, body: list[str]) -> list[str]:
    eol = ctx.line_ending
    return [f"{PANDOC_FENCE}{MATH_DIRECTIVE_NAME}{attrs}{eol}", *body, PANDOC_FENCE + eol]


def _try_math_line(
    ctx: PreprocessContext, line: str, ranges: Sequence[Range]
) -> list[str] | None:
    """Handle a line that starts with ``$$``.

    Args:
        ctx: Preprocessor context, updated when a math block opens or closes.
        line: Current line being scanned.
        ranges: Protected ranges of the document.

    Returns:
        list[str] | None: Lines to emit (possibly none, while a block is
            buffering), or None when the line is not a math line this rule
            consumes.

    Examples:
        _try_math_line(PreprocessContext(), "$$ x $$", [])  # [":::math", "x", ":::"]
    """
    stripped = line.strip()
    if not stripped.startswith(MATH_MARKER):
        return None
    if is_protected(ctx.offset + line.index(MATH_MARKER), ranges):
        return None

    if ctx.state is PreprocessState.IN_MATH_BLOCK:
        close_match = MATH_FENCE_PATTERN.match(stripped)
        if close_match is None:
            ctx.math_buffer.append(line + ctx.line_ending)
            return []

        emitted = _math_directive(ctx, close_match.group(1) or "", ctx.math_buffer)
        ctx.state = PreprocessState.NORMAL
        ctx.math_buffer = []
        ctx.math_open_line = None
        return emitted

    if SINGLE_LINE_MATH_PREFIX.match(stripped):
        single_match = SINGLE_LINE_MATH_PATTERN.match(stripped)
        if single_match is None:
            return [line + ctx.line_ending]
        content, label = single_match.groups()
        return _math_directive(ctx, label or "", [content.strip() + ctx.line_ending])

    # Only the closing line's label is used; an opener's attributes are dropped.
    if MATH_FENCE_PATTERN.match(stripped):
        ctx.state = PreprocessState.IN_MATH_BLOCK
        ctx.math_open_line = line + ctx.line_ending
        return []

    return None


def _try_shortcode(
    ctx: PreprocessContext, line: str, ranges: Sequence[Range]
) -> list[str] | None:
    """Rewrite a standalone ``{{< ... >}}`` line to a leaf directive.

    Double quotes in the shortcode body are backslash-escaped so the body fits
    in a quoted ``raw`` attribute; leading and trailing whitespace is kept.

    Examples:
        _try_shortcode(PreprocessContext(), "{{< pagebreak >}}", [])
        # ['::shortcode{raw="pagebreak"}']
    """
    shortcode_match = SHORTCODE_PATTERN.match(line)
    if shortcode_match is None:
        return None
    if is_protected(ctx.offset + line.index(SHORTCODE_MARKER), ranges):
        return None

    indent, content, trailing = shortcode_match.groups()
    escaped = content.replace('"', '\\"')
    directive_line = f'{indent}::{SHORTCODE_DIRECTIVE_NAME}{{raw="{escaped}"}}{trailing}'
    return [directive_line + ctx.line_ending]


def _try_close_div(
    ctx: PreprocessContext, line: str, ranges: Sequence[Range]
) -> list[str] | None:
    """Close the innermost div with the fence length it was opened with.

    Longer colon runs belong to content this tool did not produce and are left
    alone.
    """
    close_match = DIV_CLOSE_PATTERN.match(line)
    if close_match is None or close_match.group(1) != PANDOC_FENCE:
        return None
    if is_protected(ctx.offset + close_match.start(1), ranges):
        return None

    if ctx.div_stack:
        fence_length = ctx.div_stack.pop()
    else:
        logger.debug("Unmatched closing fence at offset %d", ctx.offset)
        fence_length = MIN_FENCE_LENGTH
    return [":" * fence_length + ctx.line_ending]


def _try_open_div(
    ctx: PreprocessContext, line: str, ranges: Sequence[Range]
) -> list[str] | None:
    """Open a div as a directive whose fence length encodes its depth.

    Examples:
        _try_open_div(PreprocessContext(), "::: {.note}", [])  # [":::::div{.note}"]
    """
    open_match = DIV_OPEN_PATTERN.match(line)
    if open_match is None:
        return None
    colons, name, attrs = open_match.groups()
    if colons != PANDOC_FENCE:
        return None
    if is_protected(ctx.offset + open_match.start(1), ranges):
        return None

    fence_length = fence_length_for_depth(len(ctx.div_stack))
    ctx.div_stack.append(fence_length)

    directive_line = f"{':' * fence_length}{name or DEFAULT_DIRECTIVE_NAME}"
    if attrs:
        directive_line += f"{{{attrs[1:-1].strip()}}}"
    return [directive_line + ctx.line_ending]


def _process_line(
    ctx: PreprocessContext, line: str, options: PreprocessOptions, ranges: Sequence[Range]
) -> list[str]:
    if options.enable_math_labels:
        emitted = _try_math_line(ctx, line, ranges)
        if emitted is not None:
            return emitted

    # Math content is never rewritten, even if it looks like a fence or shortcode
    if ctx.state is PreprocessState.IN_MATH_BLOCK:
        ctx.math_buffer.append(line + ctx.line_ending)
        return []

    if options.enable_shortcodes:
        emitted = _try_shortcode(ctx, line, ranges)
        if emitted is not None:
            return emitted

    # Closing fences are checked first: a bare ":::" also matches the opener pattern
    for rule in (_try_close_div, _try_open_div):
        emitted = rule(ctx, line, ranges)
        if emitted is not None:
            return emitted

    return [line + ctx.line_ending]


def _flush_dangling(ctx: PreprocessContext) -> list[str]:
    if ctx.div_stack:
        logger.debug("%d fenced div(s) left open at end of document", len(ctx.div_stack))

    if ctx.state is not PreprocessState.IN_MATH_BLOCK:
        return []

    logger.debug("Math block left open at end of document; emitting it unchanged")
    return [ctx.math_open_line or MATH_MARKER, *ctx.math_buffer]


def preprocess_pandoc_syntax(text: str, options: PreprocessOptions | None = None) -> str:
    """Convert Pandoc/Quarto syntax to directive syntax.

    Lines inside code spans, code blocks, and front matter are never rewritten.
    Malformed input never raises: an unmatched closing fence gets a
    three-colon fence, a div left open stays open, and a math block that is
    never closed is emitted as it was written. Each rewritten line keeps the
    line ending of the line it replaces.

    Args:
        text: Document text.
        options: Dialect toggles. Defaults to shortcodes and math labels
            enabled.

    Returns:
        str: Text with fenced divs, labeled math, and shortcodes expressed as
            directives; every other line is unchanged.

    Examples:
        preprocess_pandoc_syntax("::: {.note}\\ntext\\n:::")
        # ":::::div{.note}\\ntext\\n:::::"
        preprocess_pandoc_syntax("$$\\nE=mc^2\\n$$ {#eq-1}")
        # ":::math{#eq-1}\\nE=mc^2\\n:::"
    """
    options = options or PreprocessOptions()
    ranges = get_protected_ranges(text)
    ctx = PreprocessContext()
    result: list[str] = []

    for raw_line in text.split("\n"):
        # Rules see the line without its "\r"; every emitted line gets it back
        line = raw_line.removesuffix("\r")
        ctx.line_ending = raw_line[len(line):]
        result.extend(_process_line(ctx, line, options, ranges))
        ctx.offset += len(raw_line) + 1

    result.extend(_flush_dangling(ctx))
    return "\n".join(result)
