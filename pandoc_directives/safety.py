"""Detection of regions that must never be rewritten.

Code spans, code blocks, and front matter hold literal content. They are
located with a baseline CommonMark parser that knows nothing about math or
directives, so ``$$``, ``{{< >}}`` and ``:::`` lines are plain text to it and
are never reported as protected.
"""

from __future__ import annotations

import logging
import re
from bisect import bisect_right
from collections.abc import Sequence

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdit_py_plugins.front_matter import front_matter_plugin

logger = logging.getLogger(__name__)

Range = tuple[int, int]

PROTECTED_BLOCK_TYPES = ("fence", "code_block", "front_matter")

# Autolinks cannot contain whitespace or angle brackets
AUTOLINK_PATTERN = re.compile(r"<[^<>\s]*>")

MARKDOWN = MarkdownIt("commonmark").enable(["table", "strikethrough"]).use(front_matter_plugin)


def _line_starts(lines: list[str]) -> list[int]:
    starts = []
    offset = 0
    for line in lines:
        starts.append(offset)
        offset += len(line) + 1
    return starts


def _block_range(line_map: list[int], lines: list[str], starts: list[int]) -> Range | None:
    """Convert a ``[first, last)`` line map to a character range.

    The range ends at the end of the last mapped line, before its newline.
    """
    first, last = line_map[0], min(line_map[1], len(lines))
    if first >= last:
        return None
    return starts[first], starts[last - 1] + len(lines[last - 1])


def is_escaped(text: str, pos: int) -> bool:
    """Determine whether a character is escaped by preceding backslashes.

    Counts consecutive backslashes immediately before `pos`; an odd count marks
    the character as escaped.

    Examples:
        is_escaped("\\\\`", 2)  # False, two backslashes
        is_escaped("\\`", 1)  # True, one backslash
    """
    backslash_count = 0
    i = pos - 1
    while i >= 0 and text[i] == "\\":
        backslash_count += 1
        i -= 1
    return backslash_count % 2 == 1


def _find_code_span(text: str, marker: str, pos: int, limit: int) -> Range | None:
    """Locate the next code span delimited by `marker` backticks.

    Both delimiters must be backtick runs of exactly ``len(marker)``; an
    opening run preceded by a backslash is literal text.

    Args:
        text: Source text.
        marker: Backtick run that opened the span.
        pos: Offset where the search starts.
        limit: Offset where the search stops.

    Returns:
        Range | None: Span covering both delimiters, or None when not found.

    Examples:
        _find_code_span("a `b` c", "`", 0, 7)  # (2, 5)
    """
    run = re.compile(rf"(?<!`){re.escape(marker)}(?!`)")
    while True:
        opening = run.search(text, pos, limit)
        if opening is None:
            return None
        if is_escaped(text, opening.start()):
            pos = opening.end()
            continue
        closing = run.search(text, opening.end(), limit)
        if closing is None:
            return None
        return opening.start(), closing.end()


def _skip_consumed_markup(text: str, child: Token, pos: int, limit: int) -> int:
    """Return the offset just past the source of an inline HTML tag or autolink.

    Backticks inside such markup never delimit a code span. Inline HTML keeps
    its source text in ``content``; only line prefixes (blockquote markers,
    indentation) are missing, so each of its lines is found in turn.
    """
    if child.type == "html_inline":
        for piece in child.content.split("\n"):
            found = text.find(piece, pos, limit)
            if found >= 0:
                pos = found + len(piece)
        return pos

    autolink = AUTOLINK_PATTERN.search(text, pos, limit)
    return autolink.end() if autolink else pos


def _inline_code_ranges(
    text: str, token: Token, region: Range, cursor: int
) -> tuple[list[Range], int]:
    ranges: list[Range] = []
    pos = max(cursor, region[0])
    for child in token.children or []:
        if child.type == "html_inline" or (
            child.type == "link_open" and child.markup == "autolink"
        ):
            pos = _skip_consumed_markup(text, child, pos, region[1])
            continue
        if child.type != "code_inline":
            continue
        span = _find_code_span(text, child.markup, pos, region[1])
        if span is None:
            logger.debug("Could not locate code span %r near offset %d", child.content, region[0])
            continue
        ranges.append(span)
        pos = span[1]
    return ranges, pos


def get_protected_ranges(text: str) -> list[Range]:
    """Find the regions of `text` whose content must pass through untouched.

    Args:
        text: Full document text.

    Returns:
        list[Range]: Half-open ``(start, end)`` offsets of code spans, fenced
            and indented code blocks, and front matter, sorted by start.

    Examples:
        get_protected_ranges("Use `x`.")  # [(4, 7)]
        get_protected_ranges("```\\n:::\\n```")  # [(0, 11)]
    """
    lines = text.split("\n")
    starts = _line_starts(lines)

    # The parser treats a lone "\r" as a line break; blanking it keeps its line
    # numbers aligned with the "\n" split above.
    source = text.replace("\r", " ")
    tokens = MARKDOWN.parse(source)

    ranges: list[Range] = []
    region: Range | None = None
    cursor = 0
    for token in tokens:
        if token.map is not None:
            region = _block_range(token.map, lines, starts)

        if token.type in PROTECTED_BLOCK_TYPES:
            if region is not None:
                ranges.append(region)
                cursor = max(cursor, region[1])
            continue

        if token.type == "inline" and region is not None:
            spans, cursor = _inline_code_ranges(source, token, region, cursor)
            ranges.extend(spans)

    return sorted(ranges)


def is_protected(offset: int, ranges: Sequence[Range]) -> bool:
    """Check whether `offset` falls inside any protected range.

    Args:
        offset: Offset into the text the ranges were computed from.
        ranges: Sorted, non-overlapping ranges from `get_protected_ranges`.

    Returns:
        bool: True when ``start <= offset < end`` for some range.

    Examples:
        is_protected(5, [(4, 7)])  # True
        is_protected(7, [(4, 7)])  # False
    """
    index = bisect_right(ranges, (offset, float("inf"))) - 1
    if index < 0:
        return False
    start, end = ranges[index]
    return start <= offset < end
