from __future__ import annotations

import string

from hypothesis import given
from hypothesis import strategies as st

from pandoc_directives.pipeline import Stage, normalize_text
from pandoc_directives.postprocess import postprocess_pandoc_syntax
from pandoc_directives.preprocess import fence_length_for_depth, preprocess_pandoc_syntax
from pandoc_directives.safety import get_protected_ranges

plain_text = st.text(alphabet=string.ascii_letters + string.digits + " \n#*-.`", max_size=200)
class_names = st.text(alphabet=string.ascii_letters, min_size=1, max_size=12)
dialect_lines = st.lists(
    st.sampled_from(
        [
            "::: {.a}", "::: callout", ":::", "$$", "$$ x $$", "$$ {#eq}",
            "{{< x >}}", "```", "`", "text", "",
        ]
    ),
    max_size=30,
)


@given(plain_text)
def test_text_without_extended_syntax_is_unchanged(text: str):
    assert preprocess_pandoc_syntax(text) == text


@given(st.text(max_size=300))
def test_transforms_never_raise(text: str):
    assert isinstance(preprocess_pandoc_syntax(text), str)
    assert isinstance(postprocess_pandoc_syntax(text), str)


@given(st.text(max_size=300))
def test_protected_ranges_are_sorted_and_in_bounds(text: str):
    ranges = get_protected_ranges(text)

    assert ranges == sorted(ranges)
    for start, end in ranges:
        assert 0 <= start <= end <= len(text)


@given(st.text(alphabet=": {}<>$#.-=abc\n", max_size=200))
def test_fenced_code_content_is_never_rewritten(content: str):
    text = f"```\n{content}\n```\n"

    assert preprocess_pandoc_syntax(text) == text


@given(st.integers(min_value=1, max_value=8))
def test_fence_lengths_shrink_with_depth(depth: int):
    text = "\n".join(["::: {.x}"] * depth + ["body"] + [":::"] * depth)

    lines = preprocess_pandoc_syntax(text).split("\n")
    openers, closers = lines[:depth], lines[depth + 1 :]

    lengths = [len(line) - len(line.lstrip(":")) for line in openers]
    assert lengths == [fence_length_for_depth(k) for k in range(depth)]
    assert lengths == sorted(lengths, reverse=True)
    assert all(line.endswith("div{.x}") for line in openers)
    assert closers == [":" * length for length in reversed(lengths)]


@given(class_names)
def test_simple_div_roundtrip(name: str):
    text = f"::: {{.{name}}}\ntext\n:::"

    restored = normalize_text(text, Stage.ROUNDTRIP, formatter=lambda value: value)

    assert restored == text


@given(st.text(max_size=200))
def test_postprocess_is_idempotent(text: str):
    once = postprocess_pandoc_syntax(text)

    assert postprocess_pandoc_syntax(once) == once


@given(dialect_lines)
def test_crlf_documents_keep_crlf_endings(lines: list[str]):
    text = "\r\n".join([*lines, ""])

    directive_text = preprocess_pandoc_syntax(text)
    restored = postprocess_pandoc_syntax(directive_text)

    assert "\n" not in directive_text.replace("\r\n", "")
    assert "\n" not in restored.replace("\r\n", "")
