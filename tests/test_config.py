from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from pandoc_directives.config import (
    ConfigError,
    DirectiveConfig,
    apply_overrides,
    build_config,
    load_config,
    normalize_config,
    preprocess_options,
    validate_config,
)
from pandoc_directives.models import PreprocessOptions


def _write_pyproject(base: Path, body: str) -> Path:
    path = base / "pyproject.toml"
    path.write_text(textwrap.dedent(body).lstrip(), encoding="utf-8")
    return path


def _write_dotfile(base: Path, body: str) -> Path:
    path = base / ".pandoc-directives.toml"
    path.write_text(textwrap.dedent(body).lstrip(), encoding="utf-8")
    return path


def test_loads_config_from_pyproject(tmp_path: Path):
    _write_pyproject(
        tmp_path,
        """
        [tool.pandoc-directives]
        dialect = "pandoc"
        enable_shortcodes = true
        max_file_size = 1
        """,
    )

    config = load_config(tmp_path)

    assert config == DirectiveConfig(dialect="pandoc", enable_shortcodes=True, max_file_size=1)


def test_loads_config_from_dotfile(tmp_path: Path):
    _write_dotfile(
        tmp_path,
        """
        [pandoc-directives]
        enable-math-labels = false
        """,
    )
    nested = tmp_path / "child"
    nested.mkdir()

    config = load_config(nested)

    assert config.enable_math_labels is False
    assert config.dialect == "quarto"


def test_pyproject_without_table_falls_back_to_dotfile(tmp_path: Path):
    _write_pyproject(
        tmp_path,
        """
        [project]
        name = "docs"
        """,
    )
    _write_dotfile(
        tmp_path,
        """
        [tool.pandoc-directives]
        dialect = "pandoc"
        """,
    )

    assert load_config(tmp_path).dialect == "pandoc"


def test_load_config_defaults_without_files(tmp_path: Path):
    assert load_config(tmp_path) == DirectiveConfig()


def test_undecodable_toml_is_skipped(tmp_path: Path):
    (tmp_path / "pyproject.toml").write_text("[tool.pandoc-directives\n", encoding="utf-8")

    assert load_config(tmp_path) == DirectiveConfig()


def test_unknown_keys_raise(tmp_path: Path):
    _write_pyproject(
        tmp_path,
        """
        [tool.pandoc-directives]
        colour = "blue"
        """,
    )

    with pytest.raises(ConfigError, match="Invalid `\\[tool.pandoc-directives\\]` settings"):
        load_config(tmp_path)


def test_non_table_settings_raise(tmp_path: Path):
    _write_dotfile(tmp_path, 'pandoc-directives = "quarto"\n')

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_normalize_config_resolves_dialect_defaults():
    assert normalize_config(DirectiveConfig(dialect="pandoc")) == DirectiveConfig(
        dialect="pandoc", enable_shortcodes=False, enable_math_labels=False
    )
    assert normalize_config(DirectiveConfig()) == DirectiveConfig(
        enable_shortcodes=True, enable_math_labels=True
    )


def test_normalize_config_keeps_explicit_toggles():
    config = normalize_config(DirectiveConfig(dialect="pandoc", enable_math_labels=True))

    assert config.enable_shortcodes is False
    assert config.enable_math_labels is True


@pytest.mark.parametrize(
    ("config", "message"),
    [
        (DirectiveConfig(dialect="commonmark"), "`dialect` must be one of"),
        (DirectiveConfig(enable_shortcodes="yes"), "`enable_shortcodes` must be a boolean"),
        (DirectiveConfig(enable_math_labels=1), "`enable_math_labels` must be a boolean"),
        (DirectiveConfig(max_file_size=0), "`max_file_size` must be a positive integer"),
        (DirectiveConfig(max_file_size=True), "`max_file_size` must be an integer"),
        (DirectiveConfig(max_file_size="10"), "`max_file_size` must be an integer"),
    ],
)
def test_validate_config_rejects_invalid_values(config: DirectiveConfig, message: str):
    with pytest.raises(ConfigError, match=message):
        validate_config(config)


def test_validate_config_accepts_defaults():
    validate_config(DirectiveConfig())


def test_apply_overrides_ignores_none():
    config = DirectiveConfig(dialect="pandoc")

    assert apply_overrides(config, dialect=None, enable_shortcodes=None) is config
    assert apply_overrides(config, enable_shortcodes=True).enable_shortcodes is True


def test_build_config_applies_overrides_over_file(tmp_path: Path):
    _write_pyproject(
        tmp_path,
        """
        [tool.pandoc-directives]
        dialect = "quarto"
        """,
    )

    config = build_config(tmp_path, dialect="pandoc", enable_shortcodes=None)

    assert config == DirectiveConfig(
        dialect="pandoc", enable_shortcodes=False, enable_math_labels=False
    )


def test_build_config_rejects_invalid_file_values(tmp_path: Path):
    _write_pyproject(
        tmp_path,
        """
        [tool.pandoc-directives]
        dialect = "gfm"
        """,
    )

    with pytest.raises(ConfigError):
        build_config(tmp_path)


def test_preprocess_options_follow_dialect():
    assert preprocess_options(DirectiveConfig()) == PreprocessOptions(True, True)
    assert preprocess_options(DirectiveConfig(dialect="pandoc")) == PreprocessOptions(
        False, False
    )
    assert preprocess_options(
        DirectiveConfig(dialect="pandoc", enable_shortcodes=True)
    ) == PreprocessOptions(enable_shortcodes=True, enable_math_labels=False)
