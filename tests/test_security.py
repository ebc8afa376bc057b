from __future__ import annotations

import os
import textwrap
import uuid
from pathlib import Path

import pytest

import pandoc_directives.cli as cli_module


def _write(tmp_path: Path, name: str, content: str) -> Path:
    target = tmp_path / name
    target.write_text(textwrap.dedent(content), encoding="utf-8")
    return target


def _error_text(result) -> str:
    """Return combined stdout and exception text for assertions."""
    return f"{result.output}{result.exception}"


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="Symlink support is required")
def test_symlink_rejected(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    source = _write(tmp_path, "source.md", "::: {.a}\n:::\n")
    link = tmp_path / "alias.md"
    try:
        os.symlink(source, link, target_is_directory=False)
    except OSError as error:  # pragma: no cover - platform dependent
        pytest.skip(f"Unable to create symlink: {error}")

    result = cli_runner.invoke(cli_module.cli, [str(link)])
    assert result.exit_code != 0
    assert "Symlinks" in result.output


def test_path_traversal_prevented(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    outside = tmp_path.parent / f"outside-{uuid.uuid4().hex}.md"
    outside.write_text("::: {.a}\n:::\n", encoding="utf-8")

    try:
        result = cli_runner.invoke(cli_module.cli, [str(outside)])
        assert result.exit_code != 0
        assert "outside of the working directory" in result.output
    finally:
        outside.unlink(missing_ok=True)


def test_file_size_limit_enforced(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PANDOC_DIRECTIVES_MAX_FILE_SIZE", "10")
    target = tmp_path / "large.md"
    target.write_text("X" * 20, encoding="utf-8")

    result = cli_runner.invoke(cli_module.cli, [str(target)])
    assert result.exit_code != 0
    assert "maximum allowed size" in _error_text(result)


def test_file_size_limit_from_config(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PANDOC_DIRECTIVES_MAX_FILE_SIZE", raising=False)
    (tmp_path / ".pandoc-directives.toml").write_text(
        "[pandoc-directives]\nmax_file_size = 5\n", encoding="utf-8"
    )
    target = tmp_path / "large.md"
    target.write_text("X" * 20, encoding="utf-8")

    result = cli_runner.invoke(cli_module.cli, [str(target)])
    assert result.exit_code != 0
    assert "maximum allowed size of 5 bytes" in _error_text(result)


def test_invalid_size_env_reported(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PANDOC_DIRECTIVES_MAX_FILE_SIZE", "lots")
    target = _write(tmp_path, "doc.md", "text\n")

    result = cli_runner.invoke(cli_module.cli, [str(target)])
    assert result.exit_code != 0
    assert "PANDOC_DIRECTIVES_MAX_FILE_SIZE" in _error_text(result)


def test_in_place_refuses_concurrent_modification(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "doc.md", "::: {.a}\n:::\n")
    original_normalize = cli_module.normalize_document

    def normalize_and_modify(*args, **kwargs):
        output = original_normalize(*args, **kwargs)
        target.write_text("edited elsewhere, with a different size\n", encoding="utf-8")
        return output

    monkeypatch.setattr(cli_module, "normalize_document", normalize_and_modify)

    result = cli_runner.invoke(cli_module.cli, ["--in-place", str(target)])
    assert result.exit_code != 0
    assert "changed during processing" in _error_text(result)
    assert target.read_text(encoding="utf-8") == "edited elsewhere, with a different size\n"
