"""Configuration loading and management."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
import tomllib

from .constants import DEFAULT_MAX_FILE_SIZE, DIALECT_PANDOC, DIALECT_QUARTO, DIALECTS
from .models import PreprocessOptions

# Quarto adds shortcodes and labeled math on top of Pandoc markdown.
DIALECT_OPTIONS = {
    DIALECT_QUARTO: PreprocessOptions(enable_shortcodes=True, enable_math_labels=True),
    DIALECT_PANDOC: PreprocessOptions(enable_shortcodes=False, enable_math_labels=False),
}


@dataclass
class DirectiveConfig:
    """Configuration for converting between Pandoc and directive syntax.

    Attributes:
        dialect: Source dialect, ``"quarto"`` or ``"pandoc"``.
        enable_shortcodes: Rewrite ``{{< ... >}}`` shortcodes. None defers to
            the dialect.
        enable_math_labels: Rewrite ``$$`` math blocks. None defers to the
            dialect.
        max_file_size: Maximum file size in bytes that will be processed.

    Examples:
        DirectiveConfig(dialect="pandoc", enable_shortcodes=True)
    """

    dialect: str = DIALECT_QUARTO
    enable_shortcodes: bool | None = None
    enable_math_labels: bool | None = None
    max_file_size: int = DEFAULT_MAX_FILE_SIZE


class ConfigError(ValueError):
    """Exception raised when configuration values are invalid.

    Examples:
        raise ConfigError("`dialect` must be one of: quarto, pandoc")
    """


def load_config(search_path: Path) -> DirectiveConfig:
    """Load configuration from the nearest config file.

    Walks parent directories from `search_path` to the filesystem root, reading
    the ``[tool.pandoc-directives]`` table from `pyproject.toml` and the
    ``[pandoc-directives]`` or ``[tool.pandoc-directives]`` table from
    `.pandoc-directives.toml` when present. Returns default values when no
    configuration is found. TOML files that cannot be read or decoded are
    skipped.

    Args:
        search_path: Directory used as the starting point for configuration lookup.

    Returns:
        DirectiveConfig: Loaded configuration with defaults applied when necessary.

    Raises:
        ConfigError: If a matching table is not a mapping or contains unsupported keys.

    Examples:
        load_config(Path("docs"))
    """
    current = search_path.resolve()

    while True:
        pyproject_config = _load_from_file(
            current / "pyproject.toml", table_paths=[("tool", "pandoc-directives")]
        )
        if pyproject_config is not None:
            return pyproject_config

        dotfile_config = _load_from_file(
            current / ".pandoc-directives.toml",
            table_paths=[("pandoc-directives",), ("tool", "pandoc-directives")],
        )
        if dotfile_config is not None:
            return dotfile_config

        parent = current.parent
        if parent == current:
            break
        current = parent

    return DirectiveConfig()


_MISSING = object()


def _load_from_file(
    config_file: Path, table_paths: list[tuple[str, ...]]
) -> DirectiveConfig | None:
    if not config_file.exists():
        return None

    try:
        with open(config_file, "rb") as stream:
            data = tomllib.load(stream)
    except (OSError, tomllib.TOMLDecodeError):
        return None

    for table_path in table_paths:
        raw_config = _extract_table(data, table_path)
        if raw_config is _MISSING:
            continue
        return _build_config_from_raw(raw_config, config_file, table_path)

    return None


def _extract_table(data: object, table_path: tuple[str, ...]) -> object:
    current = data
    for key in table_path:
        if not isinstance(current, dict) or key not in current:
            return _MISSING
        current = current[key]
    return current


def _build_config_from_raw(
    raw_config: object, config_file: Path, table_path: tuple[str, ...]
) -> DirectiveConfig:
    table_display = ".".join(table_path)

    if not isinstance(raw_config, dict):
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}")

    # TOML keys are conventionally dashed; dataclass fields are not.
    settings = {key.replace("-", "_"): value for key, value in raw_config.items()}
    try:
        return DirectiveConfig(**settings)
    except TypeError as error:
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}") from error


def normalize_config(config: DirectiveConfig) -> DirectiveConfig:
    """Resolve toggles left as None from the dialect profile.

    Unknown dialects are left untouched for `validate_config` to report.
    """
    profile = DIALECT_OPTIONS.get(config.dialect)
    if profile is None:
        return config

    enable_shortcodes = config.enable_shortcodes
    if enable_shortcodes is None:
        enable_shortcodes = profile.enable_shortcodes

    enable_math_labels = config.enable_math_labels
    if enable_math_labels is None:
        enable_math_labels = profile.enable_math_labels

    return replace(
        config, enable_shortcodes=enable_shortcodes, enable_math_labels=enable_math_labels
    )


def validate_config(config: DirectiveConfig) -> None:
    """Validate a `DirectiveConfig` instance.

    Args:
        config: Configuration to validate.

    Raises:
        ConfigError: If the dialect is unknown, a toggle is not a boolean, or
            the file size limit is not a positive integer.

    Examples:
        validate_config(DirectiveConfig(dialect="pandoc"))
    """
    if config.dialect not in DIALECTS:
        raise ConfigError(f"`dialect` must be one of: {', '.join(DIALECTS)}")

    config = normalize_config(config)

    for key in ("enable_shortcodes", "enable_math_labels"):
        if not isinstance(getattr(config, key), bool):
            raise ConfigError(f"`{key}` must be a boolean")

    max_file_size = config.max_file_size
    if isinstance(max_file_size, bool) or not isinstance(max_file_size, int):
        raise ConfigError("`max_file_size` must be an integer")
    if max_file_size <= 0:
        raise ConfigError("`max_file_size` must be a positive integer")


def apply_overrides(config: DirectiveConfig, **overrides: object) -> DirectiveConfig:
    """Apply override values to a `DirectiveConfig`.

    Args:
        config: Base configuration to update.
        overrides: Override values keyed by configuration field name; values set to
            None are ignored.

    Returns:
        DirectiveConfig: New configuration with the provided overrides applied.
        The original configuration is returned when no changes are supplied.

    Raises:
        TypeError: If an override name is not defined on `DirectiveConfig`.

    Examples:
        updated = apply_overrides(config, dialect="pandoc", enable_shortcodes=None)
    """
    changes = {key: value for key, value in overrides.items() if value is not None}
    if not changes:
        return config
    return replace(config, **changes)


def build_config(search_path: Path, **overrides: object) -> DirectiveConfig:
    """Load, override, and validate configuration.

    Args:
        search_path: Directory where configuration files are resolved.
        overrides: Override values keyed by configuration attributes; None values
            are ignored.

    Returns:
        DirectiveConfig: Validated configuration with both toggles resolved.

    Raises:
        ConfigError: If configuration loading or validation fails.

    Examples:
        config = build_config(Path.cwd(), dialect="pandoc")
    """
    config = load_config(search_path)
    config = apply_overrides(config, **overrides)
    validate_config(config)
    return normalize_config(config)


def preprocess_options(config: DirectiveConfig) -> PreprocessOptions:
    """Return the preprocessing toggles selected by `config`.

    Examples:
        preprocess_options(DirectiveConfig(dialect="pandoc"))
        # PreprocessOptions(enable_shortcodes=False, enable_math_labels=False)
    """
    config = normalize_config(config)
    return PreprocessOptions(
        enable_shortcodes=bool(config.enable_shortcodes),
        enable_math_labels=bool(config.enable_math_labels),
    )
