"""Project configuration loading and management."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from pathlib import Path
import tomllib

from .constants import (
    DEFAULT_BANG_COMMENT,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_MAX_INCLUDE_DEPTH,
    DEFAULT_TAB_WIDTH,
)


@dataclass
class HmlConfig:
    """Configuration for expanding HML documents.

    Attributes:
        head_template: File written before the expanded body, or None for the
            bundled template.
        tail_template: File written after the expanded body, or None for the
            bundled template.
        macro_files: Macro definition files loaded ahead of the built-in ones.
        builtin_macros: Whether the bundled macro definitions are loaded.
        fragment: Emit only the expanded body, without head and tail.
        bang_comment: Regular expression introducing a bang comment in
            listings. Documents may override it with the ``bangComment`` setting.
        tab_width: Tab stop width used inside listings.
        max_file_size: Maximum size in bytes of a document or included file.
        max_include_depth: Maximum nesting of ``<include>``/``<import>``.

    Examples:
        HmlConfig(fragment=True, macro_files=["project.macros"])
    """

    # Templates
    head_template: str | None = None
    tail_template: str | None = None

    # Macros
    macro_files: list[str] = field(default_factory=list)
    builtin_macros: bool = True

    # Output
    fragment: bool = False
    bang_comment: str = DEFAULT_BANG_COMMENT
    tab_width: int = DEFAULT_TAB_WIDTH

    # Limits
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH


class ConfigError(ValueError):
    """Exception raised when configuration values are invalid.

    Examples:
        raise ConfigError("`tab_width` must be a positive integer")
    """


def load_config(search_path: Path) -> HmlConfig:
    """Load configuration from the nearest config file.

    Walks parent directories from `search_path` to the filesystem root, reading
    the ``[tool.hml]`` table from `pyproject.toml` and the ``[hml]`` or
    ``[tool.hml]`` table from `.hml.toml` when present. Returns default values
    when no configuration is found. TOML files that cannot be read or decoded
    are skipped.

    Args:
        search_path: Directory used as the starting point for configuration lookup.

    Returns:
        HmlConfig: Loaded configuration with defaults applied when necessary.

    Raises:
        ConfigError: If the table is present but is not a mapping or contains
            unsupported keys.

    Examples:
        load_config(Path("docs"))
    """
    current = search_path.resolve()

    while True:
        pyproject_config = _load_from_file(current / "pyproject.toml", table_paths=[("tool", "hml")])
        if pyproject_config is not None:
            return normalize_config(pyproject_config)

        dotfile_config = _load_from_file(
            current / ".hml.toml",
            table_paths=[("hml",), ("tool", "hml")],
        )
        if dotfile_config is not None:
            return normalize_config(dotfile_config)

        parent = current.parent
        if parent == current:
            break
        current = parent

    return HmlConfig()


_MISSING = object()


def _load_from_file(config_file: Path, table_paths: list[tuple[str, ...]]) -> HmlConfig | None:
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
) -> HmlConfig:
    table_display = ".".join(table_path)

    if raw_config is None or raw_config == {}:
        return HmlConfig()

    if not isinstance(raw_config, dict):
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}")

    # Keys are written with dashes in TOML
    settings = {key.replace("-", "_"): value for key, value in raw_config.items()}
    try:
        config = HmlConfig(**settings)
    except TypeError as error:
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}") from error

    return _resolve_paths(config, config_file.parent)


def _resolve_paths(config: HmlConfig, base_dir: Path) -> HmlConfig:
    def resolve(value: str | None) -> str | None:
        if not value:
            return value
        path = Path(value).expanduser()
        return str(path if path.is_absolute() else base_dir / path)

    macro_files = config.macro_files
    if isinstance(macro_files, str):
        macro_files = [macro_files]
    if not isinstance(macro_files, list) or not all(isinstance(path, str) for path in macro_files):
        raise ConfigError("`macro_files` must be a list of paths")
    for name in ("head_template", "tail_template"):
        if not isinstance(getattr(config, name), (str, type(None))):
            raise ConfigError(f"`{name}` must be a path")

    return replace(
        config,
        head_template=resolve(config.head_template),
        tail_template=resolve(config.tail_template),
        macro_files=[resolve(path) for path in macro_files],
    )


def normalize_config(config: HmlConfig) -> HmlConfig:
    macro_files = config.macro_files
    if isinstance(macro_files, (str, Path)):
        macro_files = [macro_files]
    return replace(config, macro_files=[str(path) for path in macro_files])


def validate_config(config: HmlConfig) -> None:
    """Validate an `HmlConfig` instance.

    Args:
        config: Configuration to validate.

    Returns:
        None.

    Raises:
        ConfigError: If flags are not booleans, the bang comment pattern is
            empty or invalid, template paths are empty, or numeric limits are
            non-positive.

    Examples:
        validate_config(HmlConfig(tab_width=8))
    """
    config = normalize_config(config)

    _ensure_integers(
        {
            "tab_width": config.tab_width,
            "max_file_size": config.max_file_size,
            "max_include_depth": config.max_include_depth,
        }
    )
    _ensure_positive(
        {
            "tab_width": config.tab_width,
            "max_file_size": config.max_file_size,
            "max_include_depth": config.max_include_depth,
        }
    )

    for name in ("builtin_macros", "fragment"):
        if not isinstance(getattr(config, name), bool):
            raise ConfigError(f"`{name}` must be a boolean")

    for name in ("head_template", "tail_template"):
        value = getattr(config, name)
        if value is not None and (not isinstance(value, str) or not value):
            raise ConfigError(f"`{name}` must be a non-empty path")

    if not isinstance(config.bang_comment, str) or not config.bang_comment:
        raise ConfigError("`bang_comment` must not be empty")
    try:
        re.compile(config.bang_comment)
    except re.error as error:
        raise ConfigError(f"`bang_comment` is not a valid regular expression: {error}") from error


def apply_overrides(config: HmlConfig, **overrides: object) -> HmlConfig:
    """Apply override values to an `HmlConfig`.

    Args:
        config: Base configuration to update.
        overrides: Override values keyed by configuration field name; values set to
            None are ignored.

    Returns:
        HmlConfig: New configuration with the provided overrides applied. The
        original configuration is returned when no changes are supplied.

    Raises:
        TypeError: If an override name is not defined on `HmlConfig`.

    Examples:
        updated = apply_overrides(config, fragment=True, tab_width=8)
    """
    changes = {key: value for key, value in overrides.items() if value is not None}
    if not changes:
        return config
    return replace(config, **changes)


def build_config(search_path: Path, **overrides: object) -> HmlConfig:
    """Load, override, and validate configuration.

    Args:
        search_path: Directory where configuration files are resolved.
        overrides: Override values keyed by configuration attributes; None values
            are ignored.

    Returns:
        HmlConfig: Validated configuration ready for expansion.

    Raises:
        ConfigError: If configuration loading or validation fails.

    Examples:
        config = build_config(Path.cwd(), fragment=True)
    """
    config = load_config(search_path)
    config = apply_overrides(config, **overrides)
    config = normalize_config(config)
    validate_config(config)
    return config


def _ensure_positive(values: dict[str, int]) -> None:
    for key, value in values.items():
        if value <= 0:
            raise ConfigError(f"`{key}` must be a positive integer")


def _ensure_integers(values: dict[str, object]) -> None:
    for key, value in values.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"`{key}` must be an integer")
