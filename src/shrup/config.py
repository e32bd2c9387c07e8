"""
Processing configuration and TOML-based config file loading for shrup.

A run is driven by an immutable `ProcessingConfig`. On the command line, its
values come from three places with this precedence: explicit CLI flags >
config file > built-in defaults. The config file is `.shrup.toml`,
`shrup.toml`, or `pyproject.toml [tool.shrup]`, found by walking up from the
current directory.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any, cast

if sys.version_info >= (3, 11):
    import tomllib  # pyright: ignore[reportUnreachable]
else:
    import tomli as tomllib  # type: ignore[no-redef]  # pyright: ignore[reportUnreachable]

if TYPE_CHECKING:
    from shrup.cli import Options

DEFAULT_MAX_INCLUDE_DEPTH = 100


@dataclass(frozen=True)
class ProcessingConfig:
    """Settings shared read-only by every step of one expansion run."""

    debug_mode: bool = False
    """Wrap each included file in start/end marker comments."""

    max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH
    """Maximum number of files on the active include chain, top-level file included."""

    base_directory: Path = Path(".")
    """Root under which absolute include paths are resolved."""


@dataclass
class ShrupConfig:
    """
    Parsed config from a TOML file. Fields are `None` when not set in the config,
    allowing the merge logic to distinguish "not configured" from "explicitly set
    to default value".
    """

    debug: bool | None = None
    max_depth: int | None = None
    base_directory: Path | None = None


# Config file search order (first match wins within each directory level)
_CONFIG_FILENAMES = [".shrup.toml", "shrup.toml", "pyproject.toml"]

# Mapping from TOML kebab-case keys to Python snake_case field names
_KEBAB_TO_SNAKE: dict[str, str] = {
    "max-depth": "max_depth",
    "max-include-depth": "max_depth",
    "base-directory": "base_directory",
    "base-dir": "base_directory",
}

_VALID_FIELDS = {f.name for f in fields(ShrupConfig)}


def find_config_file(start_dir: Path) -> Path | None:
    """
    Return the nearest config file at or above `start_dir`, or `None`.

    Within one directory `.shrup.toml` wins over `shrup.toml`, which wins over a
    `pyproject.toml` that has a `[tool.shrup]` table.
    """
    start = start_dir.resolve()
    for directory in (start, *start.parents):
        for filename in _CONFIG_FILENAMES:
            candidate = directory / filename
            if not candidate.is_file():
                continue
            if filename != "pyproject.toml" or _read_pyproject_section(candidate) is not None:
                return candidate
    return None


def _read_pyproject_section(path: Path) -> dict[str, Any] | None:
    """The `[tool.shrup]` table of a pyproject.toml, or `None` if absent or unreadable."""
    try:
        data = tomllib.loads(path.read_text())
    except (tomllib.TOMLDecodeError, OSError):
        return None
    section = data.get("tool", {}).get("shrup")
    return cast(dict[str, Any], section) if isinstance(section, dict) else None


def load_config(config_path: Path) -> ShrupConfig:
    """
    Load a `ShrupConfig` from a TOML file. Supports both standalone
    `shrup.toml` / `.shrup.toml` and `pyproject.toml` (extracts `[tool.shrup]`).
    A relative `base-directory` is taken relative to the config file's directory.

    Malformed TOML is reported on stderr and yields an empty config. Raises
    `ValueError` if a recognized key has a value of the wrong type.
    """
    try:
        data = tomllib.loads(config_path.read_text())
    except tomllib.TOMLDecodeError as e:
        print(f"Warning: ignoring malformed config file {config_path}: {e}", file=sys.stderr)
        return ShrupConfig()

    if config_path.name == "pyproject.toml":
        data = _read_pyproject_section(config_path) or {}

    config = _parse_config_data(data, config_path)
    if config.base_directory is not None and not config.base_directory.is_absolute():
        config.base_directory = config_path.parent / config.base_directory
    return config


def _parse_config_data(data: dict[str, Any], config_path: Path) -> ShrupConfig:
    """Parse a flat or sectioned TOML dict into ShrupConfig."""
    # Flatten sections: e.g. [preprocess] merges into top level
    flat: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            for sub_key, sub_value in cast(dict[str, Any], value).items():
                flat[sub_key] = sub_value
        else:
            flat[key] = value

    mapped: dict[str, Any] = {}
    for key, value in flat.items():
        snake_key = _KEBAB_TO_SNAKE.get(key, key.replace("-", "_"))
        if snake_key in _VALID_FIELDS:
            mapped[snake_key] = value
        else:
            print(
                f"Warning: unrecognized config key '{key}' in {config_path}",
                file=sys.stderr,
            )

    if "debug" in mapped and not isinstance(mapped["debug"], bool):
        raise ValueError(f"Invalid config file {config_path}: 'debug' must be a boolean")
    if "max_depth" in mapped:
        max_depth = mapped["max_depth"]
        if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth < 0:
            raise ValueError(
                f"Invalid config file {config_path}: 'max-depth' must be a non-negative integer"
            )
    if "base_directory" in mapped:
        if not isinstance(mapped["base_directory"], str):
            raise ValueError(f"Invalid config file {config_path}: 'base-directory' must be a string")
        mapped["base_directory"] = Path(mapped["base_directory"])

    return ShrupConfig(**mapped)


def merge_cli_with_config(
    options: Options,
    config: ShrupConfig | None,
    explicit_flags: set[str],
) -> Options:
    """
    Fill in `options` from the config file wherever the user did not pass the
    corresponding flag. `explicit_flags` holds the `Options` field names given
    on the command line.
    """
    if config is None:
        return options

    if config.debug is not None and "debug" not in explicit_flags:
        options.debug = config.debug
    if config.max_depth is not None and "max_depth" not in explicit_flags:
        options.max_depth = config.max_depth
    if config.base_directory is not None and "base_directory" not in explicit_flags:
        options.base_directory = config.base_directory
    return options
