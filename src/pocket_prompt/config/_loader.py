# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""TOML configuration file loading and merging."""

import os
import tomllib
from pathlib import Path
from typing import Any, Final

import orjson

from pocket_prompt.exceptions import ConfigLoadError

ENV_PREFIX: Final = "POCKET_PROMPT_"

# Short environment variable names mapped to nested config keys
_ENV_ALIASES: Final[dict[str, str]] = {
    "POCKET_PROMPT_DIR": "root",
    "POCKET_PROMPT_SYNC_INTERVAL": "sync.interval_seconds",
    "POCKET_PROMPT_LOG_LEVEL": "logging.level",
    "POCKET_PROMPT_LOG_FORMAT": "logging.format",
}


def read_toml_file(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Read and parse a TOML file.

    Args:
        path: Path to the TOML file.

    Returns:
        Parsed TOML content as dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigLoadError: If the file cannot be parsed.
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Failed to parse TOML file: {e}"
        raise ConfigLoadError(
            msg,
            path=path,
            line=getattr(e, "lineno", None),
            column=getattr(e, "colno", None),
        ) from e


def deep_merge(
    base: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    override: dict[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Deep merge two configuration dictionaries.

    Dictionaries merge recursively; every other value in ``override``
    replaces the one in ``base``. Neither input is modified.
    """
    result: dict[str, Any] = dict(base)  # pyright: ignore[reportExplicitAny]
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = value
    return result


def set_nested_key(
    data: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    dotted_key: str,
    value: Any,  # pyright: ignore[reportExplicitAny]
) -> None:
    """Set ``value`` at a dotted path, creating intermediate tables."""
    *parents, leaf = dotted_key.split(".")
    target = data
    for part in parents:
        child = target.get(part)
        if not isinstance(child, dict):
            child = {}
            target[part] = child
        target = child
    target[leaf] = value


def _parse_env_value(value: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Parse environment variable value with type inference.

    Booleans (true/false), then integers, then floats, then JSON arrays and
    objects; anything else stays a string.
    """
    lower_value = value.lower()
    if lower_value in ("true", "false"):
        return lower_value == "true"

    try:
        return int(value)
    except ValueError:
        pass

    if "." in value:
        try:
            return float(value)
        except ValueError:
            pass

    if (value.startswith("[") and value.endswith("]")) or (
        value.startswith("{") and value.endswith("}")
    ):
        try:
            return orjson.loads(value)
        except orjson.JSONDecodeError:
            pass

    return value


def parse_env_vars(
    environ: dict[str, str] | None = None,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Parse environment variables into a config dictionary.

    Nested keys use double underscores (``POCKET_PROMPT_SYNC__FETCH_TIMEOUT``
    sets ``sync.fetch_timeout``). A few short aliases such as
    ``POCKET_PROMPT_DIR`` are also recognized.

    Args:
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        Dictionary of parsed config values with nested structure.
    """
    env = dict(os.environ) if environ is None else environ
    result: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]

    for key, value in env.items():
        if key in _ENV_ALIASES:
            # Paths and level names are never type-inferred
            set_nested_key(result, _ENV_ALIASES[key], value)
            continue
        if not key.startswith(ENV_PREFIX) or "__" not in key:
            continue
        config_path = key[len(ENV_PREFIX) :].replace("__", ".").lower()
        set_nested_key(result, config_path, _parse_env_value(value))

    return result
