"""Configuration discovery and loading."""

import os
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from pocket_prompt.exceptions import ConfigError, ConfigLoadError
from pocket_prompt.utils import get_library_config_path, get_user_config_path

from ._loader import deep_merge, parse_env_vars, read_toml_file
from ._models import Config


def _read_optional(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    if not path.is_file():
        return {}
    return read_toml_file(path)


def load_config(
    *,
    config_path: Path | None = None,
    root: Path | None = None,
    include_env: bool = True,
    environ: dict[str, str] | None = None,
) -> Config:
    """Load configuration from files and the environment.

    Sources, lowest precedence first: the user config file, the library
    config file (``<root>/.pocket-prompt/config.toml``), an explicit
    ``config_path``, environment variables, then the ``root`` argument.

    Args:
        config_path: Explicit config file; must exist when given.
        root: Library root override.
        include_env: Whether to apply environment variables.
        environ: Environment mapping used instead of ``os.environ``.

    Returns:
        The merged configuration.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        ConfigLoadError: If a file cannot be parsed or values are invalid.
    """
    merged = _read_optional(get_user_config_path())

    env_values = parse_env_vars(environ) if include_env else {}
    overrides: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    if root is not None:
        overrides["root"] = str(root)

    # The library root decides where the library-local file lives
    provisional = deep_merge(deep_merge(merged, env_values), overrides)
    library_root = Config.from_dict({"root": provisional.get("root", "")}).library_root
    merged = deep_merge(merged, _read_optional(get_library_config_path(library_root)))

    if config_path is not None:
        if not config_path.is_file():
            msg = f"Config file not found: {config_path}"
            raise FileNotFoundError(msg)
        merged = deep_merge(merged, read_toml_file(config_path))

    merged = deep_merge(deep_merge(merged, env_values), overrides)

    try:
        return Config.from_dict(merged)
    except ValidationError as e:
        msg = f"Invalid configuration: {e}"
        raise ConfigLoadError(msg, path=config_path) from e


def safe_load_config(
    *,
    config_path: Path | None = None,
    root: Path | None = None,
) -> tuple[Config, str | None]:
    """Load configuration, falling back to defaults on error.

    With POCKET_PROMPT_STRICT_CONFIG=1 any error exits the process;
    otherwise a warning is printed to stderr and defaults are returned.

    Returns:
        Tuple of (Config, error_message). On success, error_message is None.
    """
    strict_mode = os.environ.get("POCKET_PROMPT_STRICT_CONFIG", "0") == "1"

    try:
        return load_config(config_path=config_path, root=root), None
    except (ConfigError, OSError) as e:
        error_msg = str(e)
        if strict_mode or (config_path is not None and isinstance(e, FileNotFoundError)):
            print(f"Error: {error_msg}", file=sys.stderr)  # noqa: T201
            sys.exit(1)
        print(f"Warning: Failed to load config: {error_msg}", file=sys.stderr)  # noqa: T201
        fallback = {"root": str(root)} if root is not None else {}
        return Config.from_dict(fallback), error_msg
