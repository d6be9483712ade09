"""Filesystem locations used by Pocket Prompt."""

import os
from pathlib import Path
from typing import Final

import platformdirs

LIBRARY_DIR_ENV: Final = "POCKET_PROMPT_DIR"
STATE_DIR_NAME: Final = ".pocket-prompt"


def get_default_library_root() -> Path:
    """Get the library root directory.

    Uses POCKET_PROMPT_DIR when set, otherwise ``~/.pocket-prompt``.
    """
    override = os.environ.get(LIBRARY_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / STATE_DIR_NAME


def get_state_dir(root: Path) -> Path:
    """Get the internal state directory inside a library root."""
    return root / STATE_DIR_NAME


def get_cache_dir(root: Path) -> Path:
    """Get the metadata cache directory inside a library root."""
    return get_state_dir(root) / "cache"


def get_log_file(root: Path) -> Path:
    """Get the default log file path for a library root."""
    return get_state_dir(root) / "logs" / "pocket-prompt.log"


def get_library_config_path(root: Path) -> Path:
    """Get the library-local configuration file path."""
    return get_state_dir(root) / "config.toml"


def get_user_config_path() -> Path:
    r"""Get platform-specific user config file path.

    - Linux: ``~/.config/pocket-prompt/config.toml``
    - macOS: ``~/Library/Application Support/pocket-prompt/config.toml``
    - Windows: ``%APPDATA%\pocket-prompt\config.toml``
    """
    return platformdirs.user_config_path("pocket-prompt") / "config.toml"
