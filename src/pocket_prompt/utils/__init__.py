"""Shared utilities: paths, logging, and atomic file I/O."""

from ._io import atomic_write, read_json, write_json_atomic
from ._logging import (
    LogFormatType,
    create_library_logger,
    create_logger,
    get_null_logger,
)
from ._paths import (
    LIBRARY_DIR_ENV,
    STATE_DIR_NAME,
    get_cache_dir,
    get_default_library_root,
    get_library_config_path,
    get_log_file,
    get_state_dir,
    get_user_config_path,
)

__all__ = [
    "LIBRARY_DIR_ENV",
    "STATE_DIR_NAME",
    "LogFormatType",
    "atomic_write",
    "create_library_logger",
    "create_logger",
    "get_cache_dir",
    "get_default_library_root",
    "get_library_config_path",
    "get_log_file",
    "get_null_logger",
    "get_state_dir",
    "get_user_config_path",
    "read_json",
    "write_json_atomic",
]
