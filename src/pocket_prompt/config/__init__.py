"""Configuration for Pocket Prompt."""

from ._load import load_config, safe_load_config
from ._loader import deep_merge, parse_env_vars, read_toml_file
from ._models import Config, LogFormat, LoggingConfig, LogLevel, SyncConfig

__all__ = [
    "Config",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "SyncConfig",
    "deep_merge",
    "load_config",
    "parse_env_vars",
    "read_toml_file",
    "safe_load_config",
]
