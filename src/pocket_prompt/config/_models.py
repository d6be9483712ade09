"""Configuration models.

Frozen pydantic models describing library settings. Values come from TOML
files and environment variables merged by the loader.
"""

from enum import StrEnum
from pathlib import Path
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field

from pocket_prompt.utils import get_default_library_root


class LogLevel(StrEnum):
    """Log level threshold values."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty uses the library log directory).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    file: str = ""


class SyncConfig(BaseModel):
    """Git synchronization settings.

    Timeouts are in seconds. ``quick_timeout`` bounds the checks used to
    render status without blocking; ``remote_timeout`` bounds remote
    branch lookups; ``fetch_timeout`` applies to network fetches.

    Attributes:
        enabled: Whether sync runs once a remote is linked.
        interval_seconds: Period of the background pull loop.
        command_timeout: Timeout for ordinary git commands.
        fetch_timeout: Timeout for fetch operations.
        remote_timeout: Timeout for remote lookups.
        status_timeout: Timeout for working tree status checks.
        quick_timeout: Timeout for UI-facing quick checks such as reading the
            current branch.
        branch: Default branch name for new repositories.
        commit_message: Message prefix used for automatic commits.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    enabled: bool = True
    interval_seconds: float = Field(default=300.0, gt=0)
    command_timeout: float = Field(default=10.0, gt=0)
    fetch_timeout: float = Field(default=30.0, gt=0)
    remote_timeout: float = Field(default=3.0, gt=0)
    status_timeout: float = Field(default=1.0, gt=0)
    quick_timeout: float = Field(default=0.5, gt=0)
    branch: str = "master"
    commit_message: str = "Update prompts"


class Config(BaseModel):
    """Root configuration object.

    Attributes:
        root: Library root directory (empty resolves to the default).
        logging: Logging settings.
        sync: Git synchronization settings.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    root: str = ""
    logging: LoggingConfig = LoggingConfig()
    sync: SyncConfig = SyncConfig()

    @property
    def library_root(self) -> Path:
        """Resolved library root directory."""
        if self.root:
            return Path(self.root).expanduser()
        return get_default_library_root()

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    ) -> Self:
        """Build a config from a (possibly partial) dictionary."""
        return cls.model_validate(data)
