"""Logging utilities for Pocket Prompt.

This module provides standalone structlog logger factories that write
JSON-formatted or text-formatted lines to the library log file. Each logger
is self-contained and does not modify global structlog configuration.
"""

import logging
from os import getenv
from pathlib import Path
from typing import Literal, cast

import structlog
from structlog.typing import FilteringBoundLogger

from ._paths import get_log_file

LogFormatType = Literal["json", "text"]


def _log_level_from_string(level: str | None, *, respect_env: bool = True) -> int:
    """Convert a log level string to a logging level integer.

    POCKET_PROMPT_DEBUG forces DEBUG; POCKET_PROMPT_LOG_LEVEL is used when
    no explicit level is given.

    Args:
        level: Log level string (debug, info, warning, error), or None.
        respect_env: Whether environment variables may override the level.

    Returns:
        The logging level as an integer.
    """
    if respect_env and getenv("POCKET_PROMPT_DEBUG", None):
        return logging.DEBUG

    if level is None:
        level = getenv("POCKET_PROMPT_LOG_LEVEL", "info") if respect_env else "info"

    log_levels = logging.getLevelNamesMapping()
    return log_levels.get(level.upper(), logging.INFO)


def create_logger(
    log_file_path: Path | str,
    *,
    level: str | None = None,
    log_format: LogFormatType = "json",
) -> FilteringBoundLogger:
    """Create a standalone structlog logger writing to the specified file.

    Args:
        log_file_path: Path to the log file (opened in append mode).
        level: Log level threshold; environment variables apply when omitted.
        log_format: Output format, either "json" or "text".

    Returns:
        A configured FilteringBoundLogger instance.
    """
    log_path = Path(log_file_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    effective_level = _log_level_from_string(level)
    logger_factory = structlog.WriteLoggerFactory(file=log_path.open("a"))

    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        processors.append(structlog.processors.dict_tracebacks)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            logger_factory(),
            processors=processors,
            wrapper_class=structlog.make_filtering_bound_logger(effective_level),
            context_class=dict,
        ),
    )


def create_library_logger(
    root: Path,
    *,
    level: str = "info",
    log_format: LogFormatType = "json",
    log_file: str = "",
    command: str = "",
) -> FilteringBoundLogger:
    """Create the logger used by a library instance and the CLI.

    Writes to ``<root>/.pocket-prompt/logs/pocket-prompt.log`` unless an
    explicit file is configured. The command name, if given, is bound to
    every entry.

    Args:
        root: Library root directory.
        level: Log level threshold.
        log_format: Output format, either "json" or "text".
        log_file: Explicit log file path (default location if empty).
        command: CLI command name for context.

    Returns:
        A FilteringBoundLogger instance.
    """
    effective_file = log_file if log_file else get_log_file(root)
    logger = create_logger(effective_file, level=level, log_format=log_format)
    if command:
        return logger.bind(command=command)
    return logger


def get_null_logger() -> FilteringBoundLogger:
    """Return a logger that drops everything.

    Used as the default for components constructed without a logger.
    """
    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            structlog.ReturnLogger(),
            processors=[],
            wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
            context_class=dict,
        ),
    )
