# pyright: reportExplicitAny=false
"""Shared CLI utilities for commands.

- Standardized exit codes and error reporting
- Output formatters (JSON, YAML, Rich tables)
- Library access for the active CLI context
"""

from collections.abc import Sequence
from enum import IntEnum
from typing import Any, Never

import orjson
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pocket_prompt.artifacts import Prompt, format_timestamp
from pocket_prompt.exceptions import (
    InvalidExpressionError,
    NotFoundError,
    PocketPromptError,
    StorageFailureError,
    SyncFailureError,
    ValidationFailureError,
)
from pocket_prompt.library import PromptLibrary

from .._context import CLIContext, OutputFormat

type FormattableData = dict[str, Any]


class ExitCode(IntEnum):
    """Standard exit codes for pocket-prompt commands."""

    SUCCESS = 0
    LOAD_ERROR = 1
    VALIDATION_ERROR = 2
    NOT_FOUND = 3
    IO_ERROR = 4
    INTERNAL_ERROR = 5
    SYNC_ERROR = 6


def format_json(data: FormattableData, *, indent: bool = True) -> str:
    """Format data as JSON."""
    options = orjson.OPT_INDENT_2 if indent else 0
    return orjson.dumps(data, option=options).decode("utf-8")


def format_yaml(data: FormattableData) -> str:
    """Format data as YAML."""
    return yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)


def get_console() -> Console:
    """Console for command output, honoring ``--no-color``."""
    return Console(no_color=CLIContext.get_current().no_color, highlight=False)


def get_error_console() -> Console:
    """Console writing to stderr."""
    return Console(stderr=True, no_color=CLIContext.get_current().no_color)


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.INTERNAL_ERROR,
    *,
    console: Console | None = None,
) -> Never:
    """Print an error message and exit with the specified code.

    Raises:
        SystemExit: Always raised with the specified exit code.
    """
    if console is None:
        console = get_error_console()
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
    raise SystemExit(code)


def exit_code_for(error: PocketPromptError) -> ExitCode:
    """Map a library error to an exit code."""
    match error:
        case NotFoundError():
            return ExitCode.NOT_FOUND
        case InvalidExpressionError() | ValidationFailureError():
            return ExitCode.VALIDATION_ERROR
        case StorageFailureError():
            return ExitCode.IO_ERROR
        case SyncFailureError():
            return ExitCode.SYNC_ERROR
        case _:
            return ExitCode.INTERNAL_ERROR


def fail(error: PocketPromptError) -> Never:
    """Report a library error, log it, and exit with the matching code."""
    logger = CLIContext.get_current().logger
    if logger is not None:
        logger.error("command_failed", error=str(error), error_type=type(error).__name__)
    exit_with_error(str(error), exit_code_for(error))


def open_library() -> PromptLibrary:
    """Open the library for the active CLI context.

    Raises:
        SystemExit: If the library directory cannot be prepared.
    """
    ctx = CLIContext.get_current()
    if ctx.config_error and ctx.logger is not None:
        ctx.logger.warning("config_load_failed", error=ctx.config_error)
    library = PromptLibrary(ctx.config, logger=ctx.logger)
    try:
        library.open()
    except PocketPromptError as e:
        fail(e)
    return library


def prompt_to_dict(prompt: Prompt) -> FormattableData:
    """Listing fields of a prompt for structured output."""
    return {
        "id": prompt.id,
        "name": prompt.name,
        "summary": prompt.summary,
        "tags": list(prompt.tags),
        "version": prompt.version,
        "file_path": prompt.file_path,
        "updated_at": format_timestamp(prompt.updated_at),
    }


def render_prompts(
    prompts: Sequence[Prompt],
    output_format: OutputFormat,
    *,
    console: Console | None = None,
    title: str | None = None,
) -> None:
    """Print prompts in the requested format."""
    console = console or get_console()

    if output_format is OutputFormat.JSON:
        console.print(
            format_json({"prompts": [prompt_to_dict(p) for p in prompts]}),
            markup=False,
            soft_wrap=True,
        )
        return
    if output_format is OutputFormat.YAML:
        console.print(
            format_yaml({"prompts": [prompt_to_dict(p) for p in prompts]}),
            markup=False,
            soft_wrap=True,
        )
        return
    if output_format is OutputFormat.PLAIN:
        for prompt in prompts:
            console.print(prompt.id, markup=False, soft_wrap=True)
        return

    if not prompts:
        console.print("[dim]No prompts found[/dim]")
        return

    table = Table(title=title, box=None, padding=(0, 2))
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Version", justify="right")
    table.add_column("Tags", style="dim")
    for prompt in prompts:
        table.add_row(
            escape(prompt.id),
            escape(prompt.name),
            prompt.version,
            escape(", ".join(prompt.tags)),
        )
    console.print(table)


def print_warnings(warnings: Sequence[str], *, console: Console | None = None) -> None:
    """Print non-fatal warnings to stderr."""
    if not warnings:
        return
    console = console or get_error_console()
    for warning in warnings:
        console.print(f"[yellow]Warning:[/yellow] {escape(warning)}", highlight=False)
