"""pocket-prompt CLI commands."""

from cyclopts import App

from ._prompts import history_command, list_command, show_command, tags_command
from ._packs import app as packs_app
from ._saved import app as saved_app
from ._search import boolean_command, search_command
from ._shared import (
    ExitCode,
    FormattableData,
    exit_code_for,
    exit_with_error,
    fail,
    format_json,
    format_yaml,
    get_console,
    get_error_console,
    open_library,
    render_prompts,
)
from ._sync import app as sync_app

__all__ = [
    "ExitCode",
    "FormattableData",
    "exit_code_for",
    "exit_with_error",
    "fail",
    "format_json",
    "format_yaml",
    "get_console",
    "get_error_console",
    "open_library",
    "packs_app",
    "register_commands",
    "render_prompts",
    "saved_app",
    "sync_app",
]


def register_commands(app: App) -> None:
    app.command(list_command, name="list")
    app.command(show_command, name="show")
    app.command(history_command, name="history")
    app.command(tags_command, name="tags")
    app.command(search_command, name="search")
    app.command(boolean_command, name="boolean")
    app.command(saved_app)
    app.command(packs_app)
    app.command(sync_app)
