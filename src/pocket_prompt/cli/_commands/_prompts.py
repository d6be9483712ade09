# pyright: reportUnusedCallResult=false
"""Prompt listing and inspection commands."""

from typing import Annotated

from cyclopts import Parameter
from rich.markup import escape
from rich.table import Table

from pocket_prompt.artifacts import format_timestamp
from pocket_prompt.exceptions import PocketPromptError

from .._context import OutputFormat
from ._shared import fail, format_json, get_console, open_library, prompt_to_dict, render_prompts

__all__ = ["history_command", "list_command", "show_command", "tags_command"]


def list_command(
    *,
    tag: Annotated[
        str | None, Parameter(name=["--tag", "-t"], help="Only prompts with this tag")
    ] = None,
    archived: Annotated[bool, Parameter(help="List archived versions instead")] = False,
    output_format: Annotated[
        OutputFormat, Parameter(name=["--format", "-f"], help="Output format")
    ] = OutputFormat.TABLE,
) -> None:
    """List prompts in the library."""
    library = open_library()
    try:
        if archived:
            prompts = library.list_archived()
        elif tag:
            prompts = library.filter_by_tag(tag)
        else:
            prompts = library.list_prompts()
    except PocketPromptError as e:
        fail(e)
    render_prompts(prompts, output_format)


def show_command(
    prompt_id: str,
    *,
    raw: Annotated[bool, Parameter(help="Print only the prompt body")] = False,
    output_format: Annotated[
        OutputFormat, Parameter(name=["--format", "-f"], help="Output format")
    ] = OutputFormat.TABLE,
) -> None:
    """Show a prompt with its body.

    Args:
        prompt_id: Prompt identifier.
        raw: Print only the body, with no header.
        output_format: Output format (json prints every field).
    """
    library = open_library()
    try:
        prompt = library.get_prompt(prompt_id)
    except PocketPromptError as e:
        fail(e)

    console = get_console()
    if output_format is OutputFormat.JSON:
        data = prompt_to_dict(prompt) | {"content": prompt.content or ""}
        console.print(format_json(data), markup=False, soft_wrap=True)
        return
    if raw:
        console.print(prompt.content or "", markup=False, soft_wrap=True)
        return

    console.print(f"[bold]{escape(prompt.name or prompt.id)}[/bold]  [dim]v{prompt.version}[/dim]")
    if prompt.summary:
        console.print(escape(prompt.summary))
    if prompt.tags:
        console.print(f"[dim]Tags: {escape(', '.join(prompt.tags))}[/dim]")
    console.print()
    console.print(prompt.content or "", markup=False, soft_wrap=True)


def history_command(prompt_id: str) -> None:
    """Show archived versions of a prompt, oldest first.

    Args:
        prompt_id: Prompt identifier.
    """
    library = open_library()
    try:
        versions = library.history(prompt_id)
    except PocketPromptError as e:
        fail(e)

    console = get_console()
    if not versions:
        console.print(f"[dim]No archived versions of {escape(prompt_id)}[/dim]")
        return

    table = Table(box=None, padding=(0, 2))
    table.add_column("Version", justify="right", style="cyan")
    table.add_column("Updated")
    table.add_column("Path", style="dim")
    for version in versions:
        table.add_row(
            version.version,
            format_timestamp(version.updated_at) or "",
            escape(version.file_path),
        )
    console.print(table)


def tags_command() -> None:
    """List every tag used by current prompts."""
    library = open_library()
    try:
        tags = library.all_tags()
    except PocketPromptError as e:
        fail(e)

    console = get_console()
    for tag in tags:
        console.print(tag, markup=False)
