# pyright: reportUnusedCallResult=false
"""Pack commands."""

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.markup import escape
from rich.table import Table

from pocket_prompt.artifacts import Pack, format_timestamp
from pocket_prompt.exceptions import PocketPromptError

from .._context import OutputFormat
from ._shared import (
    FormattableData,
    fail,
    format_json,
    format_yaml,
    get_console,
    open_library,
    print_warnings,
    render_prompts,
)

__all__ = ["app"]

app = App(name="packs", help="Install and manage prompt packs", help_on_error=True)


def _pack_to_dict(pack: Pack) -> FormattableData:
    return {
        "name": pack.name,
        "version": pack.version,
        "title": pack.title,
        "description": pack.description,
        "author": pack.author,
        "tags": list(pack.tags),
        "install_time": format_timestamp(pack.install_time),
        "install_url": pack.install_url,
    }


@app.command(name="list")
def _list(
    *,
    output_format: Annotated[
        OutputFormat, Parameter(name=["--format", "-f"], help="Output format")
    ] = OutputFormat.TABLE,
) -> None:
    """List installed packs."""
    library = open_library()
    try:
        packs = library.list_packs()
    except PocketPromptError as e:
        fail(e)

    console = get_console()
    if output_format is OutputFormat.JSON:
        data = {"packs": [_pack_to_dict(p) for p in packs]}
        console.print(format_json(data), markup=False, soft_wrap=True)
        return
    if output_format is OutputFormat.YAML:
        data = {"packs": [_pack_to_dict(p) for p in packs]}
        console.print(format_yaml(data), markup=False, soft_wrap=True)
        return
    if output_format is OutputFormat.PLAIN:
        for pack in packs:
            console.print(pack.name, markup=False, soft_wrap=True)
        return

    if not packs:
        console.print("[dim]No packs installed[/dim]")
        return

    table = Table(box=None, padding=(0, 2))
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Version", justify="right")
    table.add_column("Author", style="dim")
    for pack in packs:
        table.add_row(
            escape(pack.name), escape(pack.title), escape(pack.version), escape(pack.author)
        )
    console.print(table)


@app.command(name="show")
def _show(
    name: str,
    *,
    output_format: Annotated[
        OutputFormat, Parameter(name=["--format", "-f"], help="Output format")
    ] = OutputFormat.TABLE,
) -> None:
    """List the prompts of an installed pack.

    Args:
        name: Pack name.
        output_format: Output format.
    """
    library = open_library()
    try:
        pack = library.get_pack(name)
        prompts = library.list_pack_prompts(name)
    except PocketPromptError as e:
        fail(e)
    render_prompts(prompts, output_format, title=f"{pack.title} ({pack.version})")


@app.command(name="install")
def _install(
    source: Path,
    *,
    name: Annotated[
        str | None, Parameter(name=["--name", "-n"], help="Install under another name")
    ] = None,
    force: Annotated[
        bool, Parameter(name=["--force"], help="Replace an installed pack")
    ] = False,
) -> None:
    """Install a pack from a local directory.

    Args:
        source: Directory containing pack.json.
        name: Install under this name instead of the manifest's.
        force: Replace an installed pack of the same name.
    """
    library = open_library()
    try:
        result = library.install_pack(source, name=name, force=force)
    except PocketPromptError as e:
        fail(e)
    pack = result.value
    get_console().print(
        f"[green]Installed pack[/green] {escape(pack.name)} {escape(pack.version)}"
    )
    print_warnings(result.warnings)


@app.command(name="uninstall")
def _uninstall(name: str) -> None:
    """Remove an installed pack and its prompts.

    Args:
        name: Pack name.
    """
    library = open_library()
    try:
        result = library.uninstall_pack(name)
    except PocketPromptError as e:
        fail(e)
    get_console().print(f"[green]Uninstalled pack[/green] {escape(result.value.name)}")
    print_warnings(result.warnings)


@app.command(name="new")
def _new(
    directory: Path,
    name: str,
    title: str,
    *,
    description: Annotated[
        str, Parameter(name=["--description", "-d"], help="What the pack is for")
    ] = "",
    author: Annotated[str, Parameter(name=["--author", "-a"], help="Pack author")] = "",
) -> None:
    """Create an empty pack skeleton.

    Args:
        directory: Where to create the pack.
        name: Pack name.
        title: Human-readable title.
        description: Free-text description.
        author: Pack author.
    """
    library = open_library()
    try:
        pack = library.create_pack_scaffold(
            directory, name, title, description=description, author=author
        )
    except PocketPromptError as e:
        fail(e)
    get_console().print(
        f"[green]Created pack[/green] {escape(pack.name)} in {escape(str(directory))}"
    )
