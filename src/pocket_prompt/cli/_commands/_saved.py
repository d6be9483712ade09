# pyright: reportUnusedCallResult=false
"""Saved search commands."""

from typing import Annotated

from cyclopts import App, Parameter
from rich.markup import escape
from rich.table import Table

from pocket_prompt.exceptions import PocketPromptError
from pocket_prompt.expression import parse_expression, to_query_string
from pocket_prompt.library import SavedSearch

from .._context import OutputFormat
from ._shared import fail, format_json, get_console, open_library, render_prompts

__all__ = ["app"]

app = App(name="saved", help="Manage saved searches", help_on_error=True)


@app.command(name="list")
def _list(
    *,
    output_format: Annotated[
        OutputFormat, Parameter(name=["--format", "-f"], help="Output format")
    ] = OutputFormat.TABLE,
) -> None:
    """List saved searches."""
    library = open_library()
    try:
        searches = library.list_searches()
    except PocketPromptError as e:
        fail(e)

    console = get_console()
    if output_format is OutputFormat.JSON:
        data = {
            "searches": [
                {
                    "name": s.name,
                    "description": s.description,
                    "expression": to_query_string(s.expression) if s.expression else "",
                    "text_query": s.text_query,
                }
                for s in searches
            ]
        }
        console.print(format_json(data), markup=False, soft_wrap=True)
        return

    if not searches:
        console.print("[dim]No saved searches[/dim]")
        return

    table = Table(box=None, padding=(0, 2))
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Expression")
    table.add_column("Text")
    table.add_column("Description", style="dim")
    for search in searches:
        expression = to_query_string(search.expression) if search.expression else ""
        table.add_row(
            escape(search.name),
            escape(expression),
            escape(search.text_query),
            escape(search.description),
        )
    console.print(table)


@app.command(name="save")
def _save(
    name: str,
    expression: str = "",
    *,
    text: Annotated[str, Parameter(name=["--text", "-q"], help="Fuzzy text query")] = "",
    description: Annotated[
        str, Parameter(name=["--description", "-d"], help="What the search is for")
    ] = "",
) -> None:
    """Create or overwrite a saved search.

    Args:
        name: Saved search name.
        expression: Boolean tag expression (empty matches every prompt).
        text: Fuzzy text applied after the filter.
        description: Free-text description.
    """
    library = open_library()
    try:
        parsed = parse_expression(expression) if expression.strip() else None
        saved = library.save_search(
            SavedSearch(name=name, expression=parsed, text_query=text, description=description)
        )
    except PocketPromptError as e:
        fail(e)
    get_console().print(f"[green]Saved search[/green] {escape(saved.name)}")


@app.command(name="delete")
def _delete(name: str) -> None:
    """Delete a saved search.

    Args:
        name: Saved search name.
    """
    library = open_library()
    try:
        library.delete_search(name)
    except PocketPromptError as e:
        fail(e)
    get_console().print(f"[green]Deleted saved search[/green] {escape(name)}")


@app.command(name="run")
def _run(
    name: str,
    *,
    text: Annotated[
        str, Parameter(name=["--text", "-q"], help="Replace the stored text query")
    ] = "",
    output_format: Annotated[
        OutputFormat, Parameter(name=["--format", "-f"], help="Output format")
    ] = OutputFormat.TABLE,
) -> None:
    """Run a saved search.

    Args:
        name: Saved search name.
        text: Replaces the stored text query when given.
        output_format: Output format.
    """
    library = open_library()
    try:
        prompts = library.execute_search(name, text)
    except PocketPromptError as e:
        fail(e)
    render_prompts(prompts, output_format)
