"""Search commands."""

from typing import Annotated

from cyclopts import Parameter

from pocket_prompt.exceptions import PocketPromptError

from .._context import OutputFormat
from ._shared import fail, open_library, render_prompts

__all__ = ["boolean_command", "search_command"]


def search_command(
    *query: str,
    output_format: Annotated[
        OutputFormat, Parameter(name=["--format", "-f"], help="Output format")
    ] = OutputFormat.TABLE,
) -> None:
    """Fuzzy search prompts by name, summary, id and tags.

    Args:
        query: Words to match. No words lists every prompt.
        output_format: Output format.
    """
    library = open_library()
    try:
        prompts = library.search(" ".join(query))
    except PocketPromptError as e:
        fail(e)
    render_prompts(prompts, output_format)


def boolean_command(
    expression: str,
    *,
    text: Annotated[
        str, Parameter(name=["--text", "-q"], help="Fuzzy text to rank the matches by")
    ] = "",
    output_format: Annotated[
        OutputFormat, Parameter(name=["--format", "-f"], help="Output format")
    ] = OutputFormat.TABLE,
) -> None:
    """Filter prompts by a boolean tag expression.

    Expressions combine tags with AND, OR, XOR and NOT, for example
    ``"ai AND (python OR rust) AND NOT draft"``. Tags that collide with
    an operator or contain spaces go in brackets: ``[and]``.

    Args:
        expression: Boolean tag expression.
        text: Optional fuzzy text applied after the filter.
        output_format: Output format.
    """
    library = open_library()
    try:
        prompts = library.hybrid_search(expression, text)
    except PocketPromptError as e:
        fail(e)
    render_prompts(prompts, output_format)
