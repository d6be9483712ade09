# pyright: reportUnusedCallResult=false
"""Git synchronization commands."""

from typing import Annotated

from cyclopts import App, Parameter
from rich.markup import escape

from pocket_prompt.exceptions import PocketPromptError
from pocket_prompt.sync import SyncStatus

from .._context import CLIContext
from ._shared import ExitCode, exit_with_error, fail, get_console, open_library, print_warnings

__all__ = ["app"]

app = App(name="sync", help="Synchronize the library with a git remote", help_on_error=True)

_STATUS_STYLES = {
    SyncStatus.IN_SYNC: "green",
    SyncStatus.AHEAD: "yellow",
    SyncStatus.BEHIND: "yellow",
    SyncStatus.UNCOMMITTED: "yellow",
    SyncStatus.TIMEOUT: "red",
    SyncStatus.UNKNOWN: "red",
}


@app.command(name="status")
def _status() -> None:
    """Show the sync state of the library."""
    library = open_library()
    status = library.sync_status()
    style = _STATUS_STYLES.get(status, "dim")
    console = get_console()
    console.print(f"[{style}]{status.value}[/{style}]")
    if CLIContext.get_current().verbose:
        console.print(f"[dim]State: {library.sync.state.value}[/dim]")
        authenticated = library.sync.authenticated
        if authenticated is not None:
            console.print(f"[dim]Authenticated: {'yes' if authenticated else 'no'}[/dim]")
        console.print(f"[dim]Root: {escape(str(library.root))}[/dim]")


@app.command(name="setup")
def _setup(remote: str) -> None:
    """Link the library to a git remote and synchronize.

    Remote history is merged in, preferring the remote copy of any file
    that conflicts, and the local branch is pushed.

    Args:
        remote: Remote repository URL.
    """
    library = open_library()
    try:
        result = library.setup_sync(remote)
    except PocketPromptError as e:
        fail(e)

    console = get_console()
    console.print(
        f"[green]Linked[/green] {escape(result.remote_url)} on branch {escape(result.branch)}"
    )
    quiet = CLIContext.get_current().quiet
    if result.pulled and not quiet:
        console.print("[dim]Merged remote history[/dim]")
    if result.pushed and not quiet:
        console.print("[dim]Pushed local branch[/dim]")
    print_warnings(result.warnings)


@app.command(name="pull")
def _pull(
    *,
    force: Annotated[
        bool, Parameter(name=["--force"], help="Pull without checking the remote first")
    ] = False,
) -> None:
    """Pull remote changes into the library."""
    library = open_library()
    if not library.sync_enabled:
        exit_with_error("Sync is not enabled; run 'sync setup' first", ExitCode.SYNC_ERROR)
    try:
        result = library.pull() if force else library.pull_if_needed()
    except PocketPromptError as e:
        fail(e)

    console = get_console()
    if not result.updated:
        if not CLIContext.get_current().quiet:
            console.print("[dim]Already up to date[/dim]")
        return
    console.print(f"[green]Pulled remote changes[/green] [dim]({result.strategy.value})[/dim]")
    for path in result.resolved_files:
        console.print(f"  [yellow]took remote copy of[/yellow] {escape(path)}")


@app.command(name="push")
def _push(
    *,
    message: Annotated[
        str | None, Parameter(name=["--message", "-m"], help="Commit message")
    ] = None,
) -> None:
    """Commit every local change and push it."""
    library = open_library()
    if not library.sync_enabled:
        exit_with_error("Sync is not enabled; run 'sync setup' first", ExitCode.SYNC_ERROR)
    try:
        result = library.sync.sync_changes(message or library.config.sync.commit_message)
    except PocketPromptError as e:
        fail(e)

    console = get_console()
    if not result.committed:
        if not CLIContext.get_current().quiet:
            console.print("[dim]Nothing to commit[/dim]")
        return
    if result.pushed:
        console.print(f"[green]Pushed[/green] {escape(result.message)}")
        return
    console.print(f"[yellow]Committed[/yellow] {escape(result.message)}")
    print_warnings([result.warning] if result.warning else [])

