"""The command-line interface for pocket-prompt."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console

from pocket_prompt.config import safe_load_config
from pocket_prompt.utils import create_library_logger

from ._commands import register_commands
from ._context import CLIContext

APP_HELP = "A versioned, git-synchronized prompt library."


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    """Build the CLI application.

    The returned app's ``meta`` handles global options and sets the
    :class:`CLIContext` before dispatching to a command.
    """
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="pocket-prompt",
        help=APP_HELP,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        verbose: Annotated[bool, Parameter(help="Enable verbose output")] = False,
        quiet: Annotated[bool, Parameter(help="Suppress non-essential output")] = False,
        no_color: Annotated[
            bool, Parameter(name="--no-color", help="Disable colored output")
        ] = False,
        config: Annotated[
            Path | None, Parameter(name="--config", help="Path to config file")
        ] = None,
        root: Annotated[
            Path | None, Parameter(name="--root", help="Library root directory")
        ] = None,
    ) -> None:
        """Run pocket-prompt with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            verbose: Enable verbose output with additional details.
            quiet: Suppress non-essential output.
            no_color: Disable colored output.
            config: Explicit path to config file.
            root: Library root directory.
        """
        loaded_config, config_error = safe_load_config(config_path=config, root=root)

        level = "debug" if verbose else loaded_config.logging.level.value
        cli_logger = create_library_logger(
            loaded_config.library_root,
            level=level,
            log_format=loaded_config.logging.format.value,  # type: ignore[arg-type]
            log_file=loaded_config.logging.file,
            command=tokens[0] if tokens else "",
        )

        ctx = CLIContext(
            config=loaded_config,
            verbose=verbose,
            quiet=quiet,
            no_color=no_color,
            config_error=config_error,
            logger=cli_logger,
        )
        CLIContext.set_current(ctx)

        try:
            app(tokens)
        finally:
            CLIContext.reset()

    register_commands(app)
    return app


def main() -> None:
    """Default entrypoint for the ``pocket-prompt`` CLI."""
    app = create_app()
    app.meta()


if __name__ == "__main__":
    main()
