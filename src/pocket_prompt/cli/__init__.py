"""Command-line interface for pocket-prompt."""

from ._app import create_app, main
from ._context import CLIContext, OutputFormat

__all__ = ["CLIContext", "OutputFormat", "create_app", "main"]
