from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from rich.console import Console

from pocket_prompt.artifacts import Prompt
from pocket_prompt.cli import CLIContext, create_app
from pocket_prompt.config import Config
from pocket_prompt.library import PromptLibrary


@pytest.fixture
def console() -> Console:
    return Console(
        width=100,
        force_terminal=True,
        highlight=False,
        color_system=None,
        legacy_windows=False,
    )


@pytest.fixture
def seeded_root(library_root: Path) -> Generator[Path]:
    """A library with three prompts, one of them updated once."""
    library = PromptLibrary(Config.from_dict({"root": str(library_root)}))
    library.open()
    library.create_prompt(
        Prompt(
            id="explain-code",
            name="Explain Code",
            summary="Walk through a snippet",
            tags=("ai", "coding"),
            content="Explain this code step by step.",
        )
    )
    library.create_prompt(
        Prompt(
            id="haiku",
            name="Haiku",
            summary="Short poem",
            tags=("ai", "writing"),
            content="Write a haiku about the topic.",
        )
    )
    library.create_prompt(
        Prompt(
            id="draft-essay",
            name="Draft Essay",
            tags=("writing", "draft"),
            content="Outline an essay.",
        )
    )
    library.update_prompt(
        Prompt(
            id="haiku",
            name="Haiku",
            summary="Short poem",
            tags=("ai", "writing"),
            content="Write a haiku about the season.",
        )
    )
    yield library_root
    CLIContext.reset()


@pytest.fixture
def cli(console: Console, library_root: Path) -> Callable[..., int]:
    """Run the CLI against ``library_root`` and return the exit code."""
    app = create_app(console=console, error_console=console)

    def _run(*args: str) -> int:
        try:
            app.meta(["--root", str(library_root), *args])
        except SystemExit as e:
            if e.code is None:
                return 0
            return e.code if isinstance(e.code, int) else 1
        return 0

    return _run
