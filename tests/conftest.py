"""Shared test fixtures for pocket-prompt tests."""

import os
from collections.abc import Callable
from pathlib import Path

import orjson
import pendulum
import pytest
from dulwich.repo import Repo

from pocket_prompt.artifacts import ArtifactStore, Prompt
from pocket_prompt.config import Config
from pocket_prompt.sync import FakeGitRunner

REMOTE_URL = "https://example.com/prompts.git"


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment and user config out of tests."""
    for name in list(os.environ):
        if name.startswith("POCKET_PROMPT_"):
            monkeypatch.delenv(name)
    monkeypatch.setattr(
        "pocket_prompt.config._load.get_user_config_path",
        lambda: tmp_path / "user-config" / "config.toml",
    )


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def library_root(tmp_path: Path) -> Path:
    root = tmp_path / "library"
    root.mkdir()
    return root


@pytest.fixture
def config(library_root: Path) -> Config:
    return Config.from_dict({"root": str(library_root)})


@pytest.fixture
def store(library_root: Path) -> ArtifactStore:
    artifact_store = ArtifactStore(library_root)
    artifact_store.initialize()
    return artifact_store


@pytest.fixture
def git_runner() -> FakeGitRunner:
    return FakeGitRunner()


@pytest.fixture
def make_prompt() -> Callable[..., Prompt]:
    """Return a factory building prompts with sensible defaults."""

    def _make(prompt_id: str = "code-review", **overrides: object) -> Prompt:
        defaults: dict[str, object] = {
            "name": prompt_id.replace("-", " ").title(),
            "summary": f"Summary of {prompt_id}",
            "content": f"Body of {prompt_id}.",
            "tags": (),
        }
        defaults.update(overrides)
        return Prompt(id=prompt_id, **defaults)  # pyright: ignore[reportArgumentType]

    return _make


FrozenClock = Callable[[], pendulum.DateTime]


@pytest.fixture
def frozen_clock() -> FrozenClock:
    fixed = pendulum.datetime(2024, 5, 1, 12, 30, 45, tz="UTC")
    return lambda: fixed


def _link_repository(root: Path, url: str = REMOTE_URL) -> None:
    """Create a git repository in ``root`` with an ``origin`` remote."""
    repo = Repo.init(str(root))
    with repo:
        git_config = repo.get_config()
        git_config.set((b"remote", b"origin"), b"url", url.encode())
        git_config.write_to_path()


def _init_repository(root: Path) -> None:
    """Create a git repository in ``root`` without remotes."""
    Repo.init(str(root)).close()


@pytest.fixture
def link_repo() -> Callable[..., None]:
    """Return a function creating a repository with an ``origin`` remote."""
    return _link_repository


@pytest.fixture
def init_repo() -> Callable[[Path], None]:
    """Return a function creating a repository without remotes."""
    return _init_repository


@pytest.fixture
def make_pack(tmp_path: Path) -> Callable[..., Path]:
    """Return a factory writing a pack directory outside the library."""

    def _make(name: str = "writing", **manifest: object) -> Path:
        directory = tmp_path / "sources" / name
        (directory / "prompts").mkdir(parents=True)
        (directory / "templates").mkdir()
        data: dict[str, object] = {
            "name": name,
            "version": "1.2.0",
            "title": f"{name.title()} Pack",
            "author": "Pack Author",
            "tags": ["writing"],
        }
        data.update(manifest)
        (directory / "pack.json").write_bytes(orjson.dumps(data))
        (directory / "README.md").write_text(f"# {name}\n")
        (directory / "prompts" / "essay.md").write_text(
            "---\nid: essay\ntitle: Essay\ntags: [writing]\n---\n\nWrite an essay.\n"
        )
        (directory / "templates" / "outline.md").write_text(
            "---\nid: outline\nname: Outline\n---\n\n# {{topic}}\n"
        )
        return directory

    return _make
