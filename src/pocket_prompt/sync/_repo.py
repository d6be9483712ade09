"""Local repository inspection with dulwich.

These checks read ``.git`` directly and never touch the network, so they are
safe to call from UI paths that must not block.
"""

from pathlib import Path

from dulwich.errors import NotGitRepository
from dulwich.repo import Repo


def is_repository(root: Path) -> bool:
    """Whether ``root`` has its own ``.git`` directory."""
    return (root / ".git").exists()


def _open(root: Path) -> Repo | None:
    if not is_repository(root):
        return None
    try:
        return Repo(str(root))
    except NotGitRepository:
        return None


def remote_url(root: Path, name: str = "origin") -> str | None:
    """URL of a configured remote, or None."""
    repo = _open(root)
    if repo is None:
        return None
    with repo:
        config = repo.get_config()
        try:
            url = config.get((b"remote", name.encode()), b"url")
        except KeyError:
            return None
    return url.decode("utf-8") if isinstance(url, bytes) else url


def has_commits(root: Path) -> bool:
    """Whether HEAD resolves to a commit."""
    repo = _open(root)
    if repo is None:
        return False
    with repo:
        try:
            _ = repo.head()
        except KeyError:
            return False
    return True


def active_branch(root: Path) -> str | None:
    """Branch HEAD points at, even before the first commit, or None."""
    repo = _open(root)
    if repo is None:
        return None
    with repo:
        refs, _ = repo.refs.follow(b"HEAD")
    if len(refs) < 2:  # noqa: PLR2004 - detached HEAD
        return None
    target = refs[-1]
    prefix = b"refs/heads/"
    if not target.startswith(prefix):
        return None
    return target[len(prefix) :].decode("utf-8")
