"""Git-based multi-device synchronization."""

from ._background import background_sync
from ._classify import AUTH_GUIDANCE, classify_git_error, classify_result, error_for
from ._engine import (
    GITIGNORE_CONTENT,
    INITIAL_COMMIT_MESSAGE,
    README_CONTENT,
    REMOTE_NAME,
    SyncEngine,
)
from ._fake import FakeGitRunner
from ._models import (
    GitErrorKind,
    PullResult,
    PullStrategy,
    SetupResult,
    SyncResult,
    SyncState,
    SyncStatus,
)
from ._repo import active_branch, has_commits, is_repository, remote_url
from ._runner import GitCommandRunner, GitResult, SubprocessGitRunner, truncate_output

__all__ = [
    "AUTH_GUIDANCE",
    "GITIGNORE_CONTENT",
    "INITIAL_COMMIT_MESSAGE",
    "README_CONTENT",
    "REMOTE_NAME",
    "FakeGitRunner",
    "GitCommandRunner",
    "GitErrorKind",
    "GitResult",
    "PullResult",
    "PullStrategy",
    "SetupResult",
    "SubprocessGitRunner",
    "SyncEngine",
    "SyncResult",
    "SyncState",
    "SyncStatus",
    "active_branch",
    "background_sync",
    "classify_git_error",
    "classify_result",
    "error_for",
    "has_commits",
    "is_repository",
    "remote_url",
    "truncate_output",
]
