"""Sync engine states and result types."""

from dataclasses import dataclass
from enum import StrEnum


class SyncState(StrEnum):
    """Lifecycle of a library's git integration.

    ``UNINITIALIZED`` (no repository) -> ``INITIALIZED`` (repository, no
    remote) -> ``LINKED`` (remote configured) -> ``ENABLED`` (sync runs).
    Whether the remote accepts our credentials is tracked apart from the
    lifecycle, by :attr:`SyncEngine.authenticated`.
    """

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    LINKED = "linked"
    ENABLED = "enabled"


class SyncStatus(StrEnum):
    """User-facing summary of the repository state."""

    NOT_INITIALIZED = "Git not initialized"
    DISABLED = "Git sync disabled"
    NO_REMOTE = "No remote configured"
    AHEAD = "Changes need to be pushed"
    BEHIND = "Remote has new changes"
    UNCOMMITTED = "Uncommitted changes"
    IN_SYNC = "In sync"
    TIMEOUT = "Git status timeout"
    UNKNOWN = "Git status unknown"


class PullStrategy(StrEnum):
    """How a pull reconciled local and remote history."""

    NONE = "none"
    PULL = "pull"
    MERGE_THEIRS = "merge-theirs"
    REBASE = "rebase"
    CONFLICTS_RESOLVED = "conflicts-resolved"


class GitErrorKind(StrEnum):
    """Classification of a failed git command."""

    AUTHENTICATION = "authentication"
    DIVERGENT = "divergent"
    CONFLICT = "conflict"
    MISSING_REF = "missing-ref"
    TIMEOUT = "timeout"
    GENERIC = "generic"


@dataclass(frozen=True, slots=True)
class SyncResult:
    """Outcome of committing and pushing local changes.

    Attributes:
        committed: Whether a commit was created.
        pushed: Whether the push succeeded.
        message: The commit message used, if any.
        warning: Why the push failed, if it did.
        skipped: Whether sync was disabled and nothing ran.
    """

    committed: bool = False
    pushed: bool = False
    message: str = ""
    warning: str | None = None
    skipped: bool = False


@dataclass(frozen=True, slots=True)
class PullResult:
    """Outcome of pulling remote changes.

    Attributes:
        updated: Whether local history changed.
        strategy: How the pull was reconciled.
        resolved_files: Files whose conflicts were resolved with the remote side.
        skipped: Whether sync was disabled and nothing ran.
    """

    updated: bool = False
    strategy: PullStrategy = PullStrategy.NONE
    resolved_files: tuple[str, ...] = ()
    skipped: bool = False


@dataclass(frozen=True, slots=True)
class SetupResult:
    """Outcome of linking a library to a remote.

    Attributes:
        remote_url: The configured remote.
        branch: Branch checked out after setup.
        pulled: Whether remote history was merged in.
        pushed: Whether the local branch was pushed.
        warnings: Non-fatal problems encountered.
    """

    remote_url: str
    branch: str
    pulled: bool = False
    pushed: bool = False
    warnings: tuple[str, ...] = ()
