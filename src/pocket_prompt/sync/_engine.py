"""Git-backed synchronization of a library directory.

The engine drives the ``git`` binary through a :class:`GitCommandRunner`
so every call is bounded by a timeout, and reads local repository facts
through dulwich so status checks never block on the network.

Conflicts are resolved in favor of the remote copy: a prompt library is
append-mostly and every update already archives the previous version, so
taking the remote side loses no history that the archive does not keep.
"""

import threading
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Final

import pendulum
from structlog.typing import FilteringBoundLogger

from pocket_prompt.config import SyncConfig
from pocket_prompt.exceptions import (
    SyncAuthenticationError,
    SyncConflictError,
    SyncDivergenceError,
    SyncFailureError,
    SyncNotConfiguredError,
    ValidationFailureError,
)
from pocket_prompt.utils import atomic_write, get_null_logger

from ._classify import AUTH_GUIDANCE, classify_result, error_for
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
from ._runner import GitCommandRunner, GitResult, SubprocessGitRunner

REMOTE_NAME: Final = "origin"
INITIAL_COMMIT_MESSAGE: Final = "Initial pocket-prompt library commit"
README_CONTENT: Final = (
    "# Pocket Prompt Library\n\n"
    "This repository contains your synchronized prompt library.\n"
)
GITIGNORE_CONTENT: Final = (
    "# OS files\n.DS_Store\nThumbs.db\n\n"
    "# Editor files\n.idea\n.vscode\n*.swp\n*.swo\n*~\n\n"
    "# Temporary files\n*.tmp\n*.bak\n\n"
    "# Per-device state\n.pocket-prompt/cache/\n.pocket-prompt/logs/\n"
)
_PREFERRED_BRANCHES: Final = ("master", "main")
_REMOTE_COMMANDS: Final = frozenset({"fetch", "pull", "push"})


class SyncEngine:
    """Synchronizes a library root with a git remote.

    Sync and pull operations are serialized: a second caller waits for the
    first to finish instead of running git concurrently in the same tree.

    Attributes:
        root: Library root (the repository working tree).
        config: Timeouts and defaults.
    """

    __slots__ = (
        "_authenticated",
        "_clock",
        "_lock",
        "_logger",
        "_runner",
        "_state",
        "config",
        "root",
    )

    def __init__(
        self,
        root: Path,
        *,
        config: SyncConfig | None = None,
        runner: GitCommandRunner | None = None,
        logger: FilteringBoundLogger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the engine. Call :meth:`initialize` to detect state.

        Args:
            root: Library root directory.
            config: Sync settings (defaults apply when omitted).
            runner: Git command runner (subprocess-based by default).
            logger: Structured logger.
            clock: Returns the local time used in commit messages.
        """
        self.root: Path = root
        self.config: SyncConfig = config or SyncConfig()
        self._runner: GitCommandRunner = runner or SubprocessGitRunner(root)
        self._logger: FilteringBoundLogger = logger or get_null_logger()
        self._clock: Callable[[], datetime] = clock or pendulum.now
        self._lock = threading.Lock()
        self._state = SyncState.UNINITIALIZED
        self._authenticated: bool | None = None

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> SyncState:
        """Current lifecycle state."""
        return self._state

    @property
    def enabled(self) -> bool:
        """Whether sync operations run."""
        return self._state is SyncState.ENABLED

    @property
    def authenticated(self) -> bool | None:
        """Whether the remote accepted the last fetch, pull or push.

        None until one has run against the current remote. A linked
        repository says nothing about credentials; this flag does.
        """
        return self._authenticated

    def _detect_state(self) -> SyncState:
        if not is_repository(self.root):
            return SyncState.UNINITIALIZED
        if remote_url(self.root, REMOTE_NAME) is None:
            return SyncState.INITIALIZED
        return SyncState.LINKED

    def initialize(self) -> SyncState:
        """Detect the repository state from disk.

        A linked repository becomes enabled unless the configuration turns
        sync off.
        """
        state = self._detect_state()
        if state is SyncState.LINKED and self.config.enabled:
            state = SyncState.ENABLED
        self._state = state
        self._logger.debug("sync_initialized", state=state.value)
        return state

    def enable(self) -> None:
        """Turn sync on for a linked repository.

        Raises:
            SyncNotConfiguredError: If there is no repository or remote.
        """
        detected = self._detect_state()
        if detected is not SyncState.LINKED:
            msg = "Cannot enable sync: run setup with a remote URL first"
            raise SyncNotConfiguredError(msg)
        self._state = SyncState.ENABLED
        self._logger.info("sync_enabled")

    def disable(self) -> None:
        """Turn sync off. The repository and remote are left alone."""
        if self._state is SyncState.ENABLED:
            self._state = SyncState.LINKED
        self._logger.info("sync_disabled")

    # =========================================================================
    # Git helpers
    # =========================================================================

    def _git(self, *args: str, timeout: float | None = None) -> GitResult:
        effective = timeout if timeout is not None else self.config.command_timeout
        result = self._runner.run(*args, timeout=effective)
        if args and args[0] in _REMOTE_COMMANDS:
            self._record_remote_access(result)
        self._logger.debug(
            "git_command",
            command=result.command,
            exit_code=result.exit_code,
            timed_out=result.timed_out,
        )
        return result

    def _record_remote_access(self, result: GitResult) -> None:
        if result.ok:
            if self._authenticated is not True:
                self._logger.debug("sync_remote_authenticated", command=result.command)
            self._authenticated = True
        elif classify_result(result) is GitErrorKind.AUTHENTICATION:
            self._authenticated = False

    def _git_checked(self, *args: str, message: str, timeout: float | None = None) -> GitResult:
        result = self._git(*args, timeout=timeout)
        if not result.ok:
            raise error_for(result, message)
        return result

    def current_branch(self) -> str:
        """Name of the checked-out branch, or the configured default."""
        result = self._git("branch", "--show-current", timeout=self.config.quick_timeout)
        branch = result.output.strip() if result.ok else ""
        if branch:
            return branch
        return active_branch(self.root) or self.config.branch

    def _remote_branches(self) -> list[str]:
        result = self._git("branch", "-r", timeout=self.config.remote_timeout)
        if not result.ok:
            return []
        prefix = f"{REMOTE_NAME}/"
        branches: list[str] = []
        for line in result.output.splitlines():
            name = line.strip()
            if not name or "->" in name or not name.startswith(prefix):
                continue
            branches.append(name[len(prefix) :])
        return branches

    @staticmethod
    def _pick_branch(branches: list[str]) -> str:
        for preferred in _PREFERRED_BRANCHES:
            if preferred in branches:
                return preferred
        return branches[0]

    # =========================================================================
    # Setup
    # =========================================================================

    def setup_repository(self, remote: str) -> SetupResult:
        """Initialize the repository, link it to ``remote`` and synchronize.

        Creates the repository, a ``.gitignore`` for per-device state and an
        initial commit if needed, adopts existing remote history (``master``,
        then ``main``, then the first remote branch), and pushes the local
        branch. Ends with sync enabled.

        Args:
            remote: Remote repository URL.

        Returns:
            SetupResult describing what happened.

        Raises:
            ValidationFailureError: If the URL is empty.
            SyncAuthenticationError: If the remote rejects the credentials.
            SyncFailureError: If a required local git command fails.
        """
        remote = remote.strip()
        if not remote:
            msg = "Remote URL must not be empty"
            raise ValidationFailureError(msg, field="remote_url", value=remote)

        with self._lock:
            warnings: list[str] = []
            self.root.mkdir(parents=True, exist_ok=True)

            if not is_repository(self.root):
                _ = self._git_checked("init", message="Failed to initialize repository")
                renamed = self._git("branch", "-M", self.config.branch)
                if not renamed.ok:
                    self._logger.debug("default_branch_rename_skipped", output=renamed.output)

            self._authenticated = None
            if remote_url(self.root, REMOTE_NAME) is None:
                _ = self._git_checked(
                    "remote", "add", REMOTE_NAME, remote, message="Failed to add remote"
                )
            else:
                _ = self._git_checked(
                    "remote", "set-url", REMOTE_NAME, remote, message="Failed to update remote"
                )

            gitignore = self.root / ".gitignore"
            if not gitignore.exists():
                atomic_write(gitignore, GITIGNORE_CONTENT)

            if not has_commits(self.root):
                self._initial_commit()

            pulled = self._adopt_remote_history(warnings)

            branch = self.current_branch()
            push = self._git(
                "push", "-u", REMOTE_NAME, branch, timeout=self.config.fetch_timeout
            )
            if not push.ok:
                if classify_result(push) is GitErrorKind.AUTHENTICATION:
                    raise SyncAuthenticationError(
                        f"Failed to push to remote: {AUTH_GUIDANCE}",
                        command=push.args,
                        output=push.output,
                    )
                warnings.append(f"Initial push failed: {push.output.strip()}")
                self._logger.warning("initial_push_failed", output=push.output)

            self._state = SyncState.ENABLED

        self._logger.info(
            "sync_setup_complete", remote=remote, branch=branch, pulled=pulled, pushed=push.ok
        )
        return SetupResult(
            remote_url=remote,
            branch=branch,
            pulled=pulled,
            pushed=push.ok,
            warnings=tuple(warnings),
        )

    def _initial_commit(self) -> None:
        readme = self.root / "README.md"
        if not readme.exists():
            atomic_write(readme, README_CONTENT)
        _ = self._git_checked("add", "-A", message="Failed to stage files")
        _ = self._git_checked(
            "commit", "-m", INITIAL_COMMIT_MESSAGE, message="Failed to create initial commit"
        )

    def _adopt_remote_history(self, warnings: list[str]) -> bool:
        fetch = self._git("fetch", REMOTE_NAME, timeout=self.config.fetch_timeout)
        if not fetch.ok:
            kind = classify_result(fetch)
            if kind is GitErrorKind.AUTHENTICATION:
                raise SyncAuthenticationError(
                    f"Failed to fetch from remote: {AUTH_GUIDANCE}",
                    command=fetch.args,
                    output=fetch.output,
                )
            if kind is GitErrorKind.MISSING_REF:
                # Empty remote: nothing to adopt
                self._logger.debug("remote_empty")
            else:
                warnings.append(f"Fetch failed: {fetch.output.strip()}")
                self._logger.warning("setup_fetch_failed", kind=kind.value, output=fetch.output)
            return False

        branches = self._remote_branches()
        if not branches:
            return False

        branch = self._pick_branch(branches)
        checkout = self._git("checkout", "-B", branch)
        if not checkout.ok:
            warnings.append(f"Could not switch to {branch}: {checkout.output.strip()}")

        pull = self._git(
            "pull",
            "--no-rebase",
            REMOTE_NAME,
            branch,
            "--allow-unrelated-histories",
            "--strategy-option=theirs",
            timeout=self.config.fetch_timeout,
        )
        if pull.ok:
            return True

        self._logger.warning("setup_pull_failed", branch=branch, output=pull.output)
        _ = self._git("merge", "--abort")
        reset = self._git("reset", "--hard", f"{REMOTE_NAME}/{branch}")
        if not reset.ok:
            warnings.append(f"Could not adopt remote branch {branch}: {reset.output.strip()}")
            return False
        return True

    # =========================================================================
    # Sync (commit + push)
    # =========================================================================

    def sync_changes(self, message: str) -> SyncResult:
        """Commit every local change and push it.

        A push failure leaves the commit in place and is reported through
        :attr:`SyncResult.warning`.

        Args:
            message: Commit message; a local timestamp is appended.

        Returns:
            SyncResult. ``skipped`` when sync is not enabled.

        Raises:
            SyncFailureError: If staging or committing fails.
        """
        if not self.enabled:
            return SyncResult(skipped=True)

        with self._lock:
            _ = self._git_checked("add", "-A", message="Failed to stage changes")
            diff = self._git("diff", "--cached", "--quiet")
            if diff.exit_code == 0:
                return SyncResult()
            if diff.exit_code != 1:
                raise error_for(diff, "Failed to inspect staged changes")

            stamp = pendulum.instance(self._clock()).format("YYYY-MM-DD HH:mm:ss")
            full_message = f"{message} - {stamp}"
            _ = self._git_checked("commit", "-m", full_message, message="Failed to commit")

            branch = self.current_branch()
            push = self._git("push", REMOTE_NAME, branch, timeout=self.config.fetch_timeout)

        if not push.ok:
            warning = f"Changes committed locally but failed to push: {push.output.strip()}"
            self._logger.warning(
                "push_failed", kind=classify_result(push).value, output=push.output
            )
            return SyncResult(committed=True, pushed=False, message=full_message, warning=warning)

        self._logger.info("changes_synced", message=full_message)
        return SyncResult(committed=True, pushed=True, message=full_message)

    # =========================================================================
    # Pull
    # =========================================================================

    def fetch_changes(self) -> bool:
        """Fetch from the remote.

        Returns:
            False when the remote has no branch yet, True otherwise.

        Raises:
            SyncFailureError: Classified by the failure (authentication,
                timeout, or generic).
        """
        fetch = self._git("fetch", REMOTE_NAME, timeout=self.config.fetch_timeout)
        if fetch.ok:
            return True
        if classify_result(fetch) is GitErrorKind.MISSING_REF:
            return False
        raise error_for(fetch, "Failed to fetch from remote")

    def is_behind_remote(self, branch: str | None = None) -> bool:
        """Whether the remote has commits the local branch lacks.

        Uses the last fetched remote-tracking ref. A diverged branch counts
        as behind.
        """
        branch = branch or self.current_branch()
        remote = self._git("rev-parse", f"{REMOTE_NAME}/{branch}")
        if not remote.ok:
            return False
        local = self._git("rev-parse", "HEAD")
        if not local.ok:
            return True
        if remote.output.strip() == local.output.strip():
            return False
        ancestor = self._git(
            "merge-base", "--is-ancestor", remote.output.strip(), local.output.strip()
        )
        return ancestor.exit_code != 0

    def check_for_changes(self) -> bool:
        """Fetch and report whether a pull would change anything.

        Never raises for fetch failures; they are logged and reported as
        no changes.
        """
        if not self.enabled:
            return False
        try:
            if not self.fetch_changes():
                return False
        except SyncFailureError as e:
            self._logger.warning("check_for_changes_failed", error=str(e))
            return False
        return self.is_behind_remote()

    def pull_changes(self) -> PullResult:
        """Bring remote changes into the working tree.

        A plain pull is tried first. Divergent histories are merged
        preferring the remote side, then rebased; conflicts are resolved by
        taking the remote copy of each conflicted file.

        Returns:
            PullResult. ``skipped`` when sync is not enabled.

        Raises:
            SyncAuthenticationError: If the remote rejects the credentials.
            SyncTimeoutError: If a git command times out.
            SyncDivergenceError: If history cannot be reconciled
                automatically. Nothing local is discarded.
            SyncConflictError: If conflict resolution fails.
            SyncFailureError: For any other failure.
        """
        if not self.enabled:
            return PullResult(skipped=True)

        with self._lock:
            if not self.fetch_changes():
                return PullResult()

            branch = self.current_branch()
            if not self.is_behind_remote(branch):
                return PullResult()

            pull = self._git("pull", REMOTE_NAME, branch, timeout=self.config.fetch_timeout)
            if pull.ok:
                self._logger.info("pulled_changes", branch=branch)
                return PullResult(updated=True, strategy=PullStrategy.PULL)

            kind = classify_result(pull)
            if kind is GitErrorKind.DIVERGENT:
                return self._reconcile_divergence(branch)
            if kind is GitErrorKind.CONFLICT:
                return self._resolve_conflicts()
            raise error_for(pull, "Failed to pull changes")

    def _reconcile_divergence(self, branch: str) -> PullResult:
        self._logger.warning("divergent_history", branch=branch)
        merge = self._git(
            "pull",
            "--no-rebase",
            "--strategy=recursive",
            "--strategy-option=theirs",
            REMOTE_NAME,
            branch,
            timeout=self.config.fetch_timeout,
        )
        if merge.ok:
            return PullResult(updated=True, strategy=PullStrategy.MERGE_THEIRS)
        if classify_result(merge) is GitErrorKind.CONFLICT:
            return self._resolve_conflicts()
        _ = self._git("merge", "--abort")

        rebase = self._git(
            "pull", "--rebase", REMOTE_NAME, branch, timeout=self.config.fetch_timeout
        )
        if rebase.ok:
            return PullResult(updated=True, strategy=PullStrategy.REBASE)
        _ = self._git("rebase", "--abort")

        msg = (
            "Local and remote histories have diverged and could not be reconciled "
            "automatically; resolve manually in the library directory"
        )
        raise SyncDivergenceError(msg, command=rebase.args, output=rebase.output)

    def _resolve_conflicts(self) -> PullResult:
        listing = self._git_checked(
            "diff", "--name-only", "--diff-filter=U", message="Failed to list conflicts"
        )
        files = tuple(line.strip() for line in listing.output.splitlines() if line.strip())

        for path in files:
            theirs = self._git("checkout", "--theirs", "--", path)
            if theirs.ok:
                _ = self._git_checked("add", "--", path, message=f"Failed to stage {path}")
            else:
                # Deleted on the remote side
                _ = self._git_checked("rm", "--", path, message=f"Failed to remove {path}")

        commit = self._git("commit", "--no-edit")
        if not commit.ok:
            raise SyncConflictError(
                f"Failed to commit conflict resolution: {commit.output.strip()}",
                command=commit.args,
                output=commit.output,
            )
        self._logger.info("conflicts_resolved", files=list(files))
        return PullResult(
            updated=True, strategy=PullStrategy.CONFLICTS_RESOLVED, resolved_files=files
        )

    # =========================================================================
    # Status
    # =========================================================================

    def status(self) -> SyncStatus:
        """Summarize the repository state without touching the network.

        Bounded by the short status timeout so it is safe to call while
        rendering.
        """
        if not is_repository(self.root):
            return SyncStatus.NOT_INITIALIZED
        if not self.enabled:
            return SyncStatus.DISABLED
        if remote_url(self.root, REMOTE_NAME) is None:
            return SyncStatus.NO_REMOTE

        result = self._git(
            "status", "--porcelain", "--branch", timeout=self.config.status_timeout
        )
        if result.timed_out:
            return SyncStatus.TIMEOUT
        if not result.ok:
            return SyncStatus.UNKNOWN

        lines = result.output.splitlines()
        if lines and lines[0].startswith("##"):
            branch_line = lines[0]
            if "[ahead" in branch_line:
                return SyncStatus.AHEAD
            if "[behind" in branch_line:
                return SyncStatus.BEHIND
            lines = lines[1:]
        if any(line.strip() for line in lines):
            return SyncStatus.UNCOMMITTED
        return SyncStatus.IN_SYNC

    def force_resync(self) -> SyncState:
        """Re-detect state from disk, discarding the in-memory view."""
        with self._lock:
            self._state = SyncState.UNINITIALIZED
        return self.initialize()
