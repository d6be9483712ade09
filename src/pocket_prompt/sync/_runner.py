"""Timeout-bounded execution of git commands.

Every git invocation runs as a subprocess in the library root with a hard
timeout and stdout and stderr combined into a single captured string. A
timed-out process is killed; the caller receives a result flagged
``timed_out`` instead of an exception.
"""

import os
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Protocol, runtime_checkable

# Maximum output size kept from a single command
MAX_OUTPUT_CHARS: Final = 100_000

# Never block on an interactive credential prompt
_NON_INTERACTIVE_ENV: Final = {"GIT_TERMINAL_PROMPT": "0", "GIT_ASKPASS": "echo"}


@dataclass(frozen=True, slots=True)
class GitResult:
    """Outcome of one git invocation.

    Attributes:
        args: Arguments passed after ``git``.
        exit_code: Process exit code, or None if it never completed.
        output: Combined stdout and stderr.
        timed_out: Whether the timeout elapsed.
        command_not_found: Whether the git executable is missing.
    """

    args: tuple[str, ...]
    exit_code: int | None = None
    output: str = ""
    timed_out: bool = False
    command_not_found: bool = False

    @property
    def ok(self) -> bool:
        """Whether the command completed with exit code 0."""
        return self.exit_code == 0 and not self.timed_out

    @property
    def command(self) -> str:
        """Printable command line."""
        return " ".join(("git", *self.args))


@runtime_checkable
class GitCommandRunner(Protocol):
    """Anything that can run a git command in the library root."""

    def run(self, *args: str, timeout: float) -> GitResult:
        """Run ``git <args>`` with a timeout in seconds."""
        ...


def truncate_output(output: str, max_chars: int = MAX_OUTPUT_CHARS) -> str:
    """Truncate long command output, marking the cut."""
    if len(output) <= max_chars:
        return output
    return output[:max_chars] + "\n... [output truncated]"


class SubprocessGitRunner:
    """Runs the ``git`` binary with :func:`subprocess.run`.

    Attributes:
        cwd: Working directory for every command.
        executable: Name or path of the git binary.
    """

    __slots__ = ("_env", "cwd", "executable")

    def __init__(
        self,
        cwd: Path,
        *,
        executable: str = "git",
        env: dict[str, str] | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            cwd: Working directory (the library root).
            executable: Name or path of the git binary.
            env: Extra environment variables for every command.
        """
        self.cwd: Path = cwd
        self.executable: str = executable
        self._env: dict[str, str] = {**_NON_INTERACTIVE_ENV, **(env or {})}

    def run(self, *args: str, timeout: float) -> GitResult:
        """Run ``git <args>`` in :attr:`cwd`.

        Args:
            args: Arguments after ``git``.
            timeout: Timeout in seconds.

        Returns:
            GitResult with the exit code and combined output.
        """
        cmd: Sequence[str] = (self.executable, *args)
        try:
            completed = subprocess.run(  # noqa: S603
                cmd,
                cwd=self.cwd,
                env={**os.environ, **self._env},
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            partial = e.output.decode("utf-8", errors="replace") if e.output else ""
            return GitResult(
                args=args,
                output=truncate_output(partial + f"\ncommand timed out after {timeout}s"),
                timed_out=True,
            )
        except FileNotFoundError as e:
            return GitResult(args=args, output=str(e), command_not_found=True)

        return GitResult(
            args=args,
            exit_code=completed.returncode,
            output=truncate_output(completed.stdout.decode("utf-8", errors="replace")),
        )
