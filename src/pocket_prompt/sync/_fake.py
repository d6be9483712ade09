"""Scripted git runner for testing.

This module provides a FakeGitRunner that implements GitCommandRunner without
running git. Responses are registered per command prefix; every call is
recorded so tests can assert on the exact sequence of git invocations.
"""

from collections import deque
from dataclasses import dataclass, field

from ._runner import GitResult


@dataclass(slots=True)
class FakeGitRunner:
    """Fake git runner returning scripted results.

    Responses are matched against the longest registered argument prefix.
    A prefix can hold a queue of results consumed in order; the last one
    repeats once the queue is exhausted. Unmatched commands succeed with
    empty output.

    Example:
        >>> runner = FakeGitRunner()
        >>> runner.respond(("diff", "--cached", "--quiet"), exit_code=1)
        >>> runner.run("diff", "--cached", "--quiet", timeout=1.0).exit_code
        1
        >>> runner.calls
        [('diff', '--cached', '--quiet')]
    """

    calls: list[tuple[str, ...]] = field(default_factory=list)
    timeouts: list[float] = field(default_factory=list)
    _responses: dict[tuple[str, ...], deque[GitResult]] = field(default_factory=dict)

    def respond(
        self,
        prefix: tuple[str, ...],
        *,
        exit_code: int = 0,
        output: str = "",
        timed_out: bool = False,
    ) -> None:
        """Queue a result for commands starting with ``prefix``."""
        result = GitResult(
            args=prefix,
            exit_code=None if timed_out else exit_code,
            output=output,
            timed_out=timed_out,
        )
        self._responses.setdefault(prefix, deque()).append(result)

    def run(self, *args: str, timeout: float) -> GitResult:
        """Record the call and return the scripted result."""
        self.calls.append(args)
        self.timeouts.append(timeout)

        matches = [prefix for prefix in self._responses if args[: len(prefix)] == prefix]
        if not matches:
            return GitResult(args=args, exit_code=0)

        queue = self._responses[max(matches, key=len)]
        scripted = queue.popleft() if len(queue) > 1 else queue[0]
        return GitResult(
            args=args,
            exit_code=scripted.exit_code,
            output=scripted.output,
            timed_out=scripted.timed_out,
        )

    def called(self, *prefix: str) -> bool:
        """Whether any recorded call starts with ``prefix``."""
        return any(call[: len(prefix)] == prefix for call in self.calls)

    def calls_to(self, *prefix: str) -> list[tuple[str, ...]]:
        """Recorded calls starting with ``prefix``."""
        return [call for call in self.calls if call[: len(prefix)] == prefix]
