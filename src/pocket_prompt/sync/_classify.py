"""Classification of git failures from their output."""

from typing import Final

from pocket_prompt.exceptions import (
    SyncAuthenticationError,
    SyncConflictError,
    SyncDivergenceError,
    SyncFailureError,
    SyncTimeoutError,
)

from ._models import GitErrorKind
from ._runner import GitResult

_AUTH_MARKERS: Final = (
    "could not read username",
    "authentication failed",
    "permission denied",
)

AUTH_GUIDANCE: Final = (
    "Authentication failed. Configure credentials for the remote: use an SSH "
    "URL with a key added to your agent, or a credential helper or personal "
    "access token for HTTPS."
)


def classify_git_error(output: str) -> GitErrorKind:
    """Classify a failure by the text git printed.

    Args:
        output: Combined stdout/stderr of the failed command.

    Returns:
        The failure kind. Authentication takes precedence over everything
        else, then divergence, then conflicts.
    """
    lowered = output.lower()
    if any(marker in lowered for marker in _AUTH_MARKERS):
        return GitErrorKind.AUTHENTICATION
    if "divergent" in lowered:
        return GitErrorKind.DIVERGENT
    if "conflict" in lowered:
        return GitErrorKind.CONFLICT
    if "couldn't find remote ref" in lowered:
        return GitErrorKind.MISSING_REF
    return GitErrorKind.GENERIC


def classify_result(result: GitResult) -> GitErrorKind:
    """Classify a failed :class:`GitResult`, including timeouts."""
    if result.timed_out:
        return GitErrorKind.TIMEOUT
    return classify_git_error(result.output)


def error_for(result: GitResult, message: str) -> SyncFailureError:
    """Build the exception matching a failed command.

    Args:
        result: The failed command.
        message: Context prefix for the error message.

    Returns:
        An exception instance (not raised).
    """
    kind = classify_result(result)
    detail = result.output.strip()
    context = {"command": result.args, "output": result.output}
    match kind:
        case GitErrorKind.AUTHENTICATION:
            return SyncAuthenticationError(f"{message}: {AUTH_GUIDANCE}", **context)
        case GitErrorKind.TIMEOUT:
            return SyncTimeoutError(f"{message}: {result.command} timed out", **context)
        case GitErrorKind.DIVERGENT:
            return SyncDivergenceError(f"{message}: {detail}", **context)
        case GitErrorKind.CONFLICT:
            return SyncConflictError(f"{message}: {detail}", **context)
        case _:
            return SyncFailureError(f"{message}: {detail}", **context)
