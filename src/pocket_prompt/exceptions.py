"""Pocket Prompt exceptions."""

from pathlib import Path
from typing import ClassVar


class PocketPromptError(Exception):
    """Base exception for Pocket Prompt errors."""

    retryable: ClassVar[bool] = False


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(PocketPromptError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


# =============================================================================
# Library Exceptions
# =============================================================================


class NotFoundError(PocketPromptError, KeyError):
    """Raised when a prompt, template or saved search does not exist.

    Attributes:
        kind: What was looked up ("prompt", "template", "saved search").
        key: The identifier that was not found.
    """

    def __init__(self, message: str, *, kind: str, key: str) -> None:
        """Initialize with error message and lookup context."""
        super().__init__(message)
        self.kind: str = kind
        self.key: str = key

    def __str__(self) -> str:
        # KeyError.__str__ quotes the message
        return str(self.args[0]) if self.args else ""


class PromptNotFoundError(NotFoundError):
    """Raised when no current prompt has the requested id."""

    def __init__(self, prompt_id: str) -> None:
        """Initialize with the missing prompt id."""
        super().__init__(
            f"Prompt not found: {prompt_id}", kind="prompt", key=prompt_id
        )


class TemplateNotFoundError(NotFoundError):
    """Raised when no template has the requested id."""

    def __init__(self, template_id: str) -> None:
        """Initialize with the missing template id."""
        super().__init__(
            f"Template not found: {template_id}", kind="template", key=template_id
        )


class PackNotFoundError(NotFoundError):
    """Raised when no installed pack has the requested name."""

    def __init__(self, name: str) -> None:
        """Initialize with the missing pack name."""
        super().__init__(f"Pack not found: {name}", kind="pack", key=name)


class SavedSearchNotFoundError(NotFoundError):
    """Raised when no saved search has the requested name."""

    def __init__(self, name: str) -> None:
        """Initialize with the missing saved search name."""
        super().__init__(
            f"Saved search not found: {name}", kind="saved search", key=name
        )


class AlreadyExistsError(PocketPromptError, ValueError):
    """Raised when creating something whose key is already taken."""

    def __init__(self, message: str, *, key: str) -> None:
        """Initialize with error message and the conflicting key."""
        super().__init__(message)
        self.key: str = key


class ValidationFailureError(PocketPromptError, ValueError):
    """Raised when an input value is rejected before any write happens."""

    def __init__(self, message: str, *, field: str, value: object = None) -> None:
        """Initialize with error message and the offending field."""
        super().__init__(message)
        self.field: str = field
        self.value: object = value


class InvalidExpressionError(PocketPromptError, ValueError):
    """Raised when a tag expression cannot be parsed or decoded.

    Attributes:
        expression: The query text (or structured form) that failed.
        position: Zero-based character offset of the problem, if known.
    """

    def __init__(
        self,
        message: str,
        *,
        expression: str,
        position: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and expression context."""
        super().__init__(message)
        self.expression: str = expression
        self.position: int | None = position
        self.cause: Exception | None = cause


class StorageFailureError(PocketPromptError):
    """Raised when a library file cannot be read or written."""

    def __init__(
        self,
        message: str,
        *,
        path: Path,
        operation: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and file context."""
        super().__init__(message)
        self.path: Path = path
        self.operation: str = operation
        self.cause: Exception | None = cause


# =============================================================================
# Sync Exceptions
# =============================================================================


class SyncFailureError(PocketPromptError):
    """Base exception for git synchronization failures.

    Attributes:
        command: The git arguments that failed, if any.
        output: Combined stdout/stderr of the failed command.
    """

    def __init__(
        self,
        message: str,
        *,
        command: tuple[str, ...] = (),
        output: str = "",
    ) -> None:
        """Initialize with error message and command context."""
        super().__init__(message)
        self.command: tuple[str, ...] = command
        self.output: str = output


class SyncNotConfiguredError(SyncFailureError):
    """Raised when an operation needs a repository or remote that is missing."""


class SyncAuthenticationError(SyncFailureError):
    """Raised when the remote rejects our credentials. Not retryable."""


class SyncDivergenceError(SyncFailureError):
    """Raised when local and remote histories cannot be reconciled automatically."""


class SyncConflictError(SyncFailureError):
    """Raised when automatic conflict resolution fails."""


class SyncTimeoutError(SyncFailureError):
    """Raised when a git command exceeds its time limit."""

    retryable: ClassVar[bool] = True
