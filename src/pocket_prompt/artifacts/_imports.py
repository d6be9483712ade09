"""Change detection for conflict-aware imports."""

from dataclasses import dataclass
from typing import Any

from ._frontmatter import normalize_body
from ._types import Prompt, Template


@dataclass(frozen=True, slots=True)
class ArtifactChanges:
    """Which parts of an artifact differ between two versions.

    Attributes:
        content: Body differs.
        structure: Tags (prompts) or slots (templates) differ.
        metadata: Metadata mapping differs.
    """

    content: bool = False
    structure: bool = False
    metadata: bool = False

    @property
    def any(self) -> bool:
        """Whether anything differs."""
        return self.content or self.structure or self.metadata

    @property
    def substantive(self) -> bool:
        """Whether the difference warrants a new version."""
        return self.content or self.structure


def _normalized_metadata(
    metadata: dict[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, str]:
    # Values are compared by their text form so YAML round trips compare equal
    return {str(key): str(value) for key, value in metadata.items()}


def prompt_changes(existing: Prompt, incoming: Prompt) -> ArtifactChanges:
    """Compare an imported prompt with the stored one.

    Tags are compared as sets, so reordering alone is not a change. Bodies
    are compared in their on-disk form.
    """
    return ArtifactChanges(
        content=normalize_body(existing.content or "")
        != normalize_body(incoming.content or ""),
        structure=set(existing.tags) != set(incoming.tags),
        metadata=_normalized_metadata(existing.metadata)
        != _normalized_metadata(incoming.metadata),
    )


def template_changes(existing: Template, incoming: Template) -> ArtifactChanges:
    """Compare an imported template with the stored one."""
    return ArtifactChanges(
        content=normalize_body(existing.content) != normalize_body(incoming.content),
        structure=existing.slots != incoming.slots,
        metadata=_normalized_metadata(existing.metadata)
        != _normalized_metadata(incoming.metadata),
    )


def same_origin(existing: Prompt, incoming: Prompt) -> bool:
    """Whether both prompts were imported from the same source file."""
    existing_path = existing.metadata.get("original_path")
    incoming_path = incoming.metadata.get("original_path")
    return (
        isinstance(existing_path, str)
        and isinstance(incoming_path, str)
        and existing_path == incoming_path
    )
