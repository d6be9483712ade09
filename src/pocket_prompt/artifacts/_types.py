"""Data classes for library artifacts.

This module defines the core data structures of the artifact store:
- Prompt, the versioned unit of the library
- Template, Slot and TemplateConstraints for reusable prompt skeletons
- ImportPolicy and ImportOutcome for conflict-aware imports
- ValidationIssue for template constraint checks
- Pack for installed collections of prompts and templates
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Final, Literal

ARCHIVE_DIR: Final = "archive"
PROMPTS_DIR: Final = "prompts"
TEMPLATES_DIR: Final = "templates"
PACKS_DIR: Final = "packs"
PACK_MANIFEST: Final = "pack.json"
PACK_README: Final = "README.md"
ARCHIVE_TAG: Final = "archive"
DEFAULT_VERSION: Final = "1.0.0"


@dataclass(frozen=True, slots=True)
class Prompt:
    """A prompt stored as Markdown with YAML frontmatter.

    Instances produced by listings carry ``content=None``; use the store's
    ``get`` to load the body.

    Attributes:
        id: Stable identifier chosen by the user. Never changes.
        name: Display title (``title`` in frontmatter).
        summary: Short description (``description`` in frontmatter).
        content: Markdown body, or None when not loaded.
        tags: Tags in display order.
        version: Semantic version string.
        template_ref: Optional id of a template this prompt follows.
        pack: Optional pack the prompt was installed from.
        metadata: Open mapping for provenance such as ``original_path``.
        created_at: Creation timestamp.
        updated_at: Last modification timestamp.
        file_path: Path relative to the library root (POSIX separators).
    """

    id: str
    name: str = ""
    summary: str = ""
    content: str | None = None
    tags: tuple[str, ...] = ()
    version: str = DEFAULT_VERSION
    template_ref: str | None = None
    pack: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)  # pyright: ignore[reportExplicitAny]
    created_at: datetime | None = None
    updated_at: datetime | None = None
    file_path: str = ""

    @property
    def is_archived(self) -> bool:
        """Whether this instance is an archived snapshot."""
        return self.file_path.startswith(f"{ARCHIVE_DIR}/")

    @property
    def has_content(self) -> bool:
        """Whether the body has been loaded."""
        return self.content is not None

    def has_tag(self, tag: str) -> bool:
        """Case-insensitive tag membership."""
        wanted = tag.lower()
        return any(existing.lower() == wanted for existing in self.tags)


class BulletStyle(StrEnum):
    """Allowed list markers for template-constrained content."""

    HYPHEN = "hyphen"
    ASTERISK = "asterisk"
    PLUS = "plus"

    @property
    def marker(self) -> str:
        """The literal marker character."""
        return {"hyphen": "-", "asterisk": "*", "plus": "+"}[self.value]


@dataclass(frozen=True, slots=True)
class Slot:
    """A named placeholder a template expects to be filled.

    Attributes:
        name: Placeholder name.
        description: What the slot is for.
        required: Whether content must provide the slot.
        default: Value used when the slot is omitted.
    """

    name: str
    description: str = ""
    required: bool = False
    default: str = ""


@dataclass(frozen=True, slots=True)
class TemplateConstraints:
    """Structural rules checked by :func:`validate_content`.

    Attributes:
        required_headings: Headings that must appear (any level).
        bullet_style: Only this list marker may be used.
        max_word_count: Upper bound on words (None for no bound).
        min_word_count: Lower bound on words (None for no bound).
        required_sections: Section names that must appear as headings or
            as bold labels.
    """

    required_headings: tuple[str, ...] = ()
    bullet_style: BulletStyle | None = None
    max_word_count: int | None = None
    min_word_count: int | None = None
    required_sections: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        """Whether no rule is configured."""
        return (
            not self.required_headings
            and self.bullet_style is None
            and self.max_word_count is None
            and self.min_word_count is None
            and not self.required_sections
        )


@dataclass(frozen=True, slots=True)
class Template:
    """A reusable prompt skeleton.

    Attributes:
        id: Stable identifier.
        name: Display name.
        description: Short description.
        content: Markdown body containing slot placeholders.
        version: Semantic version string.
        slots: Ordered slot definitions.
        constraints: Structural rules for content following this template.
        metadata: Open mapping.
        created_at: Creation timestamp.
        updated_at: Last modification timestamp.
        file_path: Path relative to the library root.
    """

    id: str
    name: str = ""
    description: str = ""
    content: str = ""
    version: str = DEFAULT_VERSION
    slots: tuple[Slot, ...] = ()
    constraints: TemplateConstraints = field(default_factory=TemplateConstraints)
    metadata: dict[str, Any] = field(default_factory=dict)  # pyright: ignore[reportExplicitAny]
    created_at: datetime | None = None
    updated_at: datetime | None = None
    file_path: str = ""


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """Result of a template constraint check.

    Attributes:
        level: Severity ("error" or "warning").
        message: Human-readable description.
        rule: Name of the constraint that produced the issue.
    """

    level: Literal["error", "warning"]
    message: str
    rule: str


@dataclass(frozen=True, slots=True)
class ImportPolicy:
    """How an import treats prompts that already exist.

    Attributes:
        skip_existing: Leave existing prompts untouched.
        overwrite: Accept metadata-only differences instead of failing.
        dedupe_by_origin_path: Treat prompts imported from the same
            ``metadata["original_path"]`` as the same prompt.
    """

    skip_existing: bool = False
    overwrite: bool = False
    dedupe_by_origin_path: bool = False


class ImportAction(StrEnum):
    """What an import did for a single artifact."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class ImportOutcome:
    """Result of importing one artifact.

    Attributes:
        id: Artifact id.
        action: What happened.
        version: Version after the import.
        archived: Whether the previous version was archived.
    """

    id: str
    action: ImportAction
    version: str
    archived: bool = False


@dataclass(frozen=True, slots=True)
class Pack:
    """A collection of prompts and templates installed under ``packs/<name>``.

    The descriptive fields come from the pack's ``pack.json`` manifest; the
    install fields are recorded by the registry.

    Attributes:
        name: Unique pack name, also its directory name.
        version: Pack version.
        title: Display title.
        description: Free text.
        author: Pack author.
        homepage: Project URL.
        tags: Tags describing the pack.
        prompts: Prompt ids the manifest lists.
        templates: Template ids the manifest lists.
        install_time: When the pack was installed.
        install_url: Where the pack was installed from.
        path: Directory relative to the library root (POSIX separators).
    """

    name: str
    version: str
    title: str
    description: str = ""
    author: str = ""
    homepage: str = ""
    tags: tuple[str, ...] = ()
    prompts: tuple[str, ...] = ()
    templates: tuple[str, ...] = ()
    install_time: datetime | None = None
    install_url: str = ""
    path: str = ""
