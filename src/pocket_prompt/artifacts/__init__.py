"""Versioned prompt and template storage.

This package provides the on-disk artifact store: prompts and templates as
Markdown files with YAML frontmatter, append-only archives of previous
versions, a persistent metadata cache for listings, template constraint
validation, conflict-aware imports and the registry of installed packs.
"""

from ._cache import CacheEntry, MetadataCache
from ._frontmatter import (
    ID_PATTERN,
    format_timestamp,
    normalize_body,
    parse_frontmatter,
    parse_prompt,
    parse_template,
    parse_timestamp,
    serialize_frontmatter,
    serialize_prompt,
    serialize_template,
)
from ._imports import ArtifactChanges, prompt_changes, same_origin, template_changes
from ._packs import (
    PackRegistry,
    create_scaffold,
    load_manifest,
    validate_structure,
)
from ._store import ArtifactStore, ListingState
from ._types import (
    ARCHIVE_DIR,
    ARCHIVE_TAG,
    DEFAULT_VERSION,
    PACK_MANIFEST,
    PACK_README,
    PACKS_DIR,
    PROMPTS_DIR,
    TEMPLATES_DIR,
    BulletStyle,
    ImportAction,
    ImportOutcome,
    ImportPolicy,
    Pack,
    Prompt,
    Slot,
    Template,
    TemplateConstraints,
    ValidationIssue,
)
from ._validator import validate_constraints, validate_content
from ._versioning import next_version, version_key

__all__ = [
    "ARCHIVE_DIR",
    "ARCHIVE_TAG",
    "DEFAULT_VERSION",
    "ID_PATTERN",
    "PACKS_DIR",
    "PACK_MANIFEST",
    "PACK_README",
    "PROMPTS_DIR",
    "TEMPLATES_DIR",
    "ArtifactChanges",
    "ArtifactStore",
    "BulletStyle",
    "CacheEntry",
    "ImportAction",
    "ImportOutcome",
    "ImportPolicy",
    "ListingState",
    "MetadataCache",
    "Pack",
    "PackRegistry",
    "Prompt",
    "Slot",
    "Template",
    "TemplateConstraints",
    "ValidationIssue",
    "create_scaffold",
    "format_timestamp",
    "load_manifest",
    "next_version",
    "normalize_body",
    "parse_frontmatter",
    "parse_prompt",
    "parse_template",
    "parse_timestamp",
    "prompt_changes",
    "same_origin",
    "serialize_frontmatter",
    "serialize_prompt",
    "serialize_template",
    "template_changes",
    "validate_constraints",
    "validate_content",
    "validate_structure",
    "version_key",
]
