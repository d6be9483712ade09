# pyright: reportImportCycles=false
r"""Artifact store for a prompt library directory.

The store owns the on-disk layout of a library::

    <root>/
        prompts/<id>.md
        archive/<id>-v<version>.md
        templates/<id>.md
        packs/<name>/pack.json
        packs/<name>/prompts/<id>.md
        packs/<name>/templates/<id>.md
        .pocket-prompt/packs.json
        .pocket-prompt/cache/metadata.json

Every update archives the previous version before writing the new one, so
history is never lost. Listings are served from an in-memory snapshot that
is dropped on every mutation and rebuilt lazily, backed by the persistent
metadata cache.

Example:
    >>> from pathlib import Path
    >>> from pocket_prompt.artifacts import ArtifactStore, Prompt
    >>> store = ArtifactStore(Path("~/.pocket-prompt").expanduser())
    >>> store.initialize()
    >>> store.create(Prompt(id="code-review", name="Code Review", content="..."))
"""

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path

import anyio.to_thread
import pendulum
from anyio.abc import TaskGroup
from structlog.typing import FilteringBoundLogger

from pocket_prompt.exceptions import (
    AlreadyExistsError,
    PromptNotFoundError,
    StorageFailureError,
    TemplateNotFoundError,
    ValidationFailureError,
)
from pocket_prompt.utils import atomic_write, get_cache_dir, get_null_logger

from ._cache import MetadataCache
from ._frontmatter import (
    ID_PATTERN,
    parse_prompt,
    parse_template,
    serialize_prompt,
    serialize_template,
)
from ._imports import prompt_changes, same_origin, template_changes
from ._types import (
    ARCHIVE_DIR,
    ARCHIVE_TAG,
    PACK_README,
    PACKS_DIR,
    PROMPTS_DIR,
    TEMPLATES_DIR,
    ImportAction,
    ImportOutcome,
    ImportPolicy,
    Prompt,
    Template,
)
from ._versioning import next_version, version_key


@dataclass(frozen=True, slots=True)
class ListingState:
    """Snapshot of the listing as seen by a caller.

    Attributes:
        prompts: Current prompts (empty while loading).
        loaded: Whether the listing has been populated.
    """

    prompts: tuple[Prompt, ...]
    loaded: bool


def _validate_id(artifact_id: str, kind: str) -> None:
    if not artifact_id or not ID_PATTERN.match(artifact_id):
        msg = (
            f"Invalid {kind} id {artifact_id!r}: use letters, digits, "
            "hyphens and underscores"
        )
        raise ValidationFailureError(msg, field="id", value=artifact_id)


def _pack_name(rel_path: str) -> str | None:
    parts = rel_path.split("/")
    if len(parts) > 2 and parts[0] == PACKS_DIR:  # noqa: PLR2004
        return parts[1]
    return None


def _parse_prompt_file(text: str, rel_path: str) -> Prompt:
    prompt = parse_prompt(text, rel_path)
    pack = _pack_name(rel_path)
    if prompt.pack is None and pack is not None:
        return replace(prompt, pack=pack)
    return prompt


class ArtifactStore:
    """Store for prompts and templates in a library directory.

    Attributes:
        _root: Library root directory.
        _logger: Structured logger.
        _cache: Persistent metadata cache.
        _listing: In-memory listing snapshot, or None when stale.
        _generation: Bumped on every mutation to discard stale loads.
        _lock: Guards the listing snapshot and the metadata cache.
    """

    __slots__ = ("_cache", "_generation", "_listing", "_lock", "_logger", "_root")

    def __init__(
        self,
        root: Path | str,
        *,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            root: Library root directory.
            logger: Structured logger (defaults to a silent logger).
        """
        self._root = Path(root)
        self._logger: FilteringBoundLogger = logger or get_null_logger()
        self._cache = MetadataCache(
            get_cache_dir(self._root) / "metadata.json", logger=self._logger
        )
        self._listing: list[Prompt] | None = None
        self._generation = 0
        self._lock = threading.RLock()

    # =========================================================================
    # Layout
    # =========================================================================

    @property
    def root(self) -> Path:
        """Library root directory."""
        return self._root

    @property
    def prompts_path(self) -> Path:
        """Directory holding current prompts."""
        return self._root / PROMPTS_DIR

    @property
    def archive_path(self) -> Path:
        """Directory holding archived prompt versions."""
        return self._root / ARCHIVE_DIR

    @property
    def templates_path(self) -> Path:
        """Directory holding templates."""
        return self._root / TEMPLATES_DIR

    @property
    def packs_path(self) -> Path:
        """Directory holding installed packs."""
        return self._root / PACKS_DIR

    def initialize(self) -> None:
        """Create the library directory structure. Idempotent."""
        try:
            for directory in (
                self.prompts_path,
                self.archive_path,
                self.templates_path,
                self.packs_path,
                get_cache_dir(self._root),
            ):
                directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = f"Failed to initialize library: {e}"
            raise StorageFailureError(
                msg, path=self._root, operation="initialize", cause=e
            ) from e

    def _relative(self, path: Path) -> str:
        return path.relative_to(self._root).as_posix()

    def _absolute(self, rel_path: str) -> Path:
        return self._root / rel_path

    def _is_pack_prompt(self, path: Path) -> bool:
        """Whether a Markdown file under ``packs/`` holds a prompt.

        Pack templates and the pack README are not prompts.
        """
        parts = path.relative_to(self.packs_path).parts
        if len(parts) == 2 and parts[1].lower() == PACK_README.lower():  # noqa: PLR2004
            return False
        return not (len(parts) > 2 and parts[1] == TEMPLATES_DIR)  # noqa: PLR2004

    @staticmethod
    def _now() -> datetime:
        return pendulum.now("UTC")

    # =========================================================================
    # Listing
    # =========================================================================

    def invalidate(self) -> None:
        """Drop the in-memory listing so the next read rebuilds it."""
        with self._lock:
            self._listing = None
            self._generation += 1

    def _load_listing_file(self, path: Path) -> Prompt | None:
        rel_path = self._relative(path)
        try:
            mtime = path.stat().st_mtime
            cached = self._cache.get(rel_path, mtime)
            if cached is not None:
                return cached
            prompt = _parse_prompt_file(path.read_text(encoding="utf-8"), rel_path)
        except (ValueError, TypeError, OSError) as e:
            self._logger.warning("prompt_file_skipped", path=rel_path, error=str(e))
            return None

        self._cache.put(rel_path, mtime, prompt)
        return replace(prompt, content=None)

    def _scan(self) -> list[Prompt]:
        prompts: list[Prompt] = []
        seen: set[str] = set()
        with self._lock:
            for directory in (self.prompts_path, self.packs_path, self.archive_path):
                if not directory.is_dir():
                    continue
                for path in sorted(directory.rglob("*.md")):
                    if directory == self.packs_path and not self._is_pack_prompt(path):
                        continue
                    seen.add(self._relative(path))
                    prompt = self._load_listing_file(path)
                    if prompt is not None:
                        prompts.append(prompt)

            removed = self._cache.prune(seen)
            if removed:
                self._logger.debug("metadata_cache_pruned", removed=removed)
            self._cache.save()

        prompts.sort(key=lambda p: (p.id, version_key(p.version)))
        return prompts

    def _all(self) -> list[Prompt]:
        with self._lock:
            if self._listing is None:
                self._listing = self._scan()
                self._logger.debug("listing_loaded", count=len(self._listing))
            return self._listing

    def list_prompts(self, *, include_archived: bool = False) -> list[Prompt]:
        """List prompts without their bodies.

        Args:
            include_archived: Return archived versions instead of current ones.

        Returns:
            Listing instances (``content`` is None).
        """
        return [p for p in self._all() if p.is_archived == include_archived]

    def listing_state(self) -> ListingState:
        """Return the listing if loaded, without blocking to build it."""
        with self._lock:
            if self._listing is None:
                return ListingState(prompts=(), loaded=False)
            return ListingState(
                prompts=tuple(p for p in self._listing if not p.is_archived),
                loaded=True,
            )

    def start_background_load(self, task_group: TaskGroup) -> None:
        """Populate the listing in a worker thread.

        Callers see an unloaded :class:`ListingState` until the load
        finishes. A mutation during the load discards its result.
        """
        task_group.start_soon(self._load_in_background)

    async def _load_in_background(self) -> None:
        with self._lock:
            generation = self._generation
        listing = await anyio.to_thread.run_sync(self._scan)
        with self._lock:
            if generation == self._generation and self._listing is None:
                self._listing = listing
                self._logger.debug("listing_loaded_in_background", count=len(listing))

    def _find_current(self, prompt_id: str) -> Prompt | None:
        matches = [p for p in self._all() if p.id == prompt_id and not p.is_archived]
        if len(matches) > 1:
            self._logger.warning(
                "duplicate_prompt_id",
                id=prompt_id,
                paths=[p.file_path for p in matches],
            )
        return matches[0] if matches else None

    def exists(self, prompt_id: str) -> bool:
        """Whether a current prompt has this id."""
        return self._find_current(prompt_id) is not None

    # =========================================================================
    # Reads
    # =========================================================================

    def _read_prompt(self, rel_path: str) -> Prompt:
        path = self._absolute(rel_path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            msg = f"Failed to read prompt file: {e}"
            raise StorageFailureError(msg, path=path, operation="read", cause=e) from e
        try:
            return _parse_prompt_file(text, rel_path)
        except (ValueError, TypeError) as e:
            msg = f"Invalid prompt file: {e}"
            raise StorageFailureError(msg, path=path, operation="parse", cause=e) from e

    def get(self, prompt_id: str) -> Prompt:
        """Get a current prompt with its body.

        Raises:
            PromptNotFoundError: If no current prompt has this id.
            StorageFailureError: If the file cannot be read.
        """
        entry = self._find_current(prompt_id)
        if entry is None:
            raise PromptNotFoundError(prompt_id)
        return self._read_prompt(entry.file_path)

    def load_content(self, prompt: Prompt) -> Prompt:
        """Return ``prompt`` with its body, reading the file if needed."""
        if prompt.content is not None:
            return prompt
        return self._read_prompt(prompt.file_path)

    def history(self, prompt_id: str) -> list[Prompt]:
        """Archived versions of a prompt, oldest first."""
        archived = [p for p in self.list_prompts(include_archived=True) if p.id == prompt_id]
        return sorted(archived, key=lambda p: version_key(p.version))

    # =========================================================================
    # Writes
    # =========================================================================

    def _write(self, rel_path: str, text: str) -> None:
        atomic_write(self._absolute(rel_path), text)
        # mtime resolution can hide a rewrite within the same tick
        self._cache.remove(rel_path)

    def _archive(self, prompt: Prompt) -> Prompt:
        """Write an archived copy of ``prompt``. Existing archives are never replaced."""
        tags = prompt.tags if prompt.has_tag(ARCHIVE_TAG) else (*prompt.tags, ARCHIVE_TAG)
        rel_path = f"{ARCHIVE_DIR}/{prompt.id}-v{prompt.version}.md"
        suffix = 1
        while self._absolute(rel_path).exists():
            suffix += 1
            rel_path = f"{ARCHIVE_DIR}/{prompt.id}-v{prompt.version}-{suffix}.md"

        archived = replace(prompt, tags=tags, file_path=rel_path)
        self._write(rel_path, serialize_prompt(archived))
        self._logger.info("prompt_archived", id=prompt.id, version=prompt.version, path=rel_path)
        return archived

    def create(self, prompt: Prompt) -> Prompt:
        """Create a new prompt.

        Sets both timestamps and defaults the path to ``prompts/<id>.md``.

        Raises:
            ValidationFailureError: If the id is malformed.
            AlreadyExistsError: If a current prompt already has this id.
            StorageFailureError: If the file cannot be written.
        """
        _validate_id(prompt.id, "prompt")
        with self._lock:
            if self._find_current(prompt.id) is not None:
                msg = f"Prompt already exists: {prompt.id}"
                raise AlreadyExistsError(msg, key=prompt.id)

            now = self._now()
            created = replace(
                prompt,
                content=prompt.content or "",
                version=prompt.version or next_version(""),
                created_at=now,
                updated_at=now,
                file_path=prompt.file_path or f"{PROMPTS_DIR}/{prompt.id}.md",
            )
            self._write(created.file_path, serialize_prompt(created))
            self.invalidate()

        self._logger.info("prompt_created", id=created.id, path=created.file_path)
        return created

    def update(self, prompt: Prompt) -> Prompt:
        """Replace a prompt with a new version, archiving the old one.

        The version is derived from the stored one; ``created_at`` and the
        file path are preserved. A ``None`` body keeps the stored body.

        Raises:
            PromptNotFoundError: If no current prompt has this id. Nothing
                is written in that case.
            StorageFailureError: If a file cannot be written.
        """
        with self._lock:
            existing = self.get(prompt.id)
            self._archive(existing)
            updated = self._write_new_version(existing, prompt, bump=True)
            self.invalidate()

        self._logger.info("prompt_updated", id=updated.id, version=updated.version)
        return updated

    def _write_new_version(self, existing: Prompt, prompt: Prompt, *, bump: bool) -> Prompt:
        updated = replace(
            prompt,
            content=prompt.content if prompt.content is not None else existing.content,
            version=next_version(existing.version) if bump else existing.version,
            created_at=existing.created_at or self._now(),
            updated_at=self._now(),
            file_path=existing.file_path,
        )
        self._write(updated.file_path, serialize_prompt(updated))
        return updated

    def delete(self, prompt_id: str) -> Prompt:
        """Delete the current version of a prompt. Archives are kept.

        Returns:
            The listing instance of the deleted prompt.

        Raises:
            PromptNotFoundError: If no current prompt has this id.
            StorageFailureError: If the file cannot be removed.
        """
        with self._lock:
            entry = self._find_current(prompt_id)
            if entry is None:
                raise PromptNotFoundError(prompt_id)
            path = self._absolute(entry.file_path)
            try:
                path.unlink()
            except OSError as e:
                msg = f"Failed to delete prompt file: {e}"
                raise StorageFailureError(msg, path=path, operation="delete", cause=e) from e
            self._cache.remove(entry.file_path)
            self.invalidate()

        self._logger.info("prompt_deleted", id=prompt_id, path=entry.file_path)
        return entry

    # =========================================================================
    # Imports
    # =========================================================================

    def import_prompt(self, prompt: Prompt, policy: ImportPolicy) -> ImportOutcome:
        """Save an imported prompt, resolving conflicts with a stored one.

        - Absent id: created.
        - No content, tag or metadata difference: unchanged, nothing written.
        - ``skip_existing``: skipped.
        - Metadata-only difference: rejected unless ``overwrite`` is set or
          ``dedupe_by_origin_path`` matches the same source file; the version
          is kept.
        - Content or tag difference: archived and re-versioned.

        Raises:
            AlreadyExistsError: On a metadata-only difference without
                permission to overwrite.
        """
        with self._lock:
            existing_entry = self._find_current(prompt.id)
            if existing_entry is None:
                created = self.create(prompt)
                return ImportOutcome(
                    id=created.id, action=ImportAction.CREATED, version=created.version
                )

            existing = self._read_prompt(existing_entry.file_path)
            changes = prompt_changes(existing, prompt)
            if not changes.any:
                return ImportOutcome(
                    id=prompt.id, action=ImportAction.UNCHANGED, version=existing.version
                )
            if policy.skip_existing:
                return ImportOutcome(
                    id=prompt.id, action=ImportAction.SKIPPED, version=existing.version
                )

            origin_match = policy.dedupe_by_origin_path and same_origin(existing, prompt)
            if not changes.substantive and not (policy.overwrite or origin_match):
                msg = (
                    f"Prompt {prompt.id} already exists "
                    "(use overwrite to replace it or skip_existing to skip)"
                )
                raise AlreadyExistsError(msg, key=prompt.id)

            if changes.substantive:
                self._archive(existing)
            updated = self._write_new_version(existing, prompt, bump=changes.substantive)
            self.invalidate()

        self._logger.info(
            "prompt_imported", id=updated.id, version=updated.version, archived=changes.substantive
        )
        return ImportOutcome(
            id=updated.id,
            action=ImportAction.UPDATED,
            version=updated.version,
            archived=changes.substantive,
        )

    def import_template(self, template: Template, policy: ImportPolicy) -> ImportOutcome:
        """Save an imported template, resolving conflicts with a stored one.

        Templates are compared by content and slots. Changes bump the version
        without archiving.

        Raises:
            AlreadyExistsError: On a metadata-only difference without
                ``overwrite``.
        """
        try:
            existing = self.get_template(template.id)
        except TemplateNotFoundError:
            saved = self.save_template(template)
            return ImportOutcome(id=saved.id, action=ImportAction.CREATED, version=saved.version)

        changes = template_changes(existing, template)
        if not changes.any:
            return ImportOutcome(
                id=template.id, action=ImportAction.UNCHANGED, version=existing.version
            )
        if policy.skip_existing:
            return ImportOutcome(
                id=template.id, action=ImportAction.SKIPPED, version=existing.version
            )
        if not changes.substantive and not policy.overwrite:
            msg = (
                f"Template {template.id} already exists "
                "(use overwrite to replace it or skip_existing to skip)"
            )
            raise AlreadyExistsError(msg, key=template.id)

        version = next_version(existing.version) if changes.substantive else existing.version
        saved = self._write_template(existing, replace(template, version=version))
        return ImportOutcome(id=saved.id, action=ImportAction.UPDATED, version=saved.version)

    # =========================================================================
    # Templates
    # =========================================================================

    def _template_rel_path(self, template_id: str) -> str:
        return f"{TEMPLATES_DIR}/{template_id}.md"

    def _pack_template_paths(self) -> list[Path]:
        if not self.packs_path.is_dir():
            return []
        return sorted(self.packs_path.glob(f"*/{TEMPLATES_DIR}/*.md"))

    def get_template(self, template_id: str) -> Template:
        """Get a template by id.

        Library templates shadow pack templates of the same id.

        Raises:
            TemplateNotFoundError: If the template does not exist.
            StorageFailureError: If the file cannot be read or parsed.
        """
        rel_path = self._template_rel_path(template_id)
        path = self._absolute(rel_path)
        if not path.is_file():
            in_packs = [p for p in self._pack_template_paths() if p.stem == template_id]
            if not in_packs:
                raise TemplateNotFoundError(template_id)
            path = in_packs[0]
            rel_path = self._relative(path)
        try:
            return parse_template(path.read_text(encoding="utf-8"), rel_path)
        except OSError as e:
            msg = f"Failed to read template file: {e}"
            raise StorageFailureError(msg, path=path, operation="read", cause=e) from e
        except (ValueError, TypeError) as e:
            msg = f"Invalid template file: {e}"
            raise StorageFailureError(msg, path=path, operation="parse", cause=e) from e

    def list_templates(self) -> list[Template]:
        """List library and pack templates.

        Unparseable files are logged and skipped. A pack template whose id
        is also a library template is left out.
        """
        templates: list[Template] = []
        paths = sorted(self.templates_path.glob("*.md")) if self.templates_path.is_dir() else []
        local_ids = {path.stem for path in paths}
        paths.extend(p for p in self._pack_template_paths() if p.stem not in local_ids)
        for path in paths:
            rel_path = self._relative(path)
            try:
                templates.append(parse_template(path.read_text(encoding="utf-8"), rel_path))
            except (ValueError, TypeError, OSError) as e:
                self._logger.warning("template_file_skipped", path=rel_path, error=str(e))
        return templates

    def _write_template(self, existing: Template | None, template: Template) -> Template:
        now = self._now()
        created_at = existing.created_at if existing and existing.created_at else now
        saved = replace(
            template,
            created_at=created_at,
            updated_at=now,
            file_path=self._template_rel_path(template.id),
        )
        self._write(saved.file_path, serialize_template(saved))
        self._logger.info("template_saved", id=saved.id, version=saved.version)
        return saved

    def save_template(self, template: Template) -> Template:
        """Create or replace a template, keeping ``created_at`` on replace.

        Raises:
            ValidationFailureError: If the id is malformed.
            StorageFailureError: If the file cannot be written.
        """
        _validate_id(template.id, "template")
        try:
            existing: Template | None = self.get_template(template.id)
        except TemplateNotFoundError:
            existing = None
        return self._write_template(existing, template)

    def delete_template(self, template_id: str) -> None:
        """Delete a template.

        Raises:
            TemplateNotFoundError: If the template does not exist.
            StorageFailureError: If the file cannot be removed.
        """
        path = self._absolute(self._template_rel_path(template_id))
        if not path.is_file():
            raise TemplateNotFoundError(template_id)
        try:
            path.unlink()
        except OSError as e:
            msg = f"Failed to delete template file: {e}"
            raise StorageFailureError(msg, path=path, operation="delete", cause=e) from e
        self._logger.info("template_deleted", id=template_id)
