"""The prompt library service.

:class:`PromptLibrary` is the single entry point used by the CLI. It wires
the artifact store, the sync engine, the pack registry and the saved-search
store for one library root, and layers search on top of the listing.

Every mutation writes locally first and then commits and pushes on a best
effort basis: a sync failure is logged and surfaced as a warning on the
returned :class:`MutationResult`, and the local write is never rolled back.

Example:
    >>> from pocket_prompt.config import load_config
    >>> from pocket_prompt.library import PromptLibrary
    >>> library = PromptLibrary(load_config())
    >>> library.open()
    >>> [p.id for p in library.boolean_search("ai AND NOT draft")]
"""

from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path

import anyio
from anyio.abc import TaskGroup
from structlog.typing import FilteringBoundLogger

from pocket_prompt.artifacts import (
    ArtifactStore,
    ImportAction,
    ImportOutcome,
    ImportPolicy,
    ListingState,
    Pack,
    PackRegistry,
    Prompt,
    Template,
    ValidationIssue,
    create_scaffold,
    validate_content,
)
from pocket_prompt.config import Config
from pocket_prompt.exceptions import (
    AlreadyExistsError,
    StorageFailureError,
    SyncFailureError,
    ValidationFailureError,
)
from pocket_prompt.expression import TagExpression, evaluate, parse_expression
from pocket_prompt.sync import (
    GitCommandRunner,
    PullResult,
    SetupResult,
    SyncEngine,
    SyncResult,
    SyncState,
    SyncStatus,
    background_sync,
)
from pocket_prompt.utils import get_null_logger

from ._fuzzy import fuzzy_find
from ._models import ImportReport, MutationResult, SavedSearch
from ._saved import SAVED_SEARCHES_FILE, SavedSearchStore

type ExpressionInput = TagExpression | str | None


def _search_text(prompt: Prompt) -> str:
    return " ".join((prompt.name, prompt.summary, prompt.id, *prompt.tags))


def _hybrid_text(prompt: Prompt) -> str:
    return " ".join((prompt.name, prompt.summary, *prompt.tags, prompt.content or ""))


def _coerce_expression(expression: ExpressionInput) -> TagExpression | None:
    if isinstance(expression, str):
        if not expression.strip():
            return None
        return parse_expression(expression)
    return expression


class PromptLibrary:
    """A prompt library rooted at one directory.

    Attributes:
        config: Effective configuration.
        store: Artifact store for prompts and templates.
        sync: Git sync engine.
        saved_searches: Saved-search persistence.
        packs: Registry of installed packs.
    """

    __slots__ = ("_logger", "config", "packs", "saved_searches", "store", "sync")

    def __init__(
        self,
        config: Config | None = None,
        *,
        runner: GitCommandRunner | None = None,
        logger: FilteringBoundLogger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the library. Call :meth:`open` before use.

        Args:
            config: Configuration (defaults apply when omitted).
            runner: Git command runner, mainly for tests.
            logger: Structured logger.
            clock: Local time source for commit messages.
        """
        self.config: Config = config or Config()
        self._logger: FilteringBoundLogger = logger or get_null_logger()
        root = self.config.library_root
        self.store: ArtifactStore = ArtifactStore(root, logger=self._logger)
        self.sync: SyncEngine = SyncEngine(
            root, config=self.config.sync, runner=runner, logger=self._logger, clock=clock
        )
        self.saved_searches: SavedSearchStore = SavedSearchStore(
            root / SAVED_SEARCHES_FILE, logger=self._logger
        )
        self.packs: PackRegistry = PackRegistry(root, logger=self._logger)

    @property
    def root(self) -> Path:
        """Library root directory."""
        return self.store.root

    def open(self) -> None:
        """Create the directory layout and detect the sync state."""
        self.store.initialize()
        state = self.sync.initialize()
        self._logger.debug("library_opened", root=str(self.root), sync_state=state.value)

    def start_background_load(self, task_group: TaskGroup) -> None:
        """Build the prompt listing in a worker thread."""
        self.store.start_background_load(task_group)

    def listing_state(self) -> ListingState:
        """The listing if it is loaded, without blocking."""
        return self.store.listing_state()

    # =========================================================================
    # Mutations
    # =========================================================================

    def _sync_after(self, message: str) -> tuple[SyncResult | None, tuple[str, ...]]:
        if not self.sync.enabled:
            return None, ()
        try:
            result = self.sync.sync_changes(message)
        except SyncFailureError as e:
            self._logger.warning(
                "sync_after_change_failed",
                message=message,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None, (f"Saved locally but sync failed: {e}",)
        if result.warning:
            return result, (result.warning,)
        return result, ()

    def create_prompt(self, prompt: Prompt) -> MutationResult[Prompt]:
        """Create a prompt and sync it.

        Raises:
            ValidationFailureError: If the id is malformed.
            AlreadyExistsError: If the id is taken.
            StorageFailureError: If the file cannot be written.
        """
        created = self.store.create(prompt)
        sync, warnings = self._sync_after(f"Create prompt: {created.name}")
        return MutationResult(value=created, sync=sync, warnings=warnings)

    def update_prompt(self, prompt: Prompt) -> MutationResult[Prompt]:
        """Write a new version of a prompt and sync it.

        Raises:
            PromptNotFoundError: If the prompt does not exist.
            StorageFailureError: If a file cannot be written.
        """
        updated = self.store.update(prompt)
        sync, warnings = self._sync_after(
            f"Update prompt: {updated.name} (v{updated.version})"
        )
        return MutationResult(value=updated, sync=sync, warnings=warnings)

    def save_prompt(self, prompt: Prompt) -> MutationResult[Prompt]:
        """Create the prompt if its id is new, otherwise update it."""
        if self.store.exists(prompt.id):
            return self.update_prompt(prompt)
        return self.create_prompt(prompt)

    def delete_prompt(self, prompt_id: str) -> MutationResult[Prompt]:
        """Delete the current version of a prompt and sync.

        Raises:
            PromptNotFoundError: If the prompt does not exist.
        """
        deleted = self.store.delete(prompt_id)
        sync, warnings = self._sync_after(f"Delete prompt: {deleted.name or deleted.id}")
        return MutationResult(value=deleted, sync=sync, warnings=warnings)

    def save_template(self, template: Template) -> MutationResult[Template]:
        """Create or replace a template and sync."""
        saved = self.store.save_template(template)
        sync, warnings = self._sync_after(f"Save template: {saved.name or saved.id}")
        return MutationResult(value=saved, sync=sync, warnings=warnings)

    def delete_template(self, template_id: str) -> MutationResult[str]:
        """Delete a template and sync.

        Raises:
            TemplateNotFoundError: If the template does not exist.
        """
        self.store.delete_template(template_id)
        sync, warnings = self._sync_after(f"Delete template: {template_id}")
        return MutationResult(value=template_id, sync=sync, warnings=warnings)

    def import_prompts(
        self,
        prompts: Iterable[Prompt],
        policy: ImportPolicy | None = None,
        *,
        templates: Iterable[Template] = (),
    ) -> MutationResult[ImportReport]:
        """Import a batch of prompts and templates, then sync once.

        An artifact that cannot be imported is recorded in the report's
        ``errors`` and the rest of the batch continues.
        """
        policy = policy or ImportPolicy()
        outcomes: list[ImportOutcome] = []
        errors: list[tuple[str, str]] = []

        for template in templates:
            try:
                outcomes.append(self.store.import_template(template, policy))
            except (AlreadyExistsError, ValidationFailureError, StorageFailureError) as e:
                errors.append((template.id, str(e)))
        for prompt in prompts:
            try:
                outcomes.append(self.store.import_prompt(prompt, policy))
            except (AlreadyExistsError, ValidationFailureError, StorageFailureError) as e:
                errors.append((prompt.id, str(e)))

        if errors:
            self._logger.warning("import_errors", count=len(errors))

        report = ImportReport(outcomes=tuple(outcomes), errors=tuple(errors))
        changed = sum(
            1 for o in outcomes if o.action in (ImportAction.CREATED, ImportAction.UPDATED)
        )
        if not changed:
            return MutationResult(value=report)
        sync, warnings = self._sync_after(f"Import {changed} artifacts")
        return MutationResult(value=report, sync=sync, warnings=warnings)

    # =========================================================================
    # Queries
    # =========================================================================

    def list_prompts(self) -> list[Prompt]:
        """Current prompts, without bodies."""
        return self.store.list_prompts()

    def get_prompt(self, prompt_id: str) -> Prompt:
        """A current prompt with its body."""
        return self.store.get(prompt_id)

    def list_archived(self) -> list[Prompt]:
        """Every archived version of every prompt."""
        return self.store.list_prompts(include_archived=True)

    def history(self, prompt_id: str) -> list[Prompt]:
        """Archived versions of one prompt, oldest first."""
        return self.store.history(prompt_id)

    def all_tags(self) -> list[str]:
        """Distinct tags across current prompts, sorted case-insensitively."""
        seen: dict[str, str] = {}
        for prompt in self.store.list_prompts():
            for tag in prompt.tags:
                seen.setdefault(tag.lower(), tag)
        return [seen[key] for key in sorted(seen)]

    def filter_by_tag(self, tag: str) -> list[Prompt]:
        """Current prompts carrying ``tag`` (case-insensitive)."""
        return [p for p in self.store.list_prompts() if p.has_tag(tag)]

    def get_template(self, template_id: str) -> Template:
        """A template by id."""
        return self.store.get_template(template_id)

    def list_templates(self) -> list[Template]:
        """All templates."""
        return self.store.list_templates()

    def validate_prompt(self, prompt: Prompt) -> list[ValidationIssue]:
        """Check a prompt's body against the template it references.

        Prompts without a template reference have nothing to check.

        Raises:
            TemplateNotFoundError: If the referenced template is missing.
        """
        if not prompt.template_ref:
            return []
        template = self.store.get_template(prompt.template_ref)
        return validate_content(self.store.load_content(prompt).content or "", template)

    # =========================================================================
    # Search
    # =========================================================================

    def search(self, query: str) -> list[Prompt]:
        """Fuzzy search over name, summary, id and tags.

        An empty query returns every current prompt.
        """
        prompts = self.store.list_prompts()
        if not query.strip():
            return prompts
        matches = fuzzy_find(query, [_search_text(p) for p in prompts])
        return [prompts[m.index] for m in matches]

    def boolean_search(self, expression: ExpressionInput) -> list[Prompt]:
        """Current prompts whose tags satisfy ``expression``.

        Args:
            expression: A parsed expression, a query string, or None for
                every prompt.

        Raises:
            InvalidExpressionError: If a query string does not parse.
        """
        parsed = _coerce_expression(expression)
        return [p for p in self.store.list_prompts() if evaluate(parsed, p.tags)]

    def _load_for_ranking(self, prompt: Prompt) -> Prompt:
        try:
            return self.store.load_content(prompt)
        except StorageFailureError as e:
            self._logger.warning("search_content_unreadable", id=prompt.id, error=str(e))
            return prompt

    def hybrid_search(self, expression: ExpressionInput, text_query: str = "") -> list[Prompt]:
        """Filter by ``expression``, then fuzzy rank by ``text_query``.

        Ranking looks at name, summary, tags and the body, loading bodies
        only for prompts that passed the filter. An empty text query keeps
        the filtered order.
        """
        filtered = self.boolean_search(expression)
        if not text_query.strip():
            return filtered
        loaded = [self._load_for_ranking(p) for p in filtered]
        matches = fuzzy_find(text_query, [_hybrid_text(p) for p in loaded])
        return [loaded[m.index] for m in matches]

    # =========================================================================
    # Saved searches
    # =========================================================================

    def save_search(self, search: SavedSearch) -> SavedSearch:
        """Create or overwrite a saved search by name."""
        return self.saved_searches.save(search)

    def delete_search(self, name: str) -> None:
        """Delete a saved search.

        Raises:
            SavedSearchNotFoundError: If no search has this name.
        """
        self.saved_searches.delete(name)

    def get_search(self, name: str) -> SavedSearch:
        """A saved search by name."""
        return self.saved_searches.get(name)

    def list_searches(self) -> list[SavedSearch]:
        """All saved searches."""
        return self.saved_searches.list_searches()

    def execute_search(self, name: str, text_override: str = "") -> list[Prompt]:
        """Run a saved search.

        Args:
            name: Saved search name.
            text_override: Replaces the stored text query when non-empty.
        """
        search = self.saved_searches.get(name)
        text = text_override or search.text_query
        return self.hybrid_search(search.expression, text)

    # =========================================================================
    # Packs
    # =========================================================================

    def list_packs(self) -> list[Pack]:
        """Installed packs in install order."""
        return self.packs.list_packs()

    def get_pack(self, name: str) -> Pack:
        """An installed pack by name.

        Raises:
            PackNotFoundError: If no pack has this name.
        """
        return self.packs.get(name)

    def list_pack_prompts(self, name: str) -> list[Prompt]:
        """Current prompts that came from an installed pack.

        Raises:
            PackNotFoundError: If no pack has this name.
        """
        pack = self.packs.get(name)
        return [p for p in self.store.list_prompts() if p.pack == pack.name]

    def install_pack(
        self, source: Path, *, name: str | None = None, force: bool = False
    ) -> MutationResult[Pack]:
        """Install a pack from a local directory and sync.

        Raises:
            ValidationFailureError: If the directory is not a valid pack.
            AlreadyExistsError: If the pack is installed and ``force`` is unset.
            StorageFailureError: If files cannot be copied or written.
        """
        pack = self.packs.install_from_directory(source, name=name, force=force)
        self.store.invalidate()
        sync, warnings = self._sync_after(f"Install pack: {pack.name} (v{pack.version})")
        return MutationResult(value=pack, sync=sync, warnings=warnings)

    def uninstall_pack(self, name: str) -> MutationResult[Pack]:
        """Remove an installed pack with its prompts and templates, then sync.

        Raises:
            PackNotFoundError: If no pack has this name.
        """
        pack = self.packs.uninstall(name)
        self.store.invalidate()
        sync, warnings = self._sync_after(f"Uninstall pack: {pack.name}")
        return MutationResult(value=pack, sync=sync, warnings=warnings)

    def create_pack_scaffold(
        self, directory: Path, name: str, title: str, *, description: str = "", author: str = ""
    ) -> Pack:
        """Create an empty pack skeleton outside the library."""
        return create_scaffold(directory, name, title, description=description, author=author)

    # =========================================================================
    # Sync
    # =========================================================================

    @property
    def sync_enabled(self) -> bool:
        """Whether mutations are committed and pushed."""
        return self.sync.enabled

    def sync_status(self) -> SyncStatus:
        """Summary of the repository state."""
        return self.sync.status()

    def enable_sync(self) -> None:
        """Turn sync on for a linked repository."""
        self.sync.enable()

    def disable_sync(self) -> None:
        """Turn sync off."""
        self.sync.disable()

    def setup_sync(self, remote: str) -> SetupResult:
        """Link the library to ``remote`` and adopt its history."""
        result = self.sync.setup_repository(remote)
        self.store.invalidate()
        return result

    def pull(self) -> PullResult:
        """Pull remote changes and reload the listing when they arrive."""
        result = self.sync.pull_changes()
        if result.updated:
            self.store.invalidate()
        return result

    def pull_if_needed(self) -> PullResult:
        """Pull only when a fetch shows the remote is ahead."""
        if not self.sync.check_for_changes():
            return PullResult(skipped=not self.sync.enabled)
        return self.pull()

    def force_resync(self) -> SyncState:
        """Re-detect the sync state from disk."""
        state = self.sync.force_resync()
        self.store.invalidate()
        return state

    async def run_background_sync(self, cancel_event: anyio.Event | None = None) -> None:
        """Pull on the configured interval until cancelled."""
        await background_sync(
            self.sync,
            self.config.sync.interval_seconds,
            cancel_event=cancel_event,
            on_pull=lambda _result: self.store.invalidate(),
            logger=self._logger,
        )
