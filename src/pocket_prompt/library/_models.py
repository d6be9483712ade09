"""Result and record types for the library service."""

from dataclasses import dataclass
from datetime import datetime

from pocket_prompt.artifacts import ImportOutcome
from pocket_prompt.expression import TagExpression
from pocket_prompt.sync import SyncResult


@dataclass(frozen=True, slots=True)
class SavedSearch:
    """A named, persisted query.

    Attributes:
        name: Unique key.
        description: Free text.
        expression: Boolean tag filter, or None to match everything.
        text_query: Optional fuzzy text applied after the filter.
        created_at: Creation timestamp.
        updated_at: Last modification timestamp.
    """

    name: str
    expression: TagExpression | None = None
    description: str = ""
    text_query: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class MutationResult[T]:
    """Outcome of a library mutation.

    The store operation always completed; ``sync`` reports the follow-up
    commit and push, and ``warnings`` collects anything that went wrong
    after the local write.

    Attributes:
        value: What the store returned.
        sync: Sync outcome, or None when sync did not run.
        warnings: Non-fatal problems.
    """

    value: T
    sync: SyncResult | None = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ImportReport:
    """Outcome of importing a batch of artifacts.

    Attributes:
        outcomes: Per-artifact results, in input order.
        errors: Artifacts that failed, as (id, message) pairs.
    """

    outcomes: tuple[ImportOutcome, ...] = ()
    errors: tuple[tuple[str, str], ...] = ()
