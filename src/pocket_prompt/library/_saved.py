# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Persistence for saved searches.

Saved searches live in ``<root>/saved_searches.json``::

    {"version": "1.0", "searches": [{"name": ..., "expression": {...}, ...}]}
"""

from dataclasses import replace
from pathlib import Path
from typing import Any, Final

import pendulum
from structlog.typing import FilteringBoundLogger

from pocket_prompt.artifacts import format_timestamp, parse_timestamp
from pocket_prompt.exceptions import (
    InvalidExpressionError,
    SavedSearchNotFoundError,
    StorageFailureError,
    ValidationFailureError,
)
from pocket_prompt.expression import from_dict, to_dict
from pocket_prompt.utils import get_null_logger, read_json, write_json_atomic

from ._models import SavedSearch

SAVED_SEARCHES_FILE: Final = "saved_searches.json"
FILE_FORMAT_VERSION: Final = "1.0"


def search_to_dict(search: SavedSearch) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Serialize a saved search to its JSON mapping."""
    return {
        "name": search.name,
        "description": search.description,
        "expression": to_dict(search.expression) if search.expression is not None else None,
        "text_query": search.text_query,
        "created_at": format_timestamp(search.created_at),
        "updated_at": format_timestamp(search.updated_at),
    }


def search_from_dict(data: dict[str, Any]) -> SavedSearch:  # pyright: ignore[reportExplicitAny]
    """Rebuild a saved search from its JSON mapping.

    Raises:
        InvalidExpressionError: If the stored expression is malformed.
        ValueError: If the name or a timestamp is invalid.
    """
    name = data.get("name")
    if not isinstance(name, str) or not name:
        msg = "Saved search is missing a name"
        raise ValueError(msg)
    expression = data.get("expression")
    return SavedSearch(
        name=name,
        description=str(data.get("description") or ""),
        expression=from_dict(expression) if expression is not None else None,
        text_query=str(data.get("text_query") or ""),
        created_at=parse_timestamp(data.get("created_at")),
        updated_at=parse_timestamp(data.get("updated_at")),
    )


class SavedSearchStore:
    """CRUD for saved searches backed by a single JSON file.

    Attributes:
        path: Location of the JSON file.
    """

    __slots__ = ("_logger", "path")

    def __init__(self, path: Path, *, logger: FilteringBoundLogger | None = None) -> None:
        """Initialize the store.

        Args:
            path: Location of the JSON file.
            logger: Structured logger.
        """
        self.path: Path = path
        self._logger: FilteringBoundLogger = logger or get_null_logger()

    def _load(self) -> list[SavedSearch]:
        if not self.path.exists():
            return []
        data = read_json(self.path)
        entries = data.get("searches") or []
        if not isinstance(entries, list):
            msg = "'searches' must be a list"
            raise StorageFailureError(msg, path=self.path, operation="parse")

        searches: list[SavedSearch] = []
        for entry in entries:
            if not isinstance(entry, dict):
                msg = "Each saved search must be an object"
                raise StorageFailureError(msg, path=self.path, operation="parse")
            try:
                searches.append(search_from_dict(entry))
            except (InvalidExpressionError, ValueError) as e:
                msg = f"Invalid saved search: {e}"
                raise StorageFailureError(
                    msg, path=self.path, operation="parse", cause=e
                ) from e
        return searches

    def _write(self, searches: list[SavedSearch]) -> None:
        write_json_atomic(
            self.path,
            {
                "version": FILE_FORMAT_VERSION,
                "searches": [search_to_dict(search) for search in searches],
            },
        )

    def list_searches(self) -> list[SavedSearch]:
        """All saved searches in the order they were first saved.

        Raises:
            StorageFailureError: If the file is unreadable or malformed.
        """
        return self._load()

    def get(self, name: str) -> SavedSearch:
        """Look up a saved search by name.

        Raises:
            SavedSearchNotFoundError: If no search has this name.
        """
        for search in self._load():
            if search.name == name:
                return search
        raise SavedSearchNotFoundError(name)

    def save(self, search: SavedSearch) -> SavedSearch:
        """Create or overwrite a saved search by name.

        Overwriting keeps the original ``created_at``.

        Raises:
            ValidationFailureError: If the name is empty.
            StorageFailureError: If the file cannot be read or written.
        """
        if not search.name.strip():
            msg = "Saved search name must not be empty"
            raise ValidationFailureError(msg, field="name", value=search.name)

        now = pendulum.now("UTC")
        searches = self._load()
        for index, existing in enumerate(searches):
            if existing.name == search.name:
                saved = replace(
                    search, created_at=existing.created_at or now, updated_at=now
                )
                searches[index] = saved
                break
        else:
            saved = replace(search, created_at=now, updated_at=now)
            searches.append(saved)

        self._write(searches)
        self._logger.info("saved_search_saved", name=saved.name)
        return saved

    def delete(self, name: str) -> None:
        """Delete a saved search.

        Raises:
            SavedSearchNotFoundError: If no search has this name.
        """
        searches = self._load()
        remaining = [search for search in searches if search.name != name]
        if len(remaining) == len(searches):
            raise SavedSearchNotFoundError(name)
        self._write(remaining)
        self._logger.info("saved_search_deleted", name=name)
