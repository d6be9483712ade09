# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Persistent metadata cache for fast listings.

Listing a library means reading every prompt file. The cache keeps the
frontmatter of each file keyed by its path relative to the library root,
together with the file's modification time, so unchanged files are not
parsed again. Cached entries never include the body.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from structlog.typing import FilteringBoundLogger

from pocket_prompt.exceptions import StorageFailureError
from pocket_prompt.utils import get_null_logger, read_json, write_json_atomic

from ._frontmatter import prompt_frontmatter, prompt_from_mapping
from ._types import Prompt

CACHE_FORMAT_VERSION: Final = 1


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """One cached file.

    Attributes:
        mtime: Modification time of the file when it was cached.
        data: Frontmatter mapping of the prompt.
    """

    mtime: float
    data: dict[str, Any]  # pyright: ignore[reportExplicitAny]


class MetadataCache:
    """Frontmatter cache stored as JSON under the library state directory.

    Attributes:
        path: Location of the cache file.
    """

    __slots__ = ("_dirty", "_entries", "_loaded", "_logger", "path")

    def __init__(self, path: Path, *, logger: FilteringBoundLogger | None = None) -> None:
        """Initialize the cache.

        Args:
            path: Location of the cache file.
            logger: Logger for load and save failures.
        """
        self.path: Path = path
        self._logger: FilteringBoundLogger = logger or get_null_logger()
        self._entries: dict[str, CacheEntry] = {}
        self._loaded: bool = False
        self._dirty: bool = False

    def __len__(self) -> int:
        self._ensure_loaded()
        return len(self._entries)

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not self.path.exists():
            return

        try:
            raw = read_json(self.path)
        except StorageFailureError as e:
            # A corrupt cache is rebuilt from the files
            self._logger.warning("metadata_cache_unreadable", path=str(self.path), error=str(e))
            return

        if raw.get("version") != CACHE_FORMAT_VERSION:
            return

        entries = raw.get("entries", {})
        if not isinstance(entries, dict):
            return
        for rel_path, entry in entries.items():
            if isinstance(entry, dict) and isinstance(entry.get("data"), dict):
                self._entries[rel_path] = CacheEntry(
                    mtime=float(entry.get("mtime", 0.0)), data=entry["data"]
                )

    def get(self, rel_path: str, mtime: float) -> Prompt | None:
        """Return the cached listing instance if the file is unchanged.

        Args:
            rel_path: Path relative to the library root.
            mtime: Current modification time of the file.

        Returns:
            A prompt without content, or None on a miss.
        """
        self._ensure_loaded()
        entry = self._entries.get(rel_path)
        if entry is None or entry.mtime != mtime:
            return None
        try:
            return prompt_from_mapping(entry.data, file_path=rel_path)
        except (ValueError, TypeError):
            self.remove(rel_path)
            return None

    def put(self, rel_path: str, mtime: float, prompt: Prompt) -> None:
        """Record the frontmatter of a freshly parsed file."""
        self._ensure_loaded()
        self._entries[rel_path] = CacheEntry(mtime=mtime, data=prompt_frontmatter(prompt))
        self._dirty = True

    def remove(self, rel_path: str) -> None:
        """Forget a file."""
        self._ensure_loaded()
        if self._entries.pop(rel_path, None) is not None:
            self._dirty = True

    def prune(self, existing: set[str]) -> int:
        """Drop entries for files that no longer exist.

        Returns:
            Number of entries removed.
        """
        self._ensure_loaded()
        stale = [rel_path for rel_path in self._entries if rel_path not in existing]
        for rel_path in stale:
            del self._entries[rel_path]
        if stale:
            self._dirty = True
        return len(stale)

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()
        self._loaded = True
        self._dirty = True

    def save(self) -> None:
        """Write the cache if it changed. Failures are logged, not raised."""
        if not self._dirty:
            return
        data = {
            "version": CACHE_FORMAT_VERSION,
            "entries": {
                rel_path: {"mtime": entry.mtime, "data": entry.data}
                for rel_path, entry in sorted(self._entries.items())
            },
        }
        try:
            write_json_atomic(self.path, data)
        except StorageFailureError as e:
            self._logger.warning("metadata_cache_save_failed", path=str(self.path), error=str(e))
            return
        self._dirty = False
