"""Search, saved searches, and the library service."""

from ._fuzzy import FuzzyMatch, fuzzy_find, score_match
from ._library import PromptLibrary
from ._models import ImportReport, MutationResult, SavedSearch
from ._saved import (
    SAVED_SEARCHES_FILE,
    SavedSearchStore,
    search_from_dict,
    search_to_dict,
)

__all__ = [
    "SAVED_SEARCHES_FILE",
    "FuzzyMatch",
    "ImportReport",
    "MutationResult",
    "PromptLibrary",
    "SavedSearch",
    "SavedSearchStore",
    "fuzzy_find",
    "score_match",
    "search_from_dict",
    "search_to_dict",
]
