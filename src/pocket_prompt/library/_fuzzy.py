"""Subsequence fuzzy matching for interactive search.

A candidate matches when every character of the query appears in it in
order, ignoring case. Matches are scored so that consecutive runs, matches
at word boundaries and at the very start rank highest, while leading gaps
and unmatched characters lower the score.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

FIRST_CHAR_BONUS: Final = 10
SEPARATOR_BONUS: Final = 20
CAMEL_CASE_BONUS: Final = 20
ADJACENT_BONUS: Final = 5
LEADING_GAP_PENALTY: Final = -5
MAX_LEADING_GAP_PENALTY: Final = -15
UNMATCHED_PENALTY: Final = -1

_SEPARATORS: Final = frozenset("/-_ .\\:,")


@dataclass(frozen=True, slots=True)
class FuzzyMatch:
    """A candidate that contains the query as a subsequence.

    Attributes:
        index: Position of the candidate in the input sequence.
        text: The candidate string.
        score: Higher is better.
        positions: Indexes of the matched characters in ``text``.
    """

    index: int
    text: str
    score: int
    positions: tuple[int, ...]


def _is_boundary(text: str, position: int) -> bool:
    return position > 0 and text[position - 1] in _SEPARATORS


def _is_camel_hump(text: str, position: int) -> bool:
    return position > 0 and text[position].isupper() and text[position - 1].islower()


def _fold(text: str) -> str:
    # Lowercase without changing length so positions index the original
    return "".join(c.lower() if len(c.lower()) == 1 else c for c in text)


def _greedy_positions(query: str, lowered: str) -> tuple[int, ...] | None:
    positions: list[int] = []
    start = 0
    for char in query:
        found = lowered.find(char, start)
        if found == -1:
            return None
        positions.append(found)
        start = found + 1
    return tuple(positions)


def _boundary_positions(query: str, text: str, lowered: str) -> tuple[int, ...] | None:
    # Like the greedy match, but a character that does not continue a run
    # jumps to its first later occurrence at a word start, if any
    positions: list[int] = []
    start = 0
    for char in query:
        found = lowered.find(char, start)
        if found == -1:
            return None
        if positions and found == positions[-1] + 1:
            positions.append(found)
            start = found + 1
            continue
        probe = found
        while probe != -1:
            if _is_boundary(text, probe) or _is_camel_hump(text, probe):
                found = probe
                break
            probe = lowered.find(char, probe + 1)
        positions.append(found)
        start = found + 1
    return tuple(positions)


def _match_positions(query: str, text: str) -> tuple[int, ...] | None:
    """Match ``query`` in ``text``, preferring word starts when possible."""
    lowered = _fold(text)
    needle = _fold(query)
    greedy = _greedy_positions(needle, lowered)
    if greedy is None:
        return None
    preferred = _boundary_positions(needle, text, lowered)
    if preferred is not None and score_match(text, preferred) > score_match(text, greedy):
        return preferred
    return greedy


def score_match(text: str, positions: Sequence[int]) -> int:
    """Score a set of matched positions within ``text``."""
    if not positions:
        return 0

    score = 0
    previous = -2
    for position in positions:
        if position == 0:
            score += FIRST_CHAR_BONUS
        if _is_boundary(text, position):
            score += SEPARATOR_BONUS
        if _is_camel_hump(text, position):
            score += CAMEL_CASE_BONUS
        if position == previous + 1:
            score += ADJACENT_BONUS
        previous = position

    score += max(LEADING_GAP_PENALTY * positions[0], MAX_LEADING_GAP_PENALTY)
    score += UNMATCHED_PENALTY * (len(text) - len(positions))
    return score


def fuzzy_find(query: str, candidates: Sequence[str]) -> list[FuzzyMatch]:
    """Rank candidates that contain ``query`` as a subsequence.

    Args:
        query: Characters to look for, in order. Whitespace is ignored.
        candidates: Strings to search.

    Returns:
        Matches sorted by descending score, ties by input order. An empty
        query returns nothing.
    """
    needle = "".join(query.split())
    if not needle:
        return []

    matches: list[FuzzyMatch] = []
    for index, text in enumerate(candidates):
        positions = _match_positions(needle, text)
        if positions is None:
            continue
        matches.append(
            FuzzyMatch(
                index=index,
                text=text,
                score=score_match(text, positions),
                positions=positions,
            )
        )

    matches.sort(key=lambda m: (-m.score, m.index))
    return matches
