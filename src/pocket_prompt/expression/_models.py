"""Tag expression tree and evaluation.

A tag expression is an immutable tree built from five node types. Leaves are
tag names; interior nodes combine child expressions with boolean operators.
Evaluation tests the tree against the tag set of a single prompt.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import assert_never

type TagExpression = Tag | And | Or | Xor | Not


@dataclass(frozen=True, slots=True)
class Tag:
    """Leaf node matching a single tag, case-insensitively."""

    name: str


@dataclass(frozen=True, slots=True)
class And:
    """True when every child is true. An empty conjunction is true."""

    children: tuple[TagExpression, ...] = ()


@dataclass(frozen=True, slots=True)
class Or:
    """True when any child is true. An empty disjunction is false."""

    children: tuple[TagExpression, ...] = ()


@dataclass(frozen=True, slots=True)
class Xor:
    """True when exactly one of the two operands is true."""

    left: TagExpression
    right: TagExpression


@dataclass(frozen=True, slots=True)
class Not:
    """Negation of a single child."""

    child: TagExpression


def evaluate(expression: TagExpression | None, tags: Iterable[str]) -> bool:
    """Evaluate an expression against a prompt's tags.

    Args:
        expression: The expression to test. ``None`` matches everything.
        tags: Tags of the prompt being tested.

    Returns:
        Whether the tags satisfy the expression.
    """
    if expression is None:
        return True
    return _evaluate(expression, frozenset(tag.lower() for tag in tags))


def _evaluate(expression: TagExpression, tags: frozenset[str]) -> bool:
    match expression:
        case Tag(name=name):
            return name.lower() in tags
        case And(children=children):
            return all(_evaluate(child, tags) for child in children)
        case Or(children=children):
            return any(_evaluate(child, tags) for child in children)
        case Xor(left=left, right=right):
            return _evaluate(left, tags) != _evaluate(right, tags)
        case Not(child=child):
            return not _evaluate(child, tags)
        case _:  # pyright: ignore[reportUnnecessaryComparison]
            assert_never(expression)


def collect_tags(expression: TagExpression | None) -> set[str]:
    """Return every tag name referenced by an expression."""
    found: set[str] = set()
    if expression is None:
        return found

    stack: list[TagExpression] = [expression]
    while stack:
        node = stack.pop()
        match node:
            case Tag(name=name):
                found.add(name)
            case And(children=children) | Or(children=children):
                stack.extend(children)
            case Xor(left=left, right=right):
                stack.extend((left, right))
            case Not(child=child):
                stack.append(child)
            case _:  # pyright: ignore[reportUnnecessaryComparison]
                assert_never(node)
    return found
