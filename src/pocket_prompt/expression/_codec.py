# pyright: reportAny=false
"""Textual and structured representations of tag expressions.

Three forms are supported:

- the query form (``ai AND (python OR rust)``) that users edit and that
  :func:`~pocket_prompt.expression.parse_expression` reads back;
- the display form (``([ai] AND ([python] OR [rust]))``) with bracketed tags;
- a JSON-ready mapping ``{"type": ..., "value": ...}`` used for persistence.
"""

from typing import Any, Final, assert_never

import orjson

from pocket_prompt.exceptions import InvalidExpressionError

from ._models import And, Not, Or, Tag, TagExpression, Xor
from ._parser import KEYWORDS

_COMPOUND: Final = (And, Or, Xor)


def _needs_brackets(name: str) -> bool:
    return (
        name.upper() in KEYWORDS
        or any(char.isspace() or char in "()[]" for char in name)
    )


def _is_empty_group(expression: TagExpression) -> bool:
    return isinstance(expression, And | Or) and not expression.children


def _query_operand(expression: TagExpression) -> str:
    text = to_query_string(expression)
    if isinstance(expression, _COMPOUND) and not _is_empty_group(expression):
        return f"({text})"
    return text


def to_query_string(expression: TagExpression | None) -> str:
    """Render an expression in the editable infix form.

    Tags are written bare unless they collide with a keyword or contain
    characters the tokenizer treats specially. Compound operands are always
    parenthesized, and an empty ``And`` or ``Or`` is written ``(AND)`` or
    ``(OR)``, so parsing the result yields an equivalent expression.
    """
    match expression:
        case None:
            return ""
        case Tag(name=name):
            return f"[{name}]" if _needs_brackets(name) else name
        case And(children=()):
            return "(AND)"
        case Or(children=()):
            return "(OR)"
        case And(children=children):
            return " AND ".join(_query_operand(child) for child in children)
        case Or(children=children):
            return " OR ".join(_query_operand(child) for child in children)
        case Xor(left=left, right=right):
            return f"{_query_operand(left)} XOR {_query_operand(right)}"
        case Not(child=child):
            return f"NOT {_query_operand(child)}"
        case _:  # pyright: ignore[reportUnnecessaryComparison]
            assert_never(expression)


def to_display_string(expression: TagExpression | None) -> str:
    """Render an expression for humans, e.g. ``([ai] AND NOT [draft])``."""
    match expression:
        case None:
            return ""
        case Tag(name=name):
            return f"[{name}]"
        case And(children=()):
            return "(AND)"
        case Or(children=()):
            return "(OR)"
        case And(children=children):
            return "(" + " AND ".join(to_display_string(c) for c in children) + ")"
        case Or(children=children):
            return "(" + " OR ".join(to_display_string(c) for c in children) + ")"
        case Xor(left=left, right=right):
            return f"({to_display_string(left)} XOR {to_display_string(right)})"
        case Not(child=child):
            return f"NOT {to_display_string(child)}"
        case _:  # pyright: ignore[reportUnnecessaryComparison]
            assert_never(expression)


def to_dict(expression: TagExpression) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Convert an expression to its structured mapping.

    ``xor`` and ``not`` nodes store their operands as a list of two and one
    children respectively.
    """
    match expression:
        case Tag(name=name):
            return {"type": "tag", "value": name}
        case And(children=children):
            return {"type": "and", "value": [to_dict(c) for c in children]}
        case Or(children=children):
            return {"type": "or", "value": [to_dict(c) for c in children]}
        case Xor(left=left, right=right):
            return {"type": "xor", "value": [to_dict(left), to_dict(right)]}
        case Not(child=child):
            return {"type": "not", "value": [to_dict(child)]}
        case _:  # pyright: ignore[reportUnnecessaryComparison]
            assert_never(expression)


def _describe(data: object) -> str:
    try:
        return orjson.dumps(data).decode("utf-8")
    except TypeError:
        return repr(data)


def from_dict(data: object) -> TagExpression:
    """Rebuild an expression from its structured mapping.

    Raises:
        InvalidExpressionError: If the mapping is malformed, has an unknown
            type, or an ``xor``/``not`` node has the wrong operand count.
    """
    if not isinstance(data, dict):
        msg = f"Expected an expression object, got {type(data).__name__}"
        raise InvalidExpressionError(msg, expression=_describe(data))

    kind = data.get("type")
    value = data.get("value")

    if kind == "tag":
        if not isinstance(value, str) or not value:
            msg = "Tag expression requires a non-empty string value"
            raise InvalidExpressionError(msg, expression=_describe(data))
        return Tag(value)

    if kind not in ("and", "or", "xor", "not"):
        msg = f"Unknown expression type: {kind!r}"
        raise InvalidExpressionError(msg, expression=_describe(data))

    if not isinstance(value, list):
        msg = f"{kind!r} expression requires a list of children"
        raise InvalidExpressionError(msg, expression=_describe(data))

    children = tuple(from_dict(child) for child in value)

    if kind == "and":
        return And(children)
    if kind == "or":
        return Or(children)
    if kind == "xor":
        if len(children) != 2:  # noqa: PLR2004
            msg = f"XOR requires exactly 2 operands, got {len(children)}"
            raise InvalidExpressionError(msg, expression=_describe(data))
        return Xor(children[0], children[1])
    if len(children) != 1:
        msg = f"NOT requires exactly 1 operand, got {len(children)}"
        raise InvalidExpressionError(msg, expression=_describe(data))
    return Not(children[0])
