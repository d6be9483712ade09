"""Boolean tag expressions: parse, evaluate, and persist."""

from ._codec import from_dict, to_dict, to_display_string, to_query_string
from ._models import And, Not, Or, Tag, TagExpression, Xor, collect_tags, evaluate
from ._parser import Token, TokenKind, parse_expression, tokenize

__all__ = [
    "And",
    "Not",
    "Or",
    "Tag",
    "TagExpression",
    "Token",
    "TokenKind",
    "Xor",
    "collect_tags",
    "evaluate",
    "from_dict",
    "parse_expression",
    "to_dict",
    "to_display_string",
    "to_query_string",
    "tokenize",
]
