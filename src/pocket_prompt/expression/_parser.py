"""Infix parser for tag expressions.

Grammar, lowest precedence first::

    or_expr  := xor_expr ("OR" xor_expr)*
    xor_expr := and_expr ("XOR" and_expr)*
    and_expr := unary ("AND" unary)*
    unary    := "NOT" unary | primary
    primary  := TAG | "[" text "]" | "(" or_expr ")" | "(" ("AND" | "OR") ")"

Keywords are case-insensitive. A tag whose name collides with a keyword, or
contains whitespace or parentheses, can be written in square brackets.
``(AND)`` and ``(OR)`` denote the empty conjunction and disjunction.
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Final

from pocket_prompt.exceptions import InvalidExpressionError

from ._models import And, Not, Or, Tag, TagExpression, Xor

KEYWORDS: Final = frozenset({"AND", "OR", "XOR", "NOT"})


class TokenKind(StrEnum):
    """Lexical token categories."""

    TAG = "tag"
    AND = "AND"
    OR = "OR"
    XOR = "XOR"
    NOT = "NOT"
    LPAREN = "("
    RPAREN = ")"
    END = "end of input"


@dataclass(frozen=True, slots=True)
class Token:
    """A lexical token with its source offset."""

    kind: TokenKind
    text: str
    position: int


def _error(query: str, message: str, position: int) -> InvalidExpressionError:
    return InvalidExpressionError(
        f"{message} at position {position}", expression=query, position=position
    )


def tokenize(query: str) -> list[Token]:
    """Split a query into tokens.

    Raises:
        InvalidExpressionError: On unterminated or empty brackets and stray
            bracket characters.
    """
    tokens: list[Token] = []
    i = 0
    length = len(query)

    while i < length:
        char = query[i]
        if char.isspace():
            i += 1
            continue

        if char == "(":
            tokens.append(Token(TokenKind.LPAREN, char, i))
            i += 1
            continue
        if char == ")":
            tokens.append(Token(TokenKind.RPAREN, char, i))
            i += 1
            continue

        if char == "[":
            end = query.find("]", i + 1)
            if end == -1:
                raise _error(query, "Unterminated '['", i)
            name = query[i + 1 : end].strip()
            if not name:
                raise _error(query, "Empty tag name", i)
            tokens.append(Token(TokenKind.TAG, name, i))
            i = end + 1
            continue

        start = i
        while i < length and not query[i].isspace() and query[i] not in "()":
            if query[i] in "[]":
                raise _error(query, f"Unexpected character {query[i]!r}", i)
            i += 1
        word = query[start:i]
        upper = word.upper()
        kind = TokenKind(upper) if upper in KEYWORDS else TokenKind.TAG
        tokens.append(Token(kind, word, start))

    tokens.append(Token(TokenKind.END, "", length))
    return tokens


class _Parser:
    """Recursive-descent parser over a token list."""

    __slots__ = ("_index", "_query", "_tokens")

    def __init__(self, query: str, tokens: list[Token]) -> None:
        self._query = query
        self._tokens = tokens
        self._index = 0

    def _peek(self) -> Token:
        return self._tokens[self._index]

    def _advance(self) -> Token:
        token = self._tokens[self._index]
        self._index += 1
        return token

    def parse(self) -> TagExpression:
        expression = self._parse_or()
        token = self._peek()
        if token.kind is TokenKind.END:
            return expression
        if token.kind is TokenKind.RPAREN:
            raise _error(self._query, "Unbalanced parentheses: unexpected ')'", token.position)
        raise _error(
            self._query,
            f"Expected an operator before {token.text!r}",
            token.position,
        )

    def _parse_or(self) -> TagExpression:
        terms = [self._parse_xor()]
        while self._peek().kind is TokenKind.OR:
            _ = self._advance()
            terms.append(self._parse_xor())
        return terms[0] if len(terms) == 1 else Or(tuple(terms))

    def _parse_xor(self) -> TagExpression:
        expression = self._parse_and()
        while self._peek().kind is TokenKind.XOR:
            _ = self._advance()
            expression = Xor(expression, self._parse_and())
        return expression

    def _parse_and(self) -> TagExpression:
        terms = [self._parse_unary()]
        while self._peek().kind is TokenKind.AND:
            _ = self._advance()
            terms.append(self._parse_unary())
        return terms[0] if len(terms) == 1 else And(tuple(terms))

    def _parse_unary(self) -> TagExpression:
        if self._peek().kind is TokenKind.NOT:
            _ = self._advance()
            return Not(self._parse_unary())
        return self._parse_primary()

    def _parse_empty_group(self) -> TagExpression | None:
        operator = self._peek()
        if operator.kind not in (TokenKind.AND, TokenKind.OR):
            return None
        if self._tokens[self._index + 1].kind is not TokenKind.RPAREN:
            return None
        self._index += 2
        return And(()) if operator.kind is TokenKind.AND else Or(())

    def _parse_primary(self) -> TagExpression:
        token = self._advance()
        if token.kind is TokenKind.TAG:
            return Tag(token.text)
        if token.kind is TokenKind.LPAREN:
            empty = self._parse_empty_group()
            if empty is not None:
                return empty
            expression = self._parse_or()
            closing = self._advance()
            if closing.kind is not TokenKind.RPAREN:
                raise _error(
                    self._query,
                    "Unbalanced parentheses: missing ')'",
                    closing.position,
                )
            return expression
        if token.kind is TokenKind.END:
            raise _error(self._query, "Expected a tag or '(' but input ended", token.position)
        raise _error(
            self._query,
            f"Expected a tag or '(' but found {token.kind.value!r}",
            token.position,
        )


def parse_expression(query: str) -> TagExpression:
    """Parse an infix query into a tag expression.

    Args:
        query: Text such as ``"ai AND (python OR rust) AND NOT draft"``.

    Returns:
        The parsed expression tree.

    Raises:
        InvalidExpressionError: If the query is empty or malformed.
    """
    if not query.strip():
        raise InvalidExpressionError("Empty expression", expression=query, position=0)
    return _Parser(query, tokenize(query)).parse()
