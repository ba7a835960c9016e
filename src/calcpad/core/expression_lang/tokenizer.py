"""
Tokenizer for calcpad lines.

Converts one line of text into a sequence of typed tokens. Keywords, unit
names and currency symbols are all IDENT tokens; the parser decides what an
identifier means from its position.
"""

from __future__ import annotations

import re
from enum import StrEnum, auto

from calcpad.core.errors import LexError


class TokenKind(StrEnum):
    """Token types for calcpad lines."""

    # Literals
    NUMBER = auto()
    DATE = auto()

    # Variable names, unit names, currency symbols and keywords
    IDENT = auto()

    # Operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()
    EQUALS = auto()
    CARET = auto()

    # Punctuation
    LPAREN = auto()
    RPAREN = auto()

    # End of input
    EOF = auto()


class Token:
    """A single token from the line tokenizer. Read-only once built."""

    __slots__ = ("_kind", "_value", "_pos")

    def __init__(self, kind: TokenKind, value: str, pos: int) -> None:
        self._kind = kind
        self._value = value
        self._pos = pos

    @property
    def kind(self) -> TokenKind:
        return self._kind

    @property
    def value(self) -> str:
        return self._value

    @property
    def pos(self) -> int:
        return self._pos

    def __hash__(self) -> int:
        return hash((self._kind, self._value, self._pos))

    def __repr__(self) -> str:
        return f"Token({self.kind}, {self.value!r}, pos={self.pos})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Token):
            return NotImplemented
        return (self.kind, self.value, self.pos) == (other.kind, other.value, other.pos)

    def is_word(self, *words: str) -> bool:
        """True if this is an identifier matching one of ``words`` (any case)."""
        return self.kind == TokenKind.IDENT and self.value.lower() in words


CURRENCY_SYMBOLS = frozenset("$€£¥₹₩")

COMMENT_CHAR = "#"

# Tokens after which a sign is an operator rather than part of a number
_OPERAND_END = {
    TokenKind.NUMBER,
    TokenKind.DATE,
    TokenKind.IDENT,
    TokenKind.RPAREN,
    TokenKind.PERCENT,
}

_NUMBER_RE = re.compile(r"\d+(\.\d*)?|\.\d+")
_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}(?![\d.])")

_SINGLE_MAP: dict[str, TokenKind] = {
    "+": TokenKind.PLUS,
    "-": TokenKind.MINUS,
    "*": TokenKind.STAR,
    "/": TokenKind.SLASH,
    "%": TokenKind.PERCENT,
    "=": TokenKind.EQUALS,
    "^": TokenKind.CARET,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
}


def tokenize(source: str) -> list[Token]:
    """Tokenize one line into a list of tokens ending with EOF.

    Raises:
        LexError: On a character that starts no token, or a malformed number.
    """
    tokens: list[Token] = []
    i = 0
    n = len(source)

    while i < n:
        c = source[i]

        if c.isspace():
            i += 1
            continue

        # Comment runs to end of line
        if c == COMMENT_CHAR:
            break

        # ISO date literal
        if c.isdigit():
            m = _DATE_RE.match(source, i)
            if m is not None:
                tokens.append(Token(TokenKind.DATE, m.group(0), i))
                i = m.end()
                continue

        # Number, optionally signed where a sign cannot be an operator
        if c.isdigit() or c == "." or (c in "+-" and _starts_signed_number(source, i, tokens)):
            start = i
            sign = ""
            if c in "+-":
                sign = c
                i += 1
            m = _NUMBER_RE.match(source, i)
            if m is None:
                raise LexError(f"Malformed number: {source[start:i + 1]!r}", start)
            end = m.end()
            if end < n and source[end] == ".":
                raise LexError(f"Malformed number: {source[start:end + 1]!r}", start)
            tokens.append(Token(TokenKind.NUMBER, sign + m.group(0), start))
            i = end
            continue

        # Identifiers: letters, digits and underscores, not starting with a digit
        if c.isalpha() or c == "_":
            start = i
            i += 1
            while i < n and (source[i].isalnum() or source[i] == "_"):
                i += 1
            tokens.append(Token(TokenKind.IDENT, source[start:i], start))
            continue

        if c in CURRENCY_SYMBOLS:
            tokens.append(Token(TokenKind.IDENT, c, i))
            i += 1
            continue

        if c in _SINGLE_MAP:
            tokens.append(Token(_SINGLE_MAP[c], c, i))
            i += 1
            continue

        raise LexError(f"Unexpected character: {c!r}", i)

    tokens.append(Token(TokenKind.EOF, "", n))
    return tokens


def _starts_signed_number(source: str, i: int, tokens: list[Token]) -> bool:
    """A sign belongs to a number only where no operand precedes it."""
    if tokens and tokens[-1].kind in _OPERAND_END:
        return False
    rest = source[i + 1 : i + 3]
    return bool(rest) and (rest[0].isdigit() or (rest[0] == "." and rest[1:2].isdigit()))
