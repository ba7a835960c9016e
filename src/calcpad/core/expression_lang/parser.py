"""
Recursive descent parser for calcpad lines.

Grammar (precedence low to high):
    line        → setrate | assignment
    setrate     → "setrate" IDENT ("to" | "in") IDENT "=" additive
    assignment  → IDENT "=" assignment | additive
    additive    → multiply (("+" | "-") multiply)*
    multiply    → percent (("*" | "/") percent)*
    percent     → conversion "%"* ("of" percent)?
    conversion  → unary (("in" | "to") unit_name)*
    unary       → ("-" | "+") unary | power
    power       → postfix ("^" unary)?
    postfix     → primary ("ago" | "from" "now")?
    primary     → NUMBER unit_name? | currency NUMBER | DATE
                | date_keyword | IDENT unit_name? | "(" additive ")" unit_name?
    date_keyword → "today" | "tomorrow" | "yesterday" | "now"
                 | ("next" | "previous" | "last") (weekday | time_unit)
    unit_name   → IDENT+  (longest run of identifiers naming a catalog unit)

Conversion binds tighter than percent-of, so ``10% of 5 km in miles`` is
``10% of (5 km in miles)``.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from calcpad.core.errors import ErrorKind, LexError, ParseError
from calcpad.core.expression_lang.dates import WEEKDAYS
from calcpad.core.expression_lang.tokenizer import Token, TokenKind, tokenize
from calcpad.core.expression_lang.units import MAX_UNIT_WORDS, lookup_unit
from calcpad.core.ir.expressions import (
    Assignment,
    BinaryExpr,
    BinaryOp,
    Conversion,
    DateExpr,
    DateExprKind,
    Expr,
    Grouping,
    Literal,
    PercentOf,
    SetRate,
    UnaryExpr,
    UnaryOp,
    VariableRef,
)
from calcpad.core.ir.units import Dimension, Unit
from calcpad.core.ir.values import DateValue, PlainNumber, make_measured

KEYWORDS = frozenset(
    {
        "in",
        "to",
        "of",
        "next",
        "previous",
        "last",
        "ago",
        "from",
        "now",
        "today",
        "tomorrow",
        "yesterday",
        "setrate",
    }
)

_DAY_KEYWORDS: dict[str, DateExprKind] = {
    "today": DateExprKind.TODAY,
    "now": DateExprKind.TODAY,
    "tomorrow": DateExprKind.TOMORROW,
    "yesterday": DateExprKind.YESTERDAY,
}

_RELATIVE_KEYWORDS: dict[str, DateExprKind] = {
    "next": DateExprKind.NEXT,
    "previous": DateExprKind.PREVIOUS,
    "last": DateExprKind.PREVIOUS,
}


class _Parser:
    """Recursive descent parser for one line."""

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.pos = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[-1]  # EOF

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def expect(self, kind: TokenKind) -> Token:
        tok = self.current
        if tok.kind != kind:
            raise self._error_at(tok, f"Expected {kind}")
        return self.advance()

    def expect_word(self, *words: str) -> Token:
        tok = self.current
        if not tok.is_word(*words):
            raise self._error_at(tok, f"Expected {' or '.join(repr(w) for w in words)}")
        return self.advance()

    def match(self, *kinds: TokenKind) -> Token | None:
        if self.current.kind in kinds:
            return self.advance()
        return None

    def _error_at(self, tok: Token, message: str) -> ParseError:
        """Build the right ParseError for an unexpected token."""
        if tok.kind == TokenKind.EOF:
            return ParseError(
                f"{message}, but the line ended", ErrorKind.INCOMPLETE_EXPRESSION, tok.pos
            )
        return ParseError(
            f"{message}, got {tok.value!r}", ErrorKind.UNEXPECTED_TOKEN, tok.pos
        )

    # -- Grammar rules --

    def parse_line(self) -> Expr:
        """Top-level: setrate command or assignment chain."""
        if self.current.is_word("setrate"):
            return self.parse_setrate()
        return self.parse_assignment()

    def parse_setrate(self) -> SetRate:
        """'setrate' CUR ('to' | 'in') CUR '=' additive"""
        self.expect_word("setrate")
        from_code = self.expect(TokenKind.IDENT)
        self.expect_word("to", "in")
        to_code = self.expect(TokenKind.IDENT)
        self.expect(TokenKind.EQUALS)
        rate = self.parse_additive()
        return SetRate(
            from_currency=from_code.value.upper(),
            to_currency=to_code.value.upper(),
            rate=rate,
        )

    def parse_assignment(self) -> Expr:
        """IDENT '=' assignment | additive (right-associative)"""
        tok = self.current
        if tok.kind == TokenKind.IDENT and self.peek(1).kind == TokenKind.EQUALS:
            if tok.value.lower() in KEYWORDS or not _is_name(tok.value):
                raise ParseError(
                    f"Cannot assign to {tok.value!r}", ErrorKind.UNEXPECTED_TOKEN, tok.pos
                )
            self.advance()  # name
            self.advance()  # =
            value = self.parse_assignment()
            return Assignment(name=tok.value, expr=value)
        return self.parse_additive()

    def parse_additive(self) -> Expr:
        """multiply (('+' | '-') multiply)*"""
        left = self.parse_multiply()
        while self.current.kind in (TokenKind.PLUS, TokenKind.MINUS):
            op = BinaryOp.ADD if self.current.kind == TokenKind.PLUS else BinaryOp.SUB
            self.advance()
            right = self.parse_multiply()
            left = BinaryExpr(op=op, left=left, right=right)
        return left

    def parse_multiply(self) -> Expr:
        """percent (('*' | '/') percent)*"""
        left = self.parse_percent()
        while self.current.kind in (TokenKind.STAR, TokenKind.SLASH):
            op = BinaryOp.MUL if self.current.kind == TokenKind.STAR else BinaryOp.DIV
            self.advance()
            right = self.parse_percent()
            left = BinaryExpr(op=op, left=left, right=right)
        return left

    def parse_percent(self) -> Expr:
        """conversion '%'* ('of' percent)?"""
        left = self.parse_conversion()
        while self.match(TokenKind.PERCENT):
            left = UnaryExpr(op=UnaryOp.PERCENT, operand=left)
        if self.current.is_word("of"):
            self.advance()
            base = self.parse_percent()
            return PercentOf(percent=left, base=base)
        return left

    def parse_conversion(self) -> Expr:
        """unary (('in' | 'to') unit_name)*"""
        left = self.parse_unary()
        while self.current.is_word("in", "to"):
            self.advance()
            left = Conversion(expr=left, target=self._parse_target_name())
        return left

    def parse_unary(self) -> Expr:
        """('-' | '+') unary | power"""
        if self.match(TokenKind.MINUS):
            return UnaryExpr(op=UnaryOp.NEG, operand=self.parse_unary())
        if self.match(TokenKind.PLUS):
            return UnaryExpr(op=UnaryOp.POS, operand=self.parse_unary())
        return self.parse_power()

    def parse_power(self) -> Expr:
        """postfix ('^' unary)?"""
        signed = self.current.kind == TokenKind.NUMBER and self.current.value[0] in "+-"
        base = self.parse_postfix()
        if not self.match(TokenKind.CARET):
            return base

        exponent = self.parse_unary()
        # -2^2 is -(2^2): a signed literal gives up its sign to the power
        if signed and isinstance(base, Literal) and isinstance(base.value, PlainNumber):
            magnitude = base.value.magnitude
            unsigned = Literal(value=PlainNumber(magnitude=abs(magnitude)))
            power = BinaryExpr(op=BinaryOp.POW, left=unsigned, right=exponent)
            if magnitude < 0:
                return UnaryExpr(op=UnaryOp.NEG, operand=power)
            return power
        return BinaryExpr(op=BinaryOp.POW, left=base, right=exponent)

    def parse_postfix(self) -> Expr:
        """primary ('ago' | 'from' 'now')?"""
        expr = self.parse_primary()
        if self.current.is_word("ago"):
            self.advance()
            return DateExpr(kind=DateExprKind.AGO, amount=expr)
        if self.current.is_word("from") and self.peek(1).is_word("now"):
            self.advance()
            self.advance()
            return DateExpr(kind=DateExprKind.FROM_NOW, amount=expr)
        return expr

    def parse_primary(self) -> Expr:
        """number | currency number | date | keyword | variable | group"""
        tok = self.current

        if tok.kind == TokenKind.LPAREN:
            return self._parse_group()

        if tok.kind == TokenKind.NUMBER:
            self.advance()
            magnitude = Decimal(tok.value)
            unit = self._match_unit_suffix()
            if unit is not None:
                return Literal(value=make_measured(magnitude, unit))
            return Literal(value=PlainNumber(magnitude=magnitude))

        if tok.kind == TokenKind.DATE:
            self.advance()
            try:
                return Literal(value=DateValue(value=date.fromisoformat(tok.value)))
            except ValueError as e:
                raise LexError(f"Invalid date {tok.value!r}", position=tok.pos) from e

        if tok.kind == TokenKind.IDENT:
            return self._parse_identifier()

        raise self._error_at(tok, "Expected a value")

    def _parse_group(self) -> Expr:
        """'(' additive ')' unit_name?"""
        open_tok = self.expect(TokenKind.LPAREN)
        inner = self.parse_additive()
        if self.current.kind == TokenKind.EOF:
            raise ParseError("Unclosed '('", ErrorKind.UNCLOSED_GROUP, open_tok.pos)
        self.expect(TokenKind.RPAREN)
        return self._apply_unit_suffix(Grouping(expr=inner))

    def _parse_identifier(self) -> Expr:
        """Currency prefix, date keyword, or variable reference."""
        tok = self.current
        word = tok.value.lower()

        # $10, €5.5, USD 20
        unit = lookup_unit(tok.value)
        if unit is not None and unit.is_currency and self.peek(1).kind == TokenKind.NUMBER:
            self.advance()
            number = self.advance()
            return Literal(value=make_measured(Decimal(number.value), unit))

        if word in _DAY_KEYWORDS:
            self.advance()
            return DateExpr(kind=_DAY_KEYWORDS[word])

        if word in _RELATIVE_KEYWORDS:
            self.advance()
            return self._parse_relative_date(_RELATIVE_KEYWORDS[word])

        if word in KEYWORDS or not _is_name(tok.value):
            raise self._error_at(tok, "Expected a value")

        self.advance()
        return self._apply_unit_suffix(VariableRef(name=tok.value))

    def _parse_relative_date(self, kind: DateExprKind) -> DateExpr:
        """(weekday | time_unit) after 'next' / 'previous' / 'last'"""
        tok = self.current
        if tok.kind == TokenKind.IDENT:
            word = tok.value.lower()
            if word in WEEKDAYS:
                self.advance()
                return DateExpr(kind=kind, target=word)
            unit = lookup_unit(tok.value)
            if unit is not None and unit.dimension == Dimension.TIME:
                self.advance()
                return DateExpr(kind=kind, target=unit.name)
        raise self._error_at(tok, f"Expected a weekday or time unit after '{kind.value}'")

    def _apply_unit_suffix(self, expr: Expr) -> Expr:
        """x km → x * 1 km"""
        unit = self._match_unit_suffix()
        if unit is None:
            return expr
        one = Literal(value=make_measured(Decimal(1), unit))
        return BinaryExpr(op=BinaryOp.MUL, left=expr, right=one)

    def _match_unit_suffix(self) -> Unit | None:
        """Consume the longest run of identifiers naming a unit, if any."""
        if self.current.kind != TokenKind.IDENT or self.current.value.lower() in KEYWORDS:
            return None
        found = self._longest_unit_match()
        if found is None:
            return None
        unit, width = found
        for _ in range(width):
            self.advance()
        return unit

    def _longest_unit_match(self) -> tuple[Unit, int] | None:
        words: list[str] = []
        for offset in range(MAX_UNIT_WORDS):
            tok = self.peek(offset)
            if tok.kind != TokenKind.IDENT:
                break
            words.append(tok.value)
        for width in range(len(words), 0, -1):
            unit = lookup_unit(" ".join(words[:width]))
            if unit is not None:
                return unit, width
        return None

    def _parse_target_name(self) -> str:
        """Conversion target: a known unit name, else a single identifier."""
        tok = self.current
        if tok.kind != TokenKind.IDENT:
            raise self._error_at(tok, "Expected a unit name")
        found = self._longest_unit_match()
        width = found[1] if found is not None else 1
        words = [self.advance().value for _ in range(width)]
        return " ".join(words)


def _is_name(text: str) -> bool:
    """Variable names start with a letter or underscore."""
    return text[0].isalpha() or text[0] == "_"


def parse_tokens(tokens: list[Token]) -> Expr | None:
    """Parse an already tokenized line. Returns None for an empty line."""
    if tokens[0].kind == TokenKind.EOF:
        return None

    parser = _Parser(tokens)
    expr = parser.parse_line()

    # Ensure all tokens consumed
    tok = parser.current
    if tok.kind == TokenKind.RPAREN:
        raise ParseError("Unmatched ')'", ErrorKind.UNCLOSED_GROUP, tok.pos)
    if tok.kind != TokenKind.EOF:
        raise ParseError(
            f"Unexpected token after expression: {tok.value!r}",
            ErrorKind.UNEXPECTED_TOKEN,
            tok.pos,
        )
    return expr


def parse_line(source: str) -> Expr | None:
    """Parse one line into an AST.

    Args:
        source: Line text (e.g., "price = 10 USD + 7%")

    Returns:
        Parsed expression AST, or None for a blank or comment-only line.

    Raises:
        LexError: If tokenization fails.
        ParseError: If the tokens do not form an expression.
    """
    return parse_tokens(tokenize(source))
