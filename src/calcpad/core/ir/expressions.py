"""
Expression AST types for calcpad lines.

One line of input parses to at most one expression tree. Nodes are frozen
pydantic models so a parsed line can be cached and compared by value.

Supports:
- Arithmetic: +, -, *, /, ^
- Percentages: 15%, 20% of 50, 100 - 15%
- Unit conversion: 5 km in miles, 100 USD to EUR
- Assignment: price = 10 USD
- Date keywords: today, next friday, previous monday, 3 days ago
- Rate overrides: setrate USD to EUR = 0.92
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from .values import Value

# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class BinaryOp(StrEnum):
    """Binary operators for expressions."""

    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    POW = "^"


class UnaryOp(StrEnum):
    """Unary operators for expressions."""

    NEG = "-"
    POS = "+"
    PERCENT = "%"  # postfix


class DateExprKind(StrEnum):
    """Relative date keyword forms."""

    TODAY = "today"
    TOMORROW = "tomorrow"
    YESTERDAY = "yesterday"
    NEXT = "next"
    PREVIOUS = "previous"
    AGO = "ago"
    FROM_NOW = "from now"


# ---------------------------------------------------------------------------
# AST node types
# ---------------------------------------------------------------------------


class Literal(BaseModel):
    """A literal value: 42, 10 km, $5, 2024-03-15."""

    value: Value = Field(description="The literal value")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return str(self.value)


class VariableRef(BaseModel):
    """Reference to a variable bound on an earlier line."""

    name: str

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return self.name


class Assignment(BaseModel):
    """Top-level binding: name = expr."""

    name: str
    expr: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.name} = {self.expr}"


class BinaryExpr(BaseModel):
    """Binary operation: left op right."""

    op: BinaryOp
    left: Expr
    right: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"({self.left} {self.op.value} {self.right})"


class UnaryExpr(BaseModel):
    """Unary operation: -x, +x, or postfix x%."""

    op: UnaryOp
    operand: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        if self.op == UnaryOp.PERCENT:
            return f"{self.operand}%"
        return f"{self.op.value}{self.operand}"


class Conversion(BaseModel):
    """
    Unit conversion: expr in unit, expr to unit.

    The target is kept as written and resolved against the catalog at
    evaluation time, so an unknown unit is an evaluation failure.
    """

    expr: Expr
    target: str = Field(description="Target unit name as written")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"({self.expr} in {self.target})"


class PercentOf(BaseModel):
    """Percentage of a base: 20% of 50."""

    percent: Expr
    base: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"({self.percent} of {self.base})"


class DateExpr(BaseModel):
    """
    Relative date expression.

    Examples:
        - DateExpr(kind=NEXT, target="friday") → next friday
        - DateExpr(kind=PREVIOUS, target="month") → last month
        - DateExpr(kind=AGO, amount=<3 days>) → 3 days ago
        - DateExpr(kind=TODAY) → today
    """

    kind: DateExprKind
    target: str | None = Field(default=None, description="Weekday or time unit name")
    amount: Expr | None = Field(default=None, description="Duration for ago / from now")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        if self.kind in (DateExprKind.AGO, DateExprKind.FROM_NOW):
            return f"{self.amount} {self.kind.value}"
        if self.target:
            return f"{self.kind.value} {self.target}"
        return self.kind.value


class Grouping(BaseModel):
    """Parenthesised expression."""

    expr: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"({self.expr})"


class SetRate(BaseModel):
    """Exchange-rate override: setrate USD to EUR = 0.92."""

    from_currency: str
    to_currency: str
    rate: Expr

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"setrate {self.from_currency} to {self.to_currency} = {self.rate}"


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

Expr = (
    Literal
    | VariableRef
    | Assignment
    | BinaryExpr
    | UnaryExpr
    | Conversion
    | PercentOf
    | DateExpr
    | Grouping
    | SetRate
)

# Rebuild models for recursive forward references
Assignment.model_rebuild()
BinaryExpr.model_rebuild()
UnaryExpr.model_rebuild()
Conversion.model_rebuild()
PercentOf.model_rebuild()
DateExpr.model_rebuild()
Grouping.model_rebuild()
SetRate.model_rebuild()
