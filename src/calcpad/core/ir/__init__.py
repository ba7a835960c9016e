"""
calcpad intermediate representation types.

Units, values and expression AST nodes. All types are re-exported here.
"""

from .expressions import (
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
from .units import UNIT_CATALOG, Dimension, Unit
from .values import (
    DateValue,
    Duration,
    Measured,
    Money,
    Percentage,
    PlainNumber,
    Quantity,
    Value,
)

__all__ = [
    # Units
    "Dimension",
    "UNIT_CATALOG",
    "Unit",
    # Values
    "DateValue",
    "Duration",
    "Measured",
    "Money",
    "Percentage",
    "PlainNumber",
    "Quantity",
    "Value",
    # Expressions
    "Assignment",
    "BinaryExpr",
    "BinaryOp",
    "Conversion",
    "DateExpr",
    "DateExprKind",
    "Expr",
    "Grouping",
    "Literal",
    "PercentOf",
    "SetRate",
    "UnaryExpr",
    "UnaryOp",
    "VariableRef",
]
