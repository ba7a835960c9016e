"""
Error types for calcpad tokenizing, parsing, and evaluation.

Every error raised while evaluating a line is a ``CalcpadError`` carrying an
``ErrorKind``. The sheet catches them per line and renders them in place of
a value, so none of them is ever fatal to the process.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Closed set of per-line failure kinds."""

    # Lexing
    MALFORMED_TOKEN = "MalformedToken"

    # Parsing
    UNEXPECTED_TOKEN = "UnexpectedToken"
    UNCLOSED_GROUP = "UnclosedGroup"
    INCOMPLETE_EXPRESSION = "IncompleteExpression"

    # Evaluation
    UNDEFINED_VARIABLE = "UndefinedVariable"
    DIVISION_BY_ZERO = "DivisionByZero"
    INCOMPATIBLE_UNITS = "IncompatibleUnits"
    UNKNOWN_UNIT = "UnknownUnit"
    UNKNOWN_CURRENCY = "UnknownCurrency"
    RATES_UNAVAILABLE = "RatesUnavailable"
    DATE_OVERFLOW = "DateOverflow"
    INVALID_OPERATION = "InvalidOperation"

    # Configuration (CLI only)
    INVALID_CONFIG = "InvalidConfig"


class CalcpadError(Exception):
    """Base exception for all calcpad errors."""

    default_kind: ErrorKind = ErrorKind.INVALID_OPERATION

    def __init__(
        self,
        message: str,
        kind: ErrorKind | None = None,
        position: int | None = None,
    ) -> None:
        self.message = message
        self.kind = kind or self.default_kind
        self.position = position
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with the character offset if available."""
        if self.position is not None:
            return f"{self.message} (at column {self.position + 1})"
        return self.message


class LexError(CalcpadError):
    """
    Raised when a line cannot be split into tokens.

    Examples:
    - Unsupported character (``@``, ``!``)
    - Number with two decimal points
    """

    default_kind = ErrorKind.MALFORMED_TOKEN


class ParseError(CalcpadError):
    """
    Raised when a token sequence is not a valid expression.

    Examples:
    - Trailing tokens after a complete expression
    - Unmatched parentheses
    - Operator with a missing operand
    """

    default_kind = ErrorKind.UNEXPECTED_TOKEN


class EvalError(CalcpadError):
    """
    Raised when a parsed expression cannot produce a value.

    Examples:
    - Reference to a variable with no prior binding
    - Adding a length to an amount of money
    - Currency conversion without exchange rates
    """

    default_kind = ErrorKind.INVALID_OPERATION


class ConfigError(CalcpadError):
    """
    Raised when configuration or a rate file cannot be loaded.

    Only the CLI raises this; evaluation passes never do.
    """

    default_kind = ErrorKind.INVALID_CONFIG


def make_eval_error(kind: ErrorKind, message: str) -> EvalError:
    """
    Helper to create an EvalError of a given kind.

    Args:
        kind: Failure kind
        message: Human-readable description

    Returns:
        EvalError with the kind attached
    """
    return EvalError(message, kind)
