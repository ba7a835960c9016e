"""
Display formatting for calcpad values.

Values keep full precision while a sheet is evaluated; rounding to the
display precision happens only here.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, localcontext

from calcpad.core.ir.values import (
    DateValue,
    Duration,
    Money,
    Percentage,
    PlainNumber,
    Quantity,
    Value,
)

DEFAULT_PRECISION = 4


def format_number(magnitude: Decimal, precision: int = DEFAULT_PRECISION) -> str:
    """Round half-up to ``precision`` places and drop trailing zeros.

    Examples:
        >>> format_number(Decimal("3.10686"), 4)
        '3.1069'
        >>> format_number(Decimal("14.000"), 4)
        '14'
    """
    exponent = Decimal(1).scaleb(-precision)
    with localcontext() as ctx:
        # quantize needs room for every integer digit plus the decimals
        ctx.prec = max(ctx.prec, magnitude.adjusted() + precision + 2)
        rounded = magnitude.quantize(exponent, rounding=ROUND_HALF_UP)
    if rounded == 0:
        return "0"
    text = f"{rounded:f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_money(value: Money, precision: int = DEFAULT_PRECISION, currency_symbols: bool = True) -> str:
    """Money shows at most the currency's minor-unit scale: $10.5, ¥1000, 12 CHF."""
    amount = format_number(value.amount, min(precision, value.currency.scale))
    symbol = value.currency.symbol
    if currency_symbols and symbol:
        if amount.startswith("-"):
            return f"-{symbol}{amount[1:]}"
        return f"{symbol}{amount}"
    return f"{amount} {value.currency.name}"


def format_value(
    value: Value | None,
    precision: int = DEFAULT_PRECISION,
    currency_symbols: bool = True,
) -> str:
    """Render a value for display beside its line ("" for no result)."""
    if value is None:
        return ""
    if isinstance(value, PlainNumber):
        return format_number(value.magnitude, precision)
    if isinstance(value, Percentage):
        return f"{format_number(value.points, precision)}%"
    if isinstance(value, Money):
        return format_money(value, precision, currency_symbols)
    if isinstance(value, Quantity):
        return f"{format_number(value.magnitude, precision)} {value.unit.name}"
    if isinstance(value, Duration):
        count = format_number(value.count, precision)
        return f"{count} {value.unit.label(Decimal(count))}"
    if isinstance(value, DateValue):
        return value.value.isoformat()
    raise TypeError(f"Cannot format {type(value).__name__}")
