"""
Value types produced by the calcpad evaluator.

Values form a closed tagged union. Every magnitude is a ``Decimal`` so that
chained money and percentage arithmetic matches hand-computed results.

Supports:
- Plain numbers: 42, 3.5
- Percentages: 15% (stored as the ratio 0.15)
- Quantities: 5 km, 2.5 kg, 3 cups
- Money: $10, 25 EUR
- Dates: 2024-03-15, next friday
- Durations: 2 weeks, 90 min
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .units import Dimension, Unit


class PlainNumber(BaseModel):
    """A dimensionless number."""

    magnitude: Decimal

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return str(self.magnitude)


class Percentage(BaseModel):
    """A percentage, stored as its fractional ratio (15% -> 0.15)."""

    ratio: Decimal = Field(description="Fractional ratio, not percentage points")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.ratio * 100}%"

    @property
    def points(self) -> Decimal:
        return self.ratio * 100


class Quantity(BaseModel):
    """A physical quantity in a length, mass or volume unit."""

    magnitude: Decimal
    unit: Unit

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.magnitude} {self.unit}"

    @property
    def dimension(self) -> Dimension:
        return self.unit.dimension


class Money(BaseModel):
    """An amount of a catalog currency."""

    amount: Decimal
    currency: Unit

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"

    @property
    def magnitude(self) -> Decimal:
        return self.amount


class DateValue(BaseModel):
    """A calendar date."""

    value: date

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return self.value.isoformat()


class Duration(BaseModel):
    """A signed span of time in a time unit."""

    count: Decimal
    unit: Unit

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.count} {self.unit.label(self.count)}"

    @property
    def magnitude(self) -> Decimal:
        return self.count


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

Value = PlainNumber | Percentage | Quantity | Money | DateValue | Duration

# Values that carry a unit and scale like a magnitude
Measured = Quantity | Money | Duration


def magnitude_of(value: Value) -> Decimal:
    """Return the numeric magnitude of any non-date value."""
    if isinstance(value, PlainNumber):
        return value.magnitude
    if isinstance(value, Percentage):
        return value.ratio
    if isinstance(value, Quantity):
        return value.magnitude
    if isinstance(value, Money):
        return value.amount
    if isinstance(value, Duration):
        return value.count
    raise TypeError(f"{type(value).__name__} has no magnitude")


def with_magnitude(value: Measured, magnitude: Decimal) -> Measured:
    """Return a copy of a unit-carrying value with a new magnitude."""
    if isinstance(value, Quantity):
        return Quantity(magnitude=magnitude, unit=value.unit)
    if isinstance(value, Money):
        return Money(amount=magnitude, currency=value.currency)
    return Duration(count=magnitude, unit=value.unit)


def unit_of(value: Measured) -> Unit:
    """Return the unit of a unit-carrying value."""
    if isinstance(value, Money):
        return value.currency
    return value.unit


def make_measured(magnitude: Decimal, unit: Unit) -> Measured:
    """Build the value variant that matches a unit's dimension."""
    if unit.dimension == Dimension.CURRENCY:
        return Money(amount=magnitude, currency=unit)
    if unit.dimension == Dimension.TIME:
        return Duration(count=magnitude, unit=unit)
    return Quantity(magnitude=magnitude, unit=unit)
