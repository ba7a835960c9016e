"""
Unit catalog types for calcpad.

The catalog is fixed: length, mass, volume, time and currency. Every
physical unit carries a conversion factor to its dimension's canonical base
unit (metre, kilogram, litre, second). Currencies have no static factor;
they convert through the rate snapshot supplied at evaluation time.
"""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Dimension(StrEnum):
    """Categories of mutually convertible units."""

    LENGTH = "length"
    MASS = "mass"
    VOLUME = "volume"
    TIME = "time"
    CURRENCY = "currency"


class Unit(BaseModel):
    """
    A member of the unit catalog.

    Examples:
        - Unit(name="km", dimension=LENGTH, factor=1000)
        - Unit(name="EUR", dimension=CURRENCY, symbol="€")
    """

    name: str = Field(description="Canonical name, also the display suffix")
    dimension: Dimension
    factor: Decimal | None = Field(
        default=None, description="Multiplier to the base unit (None for currencies)"
    )
    aliases: tuple[str, ...] = Field(default=(), description="Alternative spellings")
    plural: str | None = Field(default=None, description="Display name for counts other than 1")
    symbol: str | None = Field(default=None, description="Currency prefix symbol")
    scale: int = Field(default=2, description="Minor-unit decimal places (currencies)")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return self.name

    @property
    def is_currency(self) -> bool:
        return self.dimension == Dimension.CURRENCY

    def label(self, count: Decimal) -> str:
        """Display name for a magnitude, pluralised where the unit has a plural."""
        if self.plural and abs(count) != 1:
            return self.plural
        return self.name


def _unit(
    name: str,
    dimension: Dimension,
    factor: str,
    *aliases: str,
    plural: str | None = None,
) -> Unit:
    return Unit(
        name=name,
        dimension=dimension,
        factor=Decimal(factor),
        aliases=aliases,
        plural=plural,
    )


def _currency(code: str, *aliases: str, symbol: str | None = None, scale: int = 2) -> Unit:
    return Unit(
        name=code,
        dimension=Dimension.CURRENCY,
        aliases=aliases,
        symbol=symbol,
        scale=scale,
    )


# fmt: off
LENGTH_UNITS: tuple[Unit, ...] = (
    _unit("mm", Dimension.LENGTH, "0.001", "millimeter", "millimeters", "millimetre", "millimetres"),
    _unit("cm", Dimension.LENGTH, "0.01", "centimeter", "centimeters", "centimetre", "centimetres"),
    _unit("m", Dimension.LENGTH, "1", "meter", "meters", "metre", "metres"),
    _unit("km", Dimension.LENGTH, "1000", "kilometer", "kilometers", "kilometre", "kilometres"),
    _unit("in", Dimension.LENGTH, "0.0254", "inch", "inches"),
    _unit("ft", Dimension.LENGTH, "0.3048", "foot", "feet"),
    _unit("yd", Dimension.LENGTH, "0.9144", "yard", "yards"),
    _unit("mi", Dimension.LENGTH, "1609.344", "mile", "miles"),
    _unit("nmi", Dimension.LENGTH, "1852", "nautical mile", "nautical miles"),
)

MASS_UNITS: tuple[Unit, ...] = (
    _unit("mg", Dimension.MASS, "0.000001", "milligram", "milligrams"),
    _unit("g", Dimension.MASS, "0.001", "gram", "grams"),
    _unit("kg", Dimension.MASS, "1", "kilogram", "kilograms", "kgs", "kilo", "kilos"),
    _unit("t", Dimension.MASS, "1000", "ton", "tons", "tonne", "tonnes", "metric ton"),
    _unit("oz", Dimension.MASS, "0.028349523125", "ounce", "ounces"),
    _unit("lb", Dimension.MASS, "0.45359237", "lbs", "pound", "pounds"),
    _unit("st", Dimension.MASS, "6.35029318", "stone", "stones"),
)

VOLUME_UNITS: tuple[Unit, ...] = (
    _unit("ml", Dimension.VOLUME, "0.001", "milliliter", "milliliters", "millilitre", "millilitres"),
    _unit("cl", Dimension.VOLUME, "0.01", "centiliter", "centiliters", "centilitre", "centilitres"),
    _unit("dl", Dimension.VOLUME, "0.1", "deciliter", "deciliters", "decilitre", "decilitres"),
    _unit("l", Dimension.VOLUME, "1", "liter", "liters", "litre", "litres"),
    _unit("m3", Dimension.VOLUME, "1000", "cubic meter", "cubic meters", "cubic metre", "cubic metres"),
    _unit("tsp", Dimension.VOLUME, "0.00492892159375", "teaspoon", "teaspoons"),
    _unit("tbsp", Dimension.VOLUME, "0.01478676478125", "tablespoon", "tablespoons"),
    _unit("floz", Dimension.VOLUME, "0.0295735295625", "fluid ounce", "fluid ounces"),
    _unit("cup", Dimension.VOLUME, "0.2365882365", "cups"),
    _unit("pt", Dimension.VOLUME, "0.473176473", "pint", "pints"),
    _unit("qt", Dimension.VOLUME, "0.946352946", "quart", "quarts"),
    _unit("gal", Dimension.VOLUME, "3.785411784", "gallon", "gallons"),
)

TIME_UNITS: tuple[Unit, ...] = (
    _unit("ms", Dimension.TIME, "0.001", "millisecond", "milliseconds"),
    _unit("s", Dimension.TIME, "1", "sec", "secs", "second", "seconds"),
    _unit("min", Dimension.TIME, "60", "mins", "minute", "minutes"),
    _unit("h", Dimension.TIME, "3600", "hr", "hrs", "hour", "hours"),
    _unit("day", Dimension.TIME, "86400", "days", "d", plural="days"),
    _unit("week", Dimension.TIME, "604800", "weeks", "wk", "wks", plural="weeks"),
    # Average Gregorian month and year; calendar arithmetic on dates is exact.
    _unit("month", Dimension.TIME, "2629746", "months", plural="months"),
    _unit("year", Dimension.TIME, "31556952", "years", "yr", "yrs", plural="years"),
)

CURRENCY_UNITS: tuple[Unit, ...] = (
    _currency("USD", "$", "dollar", "dollars", symbol="$"),
    _currency("EUR", "€", "euro", "euros", symbol="€"),
    _currency("GBP", "£", "pound sterling", symbol="£"),
    _currency("CAD", symbol="C$"),
    _currency("JPY", "¥", "yen", symbol="¥", scale=0),
    _currency("AUD", symbol="A$"),
    _currency("CNY", "yuan", "rmb", symbol="CN¥"),
    _currency("INR", "₹", "rupee", "rupees", symbol="₹"),
    _currency("CHF", "franc", "francs"),
    _currency("MXN"),
    _currency("BRL"),
    _currency("NZD"),
    _currency("SEK"),
    _currency("NOK"),
    _currency("DKK"),
    _currency("SGD"),
    _currency("HKD"),
    _currency("ZAR"),
    _currency("KRW", "won", symbol="₩", scale=0),
)
# fmt: on

UNIT_CATALOG: tuple[Unit, ...] = (
    LENGTH_UNITS + MASS_UNITS + VOLUME_UNITS + TIME_UNITS + CURRENCY_UNITS
)
