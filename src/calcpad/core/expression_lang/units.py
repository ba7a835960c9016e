"""
Unit lookup and conversion for calcpad.

Resolves unit names against the fixed catalog and converts quantities,
money and durations between units of the same dimension. Currency
conversion reads the rate snapshot passed in by the caller; this module
holds no rate state of its own.
"""

from __future__ import annotations

from decimal import Decimal

from calcpad.core.errors import ErrorKind, make_eval_error
from calcpad.core.expression_lang.environment import Environment
from calcpad.core.ir.units import UNIT_CATALOG, Dimension, Unit
from calcpad.core.ir.values import Measured, make_measured, magnitude_of, unit_of
from calcpad.core.rates import RateSnapshot


def _build_index() -> tuple[dict[str, Unit], dict[str, Unit]]:
    exact: dict[str, Unit] = {}
    folded: dict[str, Unit] = {}
    for unit in UNIT_CATALOG:
        for name in (unit.name, *unit.aliases):
            exact.setdefault(name, unit)
            folded.setdefault(name.lower(), unit)
    return exact, folded


_EXACT_INDEX, _FOLDED_INDEX = _build_index()

# Longest alias in words; bounds how many identifiers the parser tries to join
MAX_UNIT_WORDS = max(len(name.split()) for name in _FOLDED_INDEX)


def lookup_unit(name: str) -> Unit | None:
    """Resolve a unit name, alias, currency code or symbol.

    Exact spellings win over case-insensitive matches.
    """
    name = " ".join(name.split())
    unit = _EXACT_INDEX.get(name)
    if unit is not None:
        return unit
    return _FOLDED_INDEX.get(name.lower())


def lookup_currency(code: str) -> Unit | None:
    """Resolve a currency code (any case) to its catalog unit."""
    unit = lookup_unit(code)
    if unit is not None and unit.is_currency:
        return unit
    return None


def rate_for(currency: Unit | str, rates: RateSnapshot | None) -> Decimal:
    """
    Rate of a currency relative to the snapshot's base currency.

    Raises:
        EvalError: UnknownCurrency if the code is not a catalog currency,
            RatesUnavailable if there is no snapshot or it lacks the code.
    """
    unit = currency if isinstance(currency, Unit) else lookup_currency(currency)
    if unit is None or not unit.is_currency:
        raise make_eval_error(ErrorKind.UNKNOWN_CURRENCY, f"Unknown currency: {currency}")
    if rates is None:
        raise make_eval_error(ErrorKind.RATES_UNAVAILABLE, "Exchange rates are not available")

    rate = rates.rate(unit.name)
    if rate is None:
        raise make_eval_error(
            ErrorKind.RATES_UNAVAILABLE, f"No exchange rate available for {unit.name}"
        )
    return rate


def exchange_factor(
    source: Unit,
    target: Unit,
    rates: RateSnapshot | None,
    environment: Environment | None = None,
) -> Decimal:
    """Multiplier turning an amount of ``source`` into ``target``."""
    if source == target:
        return Decimal(1)
    if environment is not None:
        override = environment.rate_override(source.name, target.name)
        if override is not None:
            return override
    return rate_for(target, rates) / rate_for(source, rates)


def convert(
    value: Measured,
    target: Unit,
    rates: RateSnapshot | None = None,
    environment: Environment | None = None,
) -> Measured:
    """
    Convert a quantity, money amount or duration into another unit.

    Args:
        value: Value carrying a unit
        target: Unit of the same dimension
        rates: Rate snapshot, needed only between different currencies
        environment: Source of ``setrate`` overrides

    Raises:
        EvalError: IncompatibleUnits if the dimensions differ; rate
            failures for currency conversions.
    """
    source = unit_of(value)
    if source.dimension != target.dimension:
        raise make_eval_error(
            ErrorKind.INCOMPATIBLE_UNITS,
            f"Cannot convert {source.dimension} ({source}) to {target.dimension} ({target})",
        )

    magnitude = magnitude_of(value)
    if source == target:
        return make_measured(magnitude, target)

    if target.dimension == Dimension.CURRENCY:
        return make_measured(magnitude * exchange_factor(source, target, rates, environment), target)

    assert source.factor is not None and target.factor is not None
    return make_measured(magnitude * source.factor / target.factor, target)
