"""Tests for the unit catalog, unit lookup and conversion."""

from __future__ import annotations

from decimal import Decimal

import pytest

from calcpad.core.errors import ErrorKind, EvalError
from calcpad.core.expression_lang.environment import Environment
from calcpad.core.expression_lang.units import (
    MAX_UNIT_WORDS,
    convert,
    exchange_factor,
    lookup_currency,
    lookup_unit,
    rate_for,
)
from calcpad.core.ir.units import UNIT_CATALOG, Dimension
from calcpad.core.ir.values import Duration, Money, PlainNumber, Quantity, make_measured
from calcpad.core.rates import FALLBACK_RATES


def _unit(name: str):
    unit = lookup_unit(name)
    assert unit is not None, name
    return unit


class TestCatalog:
    """Static catalog contents."""

    def test_names_are_unique(self) -> None:
        names = [unit.name for unit in UNIT_CATALOG]
        assert len(names) == len(set(names))

    def test_physical_units_have_factors(self) -> None:
        for unit in UNIT_CATALOG:
            if unit.is_currency:
                assert unit.factor is None
            else:
                assert unit.factor is not None and unit.factor > 0

    @pytest.mark.parametrize(
        ("dimension", "name"),
        [
            (Dimension.LENGTH, "m"),
            (Dimension.MASS, "kg"),
            (Dimension.VOLUME, "l"),
            (Dimension.TIME, "s"),
        ],
    )
    def test_base_units_have_factor_one(self, dimension: Dimension, name: str) -> None:
        unit = _unit(name)
        assert unit.dimension == dimension
        assert unit.factor == 1

    def test_multi_word_aliases_are_bounded(self) -> None:
        assert MAX_UNIT_WORDS >= 2

    def test_zero_scale_currencies(self) -> None:
        assert _unit("JPY").scale == 0
        assert _unit("KRW").scale == 0
        assert _unit("EUR").scale == 2


class TestLookup:
    """Alias normalisation and case handling."""

    @pytest.mark.parametrize(
        ("alias", "name"),
        [
            ("kilometres", "km"),
            ("miles", "mi"),
            ("lbs", "lb"),
            ("usd", "USD"),
            ("$", "USD"),
            ("€", "EUR"),
            ("hours", "h"),
            ("fluid ounce", "floz"),
            ("nautical  miles", "nmi"),
        ],
    )
    def test_aliases(self, alias: str, name: str) -> None:
        assert _unit(alias).name == name

    def test_unknown(self) -> None:
        assert lookup_unit("parsec") is None

    def test_lookup_currency_rejects_physical_units(self) -> None:
        assert lookup_currency("km") is None
        assert lookup_currency("gbp") == _unit("GBP")


class TestConvert:
    """Conversion between units of one dimension."""

    def test_length(self) -> None:
        result = convert(Quantity(magnitude=Decimal(1), unit=_unit("mi")), _unit("km"))
        assert result == Quantity(magnitude=Decimal("1.609344"), unit=_unit("km"))

    def test_duration_stays_duration(self) -> None:
        result = convert(Duration(count=Decimal(2), unit=_unit("h")), _unit("min"))
        assert isinstance(result, Duration)
        assert result.count == 120

    def test_incompatible_dimensions(self) -> None:
        with pytest.raises(EvalError) as exc_info:
            convert(Quantity(magnitude=Decimal(1), unit=_unit("kg")), _unit("m"))
        assert exc_info.value.kind == ErrorKind.INCOMPATIBLE_UNITS

    def test_currency_via_snapshot(self) -> None:
        result = convert(Money(amount=Decimal(10), currency=_unit("USD")), _unit("JPY"), FALLBACK_RATES)
        assert result == Money(amount=Decimal(1150), currency=_unit("JPY"))

    def test_make_measured_picks_variant(self) -> None:
        assert isinstance(make_measured(Decimal(1), _unit("EUR")), Money)
        assert isinstance(make_measured(Decimal(1), _unit("day")), Duration)
        assert isinstance(make_measured(Decimal(1), _unit("l")), Quantity)
        assert not isinstance(make_measured(Decimal(1), _unit("l")), PlainNumber)


class TestRates:
    """Rate lookup and exchange factors."""

    def test_rate_for_base_is_one(self) -> None:
        assert rate_for("USD", FALLBACK_RATES) == 1

    def test_rate_for_unknown_currency(self) -> None:
        with pytest.raises(EvalError) as exc_info:
            rate_for("XYZ", FALLBACK_RATES)
        assert exc_info.value.kind == ErrorKind.UNKNOWN_CURRENCY

    def test_rate_for_without_snapshot(self) -> None:
        with pytest.raises(EvalError) as exc_info:
            rate_for("EUR", None)
        assert exc_info.value.kind == ErrorKind.RATES_UNAVAILABLE

    def test_exchange_factor_between_non_base_currencies(self) -> None:
        factor = exchange_factor(_unit("EUR"), _unit("GBP"), FALLBACK_RATES)
        assert factor == Decimal("0.72") / Decimal("0.85")

    def test_environment_override_wins(self) -> None:
        env = Environment()
        env.set_rate("USD", "EUR", Decimal("0.5"))
        assert exchange_factor(_unit("USD"), _unit("EUR"), FALLBACK_RATES, env) == Decimal("0.5")
        assert exchange_factor(_unit("EUR"), _unit("USD"), None, env) == 2

    def test_dimension_of_currency(self) -> None:
        assert _unit("CAD").dimension == Dimension.CURRENCY
