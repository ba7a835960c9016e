"""Shared pytest fixtures for calcpad tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date

import pytest

from calcpad.core.clock import FixedClock
from calcpad.core.rates import FALLBACK_RATES, StaticRateSource
from calcpad.core.sheet import Sheet

# 2024-01-03 is a Wednesday
WEDNESDAY = date(2024, 1, 3)


@pytest.fixture
def today() -> date:
    """The fixed 'today' used by date tests (a Wednesday)."""
    return WEDNESDAY


@pytest.fixture
def clock(today: date) -> FixedClock:
    return FixedClock(today)


@pytest.fixture
def rate_source() -> StaticRateSource:
    """Static source serving the built-in fallback rates."""
    return StaticRateSource(FALLBACK_RATES)


@pytest.fixture
def make_sheet(clock: FixedClock, rate_source: StaticRateSource) -> Callable[..., Sheet]:
    """Build a sheet from lines with the fixed clock and fallback rates."""

    def _make(*lines: str, precision: int = 4) -> Sheet:
        sheet = Sheet(clock=clock, rates=rate_source, precision=precision)
        sheet.load(lines)
        return sheet

    return _make
