"""
Clock collaborators.

The sheet reads today's date once per evaluation pass through a ``Clock``
so that relative date expressions are reproducible under test.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol


class Clock(Protocol):
    """Source of the current calendar date."""

    def today(self) -> date: ...


class SystemClock:
    """Clock backed by the local system date."""

    def today(self) -> date:
        return date.today()


class FixedClock:
    """Clock pinned to one date; ``set`` moves it."""

    def __init__(self, day: date) -> None:
        self._day = day

    def __repr__(self) -> str:
        return f"FixedClock({self._day.isoformat()})"

    def today(self) -> date:
        return self._day

    def set(self, day: date) -> None:
        self._day = day
