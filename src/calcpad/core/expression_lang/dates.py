"""
Calendar helpers for calcpad date expressions.

Month and year durations move along the calendar (Jan 31 + 1 month is
Feb 28/29) using ``dateutil.relativedelta``; weeks and days are exact.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from calcpad.core.errors import ErrorKind, make_eval_error
from calcpad.core.ir.values import Duration

WEEKDAYS: dict[str, int] = {
    "monday": 0,
    "mon": 0,
    "tuesday": 1,
    "tue": 1,
    "tues": 1,
    "wednesday": 2,
    "wed": 2,
    "thursday": 3,
    "thu": 3,
    "thur": 3,
    "thurs": 3,
    "friday": 4,
    "fri": 4,
    "saturday": 5,
    "sat": 5,
    "sunday": 6,
    "sun": 6,
}

_SECONDS_PER_DAY = Decimal(86400)


def next_weekday(today: date, weekday: int) -> date:
    """Soonest date after ``today`` falling on ``weekday`` (never today)."""
    delta = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=delta)


def previous_weekday(today: date, weekday: int) -> date:
    """Most recent date before ``today`` falling on ``weekday`` (never today)."""
    delta = (today.weekday() - weekday) % 7 or 7
    return today - timedelta(days=delta)


def duration_delta(duration: Duration) -> relativedelta:
    """Turn a duration into a calendar delta.

    Raises:
        EvalError: IncompatibleUnits if the duration is not a whole number
            of calendar units or days.
    """
    count = duration.count
    name = duration.unit.name
    if count == count.to_integral_value():
        if name == "year":
            return relativedelta(years=int(count))
        if name == "month":
            return relativedelta(months=int(count))
        if name == "week":
            return relativedelta(weeks=int(count))

    assert duration.unit.factor is not None
    days = count * duration.unit.factor / _SECONDS_PER_DAY
    if days != days.to_integral_value():
        raise make_eval_error(
            ErrorKind.INCOMPATIBLE_UNITS,
            f"Cannot shift a date by {duration}: not a whole number of days",
        )
    return relativedelta(days=int(days))


def shift_date(start: date, duration: Duration, sign: int = 1) -> date:
    """Add (sign=1) or subtract (sign=-1) a duration from a date.

    Raises:
        EvalError: DateOverflow if the result leaves the supported calendar.
    """
    delta = duration_delta(duration)
    try:
        return start + delta if sign > 0 else start - delta
    except (OverflowError, ValueError) as e:
        raise make_eval_error(
            ErrorKind.DATE_OVERFLOW, f"Date out of range: {start} {'+' if sign > 0 else '-'} {duration}"
        ) from e


def days_between(end: date, start: date) -> int:
    return (end - start).days
