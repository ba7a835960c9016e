"""
Expression evaluator for calcpad lines.

Walks a parsed line against a variable environment and an evaluation
context (today's date and the exchange-rate snapshot). Pure evaluation:
the only side effect is binding assignments and rate overrides into the
environment that was passed in.
"""

from __future__ import annotations

import decimal
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from calcpad.core.errors import ErrorKind, make_eval_error
from calcpad.core.expression_lang.dates import (
    WEEKDAYS,
    days_between,
    next_weekday,
    previous_weekday,
    shift_date,
)
from calcpad.core.expression_lang.environment import Environment
from calcpad.core.expression_lang.units import convert, lookup_currency, lookup_unit
from calcpad.core.ir.expressions import (
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
from calcpad.core.ir.units import Dimension, Unit
from calcpad.core.ir.values import (
    DateValue,
    Duration,
    Money,
    Percentage,
    PlainNumber,
    Quantity,
    Value,
    make_measured,
    magnitude_of,
    unit_of,
    with_magnitude,
)
from calcpad.core.rates import RateSnapshot

_MEASURED = (Quantity, Money, Duration)


@dataclass(frozen=True)
class EvalContext:
    """Per-pass inputs read by the evaluator."""

    today: date
    rates: RateSnapshot | None = None


def evaluate(expr: Expr | None, environment: Environment, context: EvalContext) -> Value | None:
    """Evaluate one parsed line.

    Args:
        expr: Parsed line, or None for a blank line.
        environment: Bindings from earlier lines. Assignments and
            ``setrate`` overrides on this line are recorded into it.
        context: Today's date and the rate snapshot for this pass.

    Returns:
        The line's value, or None if the line has no result.

    Raises:
        EvalError: If the expression cannot produce a value.
    """
    if expr is None:
        return None
    try:
        return _interpret(expr, environment, context)
    except (decimal.Overflow, decimal.InvalidOperation) as e:
        raise make_eval_error(
            ErrorKind.INVALID_OPERATION, "Result is out of range for decimal arithmetic"
        ) from e


def _interpret(expr: Expr, env: Environment, ctx: EvalContext) -> Value:
    """Dispatch evaluation to the appropriate handler."""
    if isinstance(expr, Literal):
        return expr.value

    if isinstance(expr, VariableRef):
        return _interpret_variable(expr, env)

    if isinstance(expr, Assignment):
        value = _interpret(expr.expr, env, ctx)
        env.bind(expr.name, value)
        return value

    if isinstance(expr, Grouping):
        return _interpret(expr.expr, env, ctx)

    if isinstance(expr, BinaryExpr):
        return _interpret_binary(expr, env, ctx)

    if isinstance(expr, UnaryExpr):
        return _interpret_unary(expr, env, ctx)

    if isinstance(expr, Conversion):
        return _interpret_conversion(expr, env, ctx)

    if isinstance(expr, PercentOf):
        return _interpret_percent_of(expr, env, ctx)

    if isinstance(expr, DateExpr):
        return _interpret_date(expr, env, ctx)

    if isinstance(expr, SetRate):
        return _interpret_setrate(expr, env, ctx)

    raise make_eval_error(
        ErrorKind.INVALID_OPERATION, f"Unknown expression type: {type(expr).__name__}"
    )


def _interpret_variable(expr: VariableRef, env: Environment) -> Value:
    value = env.lookup(expr.name)
    if value is None:
        raise make_eval_error(ErrorKind.UNDEFINED_VARIABLE, f"Undefined variable: {expr.name}")
    return value


# ---------------------------------------------------------------------------
# Binary arithmetic
# ---------------------------------------------------------------------------


def _interpret_binary(expr: BinaryExpr, env: Environment, ctx: EvalContext) -> Value:
    left = _interpret(expr.left, env, ctx)
    right = _interpret(expr.right, env, ctx)
    op = expr.op

    if op == BinaryOp.ADD:
        return _add_sub(left, right, 1, env, ctx)
    if op == BinaryOp.SUB:
        return _add_sub(left, right, -1, env, ctx)
    if op == BinaryOp.MUL:
        return _multiply(left, right)
    if op == BinaryOp.DIV:
        return _divide(left, right, env, ctx)
    if op == BinaryOp.POW:
        return _power(left, right)

    raise make_eval_error(ErrorKind.INVALID_OPERATION, f"Unknown operator: {op}")


def _add_sub(left: Value, right: Value, sign: int, env: Environment, ctx: EvalContext) -> Value:
    """Addition (sign=1) and subtraction (sign=-1)."""
    verb = "add" if sign > 0 else "subtract"

    # X + p% is X + X*p
    if isinstance(right, Percentage):
        if isinstance(left, Percentage):
            return Percentage(ratio=left.ratio + sign * right.ratio)
        if isinstance(left, PlainNumber):
            return PlainNumber(magnitude=left.magnitude * (1 + sign * right.ratio))
        if isinstance(left, _MEASURED):
            return with_magnitude(left, magnitude_of(left) * (1 + sign * right.ratio))
        raise _incompatible(verb, left, right)

    if isinstance(left, PlainNumber) and isinstance(right, PlainNumber):
        return PlainNumber(magnitude=left.magnitude + sign * right.magnitude)

    if isinstance(left, DateValue):
        if isinstance(right, Duration):
            return DateValue(value=shift_date(left.value, right, sign))
        if isinstance(right, DateValue) and sign < 0:
            days = days_between(left.value, right.value)
            return Duration(count=Decimal(days), unit=_day_unit())
        raise _incompatible(verb, left, right)

    if isinstance(left, Duration) and isinstance(right, DateValue) and sign > 0:
        return DateValue(value=shift_date(right.value, left))

    if isinstance(left, _MEASURED) and isinstance(right, _MEASURED):
        if unit_of(left).dimension != unit_of(right).dimension:
            raise _incompatible(verb, left, right)
        converted = convert(right, unit_of(left), ctx.rates, env)
        return with_magnitude(left, magnitude_of(left) + sign * magnitude_of(converted))

    raise _incompatible(verb, left, right)


def _multiply(left: Value, right: Value) -> Value:
    left = _as_ratio(left)
    right = _as_ratio(right)

    if isinstance(left, PlainNumber) and isinstance(right, PlainNumber):
        return PlainNumber(magnitude=left.magnitude * right.magnitude)
    if isinstance(left, _MEASURED) and isinstance(right, PlainNumber):
        return with_magnitude(left, magnitude_of(left) * right.magnitude)
    if isinstance(left, PlainNumber) and isinstance(right, _MEASURED):
        return with_magnitude(right, left.magnitude * magnitude_of(right))

    raise _incompatible("multiply", left, right)


def _divide(left: Value, right: Value, env: Environment, ctx: EvalContext) -> Value:
    left = _as_ratio(left)
    right = _as_ratio(right)

    if isinstance(right, PlainNumber):
        if isinstance(left, PlainNumber):
            _check_divisor(right.magnitude)
            return PlainNumber(magnitude=left.magnitude / right.magnitude)
        if isinstance(left, _MEASURED):
            _check_divisor(right.magnitude)
            return with_magnitude(left, magnitude_of(left) / right.magnitude)

    # 10 km / 2 km is a plain ratio
    if (
        isinstance(left, _MEASURED)
        and isinstance(right, _MEASURED)
        and unit_of(left).dimension == unit_of(right).dimension
    ):
        converted = convert(right, unit_of(left), ctx.rates, env)
        _check_divisor(magnitude_of(converted))
        return PlainNumber(magnitude=magnitude_of(left) / magnitude_of(converted))

    raise _incompatible("divide", left, right)


def _power(left: Value, right: Value) -> Value:
    if not (isinstance(left, PlainNumber) and isinstance(right, PlainNumber)):
        raise _incompatible("raise", left, right, "to the power of")

    base = left.magnitude
    exponent = right.magnitude
    try:
        if exponent == exponent.to_integral_value():
            return PlainNumber(magnitude=base ** int(exponent))
        return PlainNumber(magnitude=base**exponent)
    except ZeroDivisionError as e:
        raise make_eval_error(ErrorKind.DIVISION_BY_ZERO, "Division by zero") from e
    except (decimal.InvalidOperation, decimal.Overflow) as e:
        raise make_eval_error(
            ErrorKind.INVALID_OPERATION, f"Cannot raise {base} to the power of {exponent}"
        ) from e


def _check_divisor(magnitude: Decimal) -> None:
    if magnitude == 0:
        raise make_eval_error(ErrorKind.DIVISION_BY_ZERO, "Division by zero")


def _as_ratio(value: Value) -> Value:
    """For * and / a percentage acts as its decimal ratio."""
    if isinstance(value, Percentage):
        return PlainNumber(magnitude=value.ratio)
    return value


# ---------------------------------------------------------------------------
# Unary, conversion and percent-of
# ---------------------------------------------------------------------------


def _interpret_unary(expr: UnaryExpr, env: Environment, ctx: EvalContext) -> Value:
    operand = _interpret(expr.operand, env, ctx)

    if expr.op == UnaryOp.PERCENT:
        if isinstance(operand, PlainNumber):
            return Percentage(ratio=operand.magnitude / 100)
        raise make_eval_error(
            ErrorKind.INCOMPATIBLE_UNITS, f"Cannot take a percentage of {_describe(operand)}"
        )

    if isinstance(operand, DateValue):
        raise make_eval_error(
            ErrorKind.INCOMPATIBLE_UNITS, f"Cannot apply unary '{expr.op}' to a date"
        )
    if expr.op == UnaryOp.POS:
        return operand

    if isinstance(operand, PlainNumber):
        return PlainNumber(magnitude=-operand.magnitude)
    if isinstance(operand, Percentage):
        return Percentage(ratio=-operand.ratio)
    return with_magnitude(operand, -magnitude_of(operand))


def _interpret_conversion(expr: Conversion, env: Environment, ctx: EvalContext) -> Value:
    value = _interpret(expr.expr, env, ctx)
    target = lookup_unit(expr.target)
    if target is None:
        raise make_eval_error(ErrorKind.UNKNOWN_UNIT, f"Unknown unit: {expr.target}")

    if isinstance(value, PlainNumber):
        return make_measured(value.magnitude, target)
    if isinstance(value, _MEASURED):
        return convert(value, target, ctx.rates, env)

    raise make_eval_error(
        ErrorKind.INCOMPATIBLE_UNITS, f"Cannot convert {_describe(value)} to {target}"
    )


def _interpret_percent_of(expr: PercentOf, env: Environment, ctx: EvalContext) -> Value:
    percent = _interpret(expr.percent, env, ctx)
    base = _interpret(expr.base, env, ctx)

    if isinstance(percent, Percentage):
        ratio = percent.ratio
    elif isinstance(percent, PlainNumber):
        ratio = percent.magnitude / 100
    else:
        raise make_eval_error(
            ErrorKind.INCOMPATIBLE_UNITS,
            f"Expected a percentage before 'of', got {_describe(percent)}",
        )

    if isinstance(base, PlainNumber):
        return PlainNumber(magnitude=base.magnitude * ratio)
    if isinstance(base, Percentage):
        return Percentage(ratio=base.ratio * ratio)
    if isinstance(base, _MEASURED):
        return with_magnitude(base, magnitude_of(base) * ratio)

    raise make_eval_error(
        ErrorKind.INCOMPATIBLE_UNITS, f"Cannot take a percentage of {_describe(base)}"
    )


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def _interpret_date(expr: DateExpr, env: Environment, ctx: EvalContext) -> Value:
    today = ctx.today
    kind = expr.kind

    if kind == DateExprKind.TODAY:
        return DateValue(value=today)
    if kind == DateExprKind.TOMORROW:
        return DateValue(value=_offset_days(today, 1))
    if kind == DateExprKind.YESTERDAY:
        return DateValue(value=_offset_days(today, -1))

    if kind in (DateExprKind.NEXT, DateExprKind.PREVIOUS):
        target = (expr.target or "").lower()
        forward = kind == DateExprKind.NEXT
        if target in WEEKDAYS:
            try:
                if forward:
                    return DateValue(value=next_weekday(today, WEEKDAYS[target]))
                return DateValue(value=previous_weekday(today, WEEKDAYS[target]))
            except OverflowError as e:
                raise make_eval_error(ErrorKind.DATE_OVERFLOW, "Date out of range") from e
        unit = lookup_unit(target)
        if unit is None or unit.dimension != Dimension.TIME:
            raise make_eval_error(ErrorKind.UNKNOWN_UNIT, f"Unknown weekday or unit: {target}")
        one = Duration(count=Decimal(1), unit=unit)
        return DateValue(value=shift_date(today, one, 1 if forward else -1))

    # AGO / FROM_NOW
    if expr.amount is None:
        raise make_eval_error(ErrorKind.INVALID_OPERATION, f"Missing duration for '{kind}'")
    amount = _interpret(expr.amount, env, ctx)
    if not isinstance(amount, Duration):
        raise make_eval_error(
            ErrorKind.INCOMPATIBLE_UNITS,
            f"Expected a duration before '{kind}', got {_describe(amount)}",
        )
    sign = -1 if kind == DateExprKind.AGO else 1
    return DateValue(value=shift_date(today, amount, sign))


def _offset_days(day: date, days: int) -> date:
    try:
        return day + timedelta(days=days)
    except OverflowError as e:
        raise make_eval_error(ErrorKind.DATE_OVERFLOW, "Date out of range") from e


def _day_unit() -> Unit:
    unit = lookup_unit("day")
    assert unit is not None
    return unit


# ---------------------------------------------------------------------------
# Exchange-rate overrides
# ---------------------------------------------------------------------------


def _interpret_setrate(expr: SetRate, env: Environment, ctx: EvalContext) -> Value:
    source = lookup_currency(expr.from_currency)
    if source is None:
        raise make_eval_error(ErrorKind.UNKNOWN_CURRENCY, f"Unknown currency: {expr.from_currency}")
    target = lookup_currency(expr.to_currency)
    if target is None:
        raise make_eval_error(ErrorKind.UNKNOWN_CURRENCY, f"Unknown currency: {expr.to_currency}")

    rate = _interpret(expr.rate, env, ctx)
    if not isinstance(rate, PlainNumber) or rate.magnitude <= 0:
        raise make_eval_error(
            ErrorKind.INVALID_OPERATION, "Exchange rate must be a positive number"
        )

    env.set_rate(source.name, target.name, rate.magnitude)
    return Money(amount=rate.magnitude, currency=target)


# ---------------------------------------------------------------------------
# Error helpers
# ---------------------------------------------------------------------------


def _describe(value: Value) -> str:
    """Short description of a value for error messages."""
    if isinstance(value, PlainNumber):
        return "a number"
    if isinstance(value, Percentage):
        return "a percentage"
    if isinstance(value, DateValue):
        return "a date"
    if isinstance(value, Duration):
        return f"a duration ({value.unit.name})"
    if isinstance(value, Money):
        return f"money ({value.currency.name})"
    return f"a {value.unit.dimension} ({value.unit.name})"


def _incompatible(verb: str, left: Value, right: Value, joiner: str | None = None) -> Exception:
    if joiner is None:
        joiner = {"add": "and", "subtract": "from", "multiply": "by", "divide": "by"}.get(verb, "and")
    if verb == "subtract":
        message = f"Cannot subtract {_describe(right)} from {_describe(left)}"
    else:
        message = f"Cannot {verb} {_describe(left)} {joiner} {_describe(right)}"
    return make_eval_error(ErrorKind.INCOMPATIBLE_UNITS, message)
