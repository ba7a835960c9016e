"""
Variable environment for calcpad evaluation.

An environment holds the bindings visible to one line: the variables
assigned on earlier lines and any ``setrate`` overrides. The sheet keeps a
copy of the environment as it stood after each line, so re-evaluating from
line ``i`` starts from the state after line ``i - 1`` and never sees
bindings made at or after ``i``.
"""

from __future__ import annotations

from decimal import Decimal

from calcpad.core.ir.values import Value


class Environment:
    """Ordered variable bindings plus exchange-rate overrides."""

    __slots__ = ("_variables", "_rates")

    def __init__(
        self,
        variables: dict[str, Value] | None = None,
        rates: dict[tuple[str, str], Decimal] | None = None,
    ) -> None:
        self._variables: dict[str, Value] = dict(variables or {})
        self._rates: dict[tuple[str, str], Decimal] = dict(rates or {})

    def __repr__(self) -> str:
        return f"Environment({list(self._variables)!r}, rates={len(self._rates)})"

    def __contains__(self, name: object) -> bool:
        return name in self._variables

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Environment):
            return NotImplemented
        return self._variables == other._variables and self._rates == other._rates

    @property
    def variables(self) -> dict[str, Value]:
        """Read-only view of the current bindings (a copy)."""
        return dict(self._variables)

    def lookup(self, name: str) -> Value | None:
        return self._variables.get(name)

    def bind(self, name: str, value: Value) -> None:
        # Re-insert so iteration order reflects the latest assignment
        self._variables.pop(name, None)
        self._variables[name] = value

    def set_rate(self, from_code: str, to_code: str, rate: Decimal) -> None:
        """Record ``1 from_code = rate to_code`` and its inverse."""
        self._rates[(from_code, to_code)] = rate
        self._rates[(to_code, from_code)] = Decimal(1) / rate

    def rate_override(self, from_code: str, to_code: str) -> Decimal | None:
        return self._rates.get((from_code, to_code))

    def copy(self) -> Environment:
        return Environment(self._variables, self._rates)
