"""
Incremental re-evaluation of a calcpad sheet.

A ``Sheet`` owns the ordered lines of a buffer. After an edit at line ``i``
it re-evaluates lines ``i..n`` in order, starting from the environment as it
stood after line ``i - 1``. Earlier lines are never touched, so a variable
bound on line ``i`` is only ever visible to the lines below it.

Usage:
    sheet = Sheet.from_text("a = 5\\nb = a + 1")
    sheet.apply_edit(0, "a = 20")
    # [(0, RenderedResult(text='20')), (1, RenderedResult(text='21'))]
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict

from .clock import Clock, SystemClock
from .config import CalcpadConfig, make_rate_source
from .errors import CalcpadError, ErrorKind
from .expression_lang.environment import Environment
from .expression_lang.evaluator import EvalContext, evaluate
from .expression_lang.formatting import DEFAULT_PRECISION, format_value
from .expression_lang.parser import parse_line
from .ir.expressions import Expr
from .ir.values import Value
from .rates import FALLBACK_RATES, RateSource, StaticRateSource

logger = logging.getLogger(__name__)


class RenderedResult(BaseModel):
    """What the editor shows beside a line."""

    text: str = ""
    error: ErrorKind | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_error(self) -> bool:
        return self.error is not None


NO_RESULT = RenderedResult()


@dataclass
class Line:
    """One buffer line and its last evaluation."""

    text: str
    value: Value | None = None
    rendered: RenderedResult = NO_RESULT
    dirty: bool = True
    # Parsed AST, reused while the text is unchanged
    parsed_text: str | None = None
    ast: Expr | None = None
    parse_error: CalcpadError | None = field(default=None, repr=False)

    def parse(self) -> Expr | None:
        if self.parsed_text != self.text:
            self.parsed_text = self.text
            try:
                self.ast = parse_line(self.text)
                self.parse_error = None
            except CalcpadError as e:
                self.ast = None
                self.parse_error = e
        if self.parse_error is not None:
            raise self.parse_error
        return self.ast


class Sheet:
    """
    Ordered lines with forward-scoped variables.

    Args:
        clock: Source of today's date, read once per pass
        rates: Source of the exchange-rate snapshot, read once per pass
        precision: Display decimal places
        currency_symbols: Show ``$10`` rather than ``10 USD``
    """

    def __init__(
        self,
        clock: Clock | None = None,
        rates: RateSource | None = None,
        precision: int = DEFAULT_PRECISION,
        currency_symbols: bool = True,
    ) -> None:
        self.clock: Clock = clock or SystemClock()
        self.rates: RateSource = rates or StaticRateSource(FALLBACK_RATES)
        self.precision = precision
        self.currency_symbols = currency_symbols
        self._lines: list[Line] = []
        # _environments[i] is the environment after line i
        self._environments: list[Environment] = []

    @classmethod
    def from_text(
        cls,
        text: str,
        clock: Clock | None = None,
        rates: RateSource | None = None,
        precision: int = DEFAULT_PRECISION,
        currency_symbols: bool = True,
    ) -> Sheet:
        """Build a sheet from a whole buffer and evaluate every line."""
        sheet = cls(clock=clock, rates=rates, precision=precision, currency_symbols=currency_symbols)
        sheet.load(text.splitlines())
        return sheet

    @classmethod
    def from_config(cls, config: CalcpadConfig, clock: Clock | None = None) -> Sheet:
        return cls(
            clock=clock,
            rates=make_rate_source(config),
            precision=config.precision,
            currency_symbols=config.currency_symbols,
        )

    def __len__(self) -> int:
        return len(self._lines)

    def __repr__(self) -> str:
        return f"Sheet({len(self._lines)} lines)"

    @property
    def lines(self) -> list[str]:
        """Raw text of every line."""
        return [line.text for line in self._lines]

    # -- Edits --

    def load(self, lines: Iterable[str]) -> list[tuple[int, RenderedResult]]:
        """Replace the whole buffer and evaluate it."""
        self._lines = [Line(text=text) for text in lines]
        self._environments = []
        return self._reevaluate_from(0, fresh={*range(len(self._lines))})

    def apply_edit(self, line_index: int, new_text: str) -> list[tuple[int, RenderedResult]]:
        """
        Replace the text of one line.

        Returns:
            ``(index, result)`` for every line whose displayed result changed
        """
        self._check_index(line_index)
        self._lines[line_index].text = new_text
        return self._reevaluate_from(line_index)

    def insert_line(self, index: int, text: str = "") -> list[tuple[int, RenderedResult]]:
        """Insert a line before ``index`` (``index == len(sheet)`` appends)."""
        if not 0 <= index <= len(self._lines):
            raise IndexError(f"Line index {index} out of range for insert")
        self._lines.insert(index, Line(text=text))
        return self._reevaluate_from(index, fresh={index})

    def delete_line(self, index: int) -> list[tuple[int, RenderedResult]]:
        """Remove a line; lines below it move up by one."""
        self._check_index(index)
        del self._lines[index]
        return self._reevaluate_from(index)

    def refresh(self) -> list[tuple[int, RenderedResult]]:
        """Re-evaluate every line, e.g. after the rates or the date changed."""
        return self._reevaluate_from(0)

    # -- Results --

    def current_results(self) -> list[RenderedResult]:
        return [line.rendered for line in self._lines]

    def value(self, index: int) -> Value | None:
        """Unformatted value of a line (None for errors and blank lines)."""
        self._check_index(index)
        return self._lines[index].value

    def environment_after(self, index: int) -> Environment:
        """Bindings visible to the line below ``index`` (a copy)."""
        self._check_index(index)
        return self._environments[index].copy()

    # -- Evaluation --

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._lines):
            raise IndexError(f"Line index {index} out of range (sheet has {len(self._lines)} lines)")

    def _reevaluate_from(
        self, start: int, fresh: set[int] | None = None
    ) -> list[tuple[int, RenderedResult]]:
        """Re-run lines ``start..n`` in order and collect changed results.

        Lines in ``fresh`` are reported even if their result is unchanged.
        """
        fresh = fresh or set()
        del self._environments[start:]
        for line in self._lines[start:]:
            line.dirty = True

        if start >= len(self._lines):
            return []
        logger.debug(f"Re-evaluating lines {start}..{len(self._lines) - 1}")

        context = EvalContext(today=self.clock.today(), rates=self.rates.rates_snapshot())
        env = self._environments[start - 1].copy() if start > 0 else Environment()

        changed: list[tuple[int, RenderedResult]] = []
        for index in range(start, len(self._lines)):
            line = self._lines[index]
            previous = line.rendered
            env = self._evaluate_line(line, env, context)
            self._environments.append(env.copy())
            line.dirty = False
            if index in fresh or line.rendered != previous:
                changed.append((index, line.rendered))
        return changed

    def _evaluate_line(self, line: Line, env: Environment, context: EvalContext) -> Environment:
        """Evaluate one line; returns the environment for the next line.

        A failing line contributes no bindings.
        """
        scratch = env.copy()
        try:
            value = evaluate(line.parse(), scratch, context)
        except CalcpadError as e:
            logger.debug(f"Line {line.text!r} failed: {e.kind}: {e.message}")
            line.value = None
            line.rendered = RenderedResult(text=f"Error: {e.message}", error=e.kind)
            return env

        line.value = value
        line.rendered = RenderedResult(
            text=format_value(value, self.precision, self.currency_symbols)
        )
        return scratch
