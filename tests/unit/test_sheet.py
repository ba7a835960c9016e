"""Tests for incremental sheet re-evaluation.

Covers:
- Forward-only variable visibility
- Which lines an edit re-evaluates and reports
- Insert and delete shifting
- Per-line failure isolation
- Refresh after the clock or rates change
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from decimal import Decimal

import pytest

from calcpad.core.clock import FixedClock
from calcpad.core.config import CalcpadConfig
from calcpad.core.errors import ErrorKind
from calcpad.core.ir.values import PlainNumber
from calcpad.core.rates import RateSnapshot, StaticRateSource
from calcpad.core.sheet import RenderedResult, Sheet

MakeSheet = Callable[..., Sheet]


def _texts(sheet: Sheet) -> list[str]:
    return [result.text for result in sheet.current_results()]


def _changed(changes: list[tuple[int, RenderedResult]]) -> list[tuple[int, str]]:
    return [(index, result.text) for index, result in changes]


class TestEvaluation:
    """Whole-sheet evaluation."""

    def test_arithmetic(self, make_sheet: MakeSheet) -> None:
        assert _texts(make_sheet("2 + 3 * 4")) == ["14"]

    def test_reassignment_is_forward_only(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("a = 5", "b = a + 1", "a = 10")
        assert _texts(sheet) == ["5", "6", "10"]

    def test_reference_before_assignment_fails(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("b = a", "a = 1")
        results = sheet.current_results()
        assert results[0].error == ErrorKind.UNDEFINED_VARIABLE
        assert results[1].text == "1"

    def test_undefined_variable_does_not_affect_later_lines(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("x + 1", "y = 2", "y * 3")
        results = sheet.current_results()
        assert results[0].error == ErrorKind.UNDEFINED_VARIABLE
        assert results[0].text.startswith("Error: ")
        assert _texts(sheet)[1:] == ["2", "6"]

    def test_failed_assignment_keeps_prior_binding(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("a = 1", "a = 1 / 0", "a + 1")
        results = sheet.current_results()
        assert results[1].error == ErrorKind.DIVISION_BY_ZERO
        assert results[2].text == "2"

    def test_overflow_stays_on_its_line(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("x = 10^999999", "x * 10", "after = 1")
        results = sheet.current_results()
        assert not results[0].is_error
        assert results[1].error == ErrorKind.INVALID_OPERATION
        assert results[2].text == "1"

    def test_blank_and_comment_lines_have_no_result(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("", "# groceries", "2 + 2 # four")
        assert sheet.current_results() == [RenderedResult(), RenderedResult(), RenderedResult(text="4")]

    def test_mixed_sheet(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet(
            "rent = $1200",
            "utilities = $150",
            "total = rent + utilities",
            "total in EUR",
            "trip = 5 km + 800 m",
            "trip in miles",
            "deadline = next friday + 2 weeks",
        )
        assert _texts(sheet) == [
            "$1200",
            "$150",
            "$1350",
            "€1147.5",
            "5.8 km",
            "3.604 mi",
            "2024-01-19",
        ]

    def test_values_keep_full_precision(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("x = 1 / 3", "x * 3", precision=2)
        assert _texts(sheet) == ["0.33", "1"]
        assert sheet.value(0) == PlainNumber(magnitude=Decimal(1) / Decimal(3))

    def test_setrate_is_forward_scoped(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("10 USD in EUR", "setrate USD to EUR = 0.5", "10 USD in EUR")
        assert _texts(sheet) == ["€8.5", "€0.5", "€5"]


class TestEdits:
    """Incremental re-evaluation after edits."""

    def test_edit_reports_only_changed_lines(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("a = 5", "b = a + 1", "a = 10")
        changes = sheet.apply_edit(0, "a = 20")
        assert _changed(changes) == [(0, "20"), (1, "21")]
        assert _texts(sheet) == ["20", "21", "10"]

    def test_edit_below_does_not_touch_lines_above(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("a = 5", "b = a + 1", "a = 10")
        changes = sheet.apply_edit(2, "a = 99")
        assert _changed(changes) == [(2, "99")]
        assert _texts(sheet) == ["5", "6", "99"]

    def test_unchanged_edit_reports_nothing(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("a = 5", "a * 2")
        assert sheet.apply_edit(0, "a = 5") == []

    def test_edit_introducing_error(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("a = 5", "a * 2")
        changes = sheet.apply_edit(0, "a = ")
        assert [index for index, _ in changes] == [0, 1]
        assert changes[0][1].error == ErrorKind.INCOMPLETE_EXPRESSION
        assert changes[1][1].error == ErrorKind.UNDEFINED_VARIABLE

    def test_edit_out_of_range(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("1")
        with pytest.raises(IndexError):
            sheet.apply_edit(5, "2")

    def test_insert_line_shifts_later_lines(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("a = 5", "a * 2")
        changes = sheet.insert_line(1, "a = 7")
        assert _changed(changes) == [(1, "7"), (2, "14")]
        assert sheet.lines == ["a = 5", "a = 7", "a * 2"]

    def test_insert_blank_line_reports_it(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("a = 5", "a * 2")
        assert _changed(sheet.insert_line(0, "")) == [(0, "")]
        assert _texts(sheet) == ["", "5", "10"]

    def test_append_line(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("a = 5")
        assert _changed(sheet.insert_line(1, "a + 1")) == [(1, "6")]

    def test_delete_line(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("a = 5", "b = a + 1", "b * 2")
        changes = sheet.delete_line(0)
        assert [index for index, _ in changes] == [0, 1]
        assert all(result.error == ErrorKind.UNDEFINED_VARIABLE for _, result in changes)
        assert sheet.lines == ["b = a + 1", "b * 2"]

    def test_delete_last_line(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("a = 5", "a")
        assert sheet.delete_line(1) == []
        assert len(sheet) == 1

    def test_environment_after(self, make_sheet: MakeSheet) -> None:
        sheet = make_sheet("a = 5", "b = 2", "a = 10")
        assert sheet.environment_after(0).variables == {"a": PlainNumber(magnitude=Decimal(5))}
        assert sheet.environment_after(2).lookup("a") == PlainNumber(magnitude=Decimal(10))
        assert "b" not in sheet.environment_after(0)

    def test_edit_logs_dirty_range(
        self, make_sheet: MakeSheet, caplog: pytest.LogCaptureFixture
    ) -> None:
        sheet = make_sheet("1", "2", "3")
        with caplog.at_level(logging.DEBUG, logger="calcpad.core.sheet"):
            sheet.apply_edit(1, "5")
        assert "Re-evaluating lines 1..2" in caplog.text


class TestRefresh:
    """Re-evaluation after collaborator changes."""

    def test_clock_change(self, make_sheet: MakeSheet, clock: FixedClock) -> None:
        sheet = make_sheet("1 + 1", "tomorrow")
        clock.set(date(2024, 2, 28))
        assert _changed(sheet.refresh()) == [(1, "2024-02-29")]

    def test_rates_arrive_later(self, clock: FixedClock) -> None:
        source = StaticRateSource(None)
        sheet = Sheet(clock=clock, rates=source)
        sheet.load(["100 USD in EUR"])
        assert sheet.current_results()[0].error == ErrorKind.RATES_UNAVAILABLE

        source.update(RateSnapshot(base="USD", rates={"EUR": Decimal("0.9")}))
        assert _changed(sheet.refresh()) == [(0, "€90")]

    def test_from_text(self, clock: FixedClock) -> None:
        sheet = Sheet.from_text("a = 2\na ^ 3\n", clock=clock)
        assert _texts(sheet) == ["2", "8"]

    def test_from_config(self, clock: FixedClock) -> None:
        config = CalcpadConfig(precision=3, currency_symbols=False)
        sheet = Sheet.from_config(config, clock=clock)
        sheet.load(["$10 / 3", "10 / 3"])
        assert _texts(sheet) == ["3.33 USD", "3.333"]
