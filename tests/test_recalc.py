"""Tests for whole-sheet recalculation, cycle detection and chain depth."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from gridcalc.formulas import ErrorCode, ErrorValue, Number, Text
from gridcalc.logging.events import get_sink, set_log_dir
from gridcalc.recalc import CellCycleError, Recalculator, extract_refs
from gridcalc.sheet import Sheet

MALFORMED = ErrorValue(ErrorCode.MALFORMED_EXPRESSION)


def _rc(cells: dict[str, Any], **config: Any) -> Recalculator:
    cfg = {"max_depth": 32, "display_precision": 10}
    cfg.update(config)
    return Recalculator(Sheet.from_dict(cells), cfg)


def _chain(n: int) -> dict[str, str]:
    """A1 = 1, A2 = A1+1, ..., An = A(n-1)+1."""
    cells = {"A1": "1"}
    for i in range(2, n + 1):
        cells[f"A{i}"] = f"=A{i - 1}+1"
    return cells


@pytest.fixture
def log_dir(tmp_path: Path):
    set_log_dir(tmp_path / "logs")
    yield tmp_path / "logs"
    set_log_dir(None)


# ────────────────────────────────────────────────────────────────
# Evaluation
# ────────────────────────────────────────────────────────────────


class TestEvaluateCell:
    def test_formula_references_formula(self) -> None:
        rc = _rc({"A1": "2", "B1": "=A1*3", "C1": "=B1+1"})
        assert rc.evaluate_cell("C1") == Number(7)
        assert rc.get_display_value("B1") == "6"

    def test_literal_and_empty_cells(self) -> None:
        rc = _rc({"A1": "2", "A2": "word"})
        assert rc.evaluate_cell("A1") == Number(2)
        assert rc.evaluate_cell("A2") == Text("word")
        assert rc.evaluate_cell("Z9") == Text("")

    def test_range_over_formula_cells(self) -> None:
        rc = _rc({"A1": "1", "A2": "=A1*2", "A3": "=SUM(A1:A2)"})
        assert rc.evaluate_cell("A3") == Number(3)

    def test_full_precision_between_cells(self) -> None:
        rc = _rc({"A1": "=1/3", "B1": "=A1*3"})
        assert rc.evaluate_cell("B1") == Number(1)

    def test_invalid_address(self) -> None:
        with pytest.raises(ValueError):
            _rc({}).evaluate_cell("not-a-cell")

    def test_display_precision(self) -> None:
        rc = _rc({"A1": "=1/3"}, display_precision=3)
        assert rc.get_display_value("A1") == "0.333"

    def test_evaluate_all(self) -> None:
        rc = _rc({"A1": "2", "B1": "=A1*3", "A2": "=B1-1", "B2": "x"})
        results = rc.evaluate_all()
        assert list(results) == ["B1", "A2"]
        assert results == {"B1": Number(6), "A2": Number(5)}
        assert rc.get_errors() == {}

    def test_errors_collected(self) -> None:
        rc = _rc({"A1": "=1/0", "A2": "=SUM(A1)"})
        rc.evaluate_all()
        errors = rc.get_errors()
        assert set(errors) == {"A1", "A2"}
        assert "#DIV/0!" in errors["A1"]

    def test_input_sheet_untouched(self) -> None:
        sheet = Sheet.from_dict({"A1": "2", "B1": "=A1*3"})
        Recalculator(sheet, {"max_depth": 32, "display_precision": 10}).evaluate_all()
        assert sheet.get("B1").raw_value == ""

    def test_invalidate(self) -> None:
        sheet = Sheet.from_dict({"A1": "2", "B1": "=A1*3"})
        rc = Recalculator(sheet, {"max_depth": 32, "display_precision": 10})
        assert rc.evaluate_cell("B1") == Number(6)
        sheet.set("A1", "10")
        assert rc.evaluate_cell("B1") == Number(6)
        rc.invalidate()
        assert rc.evaluate_cell("B1") == Number(30)

    def test_default_config(self) -> None:
        rc = Recalculator(Sheet.from_dict({"A1": "=1+1"}))
        assert rc.evaluate_cell("A1") == Number(2)


# ────────────────────────────────────────────────────────────────
# Write-back
# ────────────────────────────────────────────────────────────────


class TestApplyResults:
    def test_values_written_to_copy(self) -> None:
        sheet = Sheet.from_dict({"A1": "2", "B1": "=A1/4"})
        updated = Recalculator(sheet, {"max_depth": 32, "display_precision": 10}).apply_results()
        assert updated.get("B1").raw_value == "0.5"
        assert updated.get("B1").formula == "=A1/4"
        assert updated.get("A1").raw_value == "2"
        assert sheet.get("B1").raw_value == ""

    def test_errors_written_as_tokens(self) -> None:
        updated = _rc({"A1": "=AVERAGE(B1:B2)"}).apply_results()
        assert updated.get("A1").raw_value == "#DIV/0!"


# ────────────────────────────────────────────────────────────────
# Cycles
# ────────────────────────────────────────────────────────────────


class TestCycles:
    def test_two_cell_cycle(self) -> None:
        rc = _rc({"A1": "=B1+1", "B1": "=A1+1"})
        results = rc.evaluate_all()
        assert results == {"A1": MALFORMED, "B1": MALFORMED}
        assert set(rc.get_errors()) == {"A1", "B1"}

    def test_self_reference(self) -> None:
        rc = _rc({"A1": "=A1"})
        assert rc.evaluate_cell("A1") == MALFORMED
        assert rc.get_display_value("A1") == "#ERROR!"

    def test_range_containing_itself(self) -> None:
        rc = _rc({"A1": "1", "A2": "=SUM(A1:A2)"})
        assert rc.evaluate_cell("A2") == MALFORMED

    def test_cells_outside_cycle_still_evaluate(self) -> None:
        rc = _rc({"A1": "=B1", "B1": "=A1", "C1": "5", "D1": "=C1*2"})
        rc.evaluate_all()
        assert rc.evaluate_cell("D1") == Number(10)
        assert "D1" not in rc.get_errors()

    def test_downstream_of_cycle_shows_error(self) -> None:
        rc = _rc({"A1": "=B1", "B1": "=A1", "C1": "=A1"})
        assert rc.get_display_value("C1") == "#ERROR!"

    def test_cycle_error_message(self) -> None:
        err = CellCycleError(["A1", "B1", "A1"])
        assert err.cycle_path == ["A1", "B1", "A1"]
        assert "A1 -> B1 -> A1" in str(err)


# ────────────────────────────────────────────────────────────────
# Chain depth
# ────────────────────────────────────────────────────────────────


class TestChainDepth:
    def test_chain_within_limit(self) -> None:
        rc = _rc(_chain(6), max_depth=5)
        assert rc.evaluate_cell("A6") == Number(6)

    def test_chain_beyond_limit(self) -> None:
        rc = _rc(_chain(10), max_depth=5)
        results = rc.evaluate_all()
        assert results["A6"] == Number(6)
        assert results["A7"] == MALFORMED
        assert results["A10"] == MALFORMED

    def test_result_independent_of_evaluation_order(self) -> None:
        rc = _rc(_chain(10), max_depth=5)
        assert rc.evaluate_cell("A10") == MALFORMED
        assert rc.evaluate_cell("A6") == Number(6)
        assert rc.evaluate_cell("A7") == MALFORMED

    def test_long_chain_default_limit(self) -> None:
        rc = _rc(_chain(200))
        assert rc.evaluate_cell("A200") == MALFORMED
        assert rc.evaluate_cell("A33") == Number(33)


# ────────────────────────────────────────────────────────────────
# References
# ────────────────────────────────────────────────────────────────


class TestExtractRefs:
    def test_cells_and_ranges(self) -> None:
        assert extract_refs("=SUM(A1:A3)+b2") == {"A1", "A2", "A3", "B2"}

    def test_strings_ignored(self) -> None:
        assert extract_refs('=CONCATENATE("A1", B1)') == {"B1"}

    def test_function_names_and_exponents_ignored(self) -> None:
        assert extract_refs("=1e5+LOG10(2)") == set()

    def test_dependencies(self) -> None:
        rc = _rc({"A1": "1", "B1": "=A1+C1:C2"})
        assert rc.dependencies("B1") == {"A1", "C1", "C2"}
        assert rc.dependencies("A1") == set()


# ────────────────────────────────────────────────────────────────
# Events
# ────────────────────────────────────────────────────────────────


class TestRecalcEvents:
    def test_cycle_and_completion_events(self, log_dir: Path) -> None:
        rc = _rc({"A1": "=B1", "B1": "=A1", "C1": "=1/0"})
        rc.evaluate_all()
        events = get_sink().read_events(limit=100)
        types = {e["event_type"] for e in events}
        assert {"recalc_started", "recalc_completed", "cycle_detected", "cell_error"} <= types
        cycle = next(e for e in events if e["event_type"] == "cycle_detected")
        assert cycle["context"]["cycle_path"] == ["A1", "B1", "A1"]
        assert get_sink().read_recalc_log(rc.recalc_id)

    def test_depth_event(self, log_dir: Path) -> None:
        _rc(_chain(4), max_depth=2).evaluate_all()
        events = get_sink().read_events(event_type="depth_exceeded")
        assert [e["context"]["address"] for e in events] == ["A4"]

    def test_no_sink_discards(self) -> None:
        set_log_dir(None)
        _rc({"A1": "=A1"}).evaluate_all()
        assert get_sink() is None
