"""On-demand memoized recalculation of every formula cell in a sheet.

A cell is computed only when requested or referenced, and the result is
cached for the duration of one pass.  The recalculator is itself a
:class:`~gridcalc.formulas.store.SheetStore`: while a formula is being
evaluated, references to other formula cells resolve to their computed
values rather than to their stored (possibly stale) ``raw_value``.

Circular references are detected and reported with the cycle path; every
cell on a cycle resolves to ``#ERROR!``.
"""

from __future__ import annotations

import re
import uuid
from typing import Any

from gridcalc.config import get_display_precision, get_max_depth, load_config
from gridcalc.formulas.errors import FormulaDepthError, FormulaError
from gridcalc.formulas.evaluator import evaluate_formula
from gridcalc.formulas.refs import Coordinate, Range, coordinate_to_text, iter_range, parse_coordinate
from gridcalc.formulas.store import FORMULA_MARKER, Cell, CellType
from gridcalc.formulas.values import (
    MALFORMED,
    ErrorValue,
    EvaluationResult,
    Number,
    Text,
    as_text,
    display_value,
    format_number,
    literal_value,
)
from gridcalc.logging.events import EventType, emit_info, emit_warning
from gridcalc.sheet import Sheet

# ---------------------------------------------------------------------------
# Reference extraction
# ---------------------------------------------------------------------------

_STRING_RE = re.compile(r'"[^"]*"')
_REF_RE = re.compile(
    r"(?<![A-Za-z0-9_.])([A-Za-z]+\d+)(?:\s*:\s*([A-Za-z]+\d+))?(?![A-Za-z0-9_(])"
)


def extract_refs(formula: str) -> set[str]:
    """Return the cell addresses *formula* reads, with ranges expanded.

    String literals are ignored, so ``="A1"`` has no references.
    """
    text = _STRING_RE.sub('""', formula)
    refs: set[str] = set()
    for m in _REF_RE.finditer(text):
        start = parse_coordinate(m.group(1))
        if start is None:
            continue
        if m.group(2) is None:
            refs.add(coordinate_to_text(start))
            continue
        end = parse_coordinate(m.group(2))
        if end is None:
            continue
        refs.update(coordinate_to_text(c) for c in iter_range(Range(start, end)))
    return refs


def _is_formula(cell: Cell | None) -> bool:
    return cell is not None and cell.formula.startswith(FORMULA_MARKER)


def _stored_text(result: EvaluationResult) -> str:
    """Full-precision text written into a formula cell's view for readers."""
    if isinstance(result, Number):
        if result.value == int(result.value):
            return format_number(result.value)
        return repr(result.value)
    return as_text(result)


# ---------------------------------------------------------------------------
# Recalculator
# ---------------------------------------------------------------------------


class CellCycleError(FormulaError):
    """Raised when a cell is re-entered while it is being evaluated.

    Attributes:
        cycle_path: Addresses showing the cycle, first and last equal.
    """

    def __init__(self, cycle_path: list[str]) -> None:
        self.cycle_path = cycle_path
        super().__init__(f"Circular cell reference: {' -> '.join(cycle_path)}")


class Recalculator:
    """On-demand memoized evaluator for the formula cells of a :class:`Sheet`.

    Usage::

        rc = Recalculator(Sheet.from_dict({"A1": "2", "B1": "=A1*3"}))
        rc.get_display_value("B1")  # "6"

        # Or evaluate every formula cell:
        results = rc.evaluate_all()

    The input sheet is never modified; :meth:`apply_results` returns a new
    sheet with the computed values written back.
    """

    def __init__(self, sheet: Sheet, config: dict[str, Any] | None = None) -> None:
        cfg = config if config is not None else load_config()
        self._sheet = sheet
        self._max_depth = get_max_depth(cfg)
        self._precision = get_display_precision(cfg)
        self.recalc_id = uuid.uuid4().hex[:12]
        self._cache: dict[Coordinate, EvaluationResult] = {}
        self._in_progress: set[Coordinate] = set()
        self._eval_stack: list[Coordinate] = []
        self._cycle_members: set[Coordinate] = set()
        self._chain_depth: dict[Coordinate, int] = {}
        self._depth_stack: list[int] = []
        self._overflow = False
        self._errors: dict[str, str] = {}

    @property
    def sheet(self) -> Sheet:
        return self._sheet

    # ------------------------------------------------------------------
    # SheetStore protocol implementation
    # ------------------------------------------------------------------

    def get_cell(self, row: int, column: int) -> Cell | None:
        """Cell view in which formula cells carry their computed value."""
        cell = self._sheet.get_cell(row, column)
        if not _is_formula(cell):
            return cell
        coord = Coordinate(row, column)
        result = self._evaluate(coord)
        if self._depth_stack:
            self._depth_stack[-1] = max(self._depth_stack[-1], self._chain_depth.get(coord, 0))
        return Cell(
            raw_value=_stored_text(result),
            formula=cell.formula,
            data_type=CellType.formula,
            style=dict(cell.style),
        )

    # ------------------------------------------------------------------
    # Core evaluation
    # ------------------------------------------------------------------

    def _context(self, coord: Coordinate) -> dict[str, Any]:
        return {"sheet": self._sheet.name, "address": coordinate_to_text(coord)}

    def _evaluate(self, coord: Coordinate) -> EvaluationResult:
        if coord in self._cache:
            return self._cache[coord]

        if coord in self._in_progress:
            cycle_start = self._eval_stack.index(coord)
            path = self._eval_stack[cycle_start:] + [coord]
            self._cycle_members.update(path)
            err = CellCycleError([coordinate_to_text(c) for c in path])
            emit_warning(
                EventType.cycle_detected,
                str(err),
                {**self._context(coord), "cycle_path": err.cycle_path},
                error_code=MALFORMED.token,
                recalc_id=self.recalc_id,
            )
            raise err

        cell = self._sheet.get_cell(coord.row, coord.column)
        if cell is None:
            return Text("")
        if not _is_formula(cell):
            result = literal_value(cell.raw_value)
            self._cache[coord] = result
            return result

        addr = coordinate_to_text(coord)
        if len(self._eval_stack) >= self._max_depth:
            self._overflow = True
            raise FormulaDepthError(self._max_depth)

        self._in_progress.add(coord)
        self._eval_stack.append(coord)
        self._depth_stack.append(0)
        try:
            result = evaluate_formula(cell.formula, self, max_depth=self._max_depth)
        finally:
            child_depth = self._depth_stack.pop()
            self._in_progress.discard(coord)
            if self._eval_stack and self._eval_stack[-1] == coord:
                self._eval_stack.pop()

        depth = child_depth + 1
        if self._overflow:
            # Only the bottom of the stack is known to exceed the limit
            if self._eval_stack:
                return MALFORMED
            self._overflow = False
            depth = self._max_depth + 1

        if coord in self._cycle_members:
            result = MALFORMED
            self._record_error(coord, f"{addr} is part of a circular reference", None)
        elif depth > self._max_depth:
            result = MALFORMED
            self._record_error(
                coord,
                f"{addr} exceeds the maximum reference chain depth ({self._max_depth})",
                EventType.depth_exceeded,
            )
        elif isinstance(result, ErrorValue):
            self._record_error(coord, f"{cell.formula} evaluated to {result.token}", EventType.cell_error)
        self._cache[coord] = result
        self._chain_depth[coord] = depth
        return result

    def _record_error(self, coord: Coordinate, message: str, event_type: EventType | None) -> None:
        self._errors.setdefault(coordinate_to_text(coord), message)
        if event_type is not None:
            emit_warning(
                event_type,
                message,
                self._context(coord),
                recalc_id=self.recalc_id,
            )

    def evaluate_cell(self, addr: str) -> EvaluationResult:
        """Evaluate a single cell, with memoization and cycle detection.

        Args:
            addr: Cell address (e.g. "A1").

        Returns:
            The computed result; literal cells return their literal value and
            empty cells ``Text("")``.

        Raises:
            ValueError: If *addr* is not a valid cell address.
            CellCycleError: If the cell is re-entered while in progress.
        """
        coord = parse_coordinate(addr)
        if coord is None:
            raise ValueError(f"Invalid cell address: {addr!r}")
        return self._evaluate(coord)

    def evaluate_all(self) -> dict[str, EvaluationResult]:
        """Evaluate every formula cell, in row-major order.

        Returns:
            Dict of address -> result for formula cells.
        """
        formula_coords = [c for c, cell in self._sheet.items() if _is_formula(cell)]
        emit_info(
            EventType.recalc_started,
            f"Recalculating {len(formula_coords)} formula cells",
            {"sheet": self._sheet.name, "formula_cells": len(formula_coords)},
            recalc_id=self.recalc_id,
        )
        results: dict[str, EvaluationResult] = {}
        for coord in formula_coords:
            results[coordinate_to_text(coord)] = self._evaluate(coord)
        emit_info(
            EventType.recalc_completed,
            f"Recalculated {len(results)} formula cells ({len(self._errors)} errors)",
            {"sheet": self._sheet.name, "formula_cells": len(results), "errors": len(self._errors)},
            recalc_id=self.recalc_id,
        )
        return results

    def get_display_value(self, addr: str) -> str:
        """Get a display-friendly string for a cell value.

        Evaluates the cell if not yet cached, and formats the result.
        """
        try:
            result = self.evaluate_cell(addr)
        except CellCycleError:
            return MALFORMED.token
        return display_value(result, self._precision)

    def get_errors(self) -> dict[str, str]:
        """Return all evaluation errors collected during this pass.

        Returns:
            Dict of address -> error message.
        """
        return dict(self._errors)

    def invalidate(self) -> None:
        """Clear all cached values and errors.

        Call this when cells have been edited and need re-evaluation.
        """
        self._cache.clear()
        self._in_progress.clear()
        self._eval_stack.clear()
        self._cycle_members.clear()
        self._chain_depth.clear()
        self._depth_stack.clear()
        self._overflow = False
        self._errors.clear()

    def apply_results(self) -> Sheet:
        """Return a copy of the sheet with computed values in each formula cell."""
        self.evaluate_all()
        updated = self._sheet.copy()
        for coord, cell in self._sheet.items():
            if not _is_formula(cell):
                continue
            updated.put(
                coord,
                Cell(
                    raw_value=display_value(self._cache[coord], self._precision),
                    formula=cell.formula,
                    data_type=CellType.formula,
                    style=dict(cell.style),
                ),
            )
        return updated

    def dependencies(self, addr: str) -> set[str]:
        """Addresses the formula at *addr* reads; empty for literal cells."""
        cell = self._sheet.get(addr)
        if not _is_formula(cell):
            return set()
        return extract_refs(cell.formula)
