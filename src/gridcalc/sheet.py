"""In-memory sheet store and cell helpers.

The evaluation engine only ever reads through
:class:`~gridcalc.formulas.store.SheetStore`.  Writes
(storing a computed value, find/replace) produce new sheets; they are
performed by the caller, never by the engine.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from gridcalc.formulas.refs import (
    Coordinate,
    Range,
    coordinate_to_text,
    iter_range,
    parse_coordinate,
)
from gridcalc.formulas.store import (
    FORMULA_MARKER,
    Cell,
    CellType,
    SheetStore,
    get_cell,
    get_cells_in_range,
)
from gridcalc.formulas.values import parse_number

__all__ = [
    "Cell",
    "CellType",
    "FORMULA_MARKER",
    "Sheet",
    "SheetStore",
    "classify_cell_type",
    "find_and_replace",
    "get_cell",
    "get_cells_in_range",
    "make_cell",
]

_DATE_RE = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$")


# ---------------------------------------------------------------------------
# Cell construction
# ---------------------------------------------------------------------------


def classify_cell_type(raw: str) -> CellType:
    """Determine a cell's data type from its input text."""
    if raw.startswith(FORMULA_MARKER):
        return CellType.formula
    if raw.strip() and parse_number(raw) is not None:
        return CellType.number
    if _DATE_RE.match(raw):
        return CellType.date
    return CellType.text


def make_cell(raw: str, style: dict[str, Any] | None = None) -> Cell:
    """Build a cell from user input.

    Formula input is kept in ``formula``; ``raw_value`` starts empty until a
    computed value is written back.
    """
    data_type = classify_cell_type(raw)
    if data_type is CellType.formula:
        return Cell(raw_value="", formula=raw, data_type=data_type, style=style or {})
    return Cell(raw_value=raw, data_type=data_type, style=style or {})


# ---------------------------------------------------------------------------
# In-memory sheet
# ---------------------------------------------------------------------------


def _coord(addr: str) -> Coordinate:
    coord = parse_coordinate(addr)
    if coord is None:
        raise ValueError(f"Invalid cell address: {addr!r}")
    return coord


class Sheet:
    """Sparse in-memory sheet keyed by coordinate.

    Usage::

        sheet = Sheet.from_dict({"A1": "10", "A2": "=A1*2"})
        sheet.get("A2").formula  # "=A1*2"
    """

    def __init__(self, name: str = "Sheet1", cells: Mapping[Coordinate, Cell] | None = None) -> None:
        self.name = name
        self._cells: dict[Coordinate, Cell] = dict(cells or {})

    @classmethod
    def from_dict(cls, cells: Mapping[str, Any], name: str = "Sheet1") -> Sheet:
        """Build a sheet from ``{address: input}``.

        Values may be input strings (numbers are stringified) or ready-made
        :class:`Cell` objects.
        """
        sheet = cls(name=name)
        for addr, value in cells.items():
            if isinstance(value, Cell):
                sheet._cells[_coord(addr)] = value
            else:
                sheet.set(addr, "" if value is None else str(value))
        return sheet

    def get_cell(self, row: int, column: int) -> Cell | None:
        return self._cells.get(Coordinate(row, column)) if row >= 0 and column >= 0 else None

    def get(self, addr: str) -> Cell | None:
        return self._cells.get(_coord(addr))

    def set(self, addr: str, raw: str) -> Cell:
        """Store *raw* input at *addr*, replacing any existing cell."""
        cell = make_cell(raw)
        self._cells[_coord(addr)] = cell
        return cell

    def put(self, coord: Coordinate, cell: Cell) -> None:
        self._cells[coord] = cell

    def delete(self, addr: str) -> None:
        self._cells.pop(_coord(addr), None)

    def coordinates(self) -> list[Coordinate]:
        """Populated coordinates in row-major order."""
        return sorted(self._cells)

    def addresses(self) -> list[str]:
        return [coordinate_to_text(c) for c in self.coordinates()]

    def items(self) -> Iterable[tuple[Coordinate, Cell]]:
        for coord in self.coordinates():
            yield coord, self._cells[coord]

    def copy(self) -> Sheet:
        return Sheet(name=self.name, cells=self._cells)

    def __contains__(self, addr: str) -> bool:
        coord = parse_coordinate(addr)
        return coord is not None and coord in self._cells

    def __len__(self) -> int:
        return len(self._cells)


def find_and_replace(sheet: Sheet, rng: Range, find: str, replace: str) -> Sheet:
    """Replace every literal occurrence of *find* in the non-formula cells of *rng*.

    Returns a new sheet; *sheet* is not modified.  Formula cells are left
    alone.  Replaced values are re-classified, so ``"n/a" -> "0"`` yields a
    number cell.
    """
    if not find:
        raise ValueError("find text must not be empty")
    result = sheet.copy()
    for coord in iter_range(rng):
        cell = sheet.get_cell(coord.row, coord.column)
        if cell is None or cell.data_type is CellType.formula:
            continue
        if find not in cell.raw_value:
            continue
        new_raw = cell.raw_value.replace(find, replace)
        result.put(
            coord,
            Cell(
                raw_value=new_raw,
                data_type=classify_cell_type(new_raw),
                style=dict(cell.style),
            ),
        )
    return result
