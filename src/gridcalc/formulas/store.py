"""Cell model and the read-only sheet store protocol the engine evaluates against."""

from __future__ import annotations

from enum import Enum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from gridcalc.formulas.refs import Coordinate, Range, iter_range

FORMULA_MARKER = "="


class CellType(str, Enum):
    text = "text"
    number = "number"
    date = "date"
    formula = "formula"


class Cell(BaseModel):
    """A single populated cell.

    ``raw_value`` holds the literal input, or the last computed value for a
    formula cell.  ``formula`` is the formula source (empty if none).
    """

    model_config = ConfigDict(frozen=True)

    raw_value: str = ""
    formula: str = ""
    data_type: CellType = CellType.text
    style: dict[str, Any] = Field(default_factory=dict)


@runtime_checkable
class SheetStore(Protocol):
    """Read interface the engine uses to look up cells."""

    def get_cell(self, row: int, column: int) -> Cell | None:
        """Return the cell at (row, column), or None if never populated."""
        ...


def get_cell(store: SheetStore, coordinate: Coordinate) -> Cell | None:
    return store.get_cell(coordinate.row, coordinate.column)


def get_cells_in_range(store: SheetStore, rng: Range) -> list[Cell]:
    """Cells of *rng* in row-major order, skipping unpopulated coordinates."""
    cells: list[Cell] = []
    for coord in iter_range(rng):
        cell = store.get_cell(coord.row, coord.column)
        if cell is not None:
            cells.append(cell)
    return cells
