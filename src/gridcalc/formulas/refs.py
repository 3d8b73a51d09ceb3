"""A1-style cell and range references.

Columns use bijective base-26 labels: A=0, Z=25, AA=26, ZZ=701, AAA=702.
Rows are 1-based in text and 0-based in a :class:`Coordinate`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

_ADDR_RE = re.compile(r"^([A-Z]+)(\d+)$")

# Patterns used to classify argument tokens and scan expressions.
CELL_REF_RE = re.compile(r"^[A-Za-z]+\d+$")
RANGE_REF_RE = re.compile(r"^[A-Za-z]+\d+\s*:\s*[A-Za-z]+\d+$")


@dataclass(frozen=True, order=True)
class Coordinate:
    """Zero-based (row, column) address of a cell."""

    row: int
    column: int

    def __post_init__(self) -> None:
        if self.row < 0 or self.column < 0:
            raise ValueError(f"Coordinate out of bounds: ({self.row}, {self.column})")

    def __str__(self) -> str:
        return coordinate_to_text(self)


@dataclass(frozen=True)
class Range:
    """Rectangular span between two coordinates.

    ``start`` may be any corner; iteration normalises each axis on its own.
    """

    start: Coordinate
    end: Coordinate

    @property
    def top_left(self) -> Coordinate:
        return Coordinate(min(self.start.row, self.end.row), min(self.start.column, self.end.column))

    @property
    def bottom_right(self) -> Coordinate:
        return Coordinate(max(self.start.row, self.end.row), max(self.start.column, self.end.column))

    @property
    def shape(self) -> tuple[int, int]:
        """(n_rows, n_cols) of the normalised rectangle."""
        tl, br = self.top_left, self.bottom_right
        return br.row - tl.row + 1, br.column - tl.column + 1

    def __iter__(self) -> Iterator[Coordinate]:
        return iter_range(self)

    def __str__(self) -> str:
        return range_to_text(self)


def label_to_column_index(label: str) -> int:
    """Convert column letter(s) to 0-based index.  A=0, B=1, ..., Z=25, AA=26."""
    letters = label.strip().upper()
    if not letters or not letters.isascii() or not letters.isalpha():
        raise ValueError(f"Invalid column label: {label!r}")
    idx = 0
    for ch in letters:
        idx = idx * 26 + (ord(ch) - ord("A") + 1)
    return idx - 1


def column_index_to_label(index: int) -> str:
    """Convert 0-based column index to letter(s).  0=A, 25=Z, 26=AA."""
    if index < 0:
        raise ValueError(f"Column index must be >= 0, got {index}")
    result = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        result = chr(65 + rem) + result
    return result


def parse_coordinate(text: str) -> Coordinate | None:
    """Parse ``'B2'`` -> ``Coordinate(row=1, column=1)``.

    Case-insensitive.  Returns None for anything that is not letters
    followed by digits, and for row ``0``.
    """
    m = _ADDR_RE.match(text.strip().upper())
    if not m:
        return None
    row = int(m.group(2)) - 1
    if row < 0:
        return None
    return Coordinate(row, label_to_column_index(m.group(1)))


def parse_range(text: str) -> Range | None:
    """Parse ``'A1:B3'`` into a Range; None unless there is exactly one colon."""
    parts = text.split(":")
    if len(parts) != 2:
        return None
    start = parse_coordinate(parts[0])
    end = parse_coordinate(parts[1])
    if start is None or end is None:
        return None
    return Range(start, end)


def coordinate_to_text(coord: Coordinate) -> str:
    """Build a cell address from a coordinate."""
    return f"{column_index_to_label(coord.column)}{coord.row + 1}"


def range_to_text(rng: Range) -> str:
    return f"{coordinate_to_text(rng.start)}:{coordinate_to_text(rng.end)}"


def iter_range(rng: Range) -> Iterator[Coordinate]:
    """Yield coordinates of *rng* in row-major order, min to max on each axis."""
    tl, br = rng.top_left, rng.bottom_right
    for r in range(tl.row, br.row + 1):
        for c in range(tl.column, br.column + 1):
            yield Coordinate(r, c)
