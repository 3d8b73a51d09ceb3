"""Tests for A1 references, column labels and range iteration."""

from __future__ import annotations

import pytest

from gridcalc.formulas.refs import (
    Coordinate,
    Range,
    column_index_to_label,
    coordinate_to_text,
    iter_range,
    label_to_column_index,
    parse_coordinate,
    parse_range,
    range_to_text,
)


# ────────────────────────────────────────────────────────────────
# Column labels
# ────────────────────────────────────────────────────────────────


class TestColumnLabels:
    @pytest.mark.parametrize(
        "index,label",
        [(0, "A"), (25, "Z"), (26, "AA"), (27, "AB"), (51, "AZ"), (52, "BA"), (701, "ZZ"), (702, "AAA")],
    )
    def test_known_labels(self, index: int, label: str) -> None:
        assert column_index_to_label(index) == label
        assert label_to_column_index(label) == index

    def test_round_trip(self) -> None:
        for i in range(0, 20000, 7):
            assert label_to_column_index(column_index_to_label(i)) == i

    def test_lowercase_label(self) -> None:
        assert label_to_column_index("ab") == 27

    def test_negative_index_rejected(self) -> None:
        with pytest.raises(ValueError):
            column_index_to_label(-1)

    @pytest.mark.parametrize("label", ["", "A1", "Ä", "-"])
    def test_invalid_label_rejected(self, label: str) -> None:
        with pytest.raises(ValueError):
            label_to_column_index(label)


# ────────────────────────────────────────────────────────────────
# Coordinates
# ────────────────────────────────────────────────────────────────


class TestCoordinates:
    def test_parse_b2(self) -> None:
        assert parse_coordinate("B2") == Coordinate(1, 1)

    def test_parse_case_insensitive(self) -> None:
        assert parse_coordinate("aa10") == Coordinate(9, 26)

    def test_parse_strips_whitespace(self) -> None:
        assert parse_coordinate("  C3 ") == Coordinate(2, 2)

    @pytest.mark.parametrize("text", ["", "A", "1", "1A", "A1B", "A-1", "A 1", "A0"])
    def test_parse_invalid(self, text: str) -> None:
        assert parse_coordinate(text) is None

    def test_to_text(self) -> None:
        assert coordinate_to_text(Coordinate(1, 1)) == "B2"
        assert str(Coordinate(0, 0)) == "A1"

    def test_round_trip(self) -> None:
        for row in (0, 1, 9, 99, 1048575):
            for col in (0, 1, 25, 26, 701, 702, 16383):
                coord = Coordinate(row, col)
                assert parse_coordinate(coordinate_to_text(coord)) == coord

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError):
            Coordinate(-1, 0)
        with pytest.raises(ValueError):
            Coordinate(0, -1)


# ────────────────────────────────────────────────────────────────
# Ranges
# ────────────────────────────────────────────────────────────────


class TestRanges:
    def test_parse_range(self) -> None:
        rng = parse_range("A1:B3")
        assert rng == Range(Coordinate(0, 0), Coordinate(2, 1))
        assert range_to_text(rng) == "A1:B3"

    @pytest.mark.parametrize("text", ["A1", "A1:B2:C3", "A1:", ":B2", "A1:2B", "A1-B2"])
    def test_parse_invalid_range(self, text: str) -> None:
        assert parse_range(text) is None

    def test_row_major_iteration(self) -> None:
        rng = parse_range("A1:B2")
        assert [coordinate_to_text(c) for c in iter_range(rng)] == ["A1", "B1", "A2", "B2"]

    def test_reversed_corners_normalised(self) -> None:
        rng = parse_range("B2:A1")
        assert [coordinate_to_text(c) for c in rng] == ["A1", "B1", "A2", "B2"]

    def test_mixed_corners_normalised_per_axis(self) -> None:
        rng = parse_range("A3:B1")
        assert [coordinate_to_text(c) for c in rng] == ["A1", "B1", "A2", "B2", "A3", "B3"]

    def test_shape(self) -> None:
        assert parse_range("A1:C2").shape == (2, 3)
        assert parse_range("C2:A1").shape == (2, 3)
        assert parse_range("B5:B5").shape == (1, 1)
