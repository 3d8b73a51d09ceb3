"""Classification and evaluation of a single function argument."""

from __future__ import annotations

from gridcalc.formulas.context import EvalContext
from gridcalc.formulas.errors import FormulaRefError
from gridcalc.formulas.refs import CELL_REF_RE, RANGE_REF_RE, Range, parse_coordinate, parse_range
from gridcalc.formulas.store import FORMULA_MARKER, Cell, SheetStore, get_cell, get_cells_in_range
from gridcalc.formulas.tokenizer import match_call
from gridcalc.formulas.values import EvaluationResult, Number, Text, literal_value, parse_number


def cell_result(cell: Cell | None) -> EvaluationResult:
    """Value of a looked-up cell: Number if numeric, Text otherwise, ``""`` if absent."""
    if cell is None:
        return Text("")
    return literal_value(cell.raw_value)


def evaluate_argument(token: str, ctx: EvalContext) -> EvaluationResult:
    """Evaluate one argument token.

    Precedence (first match wins):

    1. Nested formula: starts with ``=``, or is exactly one ``NAME(...)`` call
       of a built-in function (unknown names fall through to rule 6)
    2. Single cell reference, e.g. ``B2``
    3. Range reference, e.g. ``A1:A10`` -> returned verbatim as Text
    4. Numeric literal
    5. Double-quoted string literal -> quotes stripped
    6. Anything else -> Text unchanged
    """
    token = token.strip()

    # Local imports to avoid circular dependency
    from gridcalc.formulas.dispatch import get_function
    from gridcalc.formulas.evaluator import evaluate_nested

    call = match_call(token)
    if token.startswith(FORMULA_MARKER) or (call is not None and get_function(call[0]) is not None):
        return evaluate_nested(token, ctx)

    if CELL_REF_RE.match(token):
        coord = parse_coordinate(token)
        if coord is None:
            return Text("")
        return cell_result(get_cell(ctx.store, coord))

    if RANGE_REF_RE.match(token):
        return Text(token)

    num = parse_number(token)
    if num is not None:
        return Number(num)

    if len(token) >= 2 and token[0] == '"' and token[-1] == '"':
        return Text(token[1:-1])

    return Text(token)


def range_argument(token: str) -> Range:
    """Parse a range-valued argument.

    Raises:
        FormulaRefError: If *token* is not a valid ``A1:B2`` range.
    """
    rng = parse_range(token.strip())
    if rng is None:
        raise FormulaRefError(token, f"Invalid range: {token!r}")
    return rng


def numeric_values(store: SheetStore, rng: Range) -> list[float]:
    """Numbers in *rng*, row-major; cells that are not numeric are left out."""
    values: list[float] = []
    for cell in get_cells_in_range(store, rng):
        num = parse_number(cell.raw_value)
        if num is not None:
            values.append(num)
    return values
