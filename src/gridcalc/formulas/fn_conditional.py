"""Conditional formula functions: IF, COUNTIF, SUMIF."""

from __future__ import annotations

from typing import Any

from gridcalc.formulas.arguments import evaluate_argument, range_argument
from gridcalc.formulas.context import EvalContext
from gridcalc.formulas.errors import FormulaFunctionError, FormulaRefError
from gridcalc.formulas.store import FORMULA_MARKER, Cell, get_cells_in_range
from gridcalc.formulas.tokenizer import find_operator
from gridcalc.formulas.values import (
    ErrorValue,
    EvaluationResult,
    Number,
    Text,
    as_text,
    first_error,
    parse_number,
)

# Two-character operators first so ">=" is never split as ">" + "=".
COMPARISON_OPERATORS = (">=", "<=", "<>", "=", ">", "<")


# ---------------------------------------------------------------------------
# Condition evaluation
# ---------------------------------------------------------------------------


def _compare(left: EvaluationResult, op: str, right: EvaluationResult) -> bool:
    if op in ("=", "<>"):
        if isinstance(left, Number) and isinstance(right, Number):
            equal = left.value == right.value
        else:
            equal = as_text(left) == as_text(right)
        return equal if op == "=" else not equal
    if not isinstance(left, Number) or not isinstance(right, Number):
        return False
    if op == ">":
        return left.value > right.value
    if op == "<":
        return left.value < right.value
    if op == ">=":
        return left.value >= right.value
    return left.value <= right.value


def _truthy(value: EvaluationResult) -> bool:
    if isinstance(value, Number):
        return value.value != 0
    return value.value != "" if isinstance(value, Text) else True


def evaluate_condition(text: str, ctx: EvalContext) -> bool | ErrorValue:
    """Evaluate an IF condition such as ``A1>10`` or ``B2="yes"``.

    Returns the boolean outcome, or the ErrorValue of an operand that
    evaluated to an error.

    Raises:
        FormulaFunctionError: If the condition is empty or an operand is missing.
    """
    text = text.strip()
    if not text:
        raise FormulaFunctionError("IF", "IF condition is empty")

    found = None if text.startswith(FORMULA_MARKER) else find_operator(text, COMPARISON_OPERATORS)
    if found is None:
        value = evaluate_argument(text, ctx)
        if isinstance(value, ErrorValue):
            return value
        return _truthy(value)

    idx, op = found
    left_text = text[:idx].strip()
    right_text = text[idx + len(op):].strip()
    if not left_text or not right_text:
        raise FormulaFunctionError("IF", f"Malformed condition: {text!r}")

    left = evaluate_argument(left_text, ctx)
    right = evaluate_argument(right_text, ctx)
    err = first_error(left, right)
    if err is not None:
        return err
    return _compare(left, op, right)


def _fn_if(args: list[str], ctx: EvalContext) -> EvaluationResult:
    """IF(condition, true_value, false_value): only the chosen branch is evaluated."""
    if len(args) != 3:
        raise FormulaFunctionError("IF", "IF requires exactly 3 arguments")
    outcome = evaluate_condition(args[0], ctx)
    if isinstance(outcome, ErrorValue):
        return outcome
    return evaluate_argument(args[1] if outcome else args[2], ctx)


# ---------------------------------------------------------------------------
# Criteria functions
# ---------------------------------------------------------------------------


def _matches(cell: Cell, criterion: EvaluationResult) -> bool:
    """Numeric equality for a Number criterion, exact string equality otherwise."""
    if isinstance(criterion, Number):
        num = parse_number(cell.raw_value)
        return num is not None and num == criterion.value
    return cell.raw_value == as_text(criterion)


def _fn_countif(args: list[str], ctx: EvalContext) -> EvaluationResult:
    """COUNTIF(range, criterion)."""
    if len(args) != 2:
        raise FormulaFunctionError("COUNTIF", "COUNTIF requires exactly 2 arguments")
    rng = range_argument(args[0])
    criterion = evaluate_argument(args[1], ctx)
    cells = get_cells_in_range(ctx.store, rng)
    return Number(sum(1 for cell in cells if _matches(cell, criterion)))


def _fn_sumif(args: list[str], ctx: EvalContext) -> EvaluationResult:
    """SUMIF(range, criterion, [sum_range]).

    Criteria cells and sum cells are paired by iteration order over the
    populated cells of each range, not by coordinate.  A matching criteria
    cell with no counterpart in the sum range, or whose counterpart is not
    numeric, contributes 0.
    """
    if len(args) not in (2, 3):
        raise FormulaFunctionError("SUMIF", "SUMIF requires 2 or 3 arguments")
    criteria_range = range_argument(args[0])
    sum_range = range_argument(args[2]) if len(args) == 3 else criteria_range
    if sum_range.shape != criteria_range.shape:
        raise FormulaRefError(
            args[2],
            f"SUMIF: sum range {args[2]!r} does not match the shape of {args[0]!r}",
        )
    criterion = evaluate_argument(args[1], ctx)

    criteria_cells = get_cells_in_range(ctx.store, criteria_range)
    sum_cells = get_cells_in_range(ctx.store, sum_range)
    total = 0.0
    for i, cell in enumerate(criteria_cells):
        if i >= len(sum_cells) or not _matches(cell, criterion):
            continue
        num = parse_number(sum_cells[i].raw_value)
        if num is not None:
            total += num
    return Number(total)


CONDITIONAL_FUNCTIONS: dict[str, Any] = {
    "IF": _fn_if,
    "COUNTIF": _fn_countif,
    "SUMIF": _fn_sumif,
}
