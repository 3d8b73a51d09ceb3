"""Aggregate formula functions over a single range: SUM, AVERAGE, MAX, MIN, COUNT."""

from __future__ import annotations

from typing import Any

from gridcalc.formulas.arguments import numeric_values, range_argument
from gridcalc.formulas.context import EvalContext
from gridcalc.formulas.errors import FormulaFunctionError
from gridcalc.formulas.values import DIV_ZERO, NOT_AVAILABLE, EvaluationResult, Number


def _range_numbers(name: str, args: list[str], ctx: EvalContext) -> list[float]:
    if len(args) != 1:
        raise FormulaFunctionError(name, f"{name} requires exactly 1 range argument")
    return numeric_values(ctx.store, range_argument(args[0]))


def _fn_sum(args: list[str], ctx: EvalContext) -> EvaluationResult:
    """SUM(range): non-numeric cells are skipped, not counted as zero."""
    return Number(sum(_range_numbers("SUM", args, ctx)))


def _fn_average(args: list[str], ctx: EvalContext) -> EvaluationResult:
    values = _range_numbers("AVERAGE", args, ctx)
    if not values:
        return DIV_ZERO
    return Number(sum(values) / len(values))


def _fn_max(args: list[str], ctx: EvalContext) -> EvaluationResult:
    values = _range_numbers("MAX", args, ctx)
    if not values:
        return NOT_AVAILABLE
    return Number(max(values))


def _fn_min(args: list[str], ctx: EvalContext) -> EvaluationResult:
    values = _range_numbers("MIN", args, ctx)
    if not values:
        return NOT_AVAILABLE
    return Number(min(values))


def _fn_count(args: list[str], ctx: EvalContext) -> EvaluationResult:
    """COUNT(range): number of numeric cells."""
    return Number(len(_range_numbers("COUNT", args, ctx)))


AGGREGATE_FUNCTIONS: dict[str, Any] = {
    "SUM": _fn_sum,
    "AVERAGE": _fn_average,
    "MAX": _fn_max,
    "MIN": _fn_min,
    "COUNT": _fn_count,
}
