"""Math formula functions: ROUND."""

from __future__ import annotations

import math
from typing import Any

from gridcalc.formulas.arguments import evaluate_argument
from gridcalc.formulas.context import EvalContext
from gridcalc.formulas.errors import FormulaFunctionError
from gridcalc.formulas.values import EvaluationResult, Number


def round_half_away(value: float, digits: int) -> float:
    """Round to *digits* decimals, halves away from zero (2.5 -> 3, -2.5 -> -3).

    Negative *digits* round to tens, hundreds and so on.
    """
    if digits >= 0:
        factor = 10.0 ** digits
        scaled = math.floor(abs(value) * factor + 0.5)
        result = scaled / factor
    else:
        factor = 10.0 ** -digits
        scaled = math.floor(abs(value) / factor + 0.5)
        result = scaled * factor
    return math.copysign(result, value) if scaled else 0.0


def _fn_round(args: list[str], ctx: EvalContext) -> EvaluationResult:
    """ROUND(value, decimals): both arguments must evaluate to numbers."""
    if len(args) != 2:
        raise FormulaFunctionError("ROUND", "ROUND requires exactly 2 arguments")
    value = evaluate_argument(args[0], ctx)
    digits = evaluate_argument(args[1], ctx)
    if not isinstance(value, Number) or not isinstance(digits, Number):
        raise FormulaFunctionError("ROUND", "ROUND requires numeric arguments")
    return Number(round_half_away(value.value, int(digits.value)))


MATH_FUNCTIONS: dict[str, Any] = {
    "ROUND": _fn_round,
}
