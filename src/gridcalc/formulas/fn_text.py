"""Text formula functions: CONCATENATE, TRIM, UPPER, LOWER."""

from __future__ import annotations

from typing import Any, Callable

from gridcalc.formulas.arguments import evaluate_argument
from gridcalc.formulas.context import EvalContext
from gridcalc.formulas.errors import FormulaFunctionError
from gridcalc.formulas.values import EvaluationResult, Text, as_text


def _fn_concatenate(args: list[str], ctx: EvalContext) -> EvaluationResult:
    """CONCATENATE(val1, val2, ...): joins the textual form of each argument."""
    if not args:
        raise FormulaFunctionError("CONCATENATE", "CONCATENATE requires at least 1 argument")
    return Text("".join(as_text(evaluate_argument(a, ctx)) for a in args))


def _text_transform(name: str, transform: Callable[[str], str]) -> Callable[[list[str], EvalContext], EvaluationResult]:
    def fn(args: list[str], ctx: EvalContext) -> EvaluationResult:
        if len(args) != 1:
            raise FormulaFunctionError(name, f"{name} requires exactly 1 argument")
        return Text(transform(as_text(evaluate_argument(args[0], ctx))))

    fn.__name__ = f"_fn_{name.lower()}"
    fn.__doc__ = f"{name}(value)"
    return fn


_fn_trim = _text_transform("TRIM", str.strip)
_fn_upper = _text_transform("UPPER", str.upper)
_fn_lower = _text_transform("LOWER", str.lower)


TEXT_FUNCTIONS: dict[str, Any] = {
    "CONCATENATE": _fn_concatenate,
    "TRIM": _fn_trim,
    "UPPER": _fn_upper,
    "LOWER": _fn_lower,
}
