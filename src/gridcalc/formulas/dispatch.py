"""Ordered function dispatch table.

Expressions are matched by case-insensitive ``NAME(`` prefix.  The table is
ordered longest name first (ties alphabetical) so that prefix matching stays
deterministic if overlapping names are ever added.
"""

from __future__ import annotations

from typing import Callable

from gridcalc.formulas.context import EvalContext
from gridcalc.formulas.errors import FormulaFunctionError
from gridcalc.formulas.fn_aggregate import AGGREGATE_FUNCTIONS
from gridcalc.formulas.fn_conditional import CONDITIONAL_FUNCTIONS
from gridcalc.formulas.fn_math import MATH_FUNCTIONS
from gridcalc.formulas.fn_text import TEXT_FUNCTIONS
from gridcalc.formulas.tokenizer import extract_arguments
from gridcalc.formulas.values import EvaluationResult

FunctionImpl = Callable[[list[str], EvalContext], EvaluationResult]

_ALL_FUNCTIONS: dict[str, FunctionImpl] = {
    **AGGREGATE_FUNCTIONS,
    **MATH_FUNCTIONS,
    **CONDITIONAL_FUNCTIONS,
    **TEXT_FUNCTIONS,
}

DISPATCH_TABLE: tuple[tuple[str, FunctionImpl], ...] = tuple(
    sorted(_ALL_FUNCTIONS.items(), key=lambda item: (-len(item[0]), item[0]))
)


def dispatch_order() -> list[str]:
    """Function names in the order they are tried."""
    return [name for name, _ in DISPATCH_TABLE]


def get_function(name: str) -> FunctionImpl | None:
    return _ALL_FUNCTIONS.get(name.upper())


def match_function(expression: str) -> tuple[str, FunctionImpl] | None:
    """First table entry whose ``NAME(`` is a prefix of *expression*."""
    upper = expression.lstrip().upper()
    for name, fn in DISPATCH_TABLE:
        if upper.startswith(name + "("):
            return name, fn
    return None


def call_function(call_text: str, ctx: EvalContext) -> EvaluationResult:
    """Dispatch a call like ``SUM(A1:A3)`` to its evaluator.

    Raises:
        FormulaFunctionError: If no function matches.
    """
    entry = match_function(call_text)
    if entry is None:
        raise FormulaFunctionError(call_text.split("(", 1)[0].strip().upper(), f"Unknown function in {call_text!r}")
    _, fn = entry
    return fn(extract_arguments(call_text), ctx)
