"""Formula entry point.

Evaluates a raw cell input such as ``=SUM(A1:A3)`` or ``=A1*2`` against a
read-only sheet store and returns a tagged :data:`EvaluationResult`.  Any
failure in any nested step is turned into ``#ERROR!`` at this boundary; the
function never raises for user input.
"""

from __future__ import annotations

import logging

from gridcalc.formulas.arguments import evaluate_argument
from gridcalc.formulas.arithmetic import evaluate_arithmetic
from gridcalc.formulas.context import DEFAULT_MAX_DEPTH, EvalContext
from gridcalc.formulas.dispatch import match_function
from gridcalc.formulas.errors import ENGINE_ERRORS, FormulaDepthError, FormulaParseError
from gridcalc.formulas.store import FORMULA_MARKER, SheetStore
from gridcalc.formulas.tokenizer import extract_arguments, match_call
from gridcalc.formulas.values import MALFORMED, EvaluationResult, Text, literal_value

logger = logging.getLogger(__name__)

__all__ = [
    "EvalContext",
    "evaluate_argument",
    "evaluate_formula",
    "evaluate_nested",
]


def _evaluate_body(body: str, ctx: EvalContext) -> EvaluationResult:
    expr = body.strip()
    if not expr:
        raise FormulaParseError("Empty formula")

    entry = match_function(expr)
    if entry is not None and match_call(expr) is not None:
        _, fn = entry
        return fn(extract_arguments(expr), ctx)

    return evaluate_arithmetic(expr, ctx)


def evaluate_nested(text: str, ctx: EvalContext) -> EvaluationResult:
    """Evaluate a nested formula argument one level deeper than *ctx*.

    Errors inside the nested formula become an ``#ERROR!`` argument value so
    the enclosing call can carry on.  Exceeding the depth limit is the
    exception: it aborts the whole evaluation.

    Raises:
        FormulaDepthError: If the nesting exceeds ``ctx.max_depth``.
    """
    child = ctx.descend()
    body = text.strip()
    if body.startswith(FORMULA_MARKER):
        body = body[len(FORMULA_MARKER):]
    try:
        return _evaluate_body(body, child)
    except FormulaDepthError:
        raise
    except ENGINE_ERRORS as exc:
        logger.debug("Nested formula %r failed at depth %d: %s", text, child.depth, exc)
        return MALFORMED


def evaluate_formula(
    text: str,
    store: SheetStore,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> EvaluationResult:
    """Evaluate raw cell input against *store*.

    Text that does not start with ``=`` is returned as its literal value
    (Number if numeric, Text otherwise).  Padded input such as ``" 42 "``
    stays Text so that it comes back unchanged.  Formulas are dispatched to a
    built-in function when the whole body is one call, and to the
    arithmetic evaluator otherwise.

    Args:
        text: Raw cell input.
        store: Read-only sheet store that references resolve against.
        max_depth: Maximum nesting depth for formula arguments.

    Returns:
        Number, Text or ErrorValue.  Never raises for malformed input.
    """
    if not text.startswith(FORMULA_MARKER):
        if text != text.strip():
            return Text(text)
        return literal_value(text)

    ctx = EvalContext(store=store, max_depth=max_depth)
    try:
        return _evaluate_body(text[len(FORMULA_MARKER):], ctx)
    except Exception as exc:
        logger.debug("Formula %r evaluated to %s: %s", text, MALFORMED.token, exc)
        return MALFORMED
