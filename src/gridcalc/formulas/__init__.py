"""Spreadsheet formula evaluation.

Public API::

    from gridcalc.formulas import evaluate_formula, display_value
"""

from gridcalc.formulas.context import DEFAULT_MAX_DEPTH, EvalContext
from gridcalc.formulas.dispatch import DISPATCH_TABLE, dispatch_order, match_function
from gridcalc.formulas.errors import (
    ENGINE_ERRORS,
    ErrorCode,
    FormulaDepthError,
    FormulaError,
    FormulaFunctionError,
    FormulaParseError,
    FormulaRefError,
    FormulaTypeError,
)
from gridcalc.formulas.evaluator import evaluate_argument, evaluate_formula
from gridcalc.formulas.refs import (
    Coordinate,
    Range,
    column_index_to_label,
    coordinate_to_text,
    label_to_column_index,
    parse_coordinate,
    parse_range,
    range_to_text,
)
from gridcalc.formulas.values import (
    ErrorValue,
    EvaluationResult,
    Number,
    Text,
    display_value,
)

__all__ = [
    "Coordinate",
    "DEFAULT_MAX_DEPTH",
    "DISPATCH_TABLE",
    "ENGINE_ERRORS",
    "ErrorCode",
    "ErrorValue",
    "EvalContext",
    "EvaluationResult",
    "FormulaDepthError",
    "FormulaError",
    "FormulaFunctionError",
    "FormulaParseError",
    "FormulaRefError",
    "FormulaTypeError",
    "Number",
    "Range",
    "Text",
    "column_index_to_label",
    "coordinate_to_text",
    "dispatch_order",
    "display_value",
    "evaluate_argument",
    "evaluate_formula",
    "label_to_column_index",
    "match_function",
    "parse_coordinate",
    "parse_range",
    "range_to_text",
]
