"""Sandboxed arithmetic evaluation over a restricted Lark grammar.

Handles every formula body that is not a single function call, e.g.
``A1*2 + B1``, ``(A1 + A2) / 2`` or ``"total: " + C1``.  Only numeric and
string literals, cell references, ``+ - * /``, unary signs and parentheses
are accepted.  Function calls embedded in the expression (``SUM(A1:A3)*2``)
are evaluated through the dispatch table first and enter the grammar as
typed slot values (``@0``, ``@1``, ...).
"""

from __future__ import annotations

import math
import re

from lark import Lark, Token, Tree

from gridcalc.formulas.context import EvalContext
from gridcalc.formulas.dispatch import get_function
from gridcalc.formulas.errors import (
    FormulaError,
    FormulaFunctionError,
    FormulaParseError,
    FormulaRefError,
    FormulaTypeError,
)
from gridcalc.formulas.refs import parse_coordinate
from gridcalc.formulas.store import get_cell
from gridcalc.formulas.tokenizer import find_matching_paren
from gridcalc.formulas.values import (
    DIV_ZERO,
    EvaluationResult,
    Number,
    Text,
    first_error,
    literal_value,
    parse_number,
)

# LALR(1) grammar.  Operator precedence (lowest to highest):
#   1. Addition/subtraction: + -
#   2. Multiplication/division: * /
#   3. Unary plus/minus: + -
#   4. Atoms: number, string, cell reference, call slot, parenthesized expr
GRAMMAR = r"""
?start: sum

?sum: product
    | sum "+" product  -> add
    | sum "-" product  -> sub

?product: unary
    | product "*" unary  -> mul
    | product "/" unary  -> div

?unary: atom
    | "-" unary  -> neg
    | "+" unary  -> pos

?atom: NUMBER        -> number
    | STRING         -> string
    | CELL_REF       -> cell_ref
    | SLOT           -> slot
    | "(" sum ")"

NUMBER: /(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?/
STRING: /"[^"]*"/
CELL_REF: /[A-Za-z]+[0-9]+/
SLOT: /@[0-9]+/

%import common.WS
%ignore WS
"""

_parser = Lark(GRAMMAR, parser="lalr", start="start")

_CALL_START_RE = re.compile(r"([A-Za-z][A-Za-z0-9_.]*)\(")


def parse_arithmetic(text: str) -> Tree | Token:
    """Parse an arithmetic expression (no leading ``=``) into a Lark tree.

    Raises:
        FormulaParseError: If the expression is not valid under the grammar.
    """
    try:
        return _parser.parse(text)
    except Exception as exc:
        pos = getattr(exc, "column", None)
        raise FormulaParseError(str(exc), position=pos) from exc


def _substitute_calls(expr: str, ctx: EvalContext) -> tuple[str, list[EvaluationResult]]:
    """Evaluate top-level function calls in *expr* and replace them with slots."""
    # Local import to avoid circular dependency
    from gridcalc.formulas.evaluator import evaluate_nested

    slots: list[EvaluationResult] = []
    out: list[str] = []
    in_string = False
    i = 0
    while i < len(expr):
        ch = expr[i]
        if ch == '"':
            in_string = not in_string
        elif not in_string:
            if ch == "@":
                raise FormulaParseError("Unexpected character '@'", position=i)
            prev = expr[i - 1] if i > 0 else ""
            if not (prev and (prev.isalnum() or prev in "_.")):
                m = _CALL_START_RE.match(expr, i)
                if m:
                    name = m.group(1).upper()
                    if get_function(name) is None:
                        raise FormulaFunctionError(name, f"Unknown function: {name!r}")
                    close = find_matching_paren(expr, m.end() - 1)
                    if close < 0:
                        raise FormulaParseError("Unbalanced parentheses", position=m.end() - 1)
                    slots.append(evaluate_nested(expr[i : close + 1], ctx))
                    out.append(f" @{len(slots) - 1} ")
                    i = close + 1
                    continue
        out.append(ch)
        i += 1
    return "".join(out), slots


def _cell_operand(token: Token, ctx: EvalContext) -> EvaluationResult:
    coord = parse_coordinate(str(token))
    if coord is None:
        raise FormulaRefError(str(token))
    cell = get_cell(ctx.store, coord)
    # Blank cells count as zero in arithmetic
    if cell is None or not cell.raw_value.strip():
        return Number(0)
    return literal_value(cell.raw_value)


def _binary(op: str, left: EvaluationResult, right: EvaluationResult) -> EvaluationResult:
    err = first_error(left, right)
    if err is not None:
        return err
    if isinstance(left, Number) and isinstance(right, Number):
        if op == "add":
            result = left.value + right.value
        elif op == "sub":
            result = left.value - right.value
        elif op == "mul":
            result = left.value * right.value
        else:
            if right.value == 0:
                return DIV_ZERO
            result = left.value / right.value
        if not math.isfinite(result):
            raise FormulaError("Numeric overflow")
        return Number(result)
    if op == "add" and isinstance(left, Text) and isinstance(right, Text):
        return Text(left.value + right.value)
    raise FormulaTypeError(f"Cannot apply {op!r} to {left!r} and {right!r}")


def _eval(node: Tree | Token, ctx: EvalContext, slots: list[EvaluationResult]) -> EvaluationResult:
    """Recursively evaluate a tree node."""
    if isinstance(node, Token):
        raise FormulaParseError(f"Unexpected token {str(node)!r}")

    rule = node.data

    if rule == "start":
        return _eval(node.children[0], ctx, slots)

    if rule in ("add", "sub", "mul", "div"):
        left = _eval(node.children[0], ctx, slots)
        right = _eval(node.children[1], ctx, slots)
        return _binary(rule, left, right)

    if rule in ("neg", "pos"):
        value = _eval(node.children[0], ctx, slots)
        if isinstance(value, Number):
            return Number(-value.value) if rule == "neg" else value
        if isinstance(value, Text):
            raise FormulaTypeError(f"Cannot apply unary sign to text {value.value!r}")
        return value

    if rule == "number":
        num = parse_number(str(node.children[0]))
        if num is None:
            raise FormulaError(f"Numeric literal out of range: {node.children[0]}")
        return Number(num)
    if rule == "string":
        return Text(str(node.children[0])[1:-1])
    if rule == "cell_ref":
        return _cell_operand(node.children[0], ctx)
    if rule == "slot":
        idx = int(str(node.children[0])[1:])
        if idx >= len(slots):
            raise FormulaParseError(f"Unknown slot {idx}")
        return slots[idx]

    raise FormulaError(f"Unknown node type: {rule}")


def evaluate_arithmetic(expression: str, ctx: EvalContext) -> EvaluationResult:
    """Evaluate an arithmetic expression against the context's sheet store.

    Cell references resolve to Number when the cell's raw value is numeric,
    Text otherwise, and Number 0 when the cell is blank.  Text + Text
    concatenates; any other mixed-type operation raises.  Division by zero
    returns the ``#DIV/0!`` error value.

    Raises:
        FormulaError: On syntax errors, unknown functions or type mismatches.
    """
    text, slots = _substitute_calls(expression, ctx)
    tree = parse_arithmetic(text)
    return _eval(tree, ctx, slots)
