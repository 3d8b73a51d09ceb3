"""Tagged evaluation results.

Every evaluation step returns exactly one of :class:`Number`, :class:`Text`
or :class:`ErrorValue`.  Raw cell content is always a string; it becomes a
``Number`` only when :func:`parse_number` accepts it.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Union

from gridcalc.formulas.errors import ErrorCode

_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")


@dataclass(frozen=True)
class Number:
    value: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", float(self.value))


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class ErrorValue:
    code: ErrorCode

    @property
    def token(self) -> str:
        return self.code.value


EvaluationResult = Union[Number, Text, ErrorValue]

MALFORMED = ErrorValue(ErrorCode.MALFORMED_EXPRESSION)
DIV_ZERO = ErrorValue(ErrorCode.DIVIDE_BY_ZERO)
NOT_AVAILABLE = ErrorValue(ErrorCode.NOT_AVAILABLE)


def parse_number(text: str) -> float | None:
    """Parse a decimal literal such as ``"12"``, ``"-3.5"`` or ``"1e3"``.

    Returns None for anything else, including ``"nan"``, ``"inf"`` and
    strings with trailing junk.  Literals that overflow a float, such as
    ``"1e400"``, are not numbers either.
    """
    s = text.strip()
    if not _NUMBER_RE.match(s):
        return None
    value = float(s)
    if not math.isfinite(value):
        return None
    return value


def literal_value(text: str) -> EvaluationResult:
    """Number if *text* is numeric, otherwise Text unchanged."""
    num = parse_number(text)
    if num is None:
        return Text(text)
    return Number(num)


def format_number(value: float, precision: int = 10) -> str:
    """Locale-free decimal rendering; integral values drop the fraction."""
    if not math.isfinite(value):
        return str(value)
    if value == int(value) and abs(value) < 1e16:
        return str(int(value))
    return f"{value:.{precision}g}"


def as_text(result: EvaluationResult) -> str:
    """Textual form of a result, as used by string functions and comparisons."""
    if isinstance(result, Number):
        return format_number(result.value)
    if isinstance(result, Text):
        return result.value
    return result.token


def display_value(result: EvaluationResult, precision: int = 10) -> str:
    """Convert a result to the string shown in a grid cell."""
    if isinstance(result, Number):
        return format_number(result.value, precision)
    return as_text(result)


def first_error(*results: EvaluationResult) -> ErrorValue | None:
    """Return the first ErrorValue in *results*, or None."""
    for r in results:
        if isinstance(r, ErrorValue):
            return r
    return None
