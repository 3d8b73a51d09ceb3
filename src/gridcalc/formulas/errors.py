"""Error codes and exception types for formula evaluation."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Closed set of user-visible formula errors."""

    MALFORMED_EXPRESSION = "#ERROR!"
    DIVIDE_BY_ZERO = "#DIV/0!"
    NOT_AVAILABLE = "#N/A!"

    @property
    def token(self) -> str:
        return self.value


class FormulaError(Exception):
    """Base class for all formula-related errors.

    Attributes:
        code: The ErrorCode this failure resolves to at the evaluation boundary.
    """

    code: ErrorCode = ErrorCode.MALFORMED_EXPRESSION


class FormulaParseError(FormulaError):
    """Syntax error in a formula expression.

    Attributes:
        position: Character position where the error was detected.
    """

    def __init__(self, message: str, position: int | None = None) -> None:
        self.position = position
        full = f"Formula parse error: {message}"
        if position is not None:
            full += f" (at position {position})"
        super().__init__(full)


class FormulaRefError(FormulaError):
    """Invalid cell or range reference.

    Attributes:
        ref_text: The reference text that failed to resolve.
    """

    def __init__(self, ref_text: str, message: str | None = None) -> None:
        self.ref_text = ref_text
        super().__init__(message or f"Invalid reference: {ref_text!r}")


class FormulaFunctionError(FormulaError):
    """Wrong number or type of arguments to a built-in function.

    Attributes:
        func_name: The function that caused the error.
    """

    def __init__(self, func_name: str, message: str | None = None) -> None:
        self.func_name = func_name
        super().__init__(message or f"Invalid call to {func_name}")


class FormulaTypeError(FormulaError):
    """Operand of the wrong type for an operator, e.g. ``"a" * 2``."""


class FormulaDepthError(FormulaError):
    """Nested evaluation went deeper than the configured maximum.

    Attributes:
        max_depth: The limit that was exceeded.
    """

    def __init__(self, max_depth: int) -> None:
        self.max_depth = max_depth
        super().__init__(f"Maximum formula nesting depth exceeded ({max_depth})")


# Exceptions converted to an error value at the evaluation boundary.
ENGINE_ERRORS = (FormulaError, ArithmeticError, ValueError, TypeError, KeyError, RecursionError)
