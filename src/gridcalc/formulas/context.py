"""Per-call evaluation state threaded through every evaluation step."""

from __future__ import annotations

from dataclasses import dataclass, replace

from gridcalc.formulas.errors import FormulaDepthError
from gridcalc.formulas.store import SheetStore

DEFAULT_MAX_DEPTH = 32


@dataclass(frozen=True)
class EvalContext:
    """Read-only sheet handle plus the current nesting depth.

    A new context is created for each top-level call; nothing survives
    between calls.
    """

    store: SheetStore
    max_depth: int = DEFAULT_MAX_DEPTH
    depth: int = 0

    def descend(self) -> EvalContext:
        """Context for one level of nested formula evaluation.

        Raises:
            FormulaDepthError: If the nesting would exceed ``max_depth``.
        """
        if self.depth + 1 > self.max_depth:
            raise FormulaDepthError(self.max_depth)
        return replace(self, depth=self.depth + 1)
