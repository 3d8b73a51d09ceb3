"""Paren- and quote-aware splitting of function-call text.

Nothing here evaluates anything; it only finds structure in strings such as
``IF(A1>1,"a,b",SUM(B1:B3))``.
"""

from __future__ import annotations

import re
from typing import Sequence

_CALL_RE = re.compile(r"^([A-Za-z][A-Za-z0-9_.]*)\s*\(")


def find_matching_paren(text: str, start: int) -> int:
    """Index of the ``')'`` matching the ``'('`` at *text[start]*, or -1."""
    depth = 1
    in_string = False
    for i in range(start + 1, len(text)):
        ch = text[i]
        if ch == '"':
            in_string = not in_string
        elif not in_string:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0:
                    return i
    return -1


def split_arguments(args_text: str) -> list[str]:
    """Split on commas at depth 0, outside string literals, trimming each piece.

    An empty or all-whitespace argument list gives ``[]``.
    """
    if not args_text.strip():
        return []
    args: list[str] = []
    depth = 0
    in_string = False
    current: list[str] = []
    for ch in args_text:
        if ch == '"':
            in_string = not in_string
        elif not in_string:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
            elif ch == "," and depth == 0:
                args.append("".join(current).strip())
                current = []
                continue
        current.append(ch)
    args.append("".join(current).strip())
    return args


def extract_arguments(call_text: str) -> list[str]:
    """Arguments of a call like ``F(A1, IF(B1>1,1,2), "a,b")``.

    Takes the text between the first ``(`` and its matching ``)``.  Returns
    ``[]`` when there is no balanced pair.
    """
    open_idx = call_text.find("(")
    if open_idx < 0:
        return []
    close_idx = find_matching_paren(call_text, open_idx)
    if close_idx < 0:
        return []
    return split_arguments(call_text[open_idx + 1 : close_idx])


def match_call(text: str) -> tuple[str, str] | None:
    """If *text* is exactly ``NAME(balanced_args)``, return ``(NAME, args_text)``.

    ``SUM(A1:A5)*2`` does not match: there is content after the close-paren.
    """
    stripped = text.strip()
    m = _CALL_RE.match(stripped)
    if not m:
        return None
    open_idx = m.end() - 1
    close_idx = find_matching_paren(stripped, open_idx)
    if close_idx >= 0 and close_idx == len(stripped) - 1:
        return m.group(1).upper(), stripped[open_idx + 1 : close_idx]
    return None


def find_operator(text: str, operators: Sequence[str]) -> tuple[int, str] | None:
    """Locate the first operator of *operators* present at depth 0.

    Operators are tried in the given order, so listing ``>=`` before ``>``
    keeps two-character operators intact.  Returns ``(index, operator)`` for
    the first occurrence of the first operator found, ignoring text inside
    parentheses and string literals.
    """
    for op in operators:
        depth = 0
        in_string = False
        i = 0
        while i < len(text):
            ch = text[i]
            if ch == '"':
                in_string = not in_string
            elif not in_string:
                if ch == "(":
                    depth += 1
                elif ch == ")":
                    depth -= 1
                elif depth == 0 and text.startswith(op, i):
                    return i, op
            i += 1
    return None
