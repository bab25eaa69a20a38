"""Textual normalization of user-entered expressions.

The normalizer is a total function: any string maps to a string, nothing is
parsed or validated here. It replaces symbol aliases that users type or paste
(``π``, ``÷``, ``×``, ``√``, ``∞``, ``θ``) with names the expression grammar
understands, and rewrites piecewise block syntax::

    {x < 0: x^2, x >= 0: x}

into a nested conditional that ends in an explicit undefined value::

    Piecewise((x^2, x < 0), (Piecewise((x, x >= 0), (nan, True)), True))

so a sample that matches no branch evaluates to "undefined" instead of
raising.

Examples
--------
>>> normalize_expression("2π*x ÷ 3")
'2pi*x / 3'
>>> substitute_theta("sin(theta) + theta2")
'sin(x) + theta2'
"""

from __future__ import annotations

import re
from typing import List

__all__ = [
    "UNDEFINED",
    "normalize_expression",
    "rewrite_piecewise",
    "split_top_level",
    "substitute_theta",
]

#: Sentinel the piecewise rewrite terminates in; the compiler maps it to NaN.
UNDEFINED = "nan"

_ALIASES = (
    ("π", "pi"),
    ("÷", "/"),
    ("×", "*"),
    ("√", "sqrt"),
    ("∞", "Infinity"),
    ("θ", "theta"),
)

_IDENTIFIER_RE = re.compile(r"[A-Za-z_]\w*")

_OPENERS = "([{"
_CLOSERS = ")]}"


def split_top_level(text: str, sep: str) -> List[str]:
    """Split ``text`` on ``sep`` characters that are not nested in brackets.

    Unbalanced closing brackets are tolerated (depth never drops below zero)
    because the input may be a half-typed expression.
    """
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth = max(0, depth - 1)
        if ch == sep and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return parts


def rewrite_piecewise(text: str) -> str:
    """Rewrite a ``{cond: value, ...}`` block into nested ``Piecewise`` calls.

    Branches are folded right-to-left so the first listed condition is tested
    first. Branches without both a condition and a value are ignored. Text
    that is not a brace block is returned unchanged.
    """
    stripped = text.strip()
    if not (stripped.startswith("{") and stripped.endswith("}")):
        return text

    result = UNDEFINED
    for part in reversed(split_top_level(stripped[1:-1], ",")):
        pieces = split_top_level(part, ":")
        if len(pieces) < 2:
            continue
        condition = pieces[0].strip()
        value = ":".join(pieces[1:]).strip()
        if condition and value:
            result = f"Piecewise(({value}, {condition}), ({result}, True))"
    return result


def normalize_expression(text: str) -> str:
    """Return the canonical evaluable form of ``text``.

    The function is idempotent: ``normalize_expression(normalize_expression(s))``
    equals ``normalize_expression(s)``.
    """
    normalized = text
    for alias, replacement in _ALIASES:
        normalized = normalized.replace(alias, replacement)
    return rewrite_piecewise(normalized)


def substitute_theta(text: str) -> str:
    """Rename the identifier ``theta`` to ``x`` (``2theta`` included, ``thetas`` not).

    Only explicit-kind expressions go through this; polar expressions keep
    ``theta`` because their sampler binds it directly.
    """
    return _IDENTIFIER_RE.sub(lambda m: "x" if m.group(0) == "theta" else m.group(0), text)
