"""Function-kind classification and per-kind evaluation plans.

Classification is total: every normalized string maps to exactly one
:class:`FunctionKind`, checked in this order (first match wins):

1. geometry   -- the text is one or more ``(number, number)`` pairs
2. polar      -- ``r = ...``
3. parametric -- ``(a, b)`` with exactly one top-level comma
4. implicit   -- contains an equation sign and is not ``y = ...``/``f(x) = ...``
5. explicit   -- everything else

:func:`plan_expression` turns the kind into a small frozen record carrying
the sub-expression text(s) each sampler compiles, so consumers dispatch on a
closed set of plan types instead of re-parsing strings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union

from .normalize import split_top_level, substitute_theta

__all__ = [
    "ExplicitPlan",
    "ExpressionPlan",
    "FunctionKind",
    "Geometry",
    "GeometryPlan",
    "ImplicitPlan",
    "ParametricPlan",
    "PolarPlan",
    "classify_expression",
    "find_equation_sign",
    "format_geometry",
    "parse_geometry",
    "plan_expression",
]


class FunctionKind(str, Enum):
    """The five families of curves the pipeline knows how to sample."""

    GEOMETRY = "geometry"
    POLAR = "polar"
    PARAMETRIC = "parametric"
    IMPLICIT = "implicit"
    EXPLICIT = "explicit"


_NUMBER = r"-?\d*\.?\d+(?:e[+-]?\d+)?"
_POINT_RE = re.compile(rf"\(\s*({_NUMBER})\s*,\s*({_NUMBER})\s*\)", re.IGNORECASE)
_POLAR_RE = re.compile(r"^\s*r\s*=", re.IGNORECASE)
_POLAR_PREFIX_RE = re.compile(r"^\s*r\s*=\s*", re.IGNORECASE)
_EXPLICIT_PREFIX_RE = re.compile(r"^\s*(y|f\(x\))\s*=", re.IGNORECASE)


@dataclass(frozen=True)
class Geometry:
    """A point (one vertex) or a polygon (two or more vertices)."""

    points: Tuple[Tuple[float, float], ...]

    @property
    def type(self) -> str:
        return "point" if len(self.points) == 1 else "polygon"


def parse_geometry(text: str) -> Optional[Geometry]:
    """Parse ``(x, y), (x, y), ...`` into a :class:`Geometry`.

    Returns ``None`` unless the text consists only of numeric pairs separated
    by commas and whitespace. ``(cos(t), sin(t))`` is therefore parametric,
    not geometry.
    """
    matches = list(_POINT_RE.finditer(text))
    if not matches:
        return None
    remainder = _POINT_RE.sub("", text)
    if remainder.replace(",", "").strip():
        return None
    points = tuple((float(m.group(1)), float(m.group(2))) for m in matches)
    return Geometry(points=points)


def format_geometry(geometry: Geometry) -> str:
    """Render a geometry back to expression text with two decimals."""
    return ", ".join(f"({x:.2f}, {y:.2f})" for x, y in geometry.points)


def find_equation_sign(text: str) -> int:
    """Index of the first bare ``=`` in ``text``, or ``-1``.

    ``<=``, ``>=``, ``==`` and ``!=`` are comparisons (piecewise conditions),
    not equation signs.
    """
    for idx, ch in enumerate(text):
        if ch != "=":
            continue
        prev_ch = text[idx - 1] if idx > 0 else ""
        next_ch = text[idx + 1] if idx + 1 < len(text) else ""
        if prev_ch in "<>=!" or next_ch == "=":
            continue
        return idx
    return -1


def _parametric_parts(text: str) -> Optional[Tuple[str, str]]:
    stripped = text.strip()
    if len(stripped) < 2 or stripped[0] != "(" or stripped[-1] != ")":
        return None
    # The opening parenthesis must close at the very end of the text.
    depth = 0
    for idx, ch in enumerate(stripped):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0 and idx != len(stripped) - 1:
                return None
    if depth != 0:
        return None
    parts = split_top_level(stripped[1:-1], ",")
    if len(parts) != 2:
        return None
    return parts[0].strip(), parts[1].strip()


def classify_expression(text: str) -> FunctionKind:
    """Assign exactly one :class:`FunctionKind` to normalized ``text``."""
    if parse_geometry(text) is not None:
        return FunctionKind.GEOMETRY
    if _POLAR_RE.match(text):
        return FunctionKind.POLAR
    if _parametric_parts(text) is not None:
        return FunctionKind.PARAMETRIC
    if find_equation_sign(text) >= 0 and not _EXPLICIT_PREFIX_RE.match(text):
        return FunctionKind.IMPLICIT
    return FunctionKind.EXPLICIT


# ---------------------------------------------------------------------------
# Evaluation plans
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GeometryPlan:
    kind: ClassVar[FunctionKind] = FunctionKind.GEOMETRY
    geometry: Geometry


@dataclass(frozen=True)
class PolarPlan:
    """``r(theta)``; ``theta`` stays a free variable of ``r_text``."""

    kind: ClassVar[FunctionKind] = FunctionKind.POLAR
    r_text: str


@dataclass(frozen=True)
class ParametricPlan:
    kind: ClassVar[FunctionKind] = FunctionKind.PARAMETRIC
    x_text: str
    y_text: str


@dataclass(frozen=True)
class ImplicitPlan:
    """``g(x, y) = lhs - (rhs)``; the curve is the zero set of ``g``."""

    kind: ClassVar[FunctionKind] = FunctionKind.IMPLICIT
    g_text: str


@dataclass(frozen=True)
class ExplicitPlan:
    """``y = f(x)``; ``text`` may keep a ``y =``/``f(x) =`` assignment prefix."""

    kind: ClassVar[FunctionKind] = FunctionKind.EXPLICIT
    text: str


ExpressionPlan = Union[GeometryPlan, PolarPlan, ParametricPlan, ImplicitPlan, ExplicitPlan]


def plan_expression(text: str) -> ExpressionPlan:
    """Classify normalized ``text`` and split it into compilable pieces."""
    kind = classify_expression(text)
    if kind is FunctionKind.GEOMETRY:
        geometry = parse_geometry(text)
        assert geometry is not None
        return GeometryPlan(geometry=geometry)
    if kind is FunctionKind.POLAR:
        return PolarPlan(r_text=_POLAR_PREFIX_RE.sub("", text, count=1))
    if kind is FunctionKind.PARAMETRIC:
        parts = _parametric_parts(text)
        assert parts is not None
        return ParametricPlan(x_text=parts[0], y_text=parts[1])
    if kind is FunctionKind.IMPLICIT:
        idx = find_equation_sign(text)
        lhs, rhs = text[:idx].strip(), text[idx + 1 :].strip()
        return ImplicitPlan(g_text=f"{lhs} - ({rhs})")
    if kind is FunctionKind.EXPLICIT:
        return ExplicitPlan(text=substitute_theta(text))
    raise AssertionError(f"Unhandled function kind: {kind!r}")
