"""Per-expression pipeline outputs.

Each function kind has its own frozen record; :data:`CurveData` is the closed
union of them. Consumers dispatch with ``isinstance`` (or on ``kind``) and
must handle all five.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, List, Tuple, Union

import numpy as np

from .classify import FunctionKind, Geometry
from .domain import Point, Polyline, Segment


@dataclass(frozen=True, eq=False)
class ExplicitCurve:
    """Samples of ``y = f(x)``; NaN in ``y`` marks an undefined sample."""

    kind: ClassVar[FunctionKind] = FunctionKind.EXPLICIT
    x: np.ndarray
    y: np.ndarray


@dataclass(frozen=True, eq=False)
class ParametricCurve:
    """``(n, 2)`` points of ``(x(t), y(t))``; rows with NaN are undefined."""

    kind: ClassVar[FunctionKind] = FunctionKind.PARAMETRIC
    points: np.ndarray


@dataclass(frozen=True, eq=False)
class PolarCurve:
    """``(n, 2)`` Cartesian points of ``r(theta)``; rows with NaN are undefined."""

    kind: ClassVar[FunctionKind] = FunctionKind.POLAR
    points: np.ndarray


@dataclass(frozen=True)
class ImplicitCurve:
    """Zero set of ``g(x, y)``.

    ``segments`` is the raw marching-squares output, kept for diagnostics;
    ``polylines`` are stitched, smoothed and anchor-snapped and are what a
    renderer should draw.
    """

    kind: ClassVar[FunctionKind] = FunctionKind.IMPLICIT
    segments: List[Segment]
    polylines: List[Polyline]
    anchors: List[Point] = field(default_factory=list)
    resolution: Tuple[int, int] = (0, 0)


@dataclass(frozen=True)
class GeometryShape:
    kind: ClassVar[FunctionKind] = FunctionKind.GEOMETRY
    geometry: Geometry


CurveData = Union[ExplicitCurve, ParametricCurve, PolarCurve, ImplicitCurve, GeometryShape]
