"""Marching-squares extraction of implicit curves ``g(x, y) = 0``.

Purpose
-------
Approximate the zero set of ``g`` over the visible domain by a soup of
independent line segments. Connectivity is recovered later by
:mod:`curve_toolkit.stitch`.

Resolution policy
-----------------
The grid aims for a constant world-space step (``target_step``) so contour
fidelity does not change visibly while zooming. Each axis gets
``clamp(ceil(extent / target_step), min_resolution, max_resolution)`` cells;
if the product exceeds ``max_cells`` both axes shrink by the same factor.

Cell conventions
----------------
Corners are numbered counter-clockwise from the bottom-left::

    v3 ---- top ---- v2
     |                |
    left            right
     |                |
    v0 --- bottom --- v1

Corner ``k`` sets bit ``2**k`` of the case index when its value exceeds
``epsilon``. Cases 5 and 10 are saddles; they are resolved with the
asymptotic decider ``v0*v2 - v1*v3`` and, when that is undecided, the sign of
the cell-centre average.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np

from .compiler import CompiledExpression
from .domain import Domain, Point, Segment
from .sampling import evaluate_on_grid
from .settings import DEFAULT_SETTINGS, CurveSettings

__all__ = [
    "ContourResult",
    "evaluate_grid",
    "extract_implicit_segments",
    "grid_resolution",
    "march_squares",
]


logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

# Segments shorter than this fraction of the smaller cell side are dropped.
_DEGENERATE_FRACTION = 1e-9

_Edge = str

_CUT_02: Tuple[Tuple[_Edge, _Edge], ...] = (("left", "bottom"), ("right", "top"))
_CUT_13: Tuple[Tuple[_Edge, _Edge], ...] = (("bottom", "right"), ("left", "top"))

_CASES: Dict[int, Tuple[Tuple[_Edge, _Edge], ...]] = {
    1: (("left", "bottom"),),
    14: (("left", "bottom"),),
    2: (("bottom", "right"),),
    13: (("bottom", "right"),),
    3: (("left", "right"),),
    12: (("left", "right"),),
    4: (("right", "top"),),
    11: (("right", "top"),),
    6: (("bottom", "top"),),
    9: (("bottom", "top"),),
    7: (("left", "top"),),
    8: (("left", "top"),),
}


@dataclass(frozen=True)
class ContourResult:
    """Segments of one extraction plus the grid that produced them."""

    segments: List[Segment]
    resolution: Tuple[int, int]
    step: float


def grid_resolution(domain: Domain, settings: CurveSettings = DEFAULT_SETTINGS) -> Tuple[int, int]:
    """Cells per axis for ``domain``; the product never exceeds ``max_cells``."""

    def _axis(extent: float) -> int:
        wanted = math.ceil(extent / settings.target_step) if extent > 0 else 0
        return min(settings.max_resolution, max(settings.min_resolution, wanted))

    rx, ry = _axis(domain.width), _axis(domain.height)
    cells = rx * ry
    if cells > settings.max_cells:
        scale = math.sqrt(settings.max_cells / cells)
        rx = max(1, int(rx * scale))
        ry = max(1, int(ry * scale))
        while rx * ry > settings.max_cells:
            if rx >= ry:
                rx -= 1
            else:
                ry -= 1
        logger.debug("grid of %d cells scaled by %.3f to %dx%d", cells, scale, rx, ry)
    return rx, ry


def evaluate_grid(
    compiled: CompiledExpression,
    domain: Domain,
    resolution: Tuple[int, int],
    parameters: Optional[Mapping[str, float]] = None,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Sample ``g`` on the ``(rx + 1) x (ry + 1)`` lattice.

    Returns ``(xs, ys, grid)`` where ``grid[i, j] == g(xs[i], ys[j])``.
    """
    rx, ry = resolution
    xs = np.linspace(domain.x_min, domain.x_max, rx + 1)
    ys = np.linspace(domain.y_min, domain.y_max, ry + 1)
    gx, gy = np.meshgrid(xs, ys, indexing="ij")
    grid = evaluate_on_grid(compiled, {"x": gx, "y": gy}, parameters)
    return xs, ys, grid


def _edge_point(pa: Point, va: float, pb: Point, vb: float, eps: float) -> Point:
    """Zero crossing of the linear interpolant between two corners."""
    a_zero = abs(va) <= eps
    b_zero = abs(vb) <= eps
    if a_zero and b_zero:
        return ((pa[0] + pb[0]) * 0.5, (pa[1] + pb[1]) * 0.5)
    if a_zero:
        return pa
    if b_zero:
        return pb
    denom = va - vb
    if abs(denom) <= eps:
        return ((pa[0] + pb[0]) * 0.5, (pa[1] + pb[1]) * 0.5)
    t = min(1.0, max(0.0, va / denom))
    return (pa[0] + t * (pb[0] - pa[0]), pa[1] + t * (pb[1] - pa[1]))


def _saddle_edges(
    index: int, v0: float, v1: float, v2: float, v3: float, settings: CurveSettings
) -> Tuple[Tuple[_Edge, _Edge], ...]:
    decider = v0 * v2 - v1 * v3
    if abs(decider) > settings.saddle_epsilon:
        # Positive corners are joined through the centre when the bilinear
        # saddle value is positive; its sign flips between cases 5 and 10.
        joined = decider > 0 if index == 5 else decider < 0
    else:
        joined = (v0 + v1 + v2 + v3) * 0.25 > settings.epsilon
    if index == 5:
        return _CUT_13 if joined else _CUT_02
    return _CUT_02 if joined else _CUT_13


def march_squares(
    xs: np.ndarray,
    ys: np.ndarray,
    grid: np.ndarray,
    settings: CurveSettings = DEFAULT_SETTINGS,
) -> List[Segment]:
    """Extract zero-crossing segments from a sampled grid.

    Cells with a non-finite corner and uniform cells (case 0 or 15) are
    skipped. Cells are visited in row-major ``(i, j)`` order so the output is
    deterministic for a given grid.
    """
    eps = settings.epsilon
    v0 = grid[:-1, :-1]
    v1 = grid[1:, :-1]
    v2 = grid[1:, 1:]
    v3 = grid[:-1, 1:]

    finite = np.isfinite(v0) & np.isfinite(v1) & np.isfinite(v2) & np.isfinite(v3)
    index = (
        (v0 > eps).astype(np.int8)
        | ((v1 > eps).astype(np.int8) << 1)
        | ((v2 > eps).astype(np.int8) << 2)
        | ((v3 > eps).astype(np.int8) << 3)
    )
    active = finite & (index != 0) & (index != 15)

    dx = (xs[-1] - xs[0]) / max(1, len(xs) - 1)
    dy = (ys[-1] - ys[0]) / max(1, len(ys) - 1)
    min_length = _DEGENERATE_FRACTION * min(abs(dx), abs(dy))

    segments: List[Segment] = []
    for i, j in np.argwhere(active):
        c0, c1, c2, c3 = (float(v) for v in (v0[i, j], v1[i, j], v2[i, j], v3[i, j]))
        x0, x1 = float(xs[i]), float(xs[i + 1])
        y0, y1 = float(ys[j]), float(ys[j + 1])
        p0, p1, p2, p3 = (x0, y0), (x1, y0), (x1, y1), (x0, y1)

        case = int(index[i, j])
        if case in (5, 10):
            pairs = _saddle_edges(case, c0, c1, c2, c3, settings)
        else:
            pairs = _CASES[case]

        edges: Dict[_Edge, Point] = {}
        for pair in pairs:
            for edge in pair:
                if edge in edges:
                    continue
                if edge == "bottom":
                    edges[edge] = _edge_point(p0, c0, p1, c1, eps)
                elif edge == "right":
                    edges[edge] = _edge_point(p1, c1, p2, c2, eps)
                elif edge == "top":
                    edges[edge] = _edge_point(p3, c3, p2, c2, eps)
                else:
                    edges[edge] = _edge_point(p0, c0, p3, c3, eps)

        for a_edge, b_edge in pairs:
            a, b = edges[a_edge], edges[b_edge]
            if math.hypot(b[0] - a[0], b[1] - a[1]) <= min_length:
                continue
            segments.append((a, b))
    return segments


def extract_implicit_segments(
    compiled: CompiledExpression,
    domain: Domain,
    parameters: Optional[Mapping[str, float]] = None,
    settings: CurveSettings = DEFAULT_SETTINGS,
) -> ContourResult:
    """Run the full extraction (resolution, grid, march) for one expression."""
    resolution = grid_resolution(domain, settings)
    xs, ys, grid = evaluate_grid(compiled, domain, resolution, parameters)
    segments = march_squares(xs, ys, grid, settings)
    step = max(domain.width / resolution[0], domain.height / resolution[1])
    logger.debug("%r: %dx%d grid, %d segments", compiled.text, resolution[0], resolution[1], len(segments))
    return ContourResult(segments=segments, resolution=resolution, step=step)
