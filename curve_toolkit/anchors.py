"""Axis-crossing anchors for implicit curves.

Anchors are the points where ``g(x, 0)`` or ``g(0, y)`` vanishes inside the
visible domain. They are not part of the contour; the pipeline snaps nearby
polyline points onto them so a curve that crosses an axis touches it exactly
at every zoom level.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Mapping, Optional

import numpy as np

from .compiler import CompiledExpression
from .domain import Domain, Point
from .sampling import evaluate_on_grid
from .settings import DEFAULT_SETTINGS, CurveSettings

__all__ = ["bisect_root", "dedupe_roots", "find_axis_anchors", "find_roots"]


logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

Function1D = Callable[[np.ndarray], np.ndarray]


def bisect_root(
    fn: Function1D,
    lo: float,
    hi: float,
    f_lo: float,
    f_hi: float,
    *,
    iterations: int = DEFAULT_SETTINGS.bisection_iterations,
    tolerance: float = DEFAULT_SETTINGS.bisection_tolerance,
) -> float:
    """Refine a bracketed root of ``fn`` on ``[lo, hi]``.

    If the endpoints do not bracket a sign change, the endpoint with the
    smaller ``|f|`` is returned instead.
    """
    if np.sign(f_lo) == np.sign(f_hi) and f_lo != 0 and f_hi != 0:
        return lo if abs(f_lo) <= abs(f_hi) else hi

    for _ in range(iterations):
        mid = 0.5 * (lo + hi)
        f_mid = float(fn(np.asarray(mid)))
        if not np.isfinite(f_mid):
            break
        if abs(f_mid) <= tolerance:
            return mid
        if np.sign(f_mid) == np.sign(f_lo):
            lo, f_lo = mid, f_mid
        else:
            hi, f_hi = mid, f_mid
    return 0.5 * (lo + hi)


def dedupe_roots(roots: List[float], tolerance: float) -> List[float]:
    """Sort ``roots`` and collapse runs closer than ``tolerance``."""
    out: List[float] = []
    for root in sorted(roots):
        if out and root - out[-1] <= tolerance:
            continue
        out.append(root)
    return out


def find_roots(
    fn: Function1D,
    lo: float,
    hi: float,
    samples: int,
    settings: CurveSettings = DEFAULT_SETTINGS,
) -> List[float]:
    """Isolate roots of ``fn`` on ``[lo, hi]`` by sampling then bisection."""
    samples = max(settings.anchor_samples, int(samples))
    ts = np.linspace(lo, hi, samples)
    values = np.asarray(fn(ts), dtype=float)

    roots: List[float] = []
    for k in range(samples):
        fa = values[k]
        if not np.isfinite(fa):
            continue
        if abs(fa) <= settings.epsilon:
            roots.append(float(ts[k]))
            continue
        if k + 1 >= samples:
            continue
        fb = values[k + 1]
        if not np.isfinite(fb) or abs(fb) <= settings.epsilon or fa * fb > 0:
            continue
        root = bisect_root(
            fn,
            float(ts[k]),
            float(ts[k + 1]),
            float(fa),
            float(fb),
            iterations=settings.bisection_iterations,
            tolerance=settings.bisection_tolerance,
        )
        # A sign change across a pole (1/x) converges to the pole, where |g|
        # grows instead of shrinking.
        f_root = float(fn(np.asarray(root)))
        if np.isfinite(f_root) and abs(f_root) <= max(abs(fa), abs(fb)):
            roots.append(root)

    tolerance = max(1e-8, (hi - lo) * 1e-5)
    return dedupe_roots(roots, tolerance)


def find_axis_anchors(
    compiled: CompiledExpression,
    domain: Domain,
    parameters: Optional[Mapping[str, float]] = None,
    settings: CurveSettings = DEFAULT_SETTINGS,
    samples: Optional[int] = None,
) -> List[Point]:
    """Zero crossings of ``g`` along ``y = 0`` and ``x = 0`` inside ``domain``."""
    samples = samples or settings.anchor_samples
    anchors: List[Point] = []

    if domain.contains_y(0.0):

        def along_x(xs: np.ndarray) -> np.ndarray:
            return evaluate_on_grid(compiled, {"x": xs, "y": np.zeros_like(xs)}, parameters)

        anchors.extend((x, 0.0) for x in find_roots(along_x, domain.x_min, domain.x_max, samples, settings))

    if domain.contains_x(0.0):

        def along_y(ys: np.ndarray) -> np.ndarray:
            return evaluate_on_grid(compiled, {"x": np.zeros_like(ys), "y": ys}, parameters)

        y_anchors = find_roots(along_y, domain.y_min, domain.y_max, samples, settings)
        origin_tol = max(1e-8, domain.extent * 1e-5)
        for y in y_anchors:
            # The origin may already be an x-axis anchor.
            if any(abs(ax) <= origin_tol and abs(y) <= origin_tol for ax, _ in anchors):
                continue
            anchors.append((0.0, y))

    logger.debug("%r: %d axis anchor(s)", compiled.text, len(anchors))
    return anchors
