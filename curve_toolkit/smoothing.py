"""Corner-cutting smoothing and anchor snapping for stitched polylines."""

from __future__ import annotations

import math
from typing import List, Sequence

import numpy as np

from .domain import Point, Polyline

__all__ = ["chaikin", "smooth_polylines", "smoothing_iterations", "snap_to_anchors"]


def chaikin(points: Sequence[Point], iterations: int = 1) -> Polyline:
    """Chaikin subdivision that keeps both endpoints fixed.

    Each edge ``(p0, p1)`` is replaced by the points at 25% and 75% along it.
    Polylines with fewer than three points are returned unchanged.
    """
    line: Polyline = list(points)
    if len(line) < 3:
        return line
    for _ in range(iterations):
        out: Polyline = [line[0]]
        for (x0, y0), (x1, y1) in zip(line[:-1], line[1:]):
            out.append((0.75 * x0 + 0.25 * x1, 0.75 * y0 + 0.25 * y1))
            out.append((0.25 * x0 + 0.75 * x1, 0.25 * y0 + 0.75 * y1))
        out.append(line[-1])
        line = out
    return line


def smoothing_iterations(extent: float, small_domain: float = 1.0) -> int:
    """Two passes when zoomed in to ``small_domain`` units or less, else one."""
    return 2 if extent <= small_domain else 1


def smooth_polylines(polylines: Sequence[Polyline], iterations: int) -> List[Polyline]:
    return [chaikin(line, iterations) for line in polylines]


def snap_to_anchors(
    polylines: Sequence[Polyline],
    anchors: Sequence[Point],
    distance: float,
) -> List[Polyline]:
    """Move the point nearest to each anchor onto it when within ``distance``.

    The input is not modified. With no anchor in range the output equals the
    input point for point. When the snapped point is an end of a closed
    polyline, both ends move so the loop stays closed.
    """
    out = [list(line) for line in polylines]
    if not anchors or not out:
        return out
    arrays = [np.asarray(line, dtype=float).reshape(-1, 2) for line in out]

    for ax, ay in anchors:
        best_line = -1
        best_idx = -1
        best_dist = math.inf
        for li, arr in enumerate(arrays):
            if len(arr) == 0:
                continue
            dists = np.hypot(arr[:, 0] - ax, arr[:, 1] - ay)
            k = int(np.argmin(dists))
            if dists[k] < best_dist:
                best_line, best_idx, best_dist = li, k, float(dists[k])
        if best_line < 0 or best_dist > distance:
            continue

        line = out[best_line]
        arr = arrays[best_line]
        anchor = (float(ax), float(ay))
        closed = len(line) > 2 and line[0] == line[-1]
        targets = [best_idx]
        if closed and best_idx in (0, len(line) - 1):
            targets = [0, len(line) - 1]
        for k in targets:
            line[k] = anchor
            arr[k] = anchor
    return out
