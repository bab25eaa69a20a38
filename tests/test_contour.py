"""Marching-squares extraction, including saddle cells."""

from __future__ import annotations

import math

import numpy as np
import pytest

from curve_toolkit.compiler import compile_expression
from curve_toolkit.contour import _edge_point, extract_implicit_segments, grid_resolution, march_squares
from curve_toolkit.domain import Domain
from curve_toolkit.settings import CurveSettings

UNIT = np.array([0.0, 1.0])


def _cell(v0: float, v1: float, v2: float, v3: float) -> np.ndarray:
    # grid[i, j] == g(xs[i], ys[j]); corners counter-clockwise from bottom-left.
    return np.array([[v0, v3], [v1, v2]], dtype=float)


def _close(seg, expected) -> bool:
    return all(p == pytest.approx(q) for p, q in zip(seg, expected))


def test_grid_resolution_tracks_target_step() -> None:
    assert grid_resolution(Domain(-2, 2, -1, 1)) == (400, 200)


def test_grid_resolution_clamps_small_and_large_domains() -> None:
    assert grid_resolution(Domain(0, 0.1, 0, 0.1)) == (120, 120)
    rx, ry = grid_resolution(Domain(-100, 100, -100, 100))
    assert rx * ry <= 300_000
    assert rx == ry


def test_grid_resolution_cap_applies_to_the_product() -> None:
    rx, ry = grid_resolution(Domain(0, 9, 0, 5))
    assert rx * ry <= 300_000
    assert rx > ry >= 120


def test_single_corner_case() -> None:
    segments = march_squares(UNIT, UNIT, _cell(1.0, -1.0, -1.0, -1.0))
    assert len(segments) == 1
    assert _close(segments[0], ((0.0, 0.5), (0.5, 0.0)))


def test_crossing_at_a_zero_corner_snaps_to_that_corner() -> None:
    (segment,) = march_squares(UNIT, UNIT, _cell(1.0, 0.0, -1.0, -1.0))
    assert segment[0] == pytest.approx((0.0, 0.5))
    assert segment[1] == (1.0, 0.0)


def test_crossings_meeting_at_one_corner_give_no_segment() -> None:
    # Case 14 with v0 == 0: both crossings collapse onto the bottom-left corner.
    assert march_squares(UNIT, UNIT, _cell(0.0, 1.0, 1.0, 1.0)) == []


def test_edge_with_both_corners_near_zero_uses_midpoint() -> None:
    assert _edge_point((0.0, 0.0), 1e-13, (1.0, 0.0), -1e-13, 1e-12) == (0.5, 0.0)


def test_edge_with_degenerate_denominator_uses_midpoint() -> None:
    assert _edge_point((0.0, 0.0), 2e-12, (0.0, 2.0), 1.5e-12, 1e-12) == (0.0, 1.0)


def test_edge_interpolation_is_linear() -> None:
    assert _edge_point((0.0, 0.0), 3.0, (1.0, 0.0), -1.0, 1e-12) == pytest.approx((0.75, 0.0))


def test_uniform_and_non_finite_cells_are_skipped() -> None:
    assert march_squares(UNIT, UNIT, _cell(1, 1, 1, 1)) == []
    assert march_squares(UNIT, UNIT, _cell(-1, -1, -1, -1)) == []
    assert march_squares(UNIT, UNIT, _cell(1, -1, np.nan, -1)) == []
    assert march_squares(UNIT, UNIT, _cell(1, -1, np.inf, -1)) == []


def test_saddle_five_joined_through_centre() -> None:
    segments = march_squares(UNIT, UNIT, _cell(2.0, -1.0, 2.0, -1.0))
    assert len(segments) == 2
    assert _close(segments[0], ((2 / 3, 0.0), (1.0, 1 / 3)))
    assert _close(segments[1], ((0.0, 2 / 3), (1 / 3, 1.0)))


def test_saddle_five_undecided_uses_centre_average() -> None:
    segments = march_squares(UNIT, UNIT, _cell(1.0, -1.0, 1.0, -1.0))
    assert _close(segments[0], ((0.0, 0.5), (0.5, 0.0)))
    assert _close(segments[1], ((1.0, 0.5), (0.5, 1.0)))


def test_saddle_ten_joined_through_centre() -> None:
    segments = march_squares(UNIT, UNIT, _cell(-1.0, 2.0, -1.0, 2.0))
    assert _close(segments[0], ((0.0, 1 / 3), (1 / 3, 0.0)))
    assert _close(segments[1], ((1.0, 2 / 3), (2 / 3, 1.0)))


def test_saddle_ten_separated() -> None:
    segments = march_squares(UNIT, UNIT, _cell(-2.0, 1.0, -2.0, 1.0))
    assert _close(segments[0], ((2 / 3, 0.0), (1.0, 1 / 3)))
    assert _close(segments[1], ((0.0, 2 / 3), (1 / 3, 1.0)))


def test_circle_segments_lie_on_the_circle() -> None:
    compiled = compile_expression("x^2 + y^2 - (1)")
    result = extract_implicit_segments(compiled, Domain(-2, 2, -2, 2))
    assert result.resolution == (400, 400)
    assert result.step == pytest.approx(0.01)
    assert len(result.segments) > 100
    for a, b in result.segments:
        assert math.hypot(*a) == pytest.approx(1.0, abs=1e-3)
        assert math.hypot(*b) == pytest.approx(1.0, abs=1e-3)


def test_segment_count_scales_with_resolution() -> None:
    compiled = compile_expression("x^2 + y^2 - (1)")
    domain = Domain(-2, 2, -2, 2)
    fine = extract_implicit_segments(compiled, domain)
    coarse = extract_implicit_segments(compiled, domain, settings=CurveSettings(target_step=0.02, min_resolution=50))
    assert coarse.resolution == (200, 200)
    assert len(fine.segments) > 1.5 * len(coarse.segments)


def test_unbound_parameter_gives_no_segments() -> None:
    result = extract_implicit_segments(compile_expression("x^2 + y^2 - (a)"), Domain(-2, 2, -2, 2))
    assert result.segments == []
    result = extract_implicit_segments(compile_expression("x^2 + y^2 - (a)"), Domain(-2, 2, -2, 2), {"a": 1.0})
    assert result.segments
