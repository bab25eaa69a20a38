"""Tunable constants for the expression-to-curve pipeline.

All numeric knobs live on one frozen dataclass so a pipeline can be built with
non-default values in tests without touching module globals.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class CurveSettings:
    """Configuration knobs for :class:`curve_toolkit.pipeline.CurvePipeline`.

    Parameters
    ----------
    cache_capacity : int
        Maximum number of compiled expressions kept by the cache.
    point_count : int
        Default number of explicit samples across the x-domain.
    t_range : tuple[float, float]
        Parameter range for parametric curves.
    t_steps : int
        Number of parametric steps (``t_steps + 1`` samples).
    theta_range : tuple[float, float]
        Angle range for polar curves.
    theta_steps : int
        Number of polar steps (``theta_steps + 1`` samples).
    target_step : float
        World-space grid step the implicit extractor aims for.
    min_resolution, max_resolution : int
        Per-axis clamp for the implicit grid resolution.
    max_cells : int
        Upper bound on ``resolution_x * resolution_y``.
    epsilon : float
        Zero threshold used for corner signs and edge interpolation.
    saddle_epsilon : float
        Magnitude below which the asymptotic decider is considered undecided.
    quantize_scale : float
        Fractional scale used to key segment endpoints when stitching.
    anchor_samples : int
        Minimum number of samples along each axis when isolating anchors.
    bisection_iterations : int
        Iteration cap for anchor root refinement.
    bisection_tolerance : float
        Early exit threshold on ``|g|`` during refinement.
    snap_factor : float
        Snap distance in cell steps for the pre-smoothing anchor pass.
    post_smooth_snap_factor : float
        Multiplier applied to the snap distance for the post-smoothing pass.
    small_domain : float
        Domains whose larger extent is at most this get two smoothing passes.
    """

    cache_capacity: int = 200
    point_count: int = 500
    t_range: Tuple[float, float] = (-10.0, 10.0)
    t_steps: int = 500
    theta_range: Tuple[float, float] = (0.0, 2.0 * math.pi)
    theta_steps: int = 500
    target_step: float = 0.01
    min_resolution: int = 120
    max_resolution: int = 900
    max_cells: int = 300_000
    epsilon: float = 1e-12
    saddle_epsilon: float = 1e-14
    quantize_scale: float = 1e8
    anchor_samples: int = 32
    bisection_iterations: int = 28
    bisection_tolerance: float = 1e-14
    snap_factor: float = 3.0
    post_smooth_snap_factor: float = 1.5
    small_domain: float = 1.0

    def __post_init__(self) -> None:
        """Reject settings that would break the pipeline invariants."""
        if self.cache_capacity < 1:
            raise ValueError("cache_capacity must be >= 1")
        if self.point_count < 2:
            raise ValueError("point_count must be >= 2")
        if self.t_steps < 1 or self.theta_steps < 1:
            raise ValueError("t_steps and theta_steps must be >= 1")
        if self.target_step <= 0:
            raise ValueError("target_step must be > 0")
        if not 1 <= self.min_resolution <= self.max_resolution:
            raise ValueError("resolution bounds must satisfy 1 <= min_resolution <= max_resolution")
        if self.max_cells < 1:
            raise ValueError("max_cells must be >= 1")
        if self.anchor_samples < 32:
            raise ValueError("anchor_samples must be >= 32")


DEFAULT_SETTINGS = CurveSettings()
