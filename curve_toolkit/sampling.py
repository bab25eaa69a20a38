"""Numeric sampling of compiled expressions.

Every sampler evaluates a whole grid with one vectorized call. If that call
fails (an evaluator that cannot broadcast, say) the sampler falls back to
point-by-point evaluation with one reused scope dict, so an error on a single
sample only turns that sample into NaN ("undefined"); it never aborts the
pass.

Undefined samples are NaN in the returned arrays. :class:`SampleTable`
converts them to ``None`` for consumers that want JSON-like rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np

from .compiler import CompiledExpression, EvaluationError, to_real_array
from .settings import DEFAULT_SETTINGS

__all__ = [
    "SampleTable",
    "evaluate_on_grid",
    "explicit_grid",
    "sample_explicit",
    "sample_parametric",
    "sample_polar",
]


logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def _select(value: Any, last: bool) -> Any:
    if last and isinstance(value, tuple):
        return value[-1] if value else np.nan
    return value


def evaluate_on_grid(
    compiled: CompiledExpression,
    axes: Mapping[str, np.ndarray],
    parameters: Optional[Mapping[str, float]] = None,
    *,
    last: bool = True,
) -> np.ndarray:
    """Evaluate ``compiled`` over same-shaped coordinate arrays.

    Parameters
    ----------
    compiled:
        Expression to evaluate.
    axes:
        Sampling variables (``x``, ``y``, ``t``, ``theta``) mapped to arrays
        that all share one shape.
    parameters:
        Free-parameter bindings. Sampling variables take precedence.
    last:
        For multi-statement expressions, keep only the last result.

    Returns
    -------
    numpy.ndarray
        Float array shaped like the axes, NaN where undefined. Infinite values
        are passed through unchanged.
    """
    shape = np.broadcast_shapes(*(np.shape(a) for a in axes.values())) if axes else ()
    scope: Dict[str, Any] = dict(parameters or {})
    scope.update(axes)

    missing = [name for name in compiled.variables if name not in scope]
    if missing:
        logger.debug("unbound symbol(s) %s in %r; every sample is undefined", missing, compiled.text)
        return np.full(shape, np.nan)

    try:
        return to_real_array(_select(compiled.evaluate(scope), last), shape)
    except EvaluationError as exc:
        logger.debug("vectorized evaluation of %r failed (%s); retrying per sample", compiled.text, exc)

    out = np.full(shape, np.nan)
    point_scope: Dict[str, Any] = dict(parameters or {})
    flat_axes = {name: np.broadcast_to(arr, shape) for name, arr in axes.items()}
    for idx in np.ndindex(*shape):
        for name, arr in flat_axes.items():
            point_scope[name] = float(arr[idx])
        try:
            out[idx] = to_real_array(_select(compiled.evaluate(point_scope), last), ())
        except EvaluationError:
            continue
    return out


def _finite_or_nan(values: np.ndarray) -> np.ndarray:
    return np.where(np.isfinite(values), values, np.nan)


def explicit_grid(x_min: float, x_max: float, point_count: int) -> np.ndarray:
    """Shared x-grid of ``point_count`` samples spanning ``[x_min, x_max]``."""
    if point_count < 2:
        raise ValueError("point_count must be >= 2")
    step = (x_max - x_min) / (point_count - 1)
    return x_min + step * np.arange(point_count, dtype=float)


def sample_explicit(
    compiled: CompiledExpression,
    xs: np.ndarray,
    parameters: Optional[Mapping[str, float]] = None,
) -> np.ndarray:
    """Sample ``y = f(x)`` on ``xs``; only finite reals are kept."""
    return _finite_or_nan(evaluate_on_grid(compiled, {"x": xs}, parameters))


def sample_parametric(
    x_compiled: CompiledExpression,
    y_compiled: CompiledExpression,
    parameters: Optional[Mapping[str, float]] = None,
    *,
    t_range: Tuple[float, float] = DEFAULT_SETTINGS.t_range,
    steps: int = DEFAULT_SETTINGS.t_steps,
) -> np.ndarray:
    """Sample ``(x(t), y(t))`` on ``steps + 1`` values of ``t``.

    Returns an ``(steps + 1, 2)`` array; a row with a NaN is undefined.
    """
    ts = np.linspace(t_range[0], t_range[1], steps + 1)
    xs = evaluate_on_grid(x_compiled, {"t": ts}, parameters)
    ys = evaluate_on_grid(y_compiled, {"t": ts}, parameters)
    return _finite_or_nan(np.column_stack([xs, ys]))


def sample_polar(
    r_compiled: CompiledExpression,
    parameters: Optional[Mapping[str, float]] = None,
    *,
    theta_range: Tuple[float, float] = DEFAULT_SETTINGS.theta_range,
    steps: int = DEFAULT_SETTINGS.theta_steps,
) -> np.ndarray:
    """Sample ``r(theta)`` and convert to Cartesian ``(r cos theta, r sin theta)``."""
    thetas = np.linspace(theta_range[0], theta_range[1], steps + 1)
    rs = evaluate_on_grid(r_compiled, {"theta": thetas}, parameters)
    return _finite_or_nan(np.column_stack([rs * np.cos(thetas), rs * np.sin(thetas)]))


@dataclass
class SampleTable:
    """Explicit samples of several expressions on one shared x-grid.

    ``columns`` maps expression id to a float array with NaN for undefined
    samples. Renderers must draw NaN as a gap, never as zero.
    """

    x: np.ndarray
    columns: Dict[str, np.ndarray] = field(default_factory=dict)

    def column(self, expr_id: str) -> List[Optional[float]]:
        """Values of one expression with ``None`` marking undefined samples."""
        return [None if np.isnan(v) else float(v) for v in self.columns[expr_id]]

    def rows(self) -> List[Dict[str, Optional[float]]]:
        """One ``{"x": ..., <id>: value-or-None, ...}`` dict per sample."""
        out: List[Dict[str, Optional[float]]] = []
        for i, x in enumerate(self.x):
            row: Dict[str, Optional[float]] = {"x": float(x)}
            for expr_id, values in self.columns.items():
                v = values[i]
                row[expr_id] = None if np.isnan(v) else float(v)
            out.append(row)
        return out

    def __len__(self) -> int:
        return len(self.x)
