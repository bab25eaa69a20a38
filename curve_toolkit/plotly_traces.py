"""Plotly trace builders for pipeline outputs.

This is the hand-off point to a rendering widget: every
:data:`~curve_toolkit.curves.CurveData` variant becomes one or more
``plotly.graph_objects.Scatter`` traces. Undefined samples become ``None`` so
Plotly draws gaps (``connectgaps=False``) instead of joining across them.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import plotly.graph_objects as go

from .curves import CurveData, ExplicitCurve, GeometryShape, ImplicitCurve, ParametricCurve, PolarCurve
from .sampling import SampleTable
from .ticks import nice_ticks

__all__ = ["axis_layout", "curve_traces", "sample_table_traces"]


def _gaps(values: np.ndarray) -> List[Optional[float]]:
    return [None if np.isnan(v) else float(v) for v in values]


def _line_trace(x: Sequence[Any], y: Sequence[Any], name: str, color: Optional[str], width: float) -> go.Scatter:
    line: Dict[str, Any] = {"width": width}
    if color is not None:
        line["color"] = color
    return go.Scatter(x=list(x), y=list(y), mode="lines", name=name, line=line, connectgaps=False)


def curve_traces(
    curve: CurveData,
    *,
    name: str = "",
    color: Optional[str] = None,
    width: float = 2.0,
) -> List[go.Scatter]:
    """Build the traces that draw ``curve``."""
    if isinstance(curve, ExplicitCurve):
        return [_line_trace(curve.x.tolist(), _gaps(curve.y), name, color, width)]

    if isinstance(curve, (ParametricCurve, PolarCurve)):
        pts = curve.points
        # A row is undefined as a whole if either coordinate is.
        bad = np.isnan(pts).any(axis=1)
        xs = [None if b else float(p[0]) for p, b in zip(pts, bad)]
        ys = [None if b else float(p[1]) for p, b in zip(pts, bad)]
        return [_line_trace(xs, ys, name, color, width)]

    if isinstance(curve, ImplicitCurve):
        xs: List[Optional[float]] = []
        ys: List[Optional[float]] = []
        for line in curve.polylines:
            if xs:
                xs.append(None)
                ys.append(None)
            xs.extend(p[0] for p in line)
            ys.extend(p[1] for p in line)
        return [_line_trace(xs, ys, name, color, width)]

    if isinstance(curve, GeometryShape):
        pts = list(curve.geometry.points)
        marker: Dict[str, Any] = {"size": 10, "symbol": "circle-open"}
        if color is not None:
            marker["color"] = color
        if curve.geometry.type == "point":
            return [go.Scatter(x=[pts[0][0]], y=[pts[0][1]], mode="markers", name=name, marker=marker)]
        if len(pts) > 2 and pts[0] != pts[-1]:
            pts.append(pts[0])
        line = {"width": width, **({"color": color} if color is not None else {})}
        return [
            go.Scatter(
                x=[p[0] for p in pts],
                y=[p[1] for p in pts],
                mode="lines+markers",
                name=name,
                line=line,
                marker=marker,
            )
        ]

    raise TypeError(f"Unsupported curve data: {type(curve).__name__}")


def sample_table_traces(
    table: SampleTable,
    *,
    names: Optional[Mapping[str, str]] = None,
    colors: Optional[Mapping[str, str]] = None,
    width: float = 2.0,
) -> List[go.Scatter]:
    """One line trace per explicit column of ``table``."""
    names = names or {}
    colors = colors or {}
    xs = table.x.tolist()
    return [
        _line_trace(xs, table.column(expr_id), names.get(expr_id, expr_id), colors.get(expr_id), width)
        for expr_id in table.columns
    ]


def axis_layout(x_domain: Tuple[float, float], y_domain: Tuple[float, float], density: int = 10) -> Dict[str, Any]:
    """Layout fragment fixing both axis ranges with evenly spaced ticks."""

    def _axis(domain: Tuple[float, float]) -> Dict[str, Any]:
        return {
            "range": [float(domain[0]), float(domain[1])],
            "tickmode": "array",
            "tickvals": nice_ticks(domain[0], domain[1], density),
            "zeroline": True,
        }

    return {"xaxis": _axis(x_domain), "yaxis": _axis(y_domain)}
