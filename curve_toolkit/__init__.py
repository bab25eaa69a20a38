"""Top-level public API for the ``curve_toolkit`` package.

This module re-exports the expression-to-curve pipeline so callers can import
from a single namespace, for example:

>>> from curve_toolkit import CurvePipeline, classify_expression  # doctest: +SKIP

It exposes both the high-level :class:`CurvePipeline` and the building blocks
it is made of (normalizer, classifier, cache, samplers, contour extraction,
stitching, smoothing) for callers that need one stage in isolation.
"""

from .anchors import find_axis_anchors
from .cache import ExpressionCache
from .classify import (
    FunctionKind,
    Geometry,
    classify_expression,
    format_geometry,
    parse_geometry,
    plan_expression,
)
from .compiler import CompileError, CompiledExpression, EvaluationError, compile_expression
from .contour import extract_implicit_segments, grid_resolution, march_squares
from .curves import CurveData, ExplicitCurve, GeometryShape, ImplicitCurve, ParametricCurve, PolarCurve
from .domain import Domain
from .normalize import normalize_expression, substitute_theta
from .pipeline import CurvePipeline, ExpressionItem, PipelineResult
from .plotly_traces import axis_layout, curve_traces, sample_table_traces
from .sampling import SampleTable, sample_explicit, sample_parametric, sample_polar
from .settings import DEFAULT_SETTINGS, CurveSettings
from .smoothing import chaikin, smooth_polylines, snap_to_anchors
from .stitch import stitch_segments
from .symbolic import derivative_text, extract_variables
from .ticks import nice_ticks
