"""Expression-to-curve pipeline entry point.

Purpose
-------
``CurvePipeline`` turns a list of user expressions plus the visible domain
into curve data a renderer can draw. Data flow per expression::

    text -> normalize -> classify/plan -> cache.get_or_compile -> sampler

and, for implicit curves only::

    contour extraction -> stitching -> anchor snap -> smoothing -> anchor snap

Architecture notes
------------------
The pipeline owns its :class:`~curve_toolkit.cache.ExpressionCache`; there is
no process-wide cache. It is synchronous and single-threaded: a caller that
debounces edits simply discards stale results and calls again.

Errors are contained per expression. An expression that does not compile (a
normal state while typing) yields ``None``; a sample that fails to evaluate is
undefined. Nothing here raises for bad user input.

Examples
--------
>>> pipeline = CurvePipeline()
>>> table = pipeline.generate_points([{"id": "a", "text": "x^2"}], -2, 2, point_count=5)
>>> table.column("a")
[4.0, 1.0, 0.0, 1.0, 4.0]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

from .anchors import find_axis_anchors
from .cache import ExpressionCache
from .classify import (
    ExplicitPlan,
    GeometryPlan,
    ImplicitPlan,
    ParametricPlan,
    PolarPlan,
    plan_expression,
)
from .compiler import CompileError, CompiledExpression
from .contour import extract_implicit_segments
from .convert import coerce_parameters
from .curves import CurveData, ExplicitCurve, GeometryShape, ImplicitCurve, ParametricCurve, PolarCurve
from .domain import Domain
from .normalize import normalize_expression
from .sampling import SampleTable, explicit_grid, sample_explicit, sample_parametric, sample_polar
from .settings import DEFAULT_SETTINGS, CurveSettings
from .smoothing import smooth_polylines, smoothing_iterations, snap_to_anchors
from .stitch import stitch_segments

__all__ = ["CurvePipeline", "ExpressionItem", "PipelineResult"]


logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

RangeLike = Tuple[float, float]
ItemLike = Union["ExpressionItem", Mapping[str, Any]]


@dataclass(frozen=True)
class ExpressionItem:
    """One entry of the expression list: ``{id, text, visible}``."""

    id: str
    text: str
    visible: bool = True

    @classmethod
    def coerce(cls, obj: ItemLike) -> "ExpressionItem":
        """Accept an ``ExpressionItem`` or a mapping with ``text`` (or ``expr``)."""
        if isinstance(obj, ExpressionItem):
            return obj
        text = obj.get("text", obj.get("expr", ""))
        return cls(id=str(obj["id"]), text=str(text or ""), visible=bool(obj.get("visible", True)))

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()


@dataclass
class PipelineResult:
    """Everything one recomputation produces for the renderer."""

    table: SampleTable
    curves: Dict[str, CurveData] = field(default_factory=dict)


class CurvePipeline:
    """Recompute curves for an expression list and a viewport.

    Parameters
    ----------
    settings:
        Tunables; defaults to :data:`curve_toolkit.settings.DEFAULT_SETTINGS`.
    cache:
        Compiled-expression cache to use. A fresh one sized by
        ``settings.cache_capacity`` is created when omitted.
    """

    def __init__(self, settings: CurveSettings = DEFAULT_SETTINGS, cache: Optional[ExpressionCache] = None) -> None:
        self.settings = settings
        self.cache = cache if cache is not None else ExpressionCache(settings.cache_capacity)

    def compile(self, text: str) -> CompiledExpression:
        """Cached compile of already-normalized ``text``; raises ``CompileError``."""
        return self.cache.get_or_compile(text)

    # ------------------------------------------------------------------
    # Explicit expressions on a shared x-grid
    # ------------------------------------------------------------------

    def generate_points(
        self,
        expressions: Iterable[ItemLike],
        x_min: float,
        x_max: float,
        point_count: Optional[int] = None,
        parameters: Optional[Mapping[str, Any]] = None,
    ) -> SampleTable:
        """Sample every visible explicit expression on one shared x-grid.

        Hidden, blank, non-explicit and uncompilable expressions get no column.
        """
        xs = explicit_grid(x_min, x_max, point_count or self.settings.point_count)
        params = coerce_parameters(parameters)
        table = SampleTable(x=xs)
        for obj in expressions:
            item = ExpressionItem.coerce(obj)
            if not item.visible or item.is_blank:
                continue
            plan = plan_expression(normalize_expression(item.text))
            if not isinstance(plan, ExplicitPlan):
                continue
            try:
                compiled = self.compile(plan.text)
            except CompileError as exc:
                logger.debug("skipping %s: %s", item.id, exc)
                continue
            table.columns[item.id] = sample_explicit(compiled, xs, params)
        return table

    # ------------------------------------------------------------------
    # Per-expression data
    # ------------------------------------------------------------------

    def generate_function_data(
        self,
        item: ItemLike,
        x_domain: RangeLike,
        y_domain: RangeLike,
        parameters: Optional[Mapping[str, Any]] = None,
        point_count: Optional[int] = None,
    ) -> Optional[CurveData]:
        """Curve data for one expression, or ``None`` when there is no curve."""
        item = ExpressionItem.coerce(item)
        if not item.visible or item.is_blank:
            return None
        domain = Domain.from_ranges(x_domain, y_domain)
        params = coerce_parameters(parameters)
        try:
            return self._curve_for(item, domain, params, point_count or self.settings.point_count)
        except CompileError as exc:
            logger.debug("no curve for %s: %s", item.id, exc)
            return None
        except Exception:
            logger.warning("curve generation failed for %s (%r)", item.id, item.text, exc_info=True)
            return None

    def _curve_for(self, item: ExpressionItem, domain: Domain, params: Dict[str, float], point_count: int) -> CurveData:
        settings = self.settings
        plan = plan_expression(normalize_expression(item.text))

        if isinstance(plan, GeometryPlan):
            return GeometryShape(geometry=plan.geometry)

        if isinstance(plan, ExplicitPlan):
            xs = explicit_grid(domain.x_min, domain.x_max, point_count)
            return ExplicitCurve(x=xs, y=sample_explicit(self.compile(plan.text), xs, params))

        if isinstance(plan, ParametricPlan):
            points = sample_parametric(
                self.compile(plan.x_text),
                self.compile(plan.y_text),
                params,
                t_range=settings.t_range,
                steps=settings.t_steps,
            )
            return ParametricCurve(points=points)

        if isinstance(plan, PolarPlan):
            points = sample_polar(
                self.compile(plan.r_text),
                params,
                theta_range=settings.theta_range,
                steps=settings.theta_steps,
            )
            return PolarCurve(points=points)

        if isinstance(plan, ImplicitPlan):
            return self.implicit_curve(self.compile(plan.g_text), domain, params)

        raise AssertionError(f"Unhandled plan: {plan!r}")

    def implicit_curve(
        self,
        compiled: CompiledExpression,
        domain: Domain,
        parameters: Optional[Mapping[str, float]] = None,
    ) -> ImplicitCurve:
        """Extract, stitch, snap and smooth the zero set of ``compiled``."""
        settings = self.settings
        contour = extract_implicit_segments(compiled, domain, parameters, settings)
        polylines = stitch_segments(contour.segments, settings.quantize_scale)

        anchors = find_axis_anchors(
            compiled,
            domain,
            parameters,
            settings,
            samples=max(contour.resolution) + 1,
        )
        snap_distance = settings.snap_factor * contour.step
        polylines = snap_to_anchors(polylines, anchors, snap_distance)
        polylines = smooth_polylines(polylines, smoothing_iterations(domain.extent, settings.small_domain))
        polylines = snap_to_anchors(polylines, anchors, snap_distance * settings.post_smooth_snap_factor)

        return ImplicitCurve(
            segments=contour.segments,
            polylines=polylines,
            anchors=anchors,
            resolution=contour.resolution,
        )

    # ------------------------------------------------------------------
    # Whole recomputation
    # ------------------------------------------------------------------

    def compute(
        self,
        expressions: Sequence[ItemLike],
        x_domain: RangeLike,
        y_domain: RangeLike,
        parameters: Optional[Mapping[str, Any]] = None,
        point_count: Optional[int] = None,
    ) -> PipelineResult:
        """Shared explicit table plus per-expression curves for one viewport."""
        items = [ExpressionItem.coerce(obj) for obj in expressions]
        table = self.generate_points(items, x_domain[0], x_domain[1], point_count, parameters)
        result = PipelineResult(table=table)
        for item in items:
            curve = self.generate_function_data(item, x_domain, y_domain, parameters, point_count)
            if curve is not None:
                result.curves[item.id] = curve
        return result
