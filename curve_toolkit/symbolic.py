"""Symbolic helpers on raw expression text: free parameters and derivatives."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import sympy as sp

from .classify import ExplicitPlan, GeometryPlan, ImplicitPlan, ParametricPlan, PolarPlan, plan_expression
from .compiler import CompileError, parse_expression
from .normalize import normalize_expression

__all__ = ["SAMPLING_VARIABLES", "derivative_text", "expression_to_text", "extract_variables"]


logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

#: Names bound by the samplers themselves; never reported as parameters.
SAMPLING_VARIABLES = frozenset({"x", "y", "t", "theta", "r"})


def _plan_texts(text: str) -> Tuple[str, ...]:
    plan = plan_expression(normalize_expression(text))
    if isinstance(plan, GeometryPlan):
        return ()
    if isinstance(plan, PolarPlan):
        return (plan.r_text,)
    if isinstance(plan, ParametricPlan):
        return (plan.x_text, plan.y_text)
    if isinstance(plan, ImplicitPlan):
        return (plan.g_text,)
    if isinstance(plan, ExplicitPlan):
        return (plan.text,)
    raise AssertionError(f"Unhandled plan: {plan!r}")


def extract_variables(text: str) -> List[str]:
    """Free parameter names of ``text``, sorted.

    Sampling variables, constants and function names are excluded. Malformed
    text yields an empty list.
    """
    names: set[str] = set()
    try:
        for sub in _plan_texts(text):
            for expr in parse_expression(sub):
                names.update(sym.name for sym in expr.free_symbols)
    except CompileError:
        return []
    return sorted(names - SAMPLING_VARIABLES)


def expression_to_text(expr: sp.Basic) -> str:
    """Render a SymPy expression in the input grammar (``^`` for power)."""
    return sp.sstr(expr).replace("**", "^")


def derivative_text(text: str, variable: str = "x") -> Optional[str]:
    """Derivative of an explicit expression with respect to ``variable``.

    Returns ``None`` for non-explicit kinds or text that does not compile.
    """
    plan = plan_expression(normalize_expression(text))
    if not isinstance(plan, ExplicitPlan):
        return None
    try:
        exprs = parse_expression(plan.text)
    except CompileError as exc:
        logger.debug("no derivative for %r: %s", text, exc)
        return None
    expr = exprs[-1]
    if isinstance(expr, sp.Lambda):
        expr = expr.expr
    return expression_to_text(sp.diff(expr, sp.Symbol(variable)))
