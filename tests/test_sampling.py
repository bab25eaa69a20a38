"""Explicit, parametric and polar samplers."""

from __future__ import annotations

import math

import numpy as np
import pytest

from curve_toolkit.compiler import EvaluationError, compile_expression
from curve_toolkit.sampling import (
    SampleTable,
    evaluate_on_grid,
    explicit_grid,
    sample_explicit,
    sample_parametric,
    sample_polar,
)


def test_explicit_grid_uses_uniform_steps() -> None:
    np.testing.assert_allclose(explicit_grid(-2, 2, 5), [-2.0, -1.0, 0.0, 1.0, 2.0])
    with pytest.raises(ValueError):
        explicit_grid(0, 1, 1)


def test_explicit_square() -> None:
    xs = explicit_grid(-2, 2, 5)
    np.testing.assert_allclose(sample_explicit(compile_expression("x^2"), xs), [4.0, 1.0, 0.0, 1.0, 4.0])


def test_explicit_undefined_samples_are_nan() -> None:
    xs = explicit_grid(-2, 2, 5)
    reciprocal = sample_explicit(compile_expression("1/x"), xs)
    assert np.isnan(reciprocal[2])
    assert reciprocal[0] == pytest.approx(-0.5)

    log = sample_explicit(compile_expression("log(x)"), xs)
    assert np.isnan(log[:3]).all()
    assert log[3] == pytest.approx(0.0)


def test_explicit_uses_last_statement_value() -> None:
    xs = explicit_grid(0, 2, 3)
    np.testing.assert_allclose(sample_explicit(compile_expression("a = 2; a*x"), xs), [0.0, 2.0, 4.0])


def test_explicit_parameters_and_missing_parameters() -> None:
    compiled = compile_expression("k*x")
    xs = explicit_grid(0, 1, 3)
    np.testing.assert_allclose(sample_explicit(compiled, xs, {"k": 3.0}), [0.0, 1.5, 3.0])
    assert np.isnan(sample_explicit(compiled, xs)).all()


def test_sampling_variable_wins_over_parameter() -> None:
    xs = explicit_grid(0, 1, 2)
    np.testing.assert_allclose(sample_explicit(compile_expression("x"), xs, {"x": 10.0}), [0.0, 1.0])


class _ScalarOnly:
    """Evaluator that rejects arrays and fails at one sample."""

    text = "scalar-only"
    variables = ("x",)

    def evaluate(self, scope):
        x = scope["x"]
        if isinstance(x, np.ndarray):
            raise EvaluationError("no broadcasting")
        if x == 1.0:
            raise EvaluationError("bad sample")
        return math.sqrt(x)


def test_failed_vectorized_call_falls_back_to_single_samples() -> None:
    out = evaluate_on_grid(_ScalarOnly(), {"x": np.array([0.0, 1.0, 4.0])})
    assert out[0] == 0.0
    assert np.isnan(out[1])
    assert out[2] == 2.0


def test_parametric_unit_circle() -> None:
    points = sample_parametric(compile_expression("cos(t)"), compile_expression("sin(t)"), t_range=(0, 2 * math.pi), steps=100)
    assert points.shape == (101, 2)
    np.testing.assert_allclose(np.hypot(points[:, 0], points[:, 1]), 1.0)
    np.testing.assert_allclose(points[0], points[-1], atol=1e-12)


def test_parametric_constant_component_broadcasts() -> None:
    points = sample_parametric(compile_expression("2"), compile_expression("t"), t_range=(0, 1), steps=4)
    np.testing.assert_allclose(points[:, 0], 2.0)
    np.testing.assert_allclose(points[:, 1], [0.0, 0.25, 0.5, 0.75, 1.0])


def test_parametric_undefined_row() -> None:
    points = sample_parametric(compile_expression("sqrt(t)"), compile_expression("t"), t_range=(-1, 1), steps=2)
    assert np.isnan(points[0, 0])
    np.testing.assert_allclose(points[2], [1.0, 1.0])


def test_polar_converts_to_cartesian() -> None:
    points = sample_polar(compile_expression("1"), steps=8)
    assert points.shape == (9, 2)
    np.testing.assert_allclose(np.hypot(points[:, 0], points[:, 1]), 1.0)
    np.testing.assert_allclose(points[2], [0.0, 1.0], atol=1e-12)


def test_polar_uses_theta_directly() -> None:
    points = sample_polar(compile_expression("theta"), theta_range=(0, math.pi), steps=2)
    np.testing.assert_allclose(points[1], [0.0, math.pi / 2], atol=1e-12)


def test_sample_table_marks_undefined_as_none() -> None:
    table = SampleTable(x=np.array([0.0, 1.0]), columns={"a": np.array([np.nan, 2.0])})
    assert len(table) == 2
    assert table.column("a") == [None, 2.0]
    assert table.rows() == [{"x": 0.0, "a": None}, {"x": 1.0, "a": 2.0}]
