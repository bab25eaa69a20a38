"""Compiling expression text and caching the result."""

from __future__ import annotations

import logging

import numpy as np
import pytest

from curve_toolkit.cache import ExpressionCache
from curve_toolkit.compiler import (
    CompileError,
    EvaluationError,
    compile_expression,
    parse_statement,
    to_real_array,
)


def test_compiled_expression_is_vectorized() -> None:
    compiled = compile_expression("x^2 + 2x + 1")
    xs = np.array([-1.0, 0.0, 2.0])
    np.testing.assert_allclose(compiled.evaluate({"x": xs}), [0.0, 1.0, 9.0])
    assert compiled.variables == ("x",)
    assert not compiled.is_sequence


def test_implicit_multiplication_and_caret_power() -> None:
    compiled = compile_expression("(x+1)(x-1)")
    assert compiled.evaluate({"x": 3.0}) == pytest.approx(8.0)


def test_constants_and_whitelisted_functions() -> None:
    compiled = compile_expression("sin(pi/2) + ln(e) + abs(-2) + max(x, 0)")
    assert compiled.variables == ("x",)
    np.testing.assert_allclose(compiled.evaluate({"x": np.array([-1.0, 3.0])}), [4.0, 7.0])


def test_parameter_names_are_free_symbols() -> None:
    compiled = compile_expression("beta*x + S")
    assert set(compiled.variables) == {"beta", "x", "S"}
    assert compiled.evaluate({"beta": 2.0, "x": 3.0, "S": 1.0}) == pytest.approx(7.0)


def test_multi_statement_evaluates_to_tuple() -> None:
    compiled = compile_expression("a = 2; a*x")
    assert compiled.is_sequence
    first, last = compiled.evaluate({"x": 3.0})
    assert float(first) == pytest.approx(2.0)
    assert float(last) == pytest.approx(6.0)


def test_function_assignment_is_callable_later() -> None:
    compiled = compile_expression("f(u) = u^2\nf(x) + 1")
    assert compiled.evaluate({"x": 2.0})[-1] == pytest.approx(5.0)


def test_parse_statement_reports_assignment_target() -> None:
    target, bound, expr = parse_statement("k = 3")
    assert target == "k"
    assert bound == expr == 3


@pytest.mark.parametrize("text", ["", "x +", "sin(", "(1, 2)", "3 = = 4", "1x = 2"])
def test_malformed_text_raises_compile_error(text: str) -> None:
    with pytest.raises(CompileError) as info:
        compile_expression(text)
    assert info.value.text
    assert isinstance(info.value, ValueError)


def test_unbound_symbol_raises_evaluation_error() -> None:
    compiled = compile_expression("a*x")
    with pytest.raises(EvaluationError, match="Undefined symbol"):
        compiled.evaluate({"x": 1.0})


def test_domain_errors_do_not_raise() -> None:
    compiled = compile_expression("log(x) + 1/x")
    out = to_real_array(compiled.evaluate({"x": np.array([-1.0, 0.0, 1.0])}), (3,))
    assert np.isnan(out[0])
    assert not np.isfinite(out[1])
    assert out[2] == pytest.approx(1.0)


def test_to_real_array_drops_non_real_values() -> None:
    out = to_real_array(np.array([1 + 0j, 1 + 2j]), (2,))
    assert out[0] == 1.0
    assert np.isnan(out[1])
    np.testing.assert_array_equal(to_real_array(3, (2,)), [3.0, 3.0])


def test_cache_returns_same_evaluator_and_counts_hits() -> None:
    cache = ExpressionCache(capacity=4)
    first = cache.get_or_compile("x^2")
    assert cache.get_or_compile("x^2") is first
    assert (cache.hits, cache.misses) == (1, 1)
    assert "x^2" in cache


def test_cache_evicts_first_inserted_entry() -> None:
    cache = ExpressionCache(capacity=200, compiler=lambda text: text)
    for k in range(201):
        cache.get_or_compile(f"x + {k}")
    assert len(cache) == 200
    assert "x + 0" not in cache
    assert "x + 1" in cache
    assert "x + 200" in cache


def test_cache_hit_does_not_refresh_entry() -> None:
    cache = ExpressionCache(capacity=2, compiler=lambda text: text)
    cache.get_or_compile("a")
    cache.get_or_compile("b")
    cache.get_or_compile("a")
    cache.get_or_compile("c")
    assert list(cache) == ["b", "c"]


def test_cache_does_not_store_failures() -> None:
    cache = ExpressionCache(capacity=2)
    with pytest.raises(CompileError):
        cache.get_or_compile("x +")
    assert len(cache) == 0
    assert cache.misses == 1


def test_cache_logs_eviction(caplog) -> None:
    cache = ExpressionCache(capacity=1, compiler=lambda text: text)
    with caplog.at_level(logging.DEBUG, logger="curve_toolkit.cache"):
        cache.get_or_compile("a")
        cache.get_or_compile("b")
    assert "evicted 'a'" in caplog.text


def test_cache_rejects_zero_capacity() -> None:
    with pytest.raises(ValueError):
        ExpressionCache(capacity=0)


def test_round_and_reciprocal_trig_helpers() -> None:
    np.testing.assert_allclose(compile_expression("round(x)").evaluate({"x": np.array([2.4, 2.6])}), [2.0, 3.0])
    assert compile_expression("sec(0) + cot(pi/4)").evaluate({}) == pytest.approx(2.0)


def test_round_takes_halves_away_from_zero() -> None:
    out = compile_expression("round(x)").evaluate({"x": np.array([-2.5, -0.5, 0.0, 2.5])})
    np.testing.assert_allclose(out, [-3.0, -1.0, 0.0, 3.0])


def test_cbrt_is_the_real_cube_root() -> None:
    out = compile_expression("cbrt(x)").evaluate({"x": np.array([-8.0, 0.0, 8.0])})
    np.testing.assert_allclose(out, [-2.0, 0.0, 2.0])


def test_comparison_results_are_undefined() -> None:
    value = compile_expression("x > 0").evaluate({"x": np.array([-1.0, 1.0])})
    assert np.isnan(to_real_array(value, (2,))).all()
    assert np.isnan(to_real_array(True, (3,))).all()
