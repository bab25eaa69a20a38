"""Normalizer rewrites and idempotence."""

from __future__ import annotations

import pytest

from curve_toolkit.normalize import normalize_expression, rewrite_piecewise, split_top_level, substitute_theta


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("π", "pi"),
        ("6 ÷ 2", "6 / 2"),
        ("3 × x", "3 * x"),
        ("√(x)", "sqrt(x)"),
        ("∞", "Infinity"),
        ("sin(θ)", "sin(theta)"),
        ("2π×x", "2pi*x"),
    ],
)
def test_symbol_aliases_are_replaced(raw: str, expected: str) -> None:
    assert normalize_expression(raw) == expected


def test_piecewise_block_becomes_nested_conditional_ending_in_undefined() -> None:
    out = normalize_expression("{x < 0: x^2, x >= 0: x}")
    assert out == "Piecewise((x^2, x < 0), (Piecewise((x, x >= 0), (nan, True)), True))"


def test_piecewise_skips_branches_without_condition_or_value() -> None:
    assert rewrite_piecewise("{x < 0: 1, junk}") == "Piecewise((1, x < 0), (nan, True))"
    assert rewrite_piecewise("{ }") == "nan"


def test_piecewise_keeps_commas_inside_calls() -> None:
    out = rewrite_piecewise("{x > 0: max(x, 1)}")
    assert out == "Piecewise((max(x, 1), x > 0), (nan, True))"


def test_non_block_text_is_left_alone() -> None:
    assert rewrite_piecewise("x^2 + {1}") == "x^2 + {1}"


def test_split_top_level_respects_nesting() -> None:
    assert split_top_level("f(a, b), (c, d), e", ",") == ["f(a, b)", " (c, d)", " e"]


def test_substitute_theta_is_word_bounded() -> None:
    assert substitute_theta("theta + thetas + 2*theta") == "x + thetas + 2*x"
    assert substitute_theta("2theta + a2theta") == "2x + a2theta"


@pytest.mark.parametrize(
    "raw",
    ["x^2", "{x<0: -1, x>0: 1}", "r = 2sin(3θ)", "(cos(t), sin(t))", "√(π × x)", "", "{a: {b: c}}"],
)
def test_normalize_is_idempotent_on_examples(raw: str) -> None:
    once = normalize_expression(raw)
    assert normalize_expression(once) == once
