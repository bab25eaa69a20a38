"""Parameter discovery, derivatives and value coercion."""

from __future__ import annotations

import logging

import pytest

from curve_toolkit.convert import coerce_parameters, to_real
from curve_toolkit.symbolic import derivative_text, extract_variables


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("a*x^2 + b", ["a", "b"]),
        ("sin(x) + pi + e", []),
        ("(1, 2)", []),
        ("x +", []),
        ("r = k*theta", ["k"]),
        ("(a*cos(t), sin(t))", ["a"]),
        ("x^2 + y^2 = c", ["c"]),
        ("f(x) = m*x", ["m"]),
        ("{x < c: 1, x >= c: d}", ["c", "d"]),
    ],
)
def test_extract_variables(text: str, expected: list[str]) -> None:
    assert extract_variables(text) == expected


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("x^3", "3*x^2"),
        ("sin(θ)", "cos(x)"),
        ("f(x) = x^2", "2*x"),
        ("y = 5", "0"),
    ],
)
def test_derivative_text(text: str, expected: str) -> None:
    assert derivative_text(text) == expected


@pytest.mark.parametrize("text", ["r = theta", "x^2 + y^2 = 1", "(1, 2)", "x +"])
def test_derivative_text_is_none_without_explicit_curve(text: str) -> None:
    assert derivative_text(text) is None


def test_to_real_numbers_and_text() -> None:
    assert to_real(2) == 2.0
    assert to_real(" 1.5 ") == 1.5
    assert to_real("pi/2") == pytest.approx(1.5707963267948966)
    assert to_real("2^0.5") == pytest.approx(2**0.5)


@pytest.mark.parametrize("value", [True, "", "abc", "x +", "sqrt(-1)", object()])
def test_to_real_rejects_non_numbers(value) -> None:
    with pytest.raises(ValueError):
        to_real(value)


def test_to_real_complex_needs_truncation() -> None:
    with pytest.raises(ValueError, match="imaginary part is non-zero"):
        to_real(3 + 4j)
    assert to_real(3 + 4j, truncate=True) == 3.0
    assert to_real(3 + 0j) == 3.0


def test_coerce_parameters_drops_bad_entries(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="curve_toolkit.convert"):
        params = coerce_parameters({"a": "1", "b": "oops", "c": 2})
    assert params == {"a": 1.0, "c": 2.0}
    assert "Ignoring parameter 'b'" in caplog.text
    assert coerce_parameters(None) == {}
