"""Coercion of user-supplied parameter values to real floats."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from .compiler import CompileError, parse_expression

__all__ = ["coerce_parameters", "to_real"]


logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def to_real(obj: Any, truncate: bool = False) -> float:
    """
    Convert ``obj`` to a real ``float``.

    Rules:
    - Numbers (not ``bool``) are cast directly.
    - Strings are tried with ``float(s)`` first, then parsed with the
      expression grammar (``"pi/2"``, ``"2^0.5"``) and evaluated.

    Truncation Rules (``truncate``):
    - A complex value with a non-zero imaginary part raises ``ValueError``
      unless ``truncate=True``, in which case the imaginary part is dropped.

    Raises
    ------
    ValueError
        If the value cannot be interpreted as a number.
    """

    def _coerce(value: complex) -> float:
        if value.imag != 0 and not truncate:
            raise ValueError(f"Could not convert non-real {value!r} to float: imaginary part is non-zero.")
        return float(value.real)

    if isinstance(obj, bool):
        raise ValueError(f"Could not convert {obj!r} to float.")

    if isinstance(obj, (int, float, complex)):
        return _coerce(complex(obj))

    if isinstance(obj, str):
        s = obj.strip()
        if s == "":
            raise ValueError("Cannot convert empty string to float.")
        try:
            return float(s)
        except ValueError:
            pass
        try:
            exprs = parse_expression(s)
        except CompileError as e:
            raise ValueError(f"Could not convert {obj!r} to float.") from e
        expr = exprs[-1]
        if expr.free_symbols:
            names = ", ".join(sorted(sym.name for sym in expr.free_symbols))
            raise ValueError(f"Could not convert {obj!r} to float: unbound symbol(s) {names}.")
        try:
            return _coerce(complex(expr.evalf()))
        except TypeError as e:
            raise ValueError(f"Could not convert {obj!r} to float.") from e

    try:
        return _coerce(complex(obj))
    except Exception as e:
        raise ValueError(f"Could not convert {obj!r} to float.") from e


def coerce_parameters(parameters: Mapping[str, Any] | None) -> Dict[str, float]:
    """Convert a parameter binding map; unconvertible entries are dropped."""
    out: Dict[str, float] = {}
    for name, value in (parameters or {}).items():
        try:
            out[str(name)] = to_real(value)
        except ValueError as exc:
            logger.warning("Ignoring parameter %r: %s", name, exc)
    return out
