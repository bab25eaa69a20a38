"""
compiler: Turn normalized expression text into vectorized NumPy evaluators
==========================================================================

Purpose
-------
Provide the "compile(text) -> evaluator" capability the curve samplers rely on.
Text is parsed with SymPy, printed to NumPy source and ``exec``'d into a small
generated function, so one compiled expression evaluates a whole sample grid in
a single NumPy call.

Grammar
-------
- ``^`` is power and juxtaposition multiplies (``2x``, ``(x+1)(x-1)``).
- Whitelisted names map to SymPy functions and constants (see
  :data:`KNOWN_NAMES`); every other identifier is a free symbol that must be
  bound at evaluation time.
- ``;`` or newlines separate statements. ``a = 2`` and ``f(x) = x^2`` assign
  for the following statements. A multi-statement expression evaluates to a
  tuple with one value per statement.

Errors
------
- :class:`CompileError` when the text is rejected by the grammar. Expected
  while the user is mid-edit; callers treat it as "no curve".
- :class:`EvaluationError` when evaluation itself fails (unbound symbol,
  evaluator exception). Domain errors such as ``log(-1)`` or ``1/0`` do *not*
  raise; they produce NaN/inf under :func:`numpy.errstate`.

Logging
-------
This module uses :mod:`logging` and is silent by default:

>>> import logging
>>> logging.getLogger("curve_toolkit.compiler").setLevel(logging.DEBUG)  # doctest: +SKIP

Notes
-----
Compilation uses ``exec`` on generated source. The source only ever contains
code printed by SymPy, but do not feed untrusted text through it in a server.
"""

from __future__ import annotations

import builtins
import keyword
import logging
import math
import re
import textwrap
import time
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np
import sympy as sp
from sympy.parsing.sympy_parser import (
    convert_xor,
    implicit_multiplication,
    parse_expr,
    standard_transformations,
)
from sympy.printing.numpy import NumPyPrinter

from .classify import find_equation_sign
from .normalize import split_top_level

__all__ = [
    "CompileError",
    "CompiledExpression",
    "EvaluationError",
    "KNOWN_NAMES",
    "compile_expression",
    "parse_expression",
    "parse_statement",
    "to_real_array",
]


logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class CompileError(ValueError):
    """Raised when expression text cannot be compiled."""

    def __init__(self, text: str, reason: str) -> None:
        super().__init__(f"Cannot compile {text!r}: {reason}")
        self.text = text
        self.reason = reason


class EvaluationError(ArithmeticError):
    """Raised when a compiled expression cannot be evaluated for a scope."""


_TRANSFORMATIONS = standard_transformations + (implicit_multiplication, convert_xor)

_FUNCTIONS: Dict[str, Any] = {
    "sin": sp.sin,
    "cos": sp.cos,
    "tan": sp.tan,
    "sec": lambda arg: 1 / sp.cos(arg),
    "csc": lambda arg: 1 / sp.sin(arg),
    "cot": lambda arg: 1 / sp.tan(arg),
    "asin": sp.asin,
    "acos": sp.acos,
    "atan": sp.atan,
    "atan2": sp.atan2,
    "sinh": sp.sinh,
    "cosh": sp.cosh,
    "tanh": sp.tanh,
    "asinh": sp.asinh,
    "acosh": sp.acosh,
    "atanh": sp.atanh,
    "sqrt": sp.sqrt,
    "cbrt": lambda arg: sp.sign(arg) * sp.Abs(arg) ** sp.Rational(1, 3),
    "exp": sp.exp,
    "log": sp.log,
    "ln": sp.log,
    "log10": lambda arg: sp.log(arg, 10),
    "log2": lambda arg: sp.log(arg, 2),
    "abs": sp.Abs,
    "sign": sp.sign,
    "floor": sp.floor,
    "ceil": sp.ceiling,
    "round": lambda arg: sp.sign(arg) * sp.floor(sp.Abs(arg) + sp.Rational(1, 2)),
    "max": sp.Max,
    "min": sp.Min,
    "mod": sp.Mod,
    "Piecewise": sp.Piecewise,
}

_CONSTANTS: Dict[str, Any] = {
    "pi": sp.pi,
    "e": sp.E,
    "E": sp.E,
    "tau": 2 * sp.pi,
    "phi": (1 + sp.sqrt(5)) / 2,
    "Infinity": sp.oo,
    "nan": sp.nan,
}

#: Identifiers that never become free symbols.
KNOWN_NAMES = frozenset(_FUNCTIONS) | frozenset(_CONSTANTS)

_IDENTIFIER_RE = re.compile(r"[A-Za-z_]\w*")
_FUNCTION_TARGET_RE = re.compile(r"^([A-Za-z_]\w*)\s*\(\s*([A-Za-z_]\w*(?:\s*,\s*[A-Za-z_]\w*)*)\s*\)$")
_NAME_TARGET_RE = re.compile(r"^[A-Za-z_]\w*$")

_RESERVED_NAMES = set(keyword.kwlist) | set(dir(builtins)) | {"numpy", "math"}


class _CurvePrinter(NumPyPrinter):
    """NumPy printer whose ``Max``/``Min`` broadcast scalars against arrays."""

    def _print_Max(self, expr: sp.Max) -> str:
        return self._pairwise(expr, "numpy.maximum")

    def _print_Min(self, expr: sp.Min) -> str:
        return self._pairwise(expr, "numpy.minimum")

    def _pairwise(self, expr: sp.Basic, fn: str) -> str:
        args = [self._print(arg) for arg in expr.args]
        code = args[0]
        for arg in args[1:]:
            code = f"{fn}({code}, {arg})"
        return code


def _local_dict(text: str, extra: Mapping[str, Any]) -> Dict[str, Any]:
    """Bind every identifier in ``text`` explicitly.

    Unknown names become plain symbols so parameter names such as ``beta`` or
    ``S`` never resolve to SymPy's own objects.
    """
    local: Dict[str, Any] = {}
    for name in set(_IDENTIFIER_RE.findall(text)):
        if name in extra:
            local[name] = extra[name]
        elif name in _FUNCTIONS:
            local[name] = _FUNCTIONS[name]
        elif name in _CONSTANTS:
            local[name] = _CONSTANTS[name]
        elif not keyword.iskeyword(name):
            local[name] = sp.Symbol(name)
    return local


def _parse(text: str, extra: Mapping[str, Any]) -> sp.Basic:
    try:
        parsed = parse_expr(text, local_dict=_local_dict(text, extra), transformations=_TRANSFORMATIONS)
    except Exception as exc:
        raise CompileError(text, f"{type(exc).__name__}: {exc}") from exc
    try:
        expr = sp.sympify(parsed)
    except Exception as exc:
        raise CompileError(text, f"not a scalar expression ({type(parsed).__name__})") from exc
    if not isinstance(expr, sp.Basic) or isinstance(expr, sp.Tuple):
        raise CompileError(text, f"not a scalar expression ({type(parsed).__name__})")
    return expr


def parse_statement(text: str, extra: Optional[Mapping[str, Any]] = None) -> Tuple[Optional[str], Any, sp.Basic]:
    """Parse one statement into ``(target_name, bound_value, expr)``.

    ``target_name`` is ``None`` for a bare expression. For ``f(x) = ...`` both
    the bound value and ``expr`` are a :class:`sympy.Lambda`, so later
    statements can call ``f`` and its arguments are not free symbols.
    """
    extra = dict(extra or {})
    idx = find_equation_sign(text)
    if idx < 0:
        return None, None, _parse(text, extra)

    target = text[:idx].strip()
    value_text = text[idx + 1 :].strip()
    if not value_text:
        raise CompileError(text, "assignment has no value")

    func_match = _FUNCTION_TARGET_RE.match(target)
    if func_match is not None:
        name = func_match.group(1)
        arg_names = [a.strip() for a in func_match.group(2).split(",")]
        args = [sp.Symbol(a) for a in arg_names]
        scope = dict(extra)
        scope.update({a: s for a, s in zip(arg_names, args)})
        expr = _parse(value_text, scope)
        func = sp.Lambda(tuple(args), expr)
        return name, func, func

    if _NAME_TARGET_RE.match(target):
        expr = _parse(value_text, extra)
        return target, expr, expr

    raise CompileError(text, f"invalid assignment target {target!r}")


def _argument_names(symbols: Sequence[sp.Symbol]) -> Tuple[Tuple[sp.Symbol, str], ...]:
    """Pair each symbol with a Python-safe, collision-free argument name."""
    used = set(_RESERVED_NAMES)
    out: list[Tuple[sp.Symbol, str]] = []
    for sym in symbols:
        base = sym.name if sym.name.isidentifier() else re.sub(r"\W", "_", sym.name)
        candidate = base
        suffix = 0
        while candidate in used or keyword.iskeyword(candidate):
            candidate = f"{base}__{suffix}"
            suffix += 1
        used.add(candidate)
        out.append((sym, candidate))
    return tuple(out)


class _Statement:
    """One generated NumPy function plus the scope names it reads.

    An ``optional`` statement (the body of a function definition) evaluates
    to NaN when its arguments are not in scope instead of raising.
    """

    __slots__ = ("symbolic", "fn", "names", "source", "optional")

    def __init__(
        self,
        symbolic: sp.Basic,
        fn: Callable[..., Any],
        names: Tuple[str, ...],
        source: str,
        optional: bool = False,
    ) -> None:
        self.symbolic = symbolic
        self.fn = fn
        self.names = names
        self.source = source
        self.optional = optional

    def __call__(self, scope: Mapping[str, Any]) -> Any:
        if self.optional and any(name not in scope for name in self.names):
            return np.nan
        try:
            args = [scope[name] for name in self.names]
        except KeyError as exc:
            raise EvaluationError(f"Undefined symbol: {exc.args[0]}") from None
        try:
            with np.errstate(all="ignore"):
                return self.fn(*args)
        except Exception as exc:
            raise EvaluationError(f"{type(exc).__name__}: {exc}") from exc


def _generate(expr: sp.Basic, optional: bool = False) -> _Statement:
    symbols = sorted(expr.free_symbols, key=sp.default_sort_key)
    signature = _argument_names(symbols)
    arg_names = [name for _, name in signature]
    expr_codegen = expr.xreplace({sym: sp.Symbol(name) for sym, name in signature})

    printer = _CurvePrinter(settings={"user_functions": {}, "allow_unknown_functions": False})
    try:
        code = printer.doprint(expr_codegen)
    except Exception as exc:
        raise CompileError(str(expr), f"no NumPy form: {exc}") from exc

    src = "\n".join(["def _generated(" + ", ".join(arg_names) + "):", f"    return {code}"])
    glb: Dict[str, Any] = {"numpy": np, "math": math}
    loc: Dict[str, Any] = {}
    exec(src, glb, loc)
    fn = loc["_generated"]
    fn.__doc__ = textwrap.dedent(
        f"""
        Auto-generated NumPy function.

        expr: {expr!r}
        args: {arg_names}
        """
    ).strip()
    return _Statement(expr, fn, tuple(sym.name for sym, _ in signature), src, optional)


class CompiledExpression:
    """Read-only evaluator bound to one normalized expression text.

    ``evaluate`` accepts a scope mapping names to scalars or NumPy arrays and
    returns the raw NumPy result (a tuple of results for multi-statement
    text). Use :func:`to_real_array` to turn a result into a float array with
    NaN marking undefined samples.
    """

    __slots__ = ("text", "_statements")

    def __init__(self, text: str, statements: Sequence[_Statement]) -> None:
        self.text = text
        self._statements = tuple(statements)

    @property
    def symbolic(self) -> Tuple[sp.Basic, ...]:
        return tuple(st.symbolic for st in self._statements)

    @property
    def variables(self) -> Tuple[str, ...]:
        """Names the scope must provide, in first-use order.

        Arguments of function definitions are not included.
        """
        seen: dict[str, None] = {}
        for st in self._statements:
            if st.optional:
                continue
            for name in st.names:
                seen.setdefault(name, None)
        return tuple(seen)

    @property
    def is_sequence(self) -> bool:
        return len(self._statements) > 1

    @property
    def source(self) -> str:
        return "\n\n".join(st.source for st in self._statements)

    def evaluate(self, scope: Mapping[str, Any]) -> Any:
        """Evaluate against ``scope``; raises :class:`EvaluationError`."""
        if len(self._statements) == 1:
            return self._statements[0](scope)
        return tuple(st(scope) for st in self._statements)

    def __repr__(self) -> str:
        return f"CompiledExpression({self.text!r}, variables={self.variables})"


def parse_expression(text: str) -> Tuple[sp.Basic, ...]:
    """Parse every statement of ``text`` without generating code.

    Assignments are substituted into the statements that follow them, so the
    returned expressions only contain genuinely free symbols.

    Raises
    ------
    CompileError
        If the text is empty or rejected by the grammar.
    """
    chunks = [c.strip() for piece in split_top_level(text, ";") for c in piece.split("\n")]
    chunks = [c for c in chunks if c]
    if not chunks:
        raise CompileError(text, "empty expression")

    assigned: Dict[str, Any] = {}
    exprs: list[sp.Basic] = []
    for chunk in chunks:
        target, bound, expr = parse_statement(chunk, assigned)
        if target is not None:
            assigned[target] = bound
        exprs.append(expr)
    return tuple(exprs)


def compile_expression(text: str) -> CompiledExpression:
    """Compile normalized ``text`` into a :class:`CompiledExpression`.

    Raises
    ------
    CompileError
        If the text is empty or rejected by the grammar.
    """
    log_debug = logger.isEnabledFor(logging.DEBUG)
    t0: float | None = time.perf_counter() if log_debug else None

    statements = [
        _generate(expr.expr, optional=True) if isinstance(expr, sp.Lambda) else _generate(expr)
        for expr in parse_expression(text)
    ]

    if log_debug and t0 is not None:
        logger.debug("compiled %r into %d statement(s) in %.2f ms", text, len(statements), 1000.0 * (time.perf_counter() - t0))
    return CompiledExpression(text, statements)


def to_real_array(value: Any, shape: Tuple[int, ...]) -> np.ndarray:
    """Broadcast an evaluation result to ``shape`` as float with NaN gaps.

    Non-real entries (complex with a non-zero imaginary part) and values that
    cannot be interpreted as numbers become NaN. So does a comparison result
    such as ``x > 0``: a truth value is not a sample. Infinities are kept; the
    samplers decide what counts as finite.
    """
    try:
        arr = np.asarray(value)
        if arr.dtype == bool:
            return np.full(shape, np.nan)
        if arr.dtype == object:
            arr = arr.astype(complex)
        if np.iscomplexobj(arr):
            real = np.where(np.abs(arr.imag) <= 1e-12, arr.real, np.nan)
        else:
            real = arr.astype(float)
        return np.array(np.broadcast_to(real, shape), dtype=float)
    except (TypeError, ValueError) as exc:
        raise EvaluationError(f"Result is not numeric: {exc}") from exc
