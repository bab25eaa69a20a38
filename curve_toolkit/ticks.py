"""Axis tick placement."""

from __future__ import annotations

import math
from typing import List


def nice_ticks(lo: float, hi: float, count: int = 10) -> List[float]:
    """Ticks at multiples of 1, 2 or 5 times a power of ten covering ``[lo, hi]``.

    ``count`` is the approximate number of ticks wanted.

    Examples
    --------
    >>> nice_ticks(-10, 10, 5)
    [-10.0, -5.0, 0.0, 5.0, 10.0]
    """
    if lo == hi:
        return [float(lo)]
    if hi < lo:
        lo, hi = hi, lo

    rough = (hi - lo) / max(1, count - 1)
    magnitude = 10.0 ** math.floor(math.log10(rough))
    normalized = rough / magnitude
    if normalized < 1.5:
        step = magnitude
    elif normalized < 3:
        step = 2 * magnitude
    elif normalized < 7.5:
        step = 5 * magnitude
    else:
        step = 10 * magnitude

    first = math.ceil(lo / step)
    last = math.floor(hi / step)
    return [float(f"{k * step:.10g}") for k in range(first, last + 1)]
