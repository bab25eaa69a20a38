"""Bounded first-in-first-out cache of compiled expressions.

Users edit expressions one character at a time and every edit can produce a
new cache key, so the cache is capped. Eviction is by insertion order, not by
access order: a hit does not refresh an entry.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterator, Optional

from .compiler import CompiledExpression, compile_expression
from .settings import DEFAULT_SETTINGS

__all__ = ["ExpressionCache"]


logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class ExpressionCache:
    """Map normalized text to its :class:`CompiledExpression`.

    Parameters
    ----------
    capacity:
        Maximum number of entries. The size never exceeds it: the oldest
        entry is evicted *before* a new one is inserted.
    compiler:
        Callable used on cache misses. Defaults to
        :func:`curve_toolkit.compiler.compile_expression`.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_SETTINGS.cache_capacity,
        compiler: Optional[Callable[[str], CompiledExpression]] = None,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity = int(capacity)
        self._compiler = compiler or compile_expression
        self._entries: Dict[str, CompiledExpression] = {}
        self.hits = 0
        self.misses = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def get_or_compile(self, text: str) -> CompiledExpression:
        """Return the cached evaluator for ``text``, compiling on a miss.

        Raises
        ------
        CompileError
            If ``text`` does not compile. Failures are not cached.
        """
        compiled = self._entries.get(text)
        if compiled is not None:
            self.hits += 1
            return compiled

        self.misses += 1
        compiled = self._compiler(text)
        if len(self._entries) >= self._capacity:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug("expression cache full (%d); evicted %r", self._capacity, oldest)
        self._entries[text] = compiled
        return compiled

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __contains__(self, text: object) -> bool:
        return text in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __repr__(self) -> str:
        return f"ExpressionCache(size={len(self)}, capacity={self._capacity})"
