"""Reassemble an unordered segment soup into maximal polylines."""

from __future__ import annotations

from collections import defaultdict, deque
from typing import Deque, Dict, Iterable, List, Sequence, Tuple

from .domain import Point, Polyline, Segment
from .settings import DEFAULT_SETTINGS

__all__ = ["point_key", "polyline_segments", "stitch_segments"]

_Key = Tuple[int, int]


def point_key(point: Point, scale: float = DEFAULT_SETTINGS.quantize_scale) -> _Key:
    """Quantized identity of ``point``; absorbs floating-point jitter."""
    return (round(point[0] * scale), round(point[1] * scale))


def stitch_segments(
    segments: Sequence[Segment],
    scale: float = DEFAULT_SETTINGS.quantize_scale,
) -> List[Polyline]:
    """Chain segments that share endpoints into polylines.

    Each segment is consumed exactly once, either as the seed of a polyline
    or as an extension of one. Seeds are taken in input order and both ends
    are extended greedily, so the result is deterministic. A closed loop
    comes back with its first and last points equal.
    """
    keys = [(point_key(a, scale), point_key(b, scale)) for a, b in segments]
    index: Dict[_Key, List[int]] = defaultdict(list)
    for idx, (ka, kb) in enumerate(keys):
        index[ka].append(idx)
        if kb != ka:
            index[kb].append(idx)

    used = [False] * len(segments)
    guard = len(segments) + 1

    def _take(key: _Key) -> Point | None:
        for idx in index.get(key, ()):
            if used[idx]:
                continue
            used[idx] = True
            a, b = segments[idx]
            return b if keys[idx][0] == key else a
        return None

    polylines: List[Polyline] = []
    for seed, (a, b) in enumerate(segments):
        if used[seed]:
            continue
        used[seed] = True
        line: Deque[Point] = deque([a, b])

        for _ in range(guard):
            nxt = _take(point_key(line[-1], scale))
            if nxt is None:
                break
            line.append(nxt)

        for _ in range(guard):
            prv = _take(point_key(line[0], scale))
            if prv is None:
                break
            line.appendleft(prv)

        if len(line) >= 2:
            polylines.append(list(line))
    return polylines


def polyline_segments(polylines: Iterable[Polyline]) -> List[Segment]:
    """Split polylines back into consecutive point pairs."""
    return [(line[k], line[k + 1]) for line in polylines for k in range(len(line) - 1)]
