"""Shared geometric value types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

Point = Tuple[float, float]
Segment = Tuple[Point, Point]
Polyline = List[Point]


@dataclass(frozen=True)
class Domain:
    """Visible rectangle ``[x_min, x_max] x [y_min, y_max]`` in world units."""

    x_min: float
    x_max: float
    y_min: float
    y_max: float

    def __post_init__(self) -> None:
        if self.x_max < self.x_min or self.y_max < self.y_min:
            raise ValueError(f"Empty domain: {self!r}")

    @classmethod
    def from_ranges(cls, x_range: Sequence[float], y_range: Sequence[float]) -> "Domain":
        return cls(float(x_range[0]), float(x_range[1]), float(y_range[0]), float(y_range[1]))

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min

    @property
    def extent(self) -> float:
        """Larger of the two side lengths."""
        return max(self.width, self.height)

    def contains_x(self, value: float) -> bool:
        return self.x_min <= value <= self.x_max

    def contains_y(self, value: float) -> bool:
        return self.y_min <= value <= self.y_max
