"""
Geometry value types for the spatial index.

This module defines the point and axis-aligned rectangle used as node
boundaries and query windows.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple


def _midpoint(lo: float, hi: float) -> float:
    # lo + hi can overflow for finite bounds, so halve each first
    mid = lo / 2 + hi / 2
    return min(max(mid, lo), hi)


@dataclass(frozen=True)
class Point:
    """
    A 2-D point.

    In the geographic layers x is latitude and y is longitude.
    """
    x: float
    y: float


@dataclass(frozen=True)
class Rectangle:
    """
    An axis-aligned rectangle defined by its opposite corners.

    Bounds are inclusive on every side. Rectangles may be degenerate
    (zero width or height), but min must not exceed max on either axis.
    """
    min: Point
    max: Point

    def __post_init__(self):
        if self.min.x > self.max.x or self.min.y > self.max.y:
            raise ValueError(
                f"Invalid rectangle: min=({self.min.x}, {self.min.y}), "
                f"max=({self.max.x}, {self.max.y})"
            )

    @classmethod
    def from_bounds(
        cls, min_x: float, min_y: float, max_x: float, max_y: float
    ) -> Rectangle:
        """Build a rectangle from flattened corner coordinates."""
        return cls(Point(min_x, min_y), Point(max_x, max_y))

    @property
    def width(self) -> float:
        """Extent along the x-axis."""
        return self.max.x - self.min.x

    @property
    def height(self) -> float:
        """Extent along the y-axis."""
        return self.max.y - self.min.y

    @property
    def center(self) -> Point:
        return Point(_midpoint(self.min.x, self.max.x), _midpoint(self.min.y, self.max.y))

    def as_bounds(self) -> Tuple[float, float, float, float]:
        """Return (min_x, min_y, max_x, max_y)."""
        return self.min.x, self.min.y, self.max.x, self.max.y

    def contains(self, point: Point) -> bool:
        """Check if point lies within this rectangle, edges included."""
        return (
            self.min.x <= point.x <= self.max.x
            and self.min.y <= point.y <= self.max.y
        )

    def intersects(self, other: Rectangle) -> bool:
        """Check if two rectangles overlap, touching edges included."""
        return (
            self.min.x <= other.max.x and self.max.x >= other.min.x
            and self.min.y <= other.max.y and self.max.y >= other.min.y
        )

    def quadrants(self) -> Tuple[Rectangle, Rectangle, Rectangle, Rectangle]:
        """
        Split into four equal quadrants.

        Child order (fixed for consistency): NW, NE, SW, SE
        - NW: low x, low y
        - NE: high x, low y
        - SW: low x, high y
        - SE: high x, high y

        Inner edges are shared between siblings. Outer edges reuse this
        rectangle's own corners so the quadrants cover it exactly.
        """
        mid = self.center
        return (
            Rectangle(self.min, mid),
            Rectangle(Point(mid.x, self.min.y), Point(self.max.x, mid.y)),
            Rectangle(Point(self.min.x, mid.y), Point(mid.x, self.max.y)),
            Rectangle(mid, self.max),
        )
