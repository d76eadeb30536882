"""Typed point models consumed and produced by the spatial indexes."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Any, Protocol

from .geometry import euclidean_distance


class SpatialPoint(Protocol):
    """Point contract required by `GridIndex`.

    `get` exposes axis 0 (x) and axis 1 (y). `distance` must behave like a
    metric; the index assumes this but never checks it.
    """

    def get(self, axis: int) -> float:
        """Return the coordinate on `axis`."""

    def distance(self, other: Any) -> float:
        """Return the distance to `other`."""


@dataclass(frozen=True)
class Point2D:
    """Planar point with Euclidean distance."""

    x: float
    y: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.x) and math.isfinite(self.y)):
            raise ValueError(f"point coordinates must be finite, got ({self.x!r}, {self.y!r})")

    @staticmethod
    def from_xy(xy: Any) -> "Point2D":
        """Build a point from any length-2 sequence (tuple, list, numpy row)."""
        x, y = xy
        return Point2D(x=_as_number(x), y=_as_number(y))

    def get(self, axis: int) -> float:
        if axis == 0:
            return self.x
        if axis == 1:
            return self.y
        raise IndexError(f"axis must be 0 or 1, got {axis!r}")

    def distance(self, other: SpatialPoint) -> float:
        return euclidean_distance(self.x, self.y, other.get(0), other.get(1))

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


# Legacy "not found" value; `GridIndex.nearest_neighbor` itself returns None.
SENTINEL = Point2D(-1, -1)


@dataclass
class NearestCandidate:
    """Running best match while rings are scanned.

    A point replaces the current best only when it is strictly closer, so the
    first point encountered wins ties.
    """

    point: Any | None = None
    distance: float = math.inf

    @property
    def found(self) -> bool:
        """Return True once any point has been offered."""
        return self.point is not None

    def offer(self, point: Any, distance: float) -> bool:
        """Consider `point` at `distance`; return True if it became the best."""
        if self.point is None or distance < self.distance:
            self.point = point
            self.distance = float(distance)
            return True
        return False


def _as_number(value: Any) -> float:
    # Keep Python ints as ints so truncating division stays exact for them.
    if isinstance(value, int):
        return value
    if hasattr(value, "item"):
        value = value.item()
    if isinstance(value, int):
        return value
    return float(value)
