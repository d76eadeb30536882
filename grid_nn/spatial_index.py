"""Brute-force reference index used to check grid answers."""

from __future__ import annotations

from typing import Any, Iterable

import numpy as np

from .models import SpatialPoint


class BruteForceSpatialIndex:
    """Simple vectorized index that compares a query against every point.

    Distances are always Euclidean, computed in float64. This class is
    deliberately minimal: it serves as the ground truth for `GridIndex` in
    tests and as the baseline in benchmarks.
    """

    def __init__(self, points: Iterable[SpatialPoint]) -> None:
        """Store point coordinates and references for repeated queries."""
        self._points = tuple(points)

        if len(self._points) == 0:
            self._xy = np.zeros((0, 2), dtype=np.float64)
            return

        coords = [(p.get(0), p.get(1)) for p in self._points]
        self._xy = np.asarray(coords, dtype=np.float64)

    def __len__(self) -> int:
        return len(self._points)

    def _distances(self, x: float, y: float) -> np.ndarray:
        dx = self._xy[:, 0] - x
        dy = self._xy[:, 1] - y
        return np.hypot(dx, dy)

    def nearest(self, x: float, y: float) -> tuple[Any, float] | None:
        """Return ``(point, distance)`` for the closest point, or None if empty.

        The earliest stored point wins ties.
        """
        if len(self._points) == 0:
            return None

        dist = self._distances(x, y)
        best = int(np.argmin(dist))
        return self._points[best], float(dist[best])
