"""Geometry helpers for planar distances."""

from __future__ import annotations

import math


def euclidean_distance(x1: float, y1: float, x2: float, y2: float) -> float:
    """Return Euclidean distance between two points."""
    return math.hypot(x1 - x2, y1 - y2)
