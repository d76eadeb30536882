"""Minimal demo for the grid nearest-neighbor index.

Run:
    python examples/minimal_demo.py
"""

from __future__ import annotations

from pathlib import Path
import sys

# Ensure package import works when running this script directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from grid_nn import GridConfig, GridIndex, Point2D


def make_demo_points() -> list[Point2D]:
    """Create a few points, including one outside the grid that gets clamped."""
    return [
        Point2D(5, 5),
        Point2D(12, 12),
        Point2D(18, 18),
        Point2D(995, 995),
        Point2D(1500, -20),
    ]


def main() -> None:
    """Build an index, run a few queries, and print the answers."""
    config = GridConfig(max_coord=1000, div=10)
    index = GridIndex(config)
    index.extend(make_demo_points())

    print("Grid width:", index.width, "stored points:", len(index))
    print("Clamped point lives in cell:", index.cell_of(Point2D(1500, -20)))

    for query in [Point2D(0, 0), Point2D(15, 15), Point2D(1000, 1000), Point2D(900, 10)]:
        nearest = index.nearest_neighbor(query)
        print(f"query={query.as_tuple()} nearest={nearest.as_tuple()} dist={nearest.distance(query):.2f}")

    empty = GridIndex(config)
    print("Empty index answer:", empty.nearest_neighbor(Point2D(1, 1)))
    print("Empty index legacy answer:", empty.nearest_neighbor_or(Point2D(1, 1)).as_tuple())


if __name__ == "__main__":
    main()
