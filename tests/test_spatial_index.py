"""Tests for the brute-force reference index."""

from __future__ import annotations

import unittest

from grid_nn import BruteForceSpatialIndex, Point2D


class BruteForceSpatialIndexTest(unittest.TestCase):
    """Check nearest queries against hand-computed answers."""

    def setUp(self) -> None:
        self.points = [Point2D(0, 0), Point2D(3, 4), Point2D(10, 0), Point2D(-3, -4)]
        self.index = BruteForceSpatialIndex(self.points)

    def test_nearest_returns_point_and_distance(self) -> None:
        point, dist = self.index.nearest(9, 1)
        self.assertIs(point, self.points[2])
        self.assertAlmostEqual(dist, 2 ** 0.5)

    def test_nearest_prefers_earliest_on_ties(self) -> None:
        point, dist = self.index.nearest(0, 0)
        self.assertIs(point, self.points[0])
        self.assertEqual(dist, 0.0)

        # (3, 4) and (-3, -4) are both 5 away from the origin.
        index = BruteForceSpatialIndex([Point2D(3, 4), Point2D(-3, -4)])
        point, dist = index.nearest(0, 0)
        self.assertEqual(point, Point2D(3, 4))
        self.assertAlmostEqual(dist, 5.0)

    def test_empty_index(self) -> None:
        index = BruteForceSpatialIndex([])
        self.assertEqual(len(index), 0)
        self.assertIsNone(index.nearest(1, 1))


if __name__ == "__main__":
    unittest.main()
