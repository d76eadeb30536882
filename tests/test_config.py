"""Tests for grid configuration validation and derived sizes."""

from __future__ import annotations

from dataclasses import FrozenInstanceError
import unittest

from grid_nn import GridConfig, GridIndex


class GridConfigTest(unittest.TestCase):
    """Validate construction-time checks and grid sizing."""

    def test_defaults_match_reference_tuning(self) -> None:
        config = GridConfig()
        self.assertEqual(config.max_coord, 1000)
        self.assertEqual(config.div, 10)
        self.assertTrue(config.scan_columns)
        self.assertTrue(config.exact)
        self.assertEqual(config.max_cell, 100)
        self.assertEqual(config.width, 101)

    def test_width_uses_truncating_division(self) -> None:
        self.assertEqual(GridConfig(max_coord=1000, div=37).width, 28)
        self.assertEqual(GridConfig(max_coord=10, div=2.5).width, 5)
        self.assertEqual(GridConfig(max_coord=0, div=10).width, 1)
        self.assertEqual(GridConfig(max_coord=5, div=10).width, 1)

    def test_invalid_values_are_rejected(self) -> None:
        with self.assertRaises(ValueError):
            GridConfig(div=0)
        with self.assertRaises(ValueError):
            GridConfig(div=-3)
        with self.assertRaises(ValueError):
            GridConfig(max_coord=-1)
        with self.assertRaises(ValueError):
            GridConfig(max_coord=float("inf"))
        with self.assertRaises(ValueError):
            GridConfig(div=float("nan"))

    def test_exact_requires_column_scan(self) -> None:
        with self.assertRaises(ValueError):
            GridConfig(scan_columns=False)

        config = GridConfig(scan_columns=False, exact=False)
        self.assertFalse(config.scan_columns)
        self.assertFalse(config.exact)

    def test_config_is_immutable(self) -> None:
        config = GridConfig()
        with self.assertRaises(FrozenInstanceError):
            config.div = 5  # type: ignore[misc]

    def test_independent_instances_use_their_own_tuning(self) -> None:
        coarse = GridIndex(GridConfig(max_coord=1000, div=100))
        fine = GridIndex(GridConfig(max_coord=1000, div=2))

        self.assertEqual(coarse.width, 11)
        self.assertEqual(fine.width, 501)
        self.assertEqual(coarse.hash_coord(555), 5)
        self.assertEqual(fine.hash_coord(555), 277)

    def test_default_index_config(self) -> None:
        index = GridIndex()
        self.assertEqual(index.config, GridConfig())
        self.assertEqual(len(index), 0)


if __name__ == "__main__":
    unittest.main()
