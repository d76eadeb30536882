"""Configuration objects for the grid nearest-neighbor index."""

from __future__ import annotations

from dataclasses import dataclass
import math


@dataclass(frozen=True)
class GridConfig:
    """Construction-time tuning for one `GridIndex`.

    The grid covers coordinates in ``[0, max_coord]`` on both axes with square
    buckets ``div`` units wide. Both values are fixed for the lifetime of an
    index because every stored point's bucket depends on them.
    """

    # Inclusive upper bound of the coordinate universe on both axes.
    max_coord: float = 1000

    # Bucket width. Smaller values suit denser data.
    div: float = 10

    # If True, rings include their left/right columns. If False, only the
    # top and bottom rows of each ring are scanned.
    scan_columns: bool = True

    # If True, keep expanding past the single extra ring while an unscanned
    # cell could still hold a strictly closer point. Requires scan_columns.
    exact: bool = True

    def __post_init__(self) -> None:
        """Validate config values once at construction time."""
        if not math.isfinite(self.max_coord) or not math.isfinite(self.div):
            raise ValueError("max_coord and div must be finite")

        if self.div <= 0:
            raise ValueError("div must be > 0")

        if self.max_coord < 0:
            raise ValueError("max_coord must be >= 0")

        if self.exact and not self.scan_columns:
            raise ValueError("exact=True requires scan_columns=True")

    def cell_index(self, coord: float) -> int:
        """Return the unclamped bucket index of `coord` (truncating division)."""
        return int(coord / self.div)

    @property
    def max_cell(self) -> int:
        """Largest valid bucket index on either axis."""
        return self.cell_index(self.max_coord)

    @property
    def width(self) -> int:
        """Number of buckets per axis."""
        return self.max_cell + 1
