"""Fixed-resolution grid index with expanding-ring nearest-neighbor search."""

from __future__ import annotations

from collections.abc import Iterable
import logging
from typing import Any

import numpy as np

from .config import GridConfig
from .models import SENTINEL, NearestCandidate, SpatialPoint

logger = logging.getLogger(__name__)


class GridIndex:
    """Bucket points into a square grid and answer nearest-neighbor queries.

    Cells live in one flat list addressed as ``gy * width + gx``. A point is
    stored in the cell of its truncated coordinates, clamped to the grid, so
    points outside ``[0, max_coord]`` collapse into the boundary cells.

    Queries start at the reference point's own cell and scan square rings of
    cells outward. Sharing a cell only bounds the per-axis offset between two
    points, so a point one ring further out can still be closer than the
    first hit. The search therefore always scans one more ring after the
    first candidate appears. With ``config.exact`` it keeps going while the
    remaining cells could still hold a strictly closer point.

    The index is append-only and not thread-safe; callers sharing it across
    threads must guard `insert` and `nearest_neighbor` with one lock.
    """

    def __init__(self, config: GridConfig | None = None) -> None:
        """Allocate an empty grid sized from `config`."""
        self.config = config or GridConfig()
        self._max_cell = self.config.max_cell
        self._width = self._max_cell + 1
        self._cells: list[list[Any]] = [[] for _ in range(self._width * self._width)]
        self._size = 0

        logger.debug(
            "GridIndex allocated %dx%d cells (max_coord=%s, div=%s)",
            self._width,
            self._width,
            self.config.max_coord,
            self.config.div,
        )

    def __len__(self) -> int:
        return self._size

    @property
    def width(self) -> int:
        """Return number of cells per axis."""
        return self._width

    def hash_coord(self, coord: float) -> int:
        """Map one coordinate to its unclamped cell index (truncating division)."""
        return self.config.cell_index(coord)

    def cell_of(self, point: SpatialPoint) -> tuple[int, int]:
        """Return the clamped ``(gx, gy)`` cell that stores `point`."""
        return (
            self._clamp(self.hash_coord(point.get(0))),
            self._clamp(self.hash_coord(point.get(1))),
        )

    def cell_points(self, gx: int, gy: int) -> tuple[Any, ...]:
        """Return points stored in cell ``(gx, gy)`` in insertion order."""
        if not (0 <= gx <= self._max_cell and 0 <= gy <= self._max_cell):
            raise IndexError(f"cell ({gx}, {gy}) is outside a {self._width}x{self._width} grid")
        return tuple(self._cells[gy * self._width + gx])

    def occupancy(self) -> np.ndarray:
        """Return per-cell point counts as a ``(width, width)`` array indexed ``[gy, gx]``."""
        counts = np.fromiter((len(cell) for cell in self._cells), dtype=np.int64, count=len(self._cells))
        return counts.reshape(self._width, self._width)

    def insert(self, point: SpatialPoint) -> None:
        """Append `point` to its clamped cell. Duplicates are kept."""
        raw_x = self.hash_coord(point.get(0))
        raw_y = self.hash_coord(point.get(1))
        gx = self._clamp(raw_x)
        gy = self._clamp(raw_y)

        if logger.isEnabledFor(logging.DEBUG) and (gx != raw_x or gy != raw_y):
            logger.debug("clamped %r from cell (%d, %d) to (%d, %d)", point, raw_x, raw_y, gx, gy)

        self._cells[gy * self._width + gx].append(point)
        self._size += 1

    def extend(self, points: Iterable[SpatialPoint]) -> int:
        """Insert every point in order and return how many were inserted."""
        count = 0
        for point in points:
            self.insert(point)
            count += 1
        return count

    def find_nearest_in_ring(
        self,
        maxx: int,
        maxy: int,
        minx: int,
        miny: int,
        reference: SpatialPoint,
        candidate: NearestCandidate | None = None,
    ) -> NearestCandidate:
        """Scan the perimeter of window ``[minx..maxx] x [miny..maxy]``.

        Every point in a scanned cell is offered to `candidate`, which is
        created when not given and returned either way. Rows are visited
        first, for x from `maxx` down to `minx`: top cell, then bottom cell.
        Side columns follow, for y from ``maxy - 1`` down to ``miny + 1``,
        unless ``config.scan_columns`` is False.
        """
        if candidate is None:
            candidate = NearestCandidate()

        if self.config.scan_columns:
            self._scan_ring(maxx, maxy, minx, miny, reference, candidate)
        else:
            self._scan_rows_only(maxx, maxy, minx, miny, reference, candidate)

        return candidate

    def nearest_neighbor(self, reference: SpatialPoint) -> Any | None:
        """Return the stored point closest to `reference`, or None if empty.

        `reference` does not need to be stored in the index.
        """
        x = self.hash_coord(reference.get(0))
        y = self.hash_coord(reference.get(1))

        # Rings that lie wholly outside the grid hold no cells; start at the
        # first ring that reaches it so far-away queries stay bounded.
        start = max(0, x - self._max_cell, -x, y - self._max_cell, -y)
        maxx, maxy, minx, miny = x + start, y + start, x - start, y - start
        candidate = NearestCandidate()

        while not candidate.found:
            if maxx > self._max_cell and maxy > self._max_cell and minx < 0 and miny < 0:
                logger.debug("grid exhausted without a candidate for %r", reference)
                return None

            self.find_nearest_in_ring(maxx, maxy, minx, miny, reference, candidate)
            maxx, maxy, minx, miny = maxx + 1, maxy + 1, minx - 1, miny - 1

            # A point in the next ring can beat one found in this ring.
            if candidate.found:
                self.find_nearest_in_ring(maxx, maxy, minx, miny, reference, candidate)

        if self.config.exact:
            while self._may_hold_closer(maxx, maxy, minx, miny, reference, candidate.distance):
                maxx, maxy, minx, miny = maxx + 1, maxy + 1, minx - 1, miny - 1
                self.find_nearest_in_ring(maxx, maxy, minx, miny, reference, candidate)

        return candidate.point

    def nearest_neighbor_or(self, reference: SpatialPoint, default: Any = SENTINEL) -> Any:
        """Like `nearest_neighbor`, but return `default` instead of None.

        The default is the legacy ``(-1, -1)`` sentinel point.
        """
        nearest = self.nearest_neighbor(reference)
        return default if nearest is None else nearest

    def _clamp(self, index: int) -> int:
        if index < 0:
            return 0
        if index > self._max_cell:
            return self._max_cell
        return index

    def _scan_cell(self, gx: int, gy: int, reference: SpatialPoint, candidate: NearestCandidate) -> None:
        for point in self._cells[gy * self._width + gx]:
            candidate.offer(point, point.distance(reference))

    def _scan_ring(
        self,
        maxx: int,
        maxy: int,
        minx: int,
        miny: int,
        reference: SpatialPoint,
        candidate: NearestCandidate,
    ) -> None:
        last = self._max_cell

        # Top and bottom rows, skipping rows that fall outside the grid.
        lo_x, hi_x = max(minx, 0), min(maxx, last)
        if lo_x <= hi_x:
            scan_top = 0 <= maxy <= last
            scan_bottom = 0 <= miny <= last and miny != maxy
            for gx in range(hi_x, lo_x - 1, -1):
                if scan_top:
                    self._scan_cell(gx, maxy, reference, candidate)
                if scan_bottom:
                    self._scan_cell(gx, miny, reference, candidate)

        # Side columns without the corner cells the rows already covered.
        lo_y, hi_y = max(miny + 1, 0), min(maxy - 1, last)
        if lo_y <= hi_y:
            scan_right = 0 <= maxx <= last
            scan_left = 0 <= minx <= last and minx != maxx
            for gy in range(hi_y, lo_y - 1, -1):
                if scan_right:
                    self._scan_cell(maxx, gy, reference, candidate)
                if scan_left:
                    self._scan_cell(minx, gy, reference, candidate)

    def _scan_rows_only(
        self,
        maxx: int,
        maxy: int,
        minx: int,
        miny: int,
        reference: SpatialPoint,
        candidate: NearestCandidate,
    ) -> None:
        last = self._max_cell
        lo_x, hi_x = max(minx, 0), min(maxx, last)
        scan_top = 0 <= maxy <= last
        scan_bottom = 0 <= miny <= last and miny != maxy

        for gx in range(hi_x, lo_x - 1, -1):
            if scan_top:
                self._scan_cell(gx, maxy, reference, candidate)
            if scan_bottom:
                self._scan_cell(gx, miny, reference, candidate)

    def _may_hold_closer(
        self,
        maxx: int,
        maxy: int,
        minx: int,
        miny: int,
        reference: SpatialPoint,
        best_distance: float,
    ) -> bool:
        """Return True if a cell outside the scanned window could beat `best_distance`.

        Any point stored beyond the window differs from `reference` on at
        least one axis by the gap to that window edge, so the smallest edge
        gap bounds its distance from below for per-axis-dominated metrics.
        """
        div = self.config.div
        qx = reference.get(0)
        qy = reference.get(1)

        gaps = []
        if maxx < self._max_cell:
            gaps.append((maxx + 1) * div - qx)
        if minx > 0:
            gaps.append(qx - minx * div)
        if maxy < self._max_cell:
            gaps.append((maxy + 1) * div - qy)
        if miny > 0:
            gaps.append(qy - miny * div)

        if not gaps:
            return False
        return max(min(gaps), 0.0) < best_distance
