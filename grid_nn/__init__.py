"""Public API for the grid nearest-neighbor index."""

from .benchmark import (
    BenchmarkConfig,
    ConfigError,
    load_benchmark_config,
    run_benchmark,
    run_benchmark_from_config,
)
from .config import GridConfig
from .geometry import euclidean_distance
from .grid_index import GridIndex
from .models import SENTINEL, NearestCandidate, Point2D, SpatialPoint
from .spatial_index import BruteForceSpatialIndex

__all__ = [
    "BenchmarkConfig",
    "BruteForceSpatialIndex",
    "ConfigError",
    "GridConfig",
    "GridIndex",
    "NearestCandidate",
    "Point2D",
    "SENTINEL",
    "SpatialPoint",
    "euclidean_distance",
    "load_benchmark_config",
    "run_benchmark",
    "run_benchmark_from_config",
]
