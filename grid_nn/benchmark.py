"""Reproducible bucket-width benchmark for the grid nearest-neighbor index.

Query time over a fixed point set is roughly parabolic in the bucket width:
widths near 1 or near the full coordinate range are slow, intermediate widths
are fast, and sparser data favors wider buckets. This module sweeps a list of
widths over one point/query set and records timings and correctness checks.
"""

from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
import json
import logging
from pathlib import Path
import platform
import re
import subprocess
import sys
import time
from typing import Any

import numpy as np
import pandas as pd
import yaml

from .config import GridConfig
from .grid_index import GridIndex
from .models import Point2D
from .spatial_index import BruteForceSpatialIndex

logger = logging.getLogger(__name__)

# Relative tolerance when comparing grid and brute-force distances.
_DISTANCE_RTOL = 1e-9


class ConfigError(ValueError):
    """Raised when benchmark config is invalid."""


@dataclass(frozen=True)
class BenchmarkConfig:
    """Resolved config for one reproducible benchmark run."""

    run_name: str
    output_root: Path
    seed: int | None
    points_path: Path | None
    points_format: str | None
    point_columns: dict[str, str]
    n_points: int
    n_queries: int
    max_coord: float
    divisions: tuple[float, ...]
    scan_columns: bool
    exact: bool
    verify: bool
    repeats: int

    def grid_config(self, div: float) -> GridConfig:
        """Return the `GridConfig` used for bucket width `div`."""
        return GridConfig(
            max_coord=self.max_coord,
            div=div,
            scan_columns=self.scan_columns,
            exact=self.exact,
        )

    def to_serializable_dict(self) -> dict[str, Any]:
        """Return config as plain Python types for YAML/JSON output."""
        return {
            "run": {
                "name": self.run_name,
                "output_root": str(self.output_root),
                "seed": self.seed,
            },
            "inputs": {
                "points_path": None if self.points_path is None else str(self.points_path),
                "points_format": self.points_format,
                "point_columns": dict(self.point_columns),
                "n_points": self.n_points,
                "n_queries": self.n_queries,
            },
            "grid": {
                "max_coord": self.max_coord,
                "divisions": list(self.divisions),
                "scan_columns": self.scan_columns,
                "exact": self.exact,
            },
            "benchmark": {
                "verify": self.verify,
                "repeats": self.repeats,
            },
        }


def load_benchmark_config(config_path: str | Path) -> BenchmarkConfig:
    """Load and validate YAML config for a benchmark run."""
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("config root must be a mapping")

    run = _as_dict(raw.get("run"), "run")
    inputs = _as_dict(raw.get("inputs"), "inputs")
    grid = _as_dict(raw.get("grid"), "grid")
    bench = _as_dict(raw.get("benchmark"), "benchmark")

    run_name = str(run.get("name", "grid_benchmark"))
    if not run_name.strip():
        raise ConfigError("run.name must be a non-empty string")

    output_root = Path(str(run.get("output_root", "runs"))).expanduser().resolve()
    seed = run.get("seed")
    if seed is not None:
        seed = int(seed)

    points_path_raw = inputs.get("points_path")
    if points_path_raw is None:
        points_path = None
        points_format = None
    else:
        points_path = Path(str(points_path_raw)).expanduser().resolve()
        points_format = _normalize_format(str(inputs.get("points_format", "auto")), points_path)

    point_columns = _default_point_columns(_as_dict(inputs.get("point_columns", {}), "inputs.point_columns"))

    n_points = int(inputs.get("n_points", 10000))
    n_queries = int(inputs.get("n_queries", 10000))
    if points_path is None and n_points <= 0:
        raise ConfigError("inputs.n_points must be > 0 when no points_path is given")
    if n_queries <= 0:
        raise ConfigError("inputs.n_queries must be > 0")

    max_coord = float(grid.get("max_coord", 1000))
    divisions_raw = grid.get("divisions", [10])
    if not isinstance(divisions_raw, list) or not divisions_raw:
        raise ConfigError("grid.divisions must be a non-empty list")
    divisions = tuple(float(div) for div in divisions_raw)

    scan_columns = bool(grid.get("scan_columns", True))
    exact = bool(grid.get("exact", True))
    verify = bool(bench.get("verify", True))
    repeats = int(bench.get("repeats", 1))
    if repeats <= 0:
        raise ConfigError("benchmark.repeats must be > 0")

    config = BenchmarkConfig(
        run_name=run_name,
        output_root=output_root,
        seed=seed,
        points_path=points_path,
        points_format=points_format,
        point_columns=point_columns,
        n_points=n_points,
        n_queries=n_queries,
        max_coord=max_coord,
        divisions=divisions,
        scan_columns=scan_columns,
        exact=exact,
        verify=verify,
        repeats=repeats,
    )

    # Fail fast on bad grid values rather than midway through a sweep.
    for div in divisions:
        try:
            config.grid_config(div)
        except ValueError as exc:
            raise ConfigError(f"invalid grid settings for div={div!r}: {exc}") from exc

    return config


def run_benchmark(
    config: BenchmarkConfig,
    limit_points: int | None = None,
    limit_queries: int | None = None,
) -> Path:
    """Run the full bucket-width sweep and return the output run directory."""
    config.output_root.mkdir(parents=True, exist_ok=True)

    timestamp = dt.datetime.now(dt.timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    run_dir = config.output_root / f"{_slugify(config.run_name)}_{timestamp}"
    run_dir.mkdir(parents=False, exist_ok=False)

    config_dir = run_dir / "config"
    logs_dir = run_dir / "logs"
    config_dir.mkdir(parents=True, exist_ok=True)
    logs_dir.mkdir(parents=True, exist_ok=True)

    steps_log_path = logs_dir / "steps.jsonl"
    _append_step_log(
        steps_log_path,
        event="run_start",
        payload={"run_name": config.run_name, "seed": config.seed},
    )

    rng = np.random.default_rng(config.seed)

    if config.points_path is not None:
        points_format = config.points_format or _normalize_format("auto", config.points_path)
        points_df = _load_table(config.points_path, points_format)
        if limit_points is not None:
            points_df = _sample_rows(points_df, int(limit_points), rng)
        points = _build_points(points_df, config.point_columns)
    else:
        n_points = config.n_points if limit_points is None else min(config.n_points, _positive(limit_points))
        points = _random_points(rng, n_points, config.max_coord)

    n_queries = config.n_queries if limit_queries is None else min(config.n_queries, _positive(limit_queries))
    queries = _random_points(rng, n_queries, config.max_coord)
    _append_step_log(
        steps_log_path,
        event="points_loaded",
        payload={"n_points": int(len(points)), "n_queries": int(len(queries))},
    )
    logger.info("benchmarking %d points against %d queries", len(points), len(queries))

    oracle = BruteForceSpatialIndex(points)
    started = time.perf_counter()
    expected = [oracle.nearest(q.x, q.y) for q in queries]
    brute_force_seconds = time.perf_counter() - started

    results: list[dict[str, Any]] = []
    for div in config.divisions:
        row = _benchmark_division(
            grid_config=config.grid_config(div),
            points=points,
            queries=queries,
            expected=expected if config.verify else None,
            repeats=config.repeats,
        )
        results.append(row)
        _append_step_log(steps_log_path, event="division_complete", payload=row)
        logger.info(
            "div=%s width=%d query_seconds=%.4f mismatches=%s",
            row["div"],
            row["grid_width"],
            row["query_seconds"],
            row["mismatches"],
        )

    summary = _compute_summary(
        n_points=len(points),
        n_queries=len(queries),
        results=results,
        brute_force_seconds=brute_force_seconds,
    )

    _write_yaml(config_dir / "config_resolved.yaml", config.to_serializable_dict())
    _write_json(config_dir / "metadata.json", _build_metadata(config=config, run_dir=run_dir))
    _write_json(run_dir / "summary.json", summary)
    pd.DataFrame(results).to_csv(run_dir / "results.csv", index=False)
    _append_step_log(
        steps_log_path,
        event="run_complete",
        payload={"best_div": summary["best_div"], "total_mismatches": summary["total_mismatches"]},
    )

    return run_dir


def run_benchmark_from_config(
    config_path: str | Path,
    limit_points: int | None = None,
    limit_queries: int | None = None,
) -> Path:
    """Convenience wrapper: load config, execute sweep, and return run dir."""
    config = load_benchmark_config(config_path)
    return run_benchmark(config=config, limit_points=limit_points, limit_queries=limit_queries)


def _benchmark_division(
    grid_config: GridConfig,
    points: list[Point2D],
    queries: list[Point2D],
    expected: list[tuple[Point2D, float] | None] | None,
    repeats: int,
) -> dict[str, Any]:
    index = GridIndex(grid_config)

    started = time.perf_counter()
    index.extend(points)
    insert_seconds = time.perf_counter() - started

    # Keep the fastest repeat to reduce scheduler noise.
    query_seconds = float("inf")
    answers: list[Any] = []
    for _ in range(repeats):
        started = time.perf_counter()
        answers = [index.nearest_neighbor(q) for q in queries]
        query_seconds = min(query_seconds, time.perf_counter() - started)

    mismatches = None
    if expected is not None:
        mismatches = sum(
            1 for query, answer, truth in zip(queries, answers, expected) if not _same_distance(query, answer, truth)
        )

    occupancy = index.occupancy()
    return {
        "div": grid_config.div,
        "grid_width": index.width,
        "n_points": len(points),
        "n_queries": len(queries),
        "insert_seconds": float(insert_seconds),
        "query_seconds": float(query_seconds),
        "queries_per_second": float(len(queries) / query_seconds) if query_seconds > 0 else 0.0,
        "mismatches": mismatches,
        "occupied_cells": int((occupancy > 0).sum()),
        "max_cell_load": int(occupancy.max()) if occupancy.size else 0,
    }


def _same_distance(query: Point2D, answer: Point2D | None, truth: tuple[Point2D, float] | None) -> bool:
    if answer is None or truth is None:
        return answer is None and truth is None
    got = answer.distance(query)
    want = truth[1]
    return abs(got - want) <= _DISTANCE_RTOL * max(1.0, want)


def _compute_summary(
    n_points: int,
    n_queries: int,
    results: list[dict[str, Any]],
    brute_force_seconds: float,
) -> dict[str, Any]:
    query_seconds = np.asarray([row["query_seconds"] for row in results], dtype=np.float64)
    best = int(np.argmin(query_seconds))
    mismatches = [row["mismatches"] for row in results if row["mismatches"] is not None]

    summary = {
        "n_points": int(n_points),
        "n_queries": int(n_queries),
        "n_divisions": int(len(results)),
        "best_div": results[best]["div"],
        "best_query_seconds": float(query_seconds[best]),
        "total_mismatches": int(sum(mismatches)) if mismatches else None,
        "brute_force_query_seconds": float(brute_force_seconds),
    }
    return summary


def _as_dict(value: Any, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name} must be a mapping")
    return value


def _positive(value: int) -> int:
    if int(value) <= 0:
        raise ValueError("limit values must be > 0")
    return int(value)


def _default_point_columns(overrides: dict[str, Any]) -> dict[str, str]:
    cols = {"x": "x", "y": "y"}
    cols.update(overrides)

    for key in ("x", "y"):
        if cols.get(key) is None:
            raise ConfigError(f"inputs.point_columns.{key} must not be null")
        cols[key] = str(cols[key])

    return cols


def _normalize_format(raw_format: str, path: Path) -> str:
    value = raw_format.strip().lower()
    if value == "auto":
        suffix = path.suffix.lower()
        if suffix in {".csv"}:
            return "csv"
        if suffix in {".tsv", ".txt"}:
            return "tsv"
        if suffix in {".parquet", ".pq"}:
            return "parquet"
        raise ConfigError(f"cannot infer format from extension for file: {path}")

    if value not in {"csv", "tsv", "parquet"}:
        raise ConfigError(f"unsupported table format: {raw_format!r}")
    return value


def _load_table(path: Path, table_format: str) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"table file not found: {path}")

    if table_format == "csv":
        return pd.read_csv(path)
    if table_format == "tsv":
        return pd.read_csv(path, sep="\t")
    if table_format == "parquet":
        return pd.read_parquet(path)

    raise ConfigError(f"unsupported format in loader: {table_format!r}")


def _sample_rows(df: pd.DataFrame, limit: int, rng: np.random.Generator) -> pd.DataFrame:
    if limit <= 0:
        raise ValueError("limit values must be > 0")

    if len(df) <= limit:
        return df.reset_index(drop=True)

    keep = rng.choice(len(df), size=limit, replace=False)
    keep_sorted = np.sort(keep)
    return df.iloc[keep_sorted].reset_index(drop=True)


def _build_points(df: pd.DataFrame, columns: dict[str, str]) -> list[Point2D]:
    missing = [col for col in (columns["x"], columns["y"]) if col not in df.columns]
    if missing:
        raise ValueError(f"missing columns in points table: {missing}")

    if len(df) == 0:
        raise ValueError("points table is empty")

    xy = []
    for key in ("x", "y"):
        numeric = pd.to_numeric(df[columns[key]], errors="coerce")
        if numeric.isna().any():
            raise ValueError(f"column points.{columns[key]} contains non-numeric or missing values")
        values = numeric.to_numpy(dtype=np.float64, copy=True)
        if not np.isfinite(values).all():
            raise ValueError(f"column points.{columns[key]} contains non-finite values")
        xy.append(values)

    return [Point2D.from_xy(row) for row in np.column_stack(xy)]


def _random_points(rng: np.random.Generator, n: int, max_coord: float) -> list[Point2D]:
    # Integer coordinates spread uniformly over the whole universe.
    coords = rng.integers(low=0, high=int(max_coord) + 1, size=(n, 2))
    return [Point2D.from_xy(row) for row in coords]


def _build_metadata(config: BenchmarkConfig, run_dir: Path) -> dict[str, Any]:
    now = dt.datetime.now(dt.timezone.utc).isoformat()

    metadata = {
        "timestamp_utc": now,
        "run_dir": str(run_dir),
        "seed": config.seed,
        "python_version": sys.version,
        "platform": platform.platform(),
        "numpy_version": np.__version__,
        "git_commit": _try_git_commit(),
    }
    return metadata


def _try_git_commit() -> str | None:
    try:
        completed = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
        return completed.stdout.strip() or None
    except (OSError, subprocess.CalledProcessError):
        return None


def _write_json(path: Path, payload: dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, sort_keys=False)
        handle.write("\n")


def _write_yaml(path: Path, payload: dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(payload, handle, sort_keys=False)


def _append_step_log(path: Path, event: str, payload: dict[str, Any]) -> None:
    entry = {
        "timestamp_utc": dt.datetime.now(dt.timezone.utc).isoformat(),
        "event": event,
        "payload": payload,
    }
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(entry, sort_keys=False))
        handle.write("\n")


def _slugify(text: str) -> str:
    normalized = re.sub(r"[^A-Za-z0-9._-]+", "_", text.strip())
    normalized = normalized.strip("_")
    return normalized or "item"
