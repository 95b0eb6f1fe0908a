# reducers.py
"""
reducers.py

Two bucket-based thinning strategies that skip neighbor search entirely:

1. Precision thinning: round coordinates to a number of decimals and keep one
   point per distinct rounded (x, y) pair.

2. Grid thinning: attach each point to a grid cell (a regular grid, or the
   cells of a raster supplied by the caller) and keep one point per cell.

Within a trial, points are visited in random order, or by descending
priority when one is given, and the first point seen in each bucket wins.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Tuple, Union

import numpy as np

from errors import InvalidDistance, InvalidPrecision
from geometry import KM_PER_DEGREE
from trials import SeedLike, TrialSet, spawn_generators

logger = logging.getLogger(__name__)


class CellResolver(Protocol):
    """Anything that maps points to integer cell ids, -1 meaning no cell."""

    def cell_from_xy(self, points: np.ndarray) -> np.ndarray:
        ...


@dataclass
class RasterGrid:
    """
    A north-up raster with nrows x ncols cells covering
    [xmin, xmax] x [ymin, ymax].

    Cells are numbered row by row starting from the top-left cell.
    """
    xmin: float
    xmax: float
    ymin: float
    ymax: float
    nrows: int
    ncols: int

    @property
    def xres(self) -> float:
        return (self.xmax - self.xmin) / self.ncols

    @property
    def yres(self) -> float:
        return (self.ymax - self.ymin) / self.nrows

    @classmethod
    def from_resolution(cls, xmin: float, xmax: float, ymin: float, ymax: float,
                        resolution: float) -> "RasterGrid":
        """Raster anchored at (xmin, ymax), extended to cover the extent."""
        ncols = max(1, int(np.ceil((xmax - xmin) / resolution)))
        nrows = max(1, int(np.ceil((ymax - ymin) / resolution)))
        return cls(xmin, xmin + ncols * resolution, ymax - nrows * resolution, ymax, nrows, ncols)

    def cell_from_xy(self, points: np.ndarray) -> np.ndarray:
        points = np.asarray(points, dtype=float)
        col = np.floor((points[:, 0] - self.xmin) / self.xres).astype(np.int64)
        row = np.floor((self.ymax - points[:, 1]) / self.yres).astype(np.int64)
        # points on the right/bottom edge belong to the last column/row
        col[points[:, 0] == self.xmax] = self.ncols - 1
        row[points[:, 1] == self.ymin] = self.nrows - 1

        inside = (col >= 0) & (col < self.ncols) & (row >= 0) & (row < self.nrows)
        return np.where(inside, row * self.ncols + col, -1)


def _evaluation_order(n: int, rng: np.random.Generator, priority: Optional[np.ndarray]) -> np.ndarray:
    if priority is None:
        return rng.permutation(n)
    return np.argsort(-priority, kind="stable")


def _first_per_bucket(keys: np.ndarray, order: np.ndarray, n: int) -> np.ndarray:
    """Flag the first point of `order` in every distinct bucket key."""
    keep = np.zeros(n, dtype=bool)
    if order.size == 0:
        return keep
    _, first = np.unique(keys[order], axis=0, return_index=True)
    keep[order[first]] = True
    return keep


def _bucket_trials(keys: np.ndarray, valid: np.ndarray, trials: int, all_trials: bool,
                   seed: SeedLike, priority: Optional[np.ndarray]) -> TrialSet:
    n = keys.shape[0]
    # every trial keeps one point per occupied bucket, so best-of-N needs one run
    n_runs = trials if all_trials else 1
    generators = spawn_generators(seed, trials)[:n_runs]

    results = []
    for rng in generators:
        order = _evaluation_order(n, rng, priority)
        order = order[valid[order]]
        results.append(_first_per_bucket(keys, order, n))
    return TrialSet(results, all_trials=all_trials)


def precision_thinning(
        points: np.ndarray,
        precision: int = 4,
        trials: int = 10,
        all_trials: bool = False,
        seed: SeedLike = None,
        priority: Optional[np.ndarray] = None,
) -> TrialSet:
    """
    Keep one point per distinct coordinate pair after rounding.

    Parameters
    ----------
    points : np.ndarray
        Point cloud of shape (N, 2).
    precision : int
        Number of decimal places kept (non-negative).
    trials, all_trials, seed, priority
        See thinning.ThinConfig.

    Returns
    -------
    TrialSet
    """
    if isinstance(precision, bool) or not isinstance(precision, (int, np.integer)) or precision < 0:
        raise InvalidPrecision("`precision` must be a non-negative integer.")

    # + 0.0 folds -0.0 into 0.0 so both round to the same bucket
    keys = np.round(points, int(precision)) + 0.0
    valid = np.ones(points.shape[0], dtype=bool)
    result = _bucket_trials(keys, valid, trials, all_trials, seed, priority)
    logger.debug("Precision thinning (%d decimals): kept %s of %d", precision,
                 result.kept_counts, points.shape[0])
    return result


def grid_cells(
        points: np.ndarray,
        resolution: Union[float, Sequence[float]],
        origin: Optional[Tuple[float, float]] = None,
) -> np.ndarray:
    """
    Integer (ix, iy) grid cell of every point.

    Cells have size `resolution` (one value, or one per axis) and are counted
    from `origin`. Without an origin, the grid starts at the minimum
    coordinate of the data.
    """
    res = np.broadcast_to(np.asarray(resolution, dtype=float), (2,))
    if np.any(~np.isfinite(res)) or np.any(res <= 0):
        raise InvalidDistance("`resolution` must be positive.")
    if origin is None:
        origin = points.min(axis=0)
    return np.floor((points - np.asarray(origin, dtype=float)) / res).astype(np.int64)


def grid_thinning(
        points: np.ndarray,
        min_distance: Optional[float] = None,
        resolution: Optional[Union[float, Sequence[float]]] = None,
        origin: Optional[Tuple[float, float]] = None,
        raster: Optional[CellResolver] = None,
        trials: int = 10,
        all_trials: bool = False,
        seed: SeedLike = None,
        priority: Optional[np.ndarray] = None,
) -> TrialSet:
    """
    Keep one point per grid cell.

    The grid comes from, in order of precedence: `raster` (any CellResolver,
    e.g. RasterGrid), `resolution` (+ optional `origin`), or `min_distance`
    in km converted to degrees with KM_PER_DEGREE. Points that fall outside
    the raster are not kept.
    """
    n = points.shape[0]
    if raster is not None:
        cells = np.asarray(raster.cell_from_xy(points), dtype=np.int64).reshape(-1)
        valid = cells >= 0
        if not valid.all():
            logger.warning("%d of %d points fall outside the raster and are dropped.",
                           int((~valid).sum()), n)
        keys = cells
    else:
        if resolution is None:
            if min_distance is None:
                raise InvalidDistance("Either min_distance, resolution, or raster must be provided.")
            if not np.isfinite(min_distance) or min_distance <= 0:
                raise InvalidDistance("`min_distance` must be a positive number.")
            resolution = min_distance / KM_PER_DEGREE
        keys = grid_cells(points, resolution, origin) if n else np.zeros((0, 2), dtype=np.int64)
        valid = np.ones(n, dtype=bool)

    result = _bucket_trials(keys, valid, trials, all_trials, seed, priority)
    logger.debug("Grid thinning: kept %s of %d", result.kept_counts, n)
    return result
