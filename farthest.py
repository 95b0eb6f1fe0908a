# farthest.py
"""
farthest.py

Selection of an exact number of points, as spread out as possible.

Starting from a random point, the point farthest from everything selected so
far (largest distance to its closest selected point) is added until the
target count is reached. If the farthest remaining point is already closer
than the minimum separation, the trial stops short of the target.
"""

import logging
from typing import Literal

import numpy as np

from geometry import EARTH_RADIUS_KM, Metric
from neighbors import BackendType, exhaustive_distances
from trials import SeedLike, TrialSet, run_trials, spawn_generators

logger = logging.getLogger(__name__)


def farthest_point_trial(
        dist_matrix: np.ndarray,
        target_points: int,
        min_distance: float,
        rng: np.random.Generator,
) -> np.ndarray:
    """
    One max-min greedy trial on a precomputed (N, N) distance matrix.

    Returns
    -------
    np.ndarray
        Boolean keep-flags of length N with at most target_points True.
    """
    n = dist_matrix.shape[0]
    keep = np.zeros(n, dtype=bool)
    if n == 0:
        return keep

    first = rng.integers(n)
    keep[first] = True
    n_kept = 1
    # distance from every point to its closest kept point
    closest = dist_matrix[first].copy()

    while n_kept < target_points:
        candidates = np.where(keep, -np.inf, closest)
        farthest_dist = candidates.max()
        if farthest_dist < min_distance:
            break

        tied = np.flatnonzero(candidates == farthest_dist)
        chosen = tied[rng.integers(tied.size)] if tied.size > 1 else tied[0]

        keep[chosen] = True
        n_kept += 1
        np.minimum(closest, dist_matrix[chosen], out=closest)

    return keep


def farthest_point_thinning(
        points: np.ndarray,
        min_distance: float,
        target_points: int,
        trials: int = 10,
        all_trials: bool = False,
        seed: SeedLike = None,
        metric: Metric = "haversine",
        R: float = EARTH_RADIUS_KM,
        backend: BackendType = "numpy",
        torch_device: Literal["cpu", "cuda"] = "cpu",
) -> TrialSet:
    """
    Select target_points points at least min_distance apart.

    The full distance matrix is always computed, whatever neighbor search
    method was configured. In best-of-N mode the first trial that reaches
    the target is returned immediately; if none does, the first trial with
    the most points is returned.
    """
    dist_matrix = exhaustive_distances(points, metric, R, backend, torch_device)
    generators = spawn_generators(seed, trials)

    result = run_trials(
        lambda rng: farthest_point_trial(dist_matrix, target_points, min_distance, rng),
        generators,
        all_trials=all_trials,
        stop=lambda keep: keep.sum() == target_points,
    )
    logger.debug("Farthest-point selection: target %d, kept %s", target_points, result.kept_counts)
    return result
