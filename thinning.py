# thinning.py
"""
thinning.py

High-level entry points for spatial thinning of point datasets: reduce a set
of points so that no two kept points are closer than a minimum distance,
keeping as many points as possible (or exactly a requested number).

Supported methods:

- "brute_force", "grid_hash", "kd_tree", "r_tree": build the neighbor
  relation with the corresponding search (see neighbors.py) and thin it with
  the greedy eviction algorithm. With target_points set, the farthest-point
  selector is used instead.
- "grid": keep one point per grid/raster cell.
- "precision": keep one point per rounded coordinate pair.

Every request is validated completely before any work is done.
"""

import logging
import time
from dataclasses import dataclass, replace
from typing import Literal, Optional, Sequence, Tuple, Union

import numpy as np

from errors import (
    InvalidDistance,
    InvalidMethod,
    InvalidPoints,
    InvalidPrecision,
    InvalidPriority,
    InvalidSeed,
    InvalidTargetCount,
    InvalidTrialCount,
)
from eviction import max_thinning
from farthest import farthest_point_thinning
from geometry import EARTH_RADIUS_KM, Metric, as_points, check_metric
from neighbors import NEIGHBOR_METHODS, BackendType, find_neighbors
from reducers import CellResolver, grid_thinning, precision_thinning
from trials import SeedLike, TrialSet

logger = logging.getLogger(__name__)

ThinningMethod = Literal["brute_force", "grid_hash", "kd_tree", "r_tree", "grid", "precision"]

THINNING_METHODS = NEIGHBOR_METHODS + ("grid", "precision")


@dataclass
class ThinConfig:
    """
    Configuration of a thinning request.

    min_distance is in the unit of R (km by default) for the haversine metric
    and in coordinate units for the euclidean metric.
    """
    min_distance: Optional[float] = None
    method: ThinningMethod = "kd_tree"
    metric: Metric = "haversine"
    R: float = EARTH_RADIUS_KM
    space_partitioning: bool = False  # kd_tree / r_tree only
    trials: int = 10
    all_trials: bool = False
    target_points: Optional[int] = None
    seed: Optional[int] = None
    precision: int = 4  # "precision" only
    resolution: Optional[Union[float, Tuple[float, float]]] = None  # "grid" only
    origin: Optional[Tuple[float, float]] = None  # "grid" only
    raster: Optional[CellResolver] = None  # "grid" only
    backend: BackendType = "numpy"  # brute_force / target_points only
    torch_device: Literal["cpu", "cuda"] = "cpu"


def _is_int(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _is_positive(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        return False
    return bool(np.isfinite(value)) and value > 0


def _check_priority(priority, n: int) -> Optional[np.ndarray]:
    if priority is None:
        return None
    try:
        arr = np.asarray(priority, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidPriority("'priority' must be a numeric vector.") from e
    if arr.ndim != 1 or arr.shape[0] != n:
        raise InvalidPriority("'priority' must be a numeric vector with same length as number of points.")
    if not np.all(np.isfinite(arr)):
        raise InvalidPriority("'priority' must be finite.")
    return arr


def _validate(points, cfg: ThinConfig, priority):
    """
    Check the whole request before any work is done.

    Returns the points as an (N, 2) float array and the priority as a float
    array (or None).
    """
    if cfg.method not in THINNING_METHODS:
        raise InvalidMethod(f"Unknown thinning method: {cfg.method}")
    check_metric(cfg.metric)
    if cfg.backend not in ("numpy", "torch"):
        raise ValueError(f"Unknown backend: {cfg.backend}")
    if not _is_int(cfg.trials) or cfg.trials <= 0:
        raise InvalidTrialCount("`trials` must be a positive integer.")
    if not isinstance(cfg.all_trials, (bool, np.bool_)):
        raise InvalidTrialCount("`all_trials` must be a logical value.")
    if not isinstance(cfg.space_partitioning, (bool, np.bool_)):
        raise InvalidMethod("`space_partitioning` must be a logical value (True or False).")
    if not _is_positive(cfg.R):
        raise InvalidDistance("`R` must be a positive number.")
    if cfg.seed is not None and (not _is_int(cfg.seed) or cfg.seed < 0):
        raise InvalidSeed("`seed` must be None or a non-negative integer.")

    if cfg.min_distance is not None:
        if not _is_positive(cfg.min_distance):
            raise InvalidDistance("`min_distance` must be a positive number.")
    if cfg.method in NEIGHBOR_METHODS and cfg.min_distance is None:
        raise InvalidDistance("`min_distance` is required for distance-based thinning.")
    if cfg.method == "grid" and cfg.min_distance is None and cfg.resolution is None and cfg.raster is None:
        raise InvalidDistance("Either min_distance, resolution, or raster must be provided.")
    if cfg.method == "grid" and cfg.resolution is not None:
        res = np.asarray(cfg.resolution, dtype=float)
        if res.size not in (1, 2) or np.any(~np.isfinite(res)) or np.any(res <= 0):
            raise InvalidDistance("`resolution` must be positive.")
    if cfg.method == "precision" and (not _is_int(cfg.precision) or cfg.precision < 0):
        raise InvalidPrecision("`precision` must be a non-negative integer.")

    points = as_points(points)
    n = points.shape[0]
    priority = _check_priority(priority, n)

    if cfg.target_points is not None:
        if cfg.method not in NEIGHBOR_METHODS:
            raise InvalidTargetCount(
                f"target_points is not supported by the '{cfg.method}' method; "
                "use a distance-based method."
            )
        if not _is_int(cfg.target_points) or cfg.target_points < 1:
            raise InvalidTargetCount("`target_points` must be a positive integer.")
        if cfg.target_points > n:
            raise InvalidTargetCount(
                f"`target_points` ({cfg.target_points}) exceeds the number of points ({n})."
            )

    return points, priority


def _thin_validated(points: np.ndarray, cfg: ThinConfig, priority: Optional[np.ndarray],
                    seed: SeedLike) -> TrialSet:
    n = points.shape[0]
    if n == 0:
        logger.debug("Empty point set, nothing to thin.")
        n_out = cfg.trials if cfg.all_trials else 1
        return TrialSet([np.zeros(0, dtype=bool) for _ in range(n_out)], all_trials=cfg.all_trials)

    if cfg.method == "precision":
        return precision_thinning(points, cfg.precision, cfg.trials, cfg.all_trials, seed, priority)

    if cfg.method == "grid":
        return grid_thinning(
            points,
            min_distance=cfg.min_distance,
            resolution=cfg.resolution,
            origin=cfg.origin,
            raster=cfg.raster,
            trials=cfg.trials,
            all_trials=cfg.all_trials,
            seed=seed,
            priority=priority,
        )

    if cfg.target_points is not None:
        logger.info("Exact target of %d points requested; using farthest-point selection "
                    "on the full distance matrix instead of '%s'.", cfg.target_points, cfg.method)
        if priority is not None:
            logger.warning("priority is ignored by farthest-point selection.")
        return farthest_point_thinning(
            points,
            min_distance=cfg.min_distance,
            target_points=cfg.target_points,
            trials=cfg.trials,
            all_trials=cfg.all_trials,
            seed=seed,
            metric=cfg.metric,
            R=cfg.R,
            backend=cfg.backend,
            torch_device=cfg.torch_device,
        )

    relation = find_neighbors(
        points,
        cfg.min_distance,
        method=cfg.method,
        metric=cfg.metric,
        R=cfg.R,
        space_partitioning=cfg.space_partitioning,
        backend=cfg.backend,
        torch_device=cfg.torch_device,
    )
    return max_thinning(relation, cfg.trials, cfg.all_trials, seed, priority)


def thin(points, cfg: Optional[ThinConfig] = None, priority=None) -> TrialSet:
    """
    Thin a point dataset.

    Parameters
    ----------
    points : array-like
        Coordinates of shape (N, 2): (longitude, latitude) in degrees for the
        haversine metric, planar (x, y) for the euclidean metric.
    cfg : ThinConfig or None
        Thinning configuration. Defaults to ThinConfig().
    priority : array-like or None
        Optional score per point; higher scores are kept first. Used by the
        greedy eviction and by grid/precision thinning, ignored when
        target_points is set.

    Returns
    -------
    TrialSet
        Keep-flags aligned with the input order: the best trial only, or all
        trials when cfg.all_trials is True.

    Raises
    ------
    ThinError
        If the request is invalid. Nothing is computed in that case.
    """
    if cfg is None:
        cfg = ThinConfig()
    points, priority = _validate(points, cfg, priority)

    t0 = time.perf_counter()
    result = _thin_validated(points, cfg, priority, cfg.seed)
    logger.debug("Thinning with method=%s: %d points -> kept %s in %.3f s",
                 cfg.method, points.shape[0], result.kept_counts, time.perf_counter() - t0)
    return result


def thin_points(points, min_distance: Optional[float] = None, priority=None, **kwargs) -> TrialSet:
    """
    Keyword-argument shortcut for thin(points, ThinConfig(min_distance, **kwargs)).

    >>> result = thin_points([(0, 0), (0, 0.0001), (10, 10)], 0.01, metric="euclidean", trials=1)
    >>> int(result.best.sum())
    2
    """
    return thin(points, ThinConfig(min_distance=min_distance, **kwargs), priority)


def thin_groups(points, groups: Sequence, cfg: Optional[ThinConfig] = None, priority=None) -> TrialSet:
    """
    Thin each group of points independently (e.g. one group per species).

    Groups are processed in order of first appearance, each with its own seed
    spawned from cfg.seed. Trial i of the result combines trial i of every
    group. target_points applies per group and is capped at the group size.

    Parameters
    ----------
    points : array-like
        Coordinates of shape (N, 2).
    groups : sequence
        Group label of every point, length N.
    cfg : ThinConfig or None
        Thinning configuration shared by all groups.
    priority : array-like or None
        Optional score per point.

    Returns
    -------
    TrialSet
        Keep-flags over all N points.
    """
    if cfg is None:
        cfg = ThinConfig()
    groups = np.asarray(groups)
    points, priority = _validate(points, cfg, priority)
    n = points.shape[0]
    if groups.ndim != 1 or groups.shape[0] != n:
        raise InvalidPoints("`groups` must hold one label per point.")

    n_out = cfg.trials if cfg.all_trials else 1
    merged = [np.zeros(n, dtype=bool) for _ in range(n_out)]
    if n == 0:
        return TrialSet(merged, all_trials=cfg.all_trials)

    _, first_seen = np.unique(groups, return_index=True)
    labels = groups[np.sort(first_seen)]
    seeds = np.random.SeedSequence(cfg.seed).spawn(labels.shape[0])

    for label, group_seed in zip(labels, seeds):
        idx = np.flatnonzero(groups == label)
        group_cfg = cfg
        if cfg.target_points is not None:
            group_cfg = replace(cfg, target_points=min(cfg.target_points, idx.shape[0]))
        logger.debug("Thinning group %r (%d points)", label, idx.shape[0])

        group_priority = None if priority is None else priority[idx]
        result = _thin_validated(points[idx], group_cfg, group_priority, group_seed)
        for merged_keep, keep in zip(merged, result):
            merged_keep[idx] = keep

    return TrialSet(merged, all_trials=cfg.all_trials)


def kept_points(points, keep: np.ndarray) -> np.ndarray:
    """Coordinates of the kept points, in input order."""
    return np.asarray(points, dtype=float)[np.asarray(keep, dtype=bool)]
