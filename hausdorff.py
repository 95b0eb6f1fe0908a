# hausdorff.py
"""
hausdorff.py

How well a thinned subset still covers the original points: the directed
Hausdorff distance from the full point cloud to the kept points, i.e. the
largest distance from any input point to its closest kept point, together
with the pair of points where it is attained.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np
from scipy.spatial import cKDTree

from geometry import EARTH_RADIUS_KM, Metric, long_lat_to_cartesian


@dataclass
class CoverageResult:
    """
    Container for coverage computation results.
    """
    distance: float
    point: np.ndarray
    nearest_kept: np.ndarray


def _directed_hausdorff(
        A: np.ndarray,
        B: np.ndarray,
) -> Tuple[float, int, int]:
    """
    Worst-covered point of A and its closest point of B.

    A and B hold coordinates in any dimension (planar points, or points
    projected onto the sphere), compared by straight-line distance.

    Returns
    -------
    d_max : float
        Largest distance from a point of A to its closest point of B.
    idx_a_max : int
        Index in A of that worst-covered point.
    idx_b_near : int
        Index in B of its closest point.
    """
    if A.size == 0 or B.size == 0:
        return 0.0, -1, -1

    tree = cKDTree(B)
    dists, idxs = tree.query(A)
    idx_a_max = int(np.argmax(dists))
    d_max = float(dists[idx_a_max])
    idx_b_near = int(idxs[idx_a_max])
    return d_max, idx_a_max, idx_b_near


def coverage_distance(
        points: np.ndarray,
        keep: np.ndarray,
        metric: Metric = "haversine",
        R: float = EARTH_RADIUS_KM,
) -> CoverageResult:
    """
    Largest distance from an input point to its closest kept point.

    For the haversine metric the search runs on the sphere-projected points
    and the chord length is converted back to great-circle distance.

    Parameters
    ----------
    points : np.ndarray
        Full point cloud of shape (N, 2).
    keep : np.ndarray
        Boolean keep-flags of length N with at least one True.

    Returns
    -------
    CoverageResult
        Coverage distance, the worst-covered input point and its closest
        kept point.
    """
    points = np.asarray(points, dtype=float)
    keep = np.asarray(keep, dtype=bool)
    if points.shape[0] and not keep.any():
        raise ValueError("Coverage is undefined when no point is kept.")

    kept_idx = np.flatnonzero(keep)
    if metric == "haversine":
        coords = long_lat_to_cartesian(points[:, 0], points[:, 1], R)
    else:
        coords = points

    d_max, idx_a, idx_b = _directed_hausdorff(coords, coords[kept_idx])
    if idx_a < 0:
        empty = np.zeros(0, dtype=float)
        return CoverageResult(distance=0.0, point=empty, nearest_kept=empty)

    if metric == "haversine":
        d_max = float(2.0 * R * np.arcsin(min(1.0, d_max / (2.0 * R))))

    return CoverageResult(
        distance=d_max,
        point=points[idx_a],
        nearest_kept=points[kept_idx[idx_b]],
    )
