# samples.py
"""
samples.py

Synthetic point datasets for experiments and tests: uniformly scattered
points and spatially clustered points (the typical shape of biased
occurrence records, many observations around a few sampling sites).
"""

from typing import Optional, Tuple

import numpy as np


def uniform_points(
        num_points: int,
        bounds: Tuple[float, float, float, float] = (-180.0, 180.0, -90.0, 90.0),
        seed: Optional[int] = None,
) -> np.ndarray:
    """
    Points drawn uniformly in a box.

    Parameters
    ----------
    num_points : int
        Number of points.
    bounds : (xmin, xmax, ymin, ymax)
        Sampling box. Defaults to the whole longitude/latitude range.
    seed : int or None
        Seed for the RNG.

    Returns
    -------
    np.ndarray
        Array of shape (num_points, 2).
    """
    rng = np.random.default_rng(seed)
    xmin, xmax, ymin, ymax = bounds
    x = rng.uniform(xmin, xmax, num_points)
    y = rng.uniform(ymin, ymax, num_points)
    return np.column_stack((x, y))


def clustered_points(
        num_clusters: int,
        points_per_cluster: int,
        spread: float,
        bounds: Tuple[float, float, float, float] = (-10.0, 10.0, 35.0, 45.0),
        seed: Optional[int] = None,
) -> np.ndarray:
    """
    Gaussian clusters around uniformly placed centres.

    Latitudes are clipped to [-90, 90]; `spread` is the standard deviation
    in coordinate units (degrees for geographic data).

    Returns
    -------
    np.ndarray
        Array of shape (num_clusters * points_per_cluster, 2), grouped by
        cluster.
    """
    rng = np.random.default_rng(seed)
    centres = uniform_points(num_clusters, bounds, seed=rng.integers(2**32))
    offsets = rng.normal(0.0, spread, size=(num_clusters, points_per_cluster, 2))
    points = (centres[:, None, :] + offsets).reshape(-1, 2)
    points[:, 1] = np.clip(points[:, 1], -90.0, 90.0)
    return points
