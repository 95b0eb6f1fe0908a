# backend_torch.py
"""
backend_torch.py

PyTorch implementation of the full pairwise distance matrix used by the
exhaustive neighbor search and by the farthest-point selector. The matrix is
computed on the selected device (CPU or CUDA) in float64 and returned as a
NumPy array, so results match the NumPy backend up to rounding.
"""

from typing import Literal

import numpy as np

try:
    import torch
except ImportError as e:  # pragma: no cover
    raise ImportError(
        "backend_torch requires PyTorch to be installed. "
        "Install it via `pip install torch`."
    ) from e

from geometry import EARTH_RADIUS_KM, Metric


def pairwise_distances_tensor(
        points_t: "torch.Tensor",
        metric: Metric = "haversine",
        R: float = EARTH_RADIUS_KM,
) -> "torch.Tensor":
    """
    Distance matrix on torch.Tensor.

    Parameters
    ----------
    points_t : torch.Tensor
        Points of shape (N, 2), on the desired device.
    metric : {"haversine", "euclidean"}
        Distance metric. Haversine expects (lon, lat) in degrees.
    R : float
        Sphere radius for the haversine metric.

    Returns
    -------
    torch.Tensor
        Distances of shape (N, N) on the same device.
    """
    if metric == "euclidean":
        diff = points_t[None, :, :] - points_t[:, None, :]  # (N, N, 2)
        return torch.sqrt(diff[..., 0] ** 2 + diff[..., 1] ** 2)

    rad = torch.deg2rad(points_t)
    lon = rad[:, 0]
    lat = rad[:, 1]
    dlon = lon[None, :] - lon[:, None]
    dlat = lat[None, :] - lat[:, None]
    cos_lat = torch.cos(lat)

    a = torch.sin(dlat / 2.0) ** 2 + cos_lat[:, None] * cos_lat[None, :] * torch.sin(dlon / 2.0) ** 2
    a = torch.clamp(a, 0.0, 1.0)
    return 2.0 * R * torch.asin(torch.sqrt(a))


def pairwise_distances_torch(
        points: np.ndarray,
        metric: Metric = "haversine",
        R: float = EARTH_RADIUS_KM,
        device: Literal["cpu", "cuda"] = "cpu",
) -> np.ndarray:
    """
    NumPy -> Torch -> NumPy wrapper around pairwise_distances_tensor.
    """
    n = points.shape[0]
    if n == 0:
        return np.zeros((0, 0), dtype=float)

    points_t = torch.from_numpy(np.ascontiguousarray(points, dtype=np.float64)).to(device=device)
    dists_t = pairwise_distances_tensor(points_t, metric=metric, R=R)
    return dists_t.detach().cpu().numpy()
