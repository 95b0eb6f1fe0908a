# geometry.py
"""
geometry.py

Distance computations and spatial bucketing shared by all thinning methods:

- planar (Euclidean) and great-circle (haversine) distances, vectorized over
  NumPy arrays,
- projection of longitude/latitude onto a sphere for 3-D radius queries,
- a flat cell index that buckets points into a regular grid so that
  neighbors of a point can only live in the 3x3 block of cells around it.
"""

from dataclasses import dataclass
from typing import Dict, List, Literal, Optional, Tuple

import numpy as np

from errors import InvalidMethod, InvalidPoints

Metric = Literal["haversine", "euclidean"]

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.32  # equatorial length of one degree, used for raster resolutions


def as_points(points) -> np.ndarray:
    """
    Convert input coordinates to a float array of shape (N, 2).

    Raises
    ------
    InvalidPoints
        If the input cannot be read as N finite (x, y) pairs.
    """
    try:
        arr = np.asarray(points, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidPoints("Coordinates must be numeric.") from e

    if arr.size == 0:
        return arr.reshape(0, 2)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise InvalidPoints(f"Coordinates must have shape (N, 2), got {arr.shape}.")
    if not np.all(np.isfinite(arr)):
        raise InvalidPoints("Coordinates must be finite.")
    return arr


def check_metric(metric: str) -> None:
    if metric not in ("haversine", "euclidean"):
        raise InvalidMethod(f"Unknown distance metric: {metric}")


def euclidean_distance(p: np.ndarray, q: np.ndarray) -> np.ndarray:
    """
    Straight-line distance between points p and q, shape (..., 2).
    Broadcasts like any NumPy binary operation.
    """
    p = np.asarray(p, dtype=float)
    q = np.asarray(q, dtype=float)
    diff = q - p
    return np.sqrt(diff[..., 0] ** 2 + diff[..., 1] ** 2)


def haversine_distance(p: np.ndarray, q: np.ndarray, R: float = EARTH_RADIUS_KM) -> np.ndarray:
    """
    Great-circle distance between (lon, lat) points given in degrees.

    Parameters
    ----------
    p, q : np.ndarray
        Points of shape (..., 2) as (longitude, latitude) in degrees.
    R : float
        Sphere radius. The result is in the same unit.

    Returns
    -------
    np.ndarray
        Distances of the broadcast shape of p and q without the last axis.
    """
    p = np.radians(np.asarray(p, dtype=float))
    q = np.radians(np.asarray(q, dtype=float))
    dlon = q[..., 0] - p[..., 0]
    dlat = q[..., 1] - p[..., 1]

    a = np.sin(dlat / 2.0) ** 2 + np.cos(p[..., 1]) * np.cos(q[..., 1]) * np.sin(dlon / 2.0) ** 2
    a = np.clip(a, 0.0, 1.0)
    return 2.0 * R * np.arcsin(np.sqrt(a))


def distance(p: np.ndarray, q: np.ndarray, metric: Metric = "haversine",
             R: float = EARTH_RADIUS_KM) -> np.ndarray:
    """Distance between p and q under the selected metric."""
    if metric == "euclidean":
        return euclidean_distance(p, q)
    if metric == "haversine":
        return haversine_distance(p, q, R)
    raise InvalidMethod(f"Unknown distance metric: {metric}")


def pairwise_distances(points: np.ndarray, metric: Metric = "haversine",
                       R: float = EARTH_RADIUS_KM) -> np.ndarray:
    """
    Full (N, N) distance matrix. Memory is O(N^2).
    """
    # (N, 1, 2) against (1, N, 2) -> (N, N)
    return distance(points[:, np.newaxis, :], points[np.newaxis, :, :], metric, R)


def min_kept_distance(points: np.ndarray, keep: np.ndarray, metric: Metric = "haversine",
                      R: float = EARTH_RADIUS_KM) -> float:
    """
    Smallest distance between any two kept points (inf if fewer than two are
    kept). A thinned set is feasible iff this is >= the minimum separation.
    """
    kept = np.asarray(points, dtype=float)[np.asarray(keep, dtype=bool)]
    if kept.shape[0] < 2:
        return float("inf")
    dists = pairwise_distances(kept, metric, R)
    np.fill_diagonal(dists, np.inf)
    return float(dists.min())


def long_lat_to_cartesian(long: np.ndarray, lat: np.ndarray, R: float = EARTH_RADIUS_KM) -> np.ndarray:
    """
    Project longitude/latitude in degrees onto a sphere of radius R.

    Returns
    -------
    np.ndarray
        Cartesian coordinates of shape (N, 3).
    """
    lat_rad = np.radians(np.asarray(lat, dtype=float))
    long_rad = np.radians(np.asarray(long, dtype=float))
    x = R * np.cos(lat_rad) * np.cos(long_rad)
    y = R * np.cos(lat_rad) * np.sin(long_rad)
    z = R * np.sin(lat_rad)
    return np.column_stack((x, y, z))


def chord_radius(radius: float, R: float = EARTH_RADIUS_KM) -> float:
    """
    Straight-line (3-D) length of a great-circle arc of length `radius`.

    Two points on the sphere are within arc distance d iff their chord is
    within chord_radius(d), so a 3-D ball query with this radius returns
    exactly the great-circle neighbors.
    """
    if radius >= np.pi * R:
        return 2.0 * R
    return 2.0 * R * np.sin(radius / (2.0 * R))


@dataclass
class CellIndex:
    """
    Points bucketed into a regular grid, stored flat.

    `order` holds point indices sorted by cell id; the points of cell c are
    order[starts[c]:starts[c + 1]]. `lookup` maps integer grid coordinates
    (ix, iy) of occupied cells to their cell id. When `n_cols` is set the
    x axis wraps around (longitude columns across the antimeridian).
    """
    cell_of: np.ndarray
    order: np.ndarray
    starts: np.ndarray
    cell_xy: np.ndarray
    lookup: Dict[Tuple[int, int], int]
    n_cols: Optional[int] = None

    @property
    def n_cells(self) -> int:
        return self.cell_xy.shape[0]

    def members(self, cell: int) -> np.ndarray:
        return self.order[self.starts[cell]:self.starts[cell + 1]]

    def adjacent_cells(self, cell: int) -> List[int]:
        """Occupied cells in the 3x3 block centred on `cell`, itself included."""
        ix, iy = (int(v) for v in self.cell_xy[cell])
        xs = {ix - 1, ix, ix + 1}
        if self.n_cols is not None:
            xs = {x % self.n_cols for x in xs}
        found = []
        for x in xs:
            for y in (iy - 1, iy, iy + 1):
                other = self.lookup.get((x, y))
                if other is not None:
                    found.append(other)
        return sorted(found)

    def neighborhood(self, cell: int) -> np.ndarray:
        """Indices of all points in the 3x3 block centred on `cell`."""
        return np.concatenate([self.members(c) for c in self.adjacent_cells(cell)])


def _cell_sizes(points: np.ndarray, radius: float, metric: Metric, R: float):
    """
    Cell width/height such that any two points closer than `radius` fall into
    the same or adjacent cells.

    For the haversine metric latitude rows are exactly `radius` of arc high.
    The longitude span of a `radius` ball grows towards the poles, so the
    column width is taken at the largest |latitude| in the data and rounded
    up to split 360 degrees evenly, which lets columns wrap.
    """
    if metric == "euclidean":
        return radius, radius, None

    cell_y = np.degrees(radius / R)
    half_angle = np.sin(min(radius, np.pi * R) / (2.0 * R))
    cos_lat = np.cos(np.radians(np.abs(points[:, 1]).max()))
    if radius >= np.pi * R or cos_lat <= half_angle:
        n_cols = 1
    else:
        min_width = np.degrees(2.0 * np.arcsin(half_angle / cos_lat))
        n_cols = max(1, int(np.floor(360.0 / min_width)))
    return 360.0 / n_cols, cell_y, n_cols


def build_cell_index(points: np.ndarray, radius: float, metric: Metric = "haversine",
                     R: float = EARTH_RADIUS_KM) -> CellIndex:
    """
    Bucket points into grid cells sized from the search radius.

    Planar grids start at the minimum coordinate of the data; haversine grids
    start at (-180, -90) so that longitude columns can wrap. Strongly
    clustered data puts many points into few cells and the 3x3 scan
    degrades towards O(N^2).
    """
    cell_x, cell_y, n_cols = _cell_sizes(points, radius, metric, R)

    if metric == "euclidean":
        origin = points.min(axis=0)
        ix = np.floor((points[:, 0] - origin[0]) / cell_x)
        iy = np.floor((points[:, 1] - origin[1]) / cell_y)
    else:
        ix = np.floor(np.mod(points[:, 0] + 180.0, 360.0) / cell_x) % n_cols
        iy = np.floor((points[:, 1] + 90.0) / cell_y)

    cells = np.column_stack((ix, iy)).astype(np.int64)
    cell_xy, cell_of = np.unique(cells, axis=0, return_inverse=True)
    cell_of = cell_of.reshape(-1)

    order = np.argsort(cell_of, kind="stable")
    starts = np.searchsorted(cell_of[order], np.arange(cell_xy.shape[0] + 1))
    lookup = {(int(x), int(y)): c for c, (x, y) in enumerate(cell_xy)}

    return CellIndex(
        cell_of=cell_of,
        order=order,
        starts=starts,
        cell_xy=cell_xy,
        lookup=lookup,
        n_cols=n_cols,
    )
