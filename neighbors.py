# neighbors.py
"""
neighbors.py

Neighbor search under a minimum-distance constraint. Given a point cloud and
a radius r, every method returns the same NeighborRelation: for each point,
the sorted indices of the other points at distance < r.

Four interchangeable methods are provided:

1. brute_force: full N x N distance matrix (NumPy or Torch). Reference
   implementation, O(N^2) time and memory.
2. grid_hash: bucket points into cells of size ~r and compare each point only
   with the points in the surrounding 3x3 cells.
3. kd_tree: scipy cKDTree radius query. Geographic coordinates are projected
   onto the sphere first and queried with the chord length of r.
4. r_tree: shapely STRtree (R-tree of bounding boxes) range query.

kd_tree and r_tree can optionally pre-partition the points with the same grid
as grid_hash and build one small tree per 3x3 block of cells.

Every candidate pair reported by a grid or a tree is confirmed with the
exact distance, so all methods agree pair for pair.
"""

import logging
import time
from typing import List, Literal, Sequence, Set, Tuple

import numpy as np
import shapely
from scipy.spatial import cKDTree

from errors import InvalidDistance, InvalidMethod
from geometry import (
    EARTH_RADIUS_KM,
    Metric,
    build_cell_index,
    check_metric,
    chord_radius,
    distance,
    long_lat_to_cartesian,
    pairwise_distances,
)

try:
    from backend_torch import pairwise_distances_torch

    HAS_TORCH_BACKEND = True
except ImportError:
    HAS_TORCH_BACKEND = False

logger = logging.getLogger(__name__)

NeighborMethod = Literal["brute_force", "grid_hash", "kd_tree", "r_tree"]
BackendType = Literal["numpy", "torch"]

NEIGHBOR_METHODS = ("brute_force", "grid_hash", "kd_tree", "r_tree")

# Tree queries use a slightly larger radius; exact distances decide afterwards.
_QUERY_SLACK = 1.0 + 1e-9


class NeighborRelation:
    """
    Symmetric neighbor lists in compressed sparse row layout.

    The neighbors of point i are indices[indptr[i]:indptr[i + 1]], sorted
    and never containing i itself.
    """

    def __init__(self, indptr: np.ndarray, indices: np.ndarray):
        self.indptr = np.asarray(indptr, dtype=np.int64)
        self.indices = np.asarray(indices, dtype=np.int64)

    @classmethod
    def from_pairs(cls, n: int, i: np.ndarray, j: np.ndarray) -> "NeighborRelation":
        """
        Build the relation from index pairs. Pairs may be given in one or both
        directions and may repeat; self pairs are dropped.
        """
        i = np.asarray(i, dtype=np.int64).reshape(-1)
        j = np.asarray(j, dtype=np.int64).reshape(-1)
        not_self = i != j
        src = np.concatenate((i[not_self], j[not_self]))
        dst = np.concatenate((j[not_self], i[not_self]))

        # one int64 key per directed pair; unique() also sorts by (src, dst)
        keys = np.unique(src * n + dst)
        src = keys // n
        dst = keys % n

        indptr = np.zeros(n + 1, dtype=np.int64)
        np.cumsum(np.bincount(src, minlength=n), out=indptr[1:])
        return cls(indptr, dst)

    @classmethod
    def from_lists(cls, neighbor_lists: Sequence[Sequence[int]]) -> "NeighborRelation":
        n = len(neighbor_lists)
        lengths = [len(nb) for nb in neighbor_lists]
        i = np.repeat(np.arange(n, dtype=np.int64), lengths)
        j = np.concatenate([np.asarray(nb, dtype=np.int64) for nb in neighbor_lists]) if n else i
        return cls.from_pairs(n, i, j)

    @classmethod
    def empty(cls, n: int) -> "NeighborRelation":
        return cls(np.zeros(n + 1, dtype=np.int64), np.zeros(0, dtype=np.int64))

    @property
    def n(self) -> int:
        return self.indptr.shape[0] - 1

    @property
    def n_pairs(self) -> int:
        return self.indices.shape[0] // 2

    def __len__(self) -> int:
        return self.n

    def __getitem__(self, i: int) -> np.ndarray:
        return self.indices[self.indptr[i]:self.indptr[i + 1]]

    def counts(self) -> np.ndarray:
        """Number of neighbors of every point."""
        return np.diff(self.indptr)

    def pairs(self) -> Set[Tuple[int, int]]:
        """All neighboring pairs as (i, j) with i < j."""
        src = np.repeat(np.arange(self.n, dtype=np.int64), self.counts())
        upper = src < self.indices
        return set(zip(src[upper].tolist(), self.indices[upper].tolist()))

    def __eq__(self, other) -> bool:
        if not isinstance(other, NeighborRelation):
            return NotImplemented
        return (np.array_equal(self.indptr, other.indptr)
                and np.array_equal(self.indices, other.indices))

    def __repr__(self) -> str:
        return f"NeighborRelation(n={self.n}, pairs={self.n_pairs})"


def _confirmed(points: np.ndarray, i: np.ndarray, j: np.ndarray, radius: float,
               metric: Metric, R: float) -> Tuple[np.ndarray, np.ndarray]:
    """Keep candidate pairs (i, j), i < j, that are strictly closer than radius."""
    upper = i < j
    i = i[upper]
    j = j[upper]
    close = distance(points[i], points[j], metric, R) < radius
    return i[close], j[close]


def _concat_pairs(pairs_i: List[np.ndarray], pairs_j: List[np.ndarray]):
    if not pairs_i:
        empty = np.zeros(0, dtype=np.int64)
        return empty, empty
    return np.concatenate(pairs_i), np.concatenate(pairs_j)


def exhaustive_distances(
        points: np.ndarray,
        metric: Metric = "haversine",
        R: float = EARTH_RADIUS_KM,
        backend: BackendType = "numpy",
        torch_device: Literal["cpu", "cuda"] = "cpu",
) -> np.ndarray:
    """Full distance matrix on the selected backend."""
    if backend == "numpy":
        return pairwise_distances(points, metric, R)
    elif backend == "torch":
        if not HAS_TORCH_BACKEND:
            raise RuntimeError("Torch backend requested but backend_torch is not available.")
        return pairwise_distances_torch(points, metric=metric, R=R, device=torch_device)
    else:
        raise ValueError(f"Unknown backend: {backend}")


def find_neighbors_brute_force(
        points: np.ndarray,
        radius: float,
        metric: Metric = "haversine",
        R: float = EARTH_RADIUS_KM,
        backend: BackendType = "numpy",
        torch_device: Literal["cpu", "cuda"] = "cpu",
) -> NeighborRelation:
    """
    Neighbors from the full distance matrix.
    """
    n = points.shape[0]
    within = exhaustive_distances(points, metric, R, backend, torch_device) < radius
    np.fill_diagonal(within, False)
    i, j = np.nonzero(within)
    return NeighborRelation.from_pairs(n, i, j)


def find_neighbors_grid_hash(
        points: np.ndarray,
        radius: float,
        metric: Metric = "haversine",
        R: float = EARTH_RADIUS_KM,
) -> NeighborRelation:
    """
    Neighbors by scanning the 3x3 block of grid cells around every cell.

    Work is proportional to the number of point pairs sharing a 3x3 block, so
    it stays near-linear for evenly spread data and degrades to O(N^2) when
    most points fall into a handful of cells.
    """
    n = points.shape[0]
    index = build_cell_index(points, radius, metric, R)

    pairs_i, pairs_j = [], []
    for cell in range(index.n_cells):
        members = index.members(cell)
        candidates = index.neighborhood(cell)
        i = np.repeat(members, candidates.size)
        j = np.tile(candidates, members.size)
        i, j = _confirmed(points, i, j, radius, metric, R)
        pairs_i.append(i)
        pairs_j.append(j)

    i, j = _concat_pairs(pairs_i, pairs_j)
    return NeighborRelation.from_pairs(n, i, j)


def _kdtree_pairs(coords: np.ndarray, query_idx: np.ndarray, tree_idx: np.ndarray,
                  r: float) -> Tuple[np.ndarray, np.ndarray]:
    tree = cKDTree(coords[tree_idx])
    hits = tree.query_ball_point(coords[query_idx], r, return_sorted=False)
    lengths = [len(h) for h in hits]
    i = np.repeat(query_idx, lengths)
    j = tree_idx[np.concatenate(hits).astype(np.int64)] if sum(lengths) else i[:0]
    return i, j


def find_neighbors_kd_tree(
        points: np.ndarray,
        radius: float,
        metric: Metric = "haversine",
        R: float = EARTH_RADIUS_KM,
        space_partitioning: bool = False,
) -> NeighborRelation:
    """
    Neighbors from k-d tree radius queries.

    For the haversine metric the points are projected to 3-D Cartesian
    coordinates on a sphere of radius R; the chord length of `radius` then
    selects exactly the points within `radius` of arc.
    """
    n = points.shape[0]
    if metric == "haversine":
        coords = long_lat_to_cartesian(points[:, 0], points[:, 1], R)
        r = chord_radius(radius, R) * _QUERY_SLACK
    else:
        coords = points
        r = radius * _QUERY_SLACK

    if not space_partitioning:
        everything = np.arange(n, dtype=np.int64)
        i, j = _kdtree_pairs(coords, everything, everything, r)
        i, j = _confirmed(points, i, j, radius, metric, R)
        return NeighborRelation.from_pairs(n, i, j)

    index = build_cell_index(points, radius, metric, R)
    pairs_i, pairs_j = [], []
    for cell in range(index.n_cells):
        i, j = _kdtree_pairs(coords, index.members(cell), index.neighborhood(cell), r)
        i, j = _confirmed(points, i, j, radius, metric, R)
        pairs_i.append(i)
        pairs_j.append(j)

    i, j = _concat_pairs(pairs_i, pairs_j)
    return NeighborRelation.from_pairs(n, i, j)


def _search_boxes(points: np.ndarray, radius: float, R: float):
    """
    Longitude/latitude boxes containing every point within `radius` of arc.

    Boxes that cross the antimeridian are split in two, so a point may own
    more than one box. Returns the owner index of each box and the boxes.
    """
    lon = np.mod(points[:, 0] + 180.0, 360.0) - 180.0
    lat = points[:, 1]
    dlat = np.degrees(radius / R)
    lat_lo = np.maximum(lat - dlat, -90.0)
    lat_hi = np.minimum(lat + dlat, 90.0)

    # widest longitude offset at the most poleward latitude the box reaches
    half_angle = np.sin(min(radius, np.pi * R) / (2.0 * R))
    cos_far = np.cos(np.radians(np.minimum(np.abs(lat) + dlat, 90.0)))
    full = (radius >= np.pi * R) | (cos_far <= half_angle)
    ratio = np.where(full, 1.0, half_angle / np.where(full, 1.0, cos_far))
    dlon = np.where(full, 180.0, np.degrees(2.0 * np.arcsin(np.minimum(ratio, 1.0))))

    lon_lo = np.where(full, -180.0, lon - dlon)
    lon_hi = np.where(full, 180.0, lon + dlon)

    owners = [np.arange(points.shape[0])]
    x0 = [np.maximum(lon_lo, -180.0)]
    x1 = [np.minimum(lon_hi, 180.0)]
    y0 = [lat_lo]
    y1 = [lat_hi]

    west = lon_lo < -180.0
    owners.append(np.flatnonzero(west))
    x0.append(lon_lo[west] + 360.0)
    x1.append(np.full(west.sum(), 180.0))
    y0.append(lat_lo[west])
    y1.append(lat_hi[west])

    east = lon_hi > 180.0
    owners.append(np.flatnonzero(east))
    x0.append(np.full(east.sum(), -180.0))
    x1.append(lon_hi[east] - 360.0)
    y0.append(lat_lo[east])
    y1.append(lat_hi[east])

    boxes = shapely.box(np.concatenate(x0), np.concatenate(y0),
                        np.concatenate(x1), np.concatenate(y1))
    return np.concatenate(owners).astype(np.int64), boxes


def _strtree_pairs(points: np.ndarray, query_idx: np.ndarray, tree_idx: np.ndarray,
                   radius: float, metric: Metric, R: float) -> Tuple[np.ndarray, np.ndarray]:
    if metric == "euclidean":
        tree = shapely.STRtree(shapely.points(points[tree_idx]))
        hits = tree.query(shapely.points(points[query_idx]), predicate="dwithin",
                          distance=radius * _QUERY_SLACK)
        return query_idx[hits[0]], tree_idx[hits[1]]

    lon = np.mod(points[tree_idx, 0] + 180.0, 360.0) - 180.0
    tree = shapely.STRtree(shapely.points(lon, points[tree_idx, 1]))
    owners, boxes = _search_boxes(points[query_idx], radius * _QUERY_SLACK, R)
    hits = tree.query(boxes, predicate="intersects")
    return query_idx[owners[hits[0]]], tree_idx[hits[1]]


def find_neighbors_r_tree(
        points: np.ndarray,
        radius: float,
        metric: Metric = "haversine",
        R: float = EARTH_RADIUS_KM,
        space_partitioning: bool = False,
) -> NeighborRelation:
    """
    Neighbors from R-tree range queries.

    Planar queries use a `dwithin` predicate; geographic queries look up the
    lon/lat box around each point and confirm with the haversine distance.
    """
    n = points.shape[0]
    if not space_partitioning:
        everything = np.arange(n, dtype=np.int64)
        i, j = _strtree_pairs(points, everything, everything, radius, metric, R)
        i, j = _confirmed(points, i, j, radius, metric, R)
        return NeighborRelation.from_pairs(n, i, j)

    index = build_cell_index(points, radius, metric, R)
    pairs_i, pairs_j = [], []
    for cell in range(index.n_cells):
        i, j = _strtree_pairs(points, index.members(cell), index.neighborhood(cell),
                              radius, metric, R)
        i, j = _confirmed(points, i, j, radius, metric, R)
        pairs_i.append(i)
        pairs_j.append(j)

    i, j = _concat_pairs(pairs_i, pairs_j)
    return NeighborRelation.from_pairs(n, i, j)


def find_neighbors(
        points: np.ndarray,
        radius: float,
        method: NeighborMethod = "kd_tree",
        metric: Metric = "haversine",
        R: float = EARTH_RADIUS_KM,
        space_partitioning: bool = False,
        backend: BackendType = "numpy",
        torch_device: Literal["cpu", "cuda"] = "cpu",
) -> NeighborRelation:
    """
    Find, for every point, the other points closer than `radius`.

    Parameters
    ----------
    points : np.ndarray
        Point cloud of shape (N, 2): (lon, lat) in degrees for the haversine
        metric, planar coordinates for the euclidean one.
    radius : float
        Search radius, in the unit of R for haversine or of the coordinates
        for euclidean.
    method : {"brute_force", "grid_hash", "kd_tree", "r_tree"}
        Search method. All methods return the same relation.
    metric : {"haversine", "euclidean"}
        Distance metric.
    R : float
        Sphere radius for the haversine metric.
    space_partitioning : bool
        kd_tree / r_tree only: build one tree per 3x3 block of grid cells
        instead of one global tree.
    backend : {"numpy", "torch"}
        brute_force only: where the distance matrix is computed.

    Returns
    -------
    NeighborRelation
    """
    if not np.isfinite(radius) or radius <= 0:
        raise InvalidDistance("`radius` must be a positive number.")
    check_metric(metric)
    if method not in NEIGHBOR_METHODS:
        raise InvalidMethod(f"Unknown neighbor search method: {method}")

    n = points.shape[0]
    if n < 2:
        return NeighborRelation.empty(n)

    t0 = time.perf_counter()
    if method == "brute_force":
        relation = find_neighbors_brute_force(points, radius, metric, R, backend, torch_device)
    elif method == "grid_hash":
        relation = find_neighbors_grid_hash(points, radius, metric, R)
    elif method == "kd_tree":
        relation = find_neighbors_kd_tree(points, radius, metric, R, space_partitioning)
    else:
        relation = find_neighbors_r_tree(points, radius, metric, R, space_partitioning)

    logger.debug("Neighbor search (%s, partitioned=%s): %d points, %d pairs in %.3f s",
                 method, space_partitioning, n, relation.n_pairs, time.perf_counter() - t0)
    return relation
