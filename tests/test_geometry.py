"""Unit tests for distance computations and the cell index."""

import itertools

import numpy as np
import pytest

from errors import InvalidMethod, InvalidPoints
from geometry import (
    EARTH_RADIUS_KM,
    as_points,
    build_cell_index,
    chord_radius,
    distance,
    euclidean_distance,
    haversine_distance,
    long_lat_to_cartesian,
    min_kept_distance,
    pairwise_distances,
)
from samples import uniform_points


def test_euclidean_distance_3_4_5():
    assert euclidean_distance([0.0, 0.0], [3.0, 4.0]) == pytest.approx(5.0)


def test_haversine_one_degree_of_latitude():
    d = haversine_distance([0.0, 0.0], [0.0, 1.0])
    assert d == pytest.approx(EARTH_RADIUS_KM * np.pi / 180.0)


def test_haversine_uses_sphere_radius():
    d_km = haversine_distance([10.0, 20.0], [11.0, 21.0])
    d_unit = haversine_distance([10.0, 20.0], [11.0, 21.0], R=1.0)
    assert d_km == pytest.approx(d_unit * EARTH_RADIUS_KM)


def test_distance_to_self_is_exactly_zero():
    p = np.array([-73.935242, 40.730610])
    assert distance(p, p, "haversine") == 0.0
    assert distance(p, p, "euclidean") == 0.0


def test_distance_rejects_unknown_metric():
    with pytest.raises(InvalidMethod):
        distance([0, 0], [1, 1], "manhattan")


def test_pairwise_distances_symmetric_with_zero_diagonal():
    points = uniform_points(20, seed=1)
    for metric in ("haversine", "euclidean"):
        dists = pairwise_distances(points, metric)
        assert dists.shape == (20, 20)
        assert np.array_equal(dists, dists.T)
        assert np.all(np.diag(dists) == 0.0)


def test_long_lat_to_cartesian_on_equator():
    result = long_lat_to_cartesian(np.array([0.0, 90.0, -90.0]), np.zeros(3))
    expected = np.array([
        [6371.0, 0.0, 0.0],
        [0.0, 6371.0, 0.0],
        [0.0, -6371.0, 0.0],
    ])
    assert np.allclose(result, expected, atol=1e-6)


def test_chord_radius_matches_projected_distance():
    p = np.array([[12.0, 45.0]])
    q = np.array([[12.3, 45.2]])
    arc = haversine_distance(p[0], q[0])
    chord = np.linalg.norm(
        long_lat_to_cartesian(p[:, 0], p[:, 1]) - long_lat_to_cartesian(q[:, 0], q[:, 1])
    )
    assert chord_radius(arc) == pytest.approx(chord)
    assert chord_radius(10 * EARTH_RADIUS_KM) == 2 * EARTH_RADIUS_KM


def test_min_kept_distance():
    points = np.array([[0.0, 0.0], [3.0, 4.0], [10.0, 0.0]])
    assert min_kept_distance(points, [True, True, True], "euclidean") == pytest.approx(5.0)
    assert min_kept_distance(points, [True, False, False], "euclidean") == float("inf")


def test_as_points_validation():
    assert as_points([]).shape == (0, 2)
    assert as_points([(1, 2), (3, 4)]).dtype == float
    with pytest.raises(InvalidPoints):
        as_points([1.0, 2.0, 3.0])
    with pytest.raises(InvalidPoints):
        as_points([(0.0, np.nan)])
    with pytest.raises(InvalidPoints):
        as_points([("a", "b")])


def _assert_close_pairs_share_neighborhood(points, radius, metric):
    index = build_cell_index(points, radius, metric)
    dists = pairwise_distances(points, metric)
    for i, j in itertools.combinations(range(points.shape[0]), 2):
        if dists[i, j] < radius:
            assert j in index.neighborhood(index.cell_of[i])


def test_cell_index_planar_covers_all_close_pairs():
    points = uniform_points(150, bounds=(0.0, 10.0, 0.0, 10.0), seed=3)
    _assert_close_pairs_share_neighborhood(points, 1.0, "euclidean")


def test_cell_index_geographic_covers_all_close_pairs():
    points = np.vstack([
        uniform_points(80, bounds=(-5.0, 5.0, 40.0, 42.0), seed=4),
        uniform_points(40, bounds=(179.8, 180.0, 60.0, 60.5), seed=5),
        uniform_points(40, bounds=(-180.0, -179.8, 60.0, 60.5), seed=6),
    ])
    _assert_close_pairs_share_neighborhood(points, 25.0, "haversine")


def test_cell_index_members_partition_points():
    points = uniform_points(100, bounds=(0.0, 5.0, 0.0, 5.0), seed=7)
    index = build_cell_index(points, 0.5, "euclidean")
    members = np.concatenate([index.members(c) for c in range(index.n_cells)])
    assert sorted(members.tolist()) == list(range(100))
    for c in range(index.n_cells):
        assert np.all(index.cell_of[index.members(c)] == c)
