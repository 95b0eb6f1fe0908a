"""Unit tests for the coverage distance of a thinned subset."""

import numpy as np
import pytest

from geometry import haversine_distance
from hausdorff import _directed_hausdorff, coverage_distance


def test_directed_hausdorff_simple():
    A = np.array([[0.0, 0.0], [3.0, 0.0]])
    B = np.array([[0.0, 0.0]])
    d, ia, ib = _directed_hausdorff(A, B)
    assert d == pytest.approx(3.0)
    assert ia == 1
    assert ib == 0


def test_directed_hausdorff_empty():
    assert _directed_hausdorff(np.zeros((0, 2)), np.ones((3, 2))) == (0.0, -1, -1)


def test_coverage_planar():
    points = np.array([[0.0, 0.0], [1.0, 0.0], [4.0, 0.0], [5.0, 0.0]])
    result = coverage_distance(points, [True, False, False, True], metric="euclidean")
    assert result.distance == pytest.approx(1.0)
    assert result.point.tolist() in ([1.0, 0.0], [4.0, 0.0])


def test_coverage_is_zero_when_everything_is_kept():
    points = np.array([[10.0, 45.0], [10.5, 45.5]])
    assert coverage_distance(points, [True, True]).distance == pytest.approx(0.0, abs=1e-9)


def test_coverage_haversine_matches_great_circle():
    points = np.array([[0.0, 0.0], [0.0, 1.0], [0.0, 3.0]])
    result = coverage_distance(points, [True, False, False])
    assert result.distance == pytest.approx(haversine_distance(points[0], points[2]))
    assert result.point.tolist() == [0.0, 3.0]
    assert result.nearest_kept.tolist() == [0.0, 0.0]


def test_coverage_requires_a_kept_point():
    with pytest.raises(ValueError):
        coverage_distance(np.array([[0.0, 0.0]]), [False])
