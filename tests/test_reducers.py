"""Unit tests for precision and grid thinning."""

import logging

import numpy as np
import pytest

from errors import InvalidDistance, InvalidPrecision
from reducers import RasterGrid, grid_cells, grid_thinning, precision_thinning


def test_precision_keeps_one_point_per_rounded_pair():
    points = np.array([[0.11, 0.11], [0.12, 0.12], [0.26, 0.26]])
    result = precision_thinning(points, precision=1, seed=0)
    assert result.best.shape == (3,)
    assert result.best.sum() == 2
    assert result.best[2]


def test_precision_priority_decides_which_duplicate_survives():
    points = np.array([[0.11, 0.11], [0.12, 0.12], [0.26, 0.26]])
    keep = precision_thinning(points, precision=1, priority=np.array([1.0, 5.0, 2.0])).best
    assert keep.tolist() == [False, True, True]


def test_precision_identical_and_single_points():
    identical = np.array([[-123.3656, 48.4284]] * 3)
    assert precision_thinning(identical, precision=4).best.sum() == 1

    single = precision_thinning(np.array([[-123.3656, 48.4284]]))
    assert single.best.tolist() == [True]


def test_precision_negative_zero_shares_bucket():
    points = np.array([[-0.01, 0.0], [0.01, 0.0]])
    assert precision_thinning(points, precision=0).best.sum() == 1


def test_precision_all_trials_and_validation():
    points = np.array([[0.11, 0.11], [0.12, 0.12], [0.26, 0.26]])
    result = precision_thinning(points, precision=1, trials=5, all_trials=True, seed=3)
    assert len(result) == 5
    assert result.kept_counts == [2] * 5
    with pytest.raises(InvalidPrecision):
        precision_thinning(points, precision=-1)
    with pytest.raises(InvalidPrecision):
        precision_thinning(points, precision=1.5)


def test_precision_seed_reproducible():
    points = np.random.default_rng(0).uniform(0.0, 1.0, size=(50, 2))
    a = precision_thinning(points, precision=1, trials=3, all_trials=True, seed=42)
    b = precision_thinning(points, precision=1, trials=3, all_trials=True, seed=42)
    for keep_a, keep_b in zip(a, b):
        assert np.array_equal(keep_a, keep_b)


def test_grid_cells_with_origin():
    points = np.array([[0.2, 0.2], [0.8, 0.9], [1.5, 0.5], [-0.5, 2.5]])
    cells = grid_cells(points, 1.0, origin=(0.0, 0.0))
    assert cells.tolist() == [[0, 0], [0, 0], [1, 0], [-1, 2]]


def test_grid_thinning_with_resolution():
    points = np.array([[0.2, 0.2], [0.8, 0.9], [1.5, 0.5]])
    result = grid_thinning(points, resolution=1.0, origin=(0.0, 0.0), trials=3, seed=1)
    keep = result.best
    assert keep.sum() == 2
    assert keep[2]


def test_grid_thinning_from_min_distance():
    points = np.array([
        [-122.4194, 37.7749],
        [-122.4195, 37.7740],
        [-122.4196, 37.7741],
    ])
    result = grid_thinning(points, min_distance=10.0, trials=3, priority=np.array([1.0, 2.0, 3.0]))
    assert result.best.tolist() == [False, False, True]


def test_grid_thinning_requires_a_grid():
    with pytest.raises(InvalidDistance):
        grid_thinning(np.array([[0.0, 0.0]]))
    with pytest.raises(InvalidDistance):
        grid_thinning(np.array([[0.0, 0.0]]), resolution=0.0)


def test_raster_cell_numbering():
    raster = RasterGrid(xmin=0.0, xmax=2.0, ymin=0.0, ymax=2.0, nrows=2, ncols=2)
    points = np.array([
        [0.5, 1.5],
        [1.5, 1.5],
        [0.5, 0.5],
        [1.5, 0.5],
        [2.0, 0.0],
        [3.0, 3.0],
    ])
    assert raster.cell_from_xy(points).tolist() == [0, 1, 2, 3, 3, -1]


def test_raster_from_resolution_covers_extent():
    raster = RasterGrid.from_resolution(0.0, 1.05, 0.0, 0.95, 0.1)
    assert raster.ncols == 11
    assert raster.nrows == 10
    assert raster.xres == pytest.approx(0.1)
    assert raster.yres == pytest.approx(0.1)


def test_grid_thinning_with_raster():
    raster = RasterGrid(xmin=-123.0, xmax=-121.0, ymin=36.0, ymax=38.0, nrows=100, ncols=100)
    points = np.array([
        [-122.4194, 37.7749],
        [-122.4195, 37.7740],
        [-122.4196, 37.7741],
    ])
    result = grid_thinning(points, raster=raster, trials=3, seed=4)
    assert result.best.sum() == 1


def test_points_outside_raster_are_dropped(caplog):
    raster = RasterGrid(xmin=0.0, xmax=1.0, ymin=0.0, ymax=1.0, nrows=1, ncols=1)
    points = np.array([[0.5, 0.5], [5.0, 5.0]])
    with caplog.at_level(logging.WARNING, logger="reducers"):
        keep = grid_thinning(points, raster=raster, seed=0).best
    assert keep.tolist() == [True, False]
    assert "outside the raster" in caplog.text
