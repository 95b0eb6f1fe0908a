"""Smoke tests for the thinning plot."""

import matplotlib

matplotlib.use("Agg")

import numpy as np

from hausdorff import coverage_distance
from plotting import plot_thinning
from samples import clustered_points
from thinning import thin_points


def test_plot_thinning_saves_figure(tmp_path):
    points = clustered_points(3, 20, spread=0.2, seed=1)
    keep = thin_points(points, 10.0, seed=1).best
    coverage = coverage_distance(points, keep)

    out = tmp_path / "thinning.png"
    plot_thinning(points, keep, coverage=coverage, title="test", save_path=str(out))
    assert out.exists()
    assert out.stat().st_size > 0


def test_plot_thinning_without_removed_points(tmp_path):
    points = np.array([[0.0, 0.0], [5.0, 5.0]])
    out = tmp_path / "all_kept.png"
    plot_thinning(points, [True, True], save_path=str(out))
    assert out.exists()
