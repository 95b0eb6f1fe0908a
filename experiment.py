# experiment.py
"""
experiment.py

This module contains two experiments on a synthetic, spatially clustered
set of geographic occurrence points:

1) Method comparison:
   - neighbor search with every method (brute force, grid hash, k-d tree,
     R-tree, with and without space partitioning) and a check that all of
     them find the same neighbor pairs,
   - greedy thinning over several trials for every distance-based method,
   - grid and precision thinning,
   - kept counts, minimum kept distance (feasibility), coverage distance and
     timing for each method.

2) Exact target count:
   - farthest-point selection of a fixed number of points,
   - coverage of the selected subset and a plot of kept/removed points.

run_experiment() runs both experiments in sequence.
"""

import logging
import time

import numpy as np

from geometry import min_kept_distance
from hausdorff import coverage_distance
from neighbors import find_neighbors
from plotting import plot_thinning
from samples import clustered_points
from thinning import ThinConfig, thin


# ---------------------------------------------------------------------
# 1. Method comparison
# ---------------------------------------------------------------------


def run_method_comparison(min_distance: float = 10.0, trials: int = 10, seed: int = 2024):
    """
    Thin the same clustered dataset with every method and report the results.

    For the distance-based methods the neighbor relation must be identical;
    the kept sets then differ only through the random tie-breaking, which is
    identical too for a fixed seed.
    """
    print("=" * 80)
    print("Method comparison on clustered geographic points")
    print(f"min_distance = {min_distance} km, trials = {trials}, seed = {seed}")
    print("=" * 80)

    points = clustered_points(num_clusters=20, points_per_cluster=100, spread=0.3, seed=seed)

    # --- 1) Neighbor relations must agree across methods
    reference = find_neighbors(points, min_distance, method="brute_force")
    for method in ("grid_hash", "kd_tree", "r_tree"):
        for partitioned in (False, True):
            if method == "grid_hash" and partitioned:
                continue
            relation = find_neighbors(points, min_distance, method=method,
                                      space_partitioning=partitioned)
            status = "identical" if relation == reference else "DIFFERENT"
            print(f"[Neighbors] {method:<10s} partitioned={partitioned!s:<5s}: "
                  f"{relation.n_pairs} pairs ({status} to brute force)")

    # --- 2) Thinning with every method
    configs = [
        ThinConfig(min_distance=min_distance, method="brute_force", trials=trials, seed=seed),
        ThinConfig(min_distance=min_distance, method="grid_hash", trials=trials, seed=seed),
        ThinConfig(min_distance=min_distance, method="kd_tree", trials=trials, seed=seed),
        ThinConfig(min_distance=min_distance, method="kd_tree", space_partitioning=True,
                   trials=trials, seed=seed),
        ThinConfig(min_distance=min_distance, method="r_tree", trials=trials, seed=seed),
        ThinConfig(min_distance=min_distance, method="grid", trials=trials, seed=seed),
        ThinConfig(method="precision", precision=1, trials=trials, seed=seed),
    ]

    for cfg in configs:
        t0 = time.perf_counter()
        result = thin(points, cfg)
        t1 = time.perf_counter()

        keep = result.best
        d_min = min_kept_distance(points, keep)
        cov = coverage_distance(points, keep)
        label = cfg.method + (" (partitioned)" if cfg.space_partitioning else "")
        print(f"[Thinning] {label:<24s} kept {int(keep.sum()):5d} / {points.shape[0]} | "
              f"min kept distance = {d_min:8.3f} km | coverage = {cov.distance:7.3f} km | "
              f"time = {t1 - t0:.3f} s")


# ---------------------------------------------------------------------
# 2. Exact target count
# ---------------------------------------------------------------------


def run_target_count_example(target_points: int = 25, min_distance: float = 10.0,
                             seed: int = 7, save_path=None):
    """
    Select exactly `target_points` points, as spread out as possible.
    """
    print("=" * 80)
    print(f"Farthest-point selection of {target_points} points (min_distance = {min_distance} km)")
    print("=" * 80)

    points = clustered_points(num_clusters=10, points_per_cluster=50, spread=0.5, seed=seed)
    cfg = ThinConfig(min_distance=min_distance, method="brute_force",
                     target_points=target_points, trials=5, seed=seed)

    t0 = time.perf_counter()
    result = thin(points, cfg)
    t1 = time.perf_counter()

    keep = result.best
    cov = coverage_distance(points, keep)
    print(f"[Target] kept {int(keep.sum())} points, "
          f"min kept distance = {min_kept_distance(points, keep):.3f} km, "
          f"coverage = {cov.distance:.3f} km, time = {t1 - t0:.3f} s")

    plot_thinning(points, keep, coverage=cov,
                  title=f"Farthest-point selection ({target_points} points)",
                  save_path=save_path)


# ---------------------------------------------------------------------
# 3. Entry point
# ---------------------------------------------------------------------


def run_experiment():
    """
    Run both experiments:

    1) Comparison of all thinning methods on the same data.
    2) Exact target count selection with a coverage plot.
    """
    run_method_comparison()
    run_target_count_example()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")
    np.set_printoptions(precision=4, suppress=True)
    run_experiment()
