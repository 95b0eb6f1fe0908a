# plotting.py
"""
plotting.py

Visualization utilities: kept and removed points of a thinning result on a
single figure, optionally with the coverage distance drawn as a segment
between the worst-covered point and its closest kept point.
"""

from typing import Optional

import numpy as np
import matplotlib.pyplot as plt

from hausdorff import CoverageResult


def plot_thinning(
    points: np.ndarray,
    keep: np.ndarray,
    coverage: Optional[CoverageResult] = None,
    title: str = "Spatial thinning",
    save_path: Optional[str] = None,
) -> None:
    """
    Scatter the removed points in grey and the kept points on top.

    Parameters
    ----------
    points : np.ndarray
        Full point cloud, shape (N, 2).
    keep : np.ndarray
        Boolean keep-flags of length N.
    coverage : CoverageResult or None
        If given, draw the coverage segment.
    title : str
        Plot title.
    save_path : str or None
        If given, save the figure to this path. Otherwise, just show it.
    """
    points = np.asarray(points, dtype=float)
    keep = np.asarray(keep, dtype=bool)

    fig, ax = plt.subplots(figsize=(6, 6))
    ax.set_aspect("equal", adjustable="datalim")

    removed = points[~keep]
    kept = points[keep]
    if removed.size > 0:
        ax.scatter(removed[:, 0], removed[:, 1], s=8, color="lightgrey",
                   label=f"Removed ({removed.shape[0]})")
    if kept.size > 0:
        ax.scatter(kept[:, 0], kept[:, 1], s=14, color="tab:blue",
                   label=f"Kept ({kept.shape[0]})")

    if coverage is not None and coverage.point.size > 0:
        pa = coverage.point
        pb = coverage.nearest_kept
        ax.plot([pa[0], pb[0]], [pa[1], pb[1]], linestyle="--", color="black",
                label=f"Coverage (d={coverage.distance:.3f})")

    ax.set_xlabel("x / longitude")
    ax.set_ylabel("y / latitude")
    ax.set_title(title)
    ax.grid(True)
    ax.legend(loc="best")

    if save_path is not None:
        fig.savefig(save_path, bbox_inches="tight", dpi=150)
        plt.close(fig)
    else:
        plt.show()
