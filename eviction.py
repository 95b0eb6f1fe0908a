# eviction.py
"""
eviction.py

Greedy thinning on a neighbor relation: repeatedly drop the point that has
the most remaining neighbors until no two remaining points are neighbors.

Dropping high-degree points first usually leaves more points than dropping
them in random order, but the result is not guaranteed to be a maximum
independent set. Ties between equally connected points are broken at random,
so repeating the procedure over several trials and keeping the best one
explores different local optima.
"""

import logging
from typing import Optional

import numpy as np

from neighbors import NeighborRelation
from trials import SeedLike, TrialSet, run_trials, spawn_generators

logger = logging.getLogger(__name__)


def evict_trial(
        relation: NeighborRelation,
        rng: np.random.Generator,
        priority: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    One greedy trial.

    Parameters
    ----------
    relation : NeighborRelation
        Neighbors of every point.
    rng : np.random.Generator
        Generator used to break ties between equally connected points.
    priority : np.ndarray or None
        Optional score per point. When given, ties are broken by evicting the
        point with the lowest priority (the first such index if several share
        it) and rng is not used.

    Returns
    -------
    np.ndarray
        Boolean keep-flags of length N.
    """
    n = relation.n
    keep = np.ones(n, dtype=bool)
    if n == 0:
        return keep

    counts = relation.counts().copy()
    indptr = relation.indptr
    indices = relation.indices

    max_count = counts.max()
    while max_count > 0:
        tied = np.flatnonzero(counts == max_count)
        if priority is not None:
            victim = tied[np.argmin(priority[tied])]
        elif tied.size > 1:
            victim = tied[rng.integers(tied.size)]
        else:
            victim = tied[0]

        keep[victim] = False
        counts[victim] = 0
        neighbors = indices[indptr[victim]:indptr[victim + 1]]
        counts[neighbors[keep[neighbors]]] -= 1

        max_count = counts.max()

    return keep


def max_thinning(
        relation: NeighborRelation,
        trials: int = 10,
        all_trials: bool = False,
        seed: SeedLike = None,
        priority: Optional[np.ndarray] = None,
) -> TrialSet:
    """
    Run evict_trial `trials` times with independent generators.

    Returns the trial keeping the most points (the earliest one on ties), or
    every trial when all_trials is True.
    """
    generators = spawn_generators(seed, trials)
    result = run_trials(
        lambda rng: evict_trial(relation, rng, priority),
        generators,
        all_trials=all_trials,
    )
    logger.debug("Greedy eviction: %d trials on %d points, kept %s",
                 trials, relation.n, result.kept_counts)
    return result
