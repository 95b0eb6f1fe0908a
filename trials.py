# trials.py
"""
trials.py

Repeated randomized trials and the two ways of reporting them: only the best
trial (most kept points) or every trial.

Each trial draws from its own generator, spawned from a single SeedSequence.
Trial i therefore depends only on the seed and on i, never on which trials
ran before it, so trials can be run in any order or in parallel.
"""

from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Union

import numpy as np

SeedLike = Union[None, int, np.random.SeedSequence]


@dataclass
class TrialSet:
    """
    Boolean keep-flags, one array of length N per reported trial.
    Holds one trial in best-of-N mode and every trial otherwise.
    """
    trials: List[np.ndarray]
    all_trials: bool = False

    def __len__(self) -> int:
        return len(self.trials)

    def __iter__(self) -> Iterator[np.ndarray]:
        return iter(self.trials)

    def __getitem__(self, i: int) -> np.ndarray:
        return self.trials[i]

    @property
    def kept_counts(self) -> List[int]:
        return [int(keep.sum()) for keep in self.trials]

    @property
    def best(self) -> np.ndarray:
        """First trial with the largest number of kept points."""
        counts = self.kept_counts
        return self.trials[counts.index(max(counts))]


def spawn_generators(seed: SeedLike, trials: int) -> List[np.random.Generator]:
    """
    One independent generator per trial.

    An int or None seed builds a fresh SeedSequence; a SeedSequence is
    spawned from directly (spawning advances it, so reuse gives new streams).
    """
    if isinstance(seed, np.random.SeedSequence):
        root = seed
    else:
        root = np.random.SeedSequence(seed)
    return [np.random.default_rng(child) for child in root.spawn(trials)]


def run_trials(
        trial_fn: Callable[[np.random.Generator], np.ndarray],
        generators: List[np.random.Generator],
        all_trials: bool = False,
        stop: Optional[Callable[[np.ndarray], bool]] = None,
) -> TrialSet:
    """
    Run one trial per generator.

    Parameters
    ----------
    trial_fn : callable
        Maps a generator to the keep-flags of one trial.
    generators : list of np.random.Generator
        One generator per trial, see spawn_generators.
    all_trials : bool
        If True, return every trial. Otherwise return only the first trial
        with the most kept points.
    stop : callable or None
        Best-of-N only: once a trial satisfies stop(keep), it is returned
        and the remaining trials are skipped.

    Returns
    -------
    TrialSet
    """
    if all_trials:
        return TrialSet([trial_fn(rng) for rng in generators], all_trials=True)

    best = None
    for rng in generators:
        keep = trial_fn(rng)
        if stop is not None and stop(keep):
            best = keep
            break
        if best is None or keep.sum() > best.sum():
            best = keep
    return TrialSet([best], all_trials=False)
