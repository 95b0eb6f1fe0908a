# errors.py
"""
errors.py

Exceptions raised when a thinning request is malformed. All of them derive
from ThinError (itself a ValueError), and all are raised before any
neighbor search or trial is run.
"""


class ThinError(ValueError):
    """Base class for invalid thinning requests."""


class InvalidDistance(ThinError):
    """min_distance (or radius) is missing or not strictly positive."""


class InvalidPrecision(ThinError):
    """Rounding precision is negative or not an integer."""


class InvalidPriority(ThinError):
    """Priority is not numeric or its length differs from the point count."""


class InvalidTrialCount(ThinError):
    """Number of trials is not a positive integer."""


class InvalidTargetCount(ThinError):
    """
    target_points is out of range, or was requested with a method that
    cannot select an exact number of points.
    """


class InvalidPoints(ThinError):
    """Coordinates are not a finite (N, 2) array."""


class InvalidMethod(ThinError):
    """Unknown thinning method or distance metric."""


class InvalidSeed(ThinError):
    """Seed is not None or a non-negative integer."""
