"""
Lattice Core - Tolerance Utilities
Shared tolerance defaults and point lookup

Every engine function receives its tolerance explicitly. The values here are
only the defaults used when a caller (backend, dev script) does not supply one.
"""

import numpy as np

DEFAULT_TOLERANCE = 0.001
DEFAULT_SIDES = 6
DEFAULT_RADIUS = 0.25

# Struts shorter than MIN_LENGTH_FACTOR * tol are dropped while cleaning
MIN_LENGTH_FACTOR = 100

MAX_FIX_ITERATIONS = 50


def nearest_index(points: np.ndarray, point: np.ndarray) -> int:
    """
    Index of the point in `points` closest to `point`.

    Returns -1 for an empty point list.
    """
    if len(points) == 0:
        return -1
    distances = np.linalg.norm(np.asarray(points) - point, axis=1)
    return int(np.argmin(distances))


def merge_digits(tol: float) -> int:
    """Decimal digits for merging mesh vertices: one digit finer than `tol`."""
    if tol <= 0:
        return 8
    return max(0, int(np.ceil(-np.log10(tol)))) + 1
