"""Poisson primitives for goal modelling.

Pure functions, no I/O.  Goals for each side are modelled as independent
Poisson variables; the total of two independent Poissons is again Poisson
with the summed rate, which is what the over/under market uses.
"""

from __future__ import annotations

import math

import numpy as np
from scipy.stats import poisson


def poisson_series(lam: float, max_goals: int) -> np.ndarray:
    """P(X = k) for k = 0..max_goals.

    A non-positive or non-finite rate is treated as a point mass at zero
    goals, so degenerate inputs still yield a valid distribution.
    """
    if not math.isfinite(lam) or lam <= 0.0:
        series = np.zeros(max_goals + 1)
        series[0] = 1.0
        return series
    return poisson.pmf(np.arange(max_goals + 1), lam)


def poisson_cdf(lam: float, k: int) -> float:
    """P(X ≤ k).  Returns 0.0 for ``k < 0`` and 1.0 for a zero rate."""
    if k < 0:
        return 0.0
    if not math.isfinite(lam) or lam <= 0.0:
        return 1.0
    return float(poisson.cdf(k, lam))


def joint_score_matrix(lam_home: float, lam_away: float, max_goals: int) -> np.ndarray:
    """Matrix ``M[i, j] = P(home = i) * P(away = j)``, truncated at ``max_goals``."""
    return np.outer(poisson_series(lam_home, max_goals), poisson_series(lam_away, max_goals))
