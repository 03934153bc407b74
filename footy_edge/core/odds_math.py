"""Bookmaker odds mathematics for decimal (European) prices.

Every function here is **pure**: no I/O, no logging.  Football odds feeds
quote decimal prices, so nothing in this module deals with American odds.

Two de-vig methods are provided:

* :func:`remove_vig_proportional`: divide each implied probability by the
  book's overround.  Works for any number of outcomes and is what the
  calibration tables are built with.
* :func:`remove_vig_shin`: Shin (1993) for two-way markets (over/under),
  which assigns more of the margin to the longshot.  Use it when the
  favourite-longshot bias matters, e.g. lopsided Over 0.5 prices.
"""

from __future__ import annotations

from typing import Final, Sequence

#: Bisection tolerance for the Shin solve.
_SHIN_TOL: Final[float] = 1e-10

_SHIN_MAX_ITER: Final[int] = 200

#: Below this distance from 0.5 a two-way market is treated as symmetric and
#: proportional normalisation is returned directly.
_SHIN_SYMMETRY_TOL: Final[float] = 1e-3

#: An overround this close to 1.0 carries no margin to remove.
_MIN_OVERROUND: Final[float] = 1.001


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


def implied_prob(decimal_odds: float) -> float:
    """Raw (vig-inclusive) implied probability of a decimal price.

    Raises:
        ValueError: If ``decimal_odds < 1.0``, which no bookmaker can quote.
    """
    if decimal_odds < 1.0:
        raise ValueError(
            f"Decimal odds {decimal_odds!r} must be ≥ 1.0. "
            "Check upstream odds parsing for data errors."
        )
    return 1.0 / decimal_odds


def fair_odds(probability: float) -> float:
    """Decimal price with zero margin for a probability in (0, 1]."""
    if not 0.0 < probability <= 1.0:
        raise ValueError(f"Probability {probability!r} must be in (0, 1].")
    return 1.0 / probability


def overround(odds: Sequence[float]) -> float:
    """Sum of implied probabilities across a complete market (1.0 = no margin)."""
    return sum(implied_prob(o) for o in odds)


# ---------------------------------------------------------------------------
# Vig removal
# ---------------------------------------------------------------------------


def remove_vig_proportional(odds: Sequence[float]) -> list[float]:
    """Implied probabilities rescaled to sum to 1."""
    raw = [implied_prob(o) for o in odds]
    total = sum(raw)
    return [p / total for p in raw]


def remove_vig_shin(odds_a: float, odds_b: float) -> tuple[float, float]:
    """True probabilities of a two-way market via Shin (1993).

    The insider fraction ``z`` is estimated from the overround ``K`` and the
    concentration of the normalised prices ``q``::

        z = (K - 1) / (1 - (q_a² + q_b²))

    and ``p_a`` solves ``(1 - z)·p + z·p² / (p² + (1 - p)²) = q_a`` by
    bisection (the left side is increasing in ``p`` on (0, 1)).

    Near-symmetric or margin-free markets fall back to proportional
    normalisation, where Shin and proportional agree.
    """
    raw_a = implied_prob(odds_a)
    raw_b = implied_prob(odds_b)
    k = raw_a + raw_b
    q_a, q_b = raw_a / k, raw_b / k

    if k < _MIN_OVERROUND or abs(q_a - 0.5) < _SHIN_SYMMETRY_TOL:
        return q_a, q_b

    denom = max(1.0 - (q_a ** 2 + q_b ** 2), 1e-10)
    z = max(0.0, min((k - 1.0) / denom, 0.499))

    lo, hi = 1e-9, 1.0 - 1e-9
    for _ in range(_SHIN_MAX_ITER):
        mid = (lo + hi) * 0.5
        spread = mid ** 2 + (1.0 - mid) ** 2
        value = (1.0 - z) * mid + z * mid ** 2 / spread
        if value < q_a:
            lo = mid
        else:
            hi = mid
        if hi - lo < _SHIN_TOL:
            break

    p_a = (lo + hi) * 0.5
    return p_a, 1.0 - p_a
