"""Match outcome probabilities: Poisson, empirical, and their blend.

Two independent estimators of the 1X2 distribution are combined:

* **Poisson**: joint table of independent home/away goal counts
  (0..``max_goals`` each) from the xG means.
* **Empirical**: recency-weighted win/draw/loss rates of the home team at
  home and the away team away, averaged so that a home win is supported by
  both the home side's win rate and the away side's loss rate.

The blend is linear and renormalised.  When either side has no history the
empirical estimate is ``None`` and the blend is pure Poisson.

Over/under uses the total-goals Poisson with rate ``xg_home + xg_away``,
not the truncated joint table.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from footy_edge.core.engine_config import DEFAULT_EMPIRICAL_WEIGHT, DEFAULT_MAX_GOALS
from footy_edge.core.form import OutcomeRates
from footy_edge.core.poisson_math import joint_score_matrix, poisson_cdf


@dataclass(frozen=True)
class OutcomeProbs:
    home_win: float
    draw: float
    away_win: float

    @property
    def total(self) -> float:
        return self.home_win + self.draw + self.away_win

    def normalized(self) -> OutcomeProbs:
        total = self.total
        if not total:
            return OutcomeProbs(0.0, 0.0, 0.0)
        return OutcomeProbs(self.home_win / total, self.draw / total, self.away_win / total)


def poisson_outcomes(xg_home: float, xg_away: float, max_goals: int = DEFAULT_MAX_GOALS) -> OutcomeProbs:
    matrix = joint_score_matrix(xg_home, xg_away, max_goals)
    # Rows are home goals, columns away goals.
    home_win = float(np.tril(matrix, -1).sum())
    draw = float(np.trace(matrix))
    away_win = float(np.triu(matrix, 1).sum())
    return OutcomeProbs(home_win, draw, away_win).normalized()


def empirical_outcomes(home_rates: OutcomeRates, away_rates: OutcomeRates) -> Optional[OutcomeProbs]:
    """Combine the home side's home rates with the away side's away rates.

    Returns ``None`` when either side has zero samples.
    """
    if not home_rates.n or not away_rates.n:
        return None
    return OutcomeProbs(
        home_win=(home_rates.win + away_rates.loss) / 2.0,
        draw=(home_rates.draw + away_rates.draw) / 2.0,
        away_win=(home_rates.loss + away_rates.win) / 2.0,
    ).normalized()


def blend_outcomes(
    poisson_probs: OutcomeProbs,
    empirical_probs: Optional[OutcomeProbs],
    empirical_weight: float = DEFAULT_EMPIRICAL_WEIGHT,
) -> OutcomeProbs:
    if empirical_probs is None:
        return poisson_probs
    w = max(0.0, min(1.0, empirical_weight))
    return OutcomeProbs(
        home_win=poisson_probs.home_win * (1.0 - w) + empirical_probs.home_win * w,
        draw=poisson_probs.draw * (1.0 - w) + empirical_probs.draw * w,
        away_win=poisson_probs.away_win * (1.0 - w) + empirical_probs.away_win * w,
    ).normalized()


def double_chance_probability(outcomes: OutcomeProbs, code: str) -> float:
    if code == "1X":
        return outcomes.home_win + outcomes.draw
    if code == "X2":
        return outcomes.away_win + outcomes.draw
    if code == "12":
        return outcomes.home_win + outcomes.away_win
    return 0.0


def over_under_probabilities(total_lambda: float, line: float) -> tuple[float, float]:
    """``(P(over line), P(under line))`` for total goals ~ Poisson(total_lambda).

    ``P(under) = CDF(floor(line))`` so the pair always sums to 1.
    """
    p_under = poisson_cdf(total_lambda, math.floor(line))
    return 1.0 - p_under, p_under
