"""
Market selection for a single matchup.

Given the two teams' venue windows and the league baseline, price every
configured market and return the single most likely one.  The same code
path is used by the backtest replay and by live picks for upcoming
fixtures, so a backtest grades exactly what would have been published.

Statuses:
    pick     best market meets the settings threshold
    no-data  either side is below ``min_matches`` (or no lines configured)
    no-bet   best market probability is below the threshold
"""

import logging
from dataclasses import dataclass
from typing import Final, Optional

from footy_edge.core.algo_settings import AlgoSettings
from footy_edge.core.engine_config import EngineConfig
from footy_edge.core.form import RollingWindow, weighted_average, weighted_outcome_rates
from footy_edge.core.markets import over_label, under_label
from footy_edge.core.outcomes import (
    OutcomeProbs,
    blend_outcomes,
    double_chance_probability,
    empirical_outcomes,
    over_under_probabilities,
    poisson_outcomes,
)
from footy_edge.core.xg_model import ExpectedGoals, expected_goals

logger = logging.getLogger(__name__)

STATUS_PICK: Final[str] = "pick"
STATUS_NO_DATA: Final[str] = "no-data"
STATUS_NO_BET: Final[str] = "no-bet"


@dataclass(frozen=True)
class MarketCandidate:
    market: str
    probability: float


@dataclass(frozen=True)
class PickDecision:
    """Outcome of market selection for one fixture."""

    status: str
    market: Optional[str] = None
    probability: Optional[float] = None

    @property
    def is_pick(self) -> bool:
        return self.status == STATUS_PICK


NO_DATA: Final[PickDecision] = PickDecision(STATUS_NO_DATA)
NO_BET: Final[PickDecision] = PickDecision(STATUS_NO_BET)


@dataclass(frozen=True)
class MatchupPricing:
    """Everything the model computes for one matchup before thresholding."""

    xg: ExpectedGoals
    outcomes: OutcomeProbs
    best: Optional[MarketCandidate]


def best_market(xg: ExpectedGoals, outcomes: OutcomeProbs, lines) -> Optional[MarketCandidate]:
    """Highest-probability market across ``lines``.

    Goal lines contribute Over then Under.  Only a strictly greater
    probability replaces the current best, so ties go to the market
    encountered first in configured order.
    """
    best: Optional[MarketCandidate] = None
    for line in lines:
        if isinstance(line, str):
            candidates = [(line, double_chance_probability(outcomes, line))]
        else:
            p_over, p_under = over_under_probabilities(xg.total, line)
            candidates = [(over_label(line), p_over), (under_label(line), p_under)]
        for market, probability in candidates:
            if best is None or probability > best.probability:
                best = MarketCandidate(market, probability)
    return best


def price_matchup(
    home_window: RollingWindow,
    away_window: RollingWindow,
    league_home: float,
    league_away: float,
    settings: AlgoSettings,
    config: Optional[EngineConfig] = None,
) -> Optional[MatchupPricing]:
    """Price a matchup from the home side's home window and the away side's away window.

    Returns ``None`` when either window holds fewer than
    ``settings.min_matches`` results.
    """
    cfg = config or EngineConfig.default()
    home_form = weighted_average(home_window, settings.bucket_size, settings.weights)
    away_form = weighted_average(away_window, settings.bucket_size, settings.weights)
    if home_form.n < settings.min_matches or away_form.n < settings.min_matches:
        return None

    xg = expected_goals(
        home_form, away_form, league_home, league_away, settings.window_size, cfg
    )
    empirical = empirical_outcomes(
        weighted_outcome_rates(home_window, settings.bucket_size, settings.weights),
        weighted_outcome_rates(away_window, settings.bucket_size, settings.weights),
    )
    outcomes = blend_outcomes(
        poisson_outcomes(xg.home, xg.away, cfg.max_goals), empirical, cfg.empirical_weight
    )
    return MatchupPricing(xg=xg, outcomes=outcomes, best=best_market(xg, outcomes, settings.lines))


def decide(pricing: Optional[MatchupPricing], threshold: float) -> PickDecision:
    """Apply the confidence threshold to a priced matchup."""
    if pricing is None or pricing.best is None:
        return NO_DATA
    best = pricing.best
    if best.probability < threshold:
        logger.debug("No bet: best market %s at %.3f < %.2f", best.market, best.probability, threshold)
        return NO_BET
    return PickDecision(STATUS_PICK, best.market, best.probability)
