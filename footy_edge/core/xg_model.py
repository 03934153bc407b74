"""Expected goals from rolling form and the league baseline.

The model is a deterministic attack × defence × league-average product, not a
fitted regression:

1. Each team's venue-specific weighted averages are shrunk toward the league
   baseline by linear pooling::

       adjusted = (avg * n + league_avg * prior_n) / (n + prior_n)

   with ``prior_n = window_size``.  A team with a full window therefore sits
   halfway between its own average and the league's; a team with no
   matches *is* the league average.

2. Ratios against the league::

       attack_home  = adj_home_gf / league_home     defence_home = adj_home_ga / league_away
       attack_away  = adj_away_gf / league_away     defence_away = adj_away_ga / league_home

3. ``xg_home = attack_home * defence_away * league_home`` and symmetrically
   for the away side, each clamped to ``[xg_min, xg_max]``.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

from footy_edge.core.engine_config import EngineConfig
from footy_edge.core.form import FormAverage


class ExpectedGoals(NamedTuple):
    home: float
    away: float

    @property
    def total(self) -> float:
        return self.home + self.away


def shrink(avg: float, n: int, prior_avg: float, prior_n: float) -> float:
    """Linear pooling of a sample mean toward a prior mean."""
    if not n:
        return prior_avg
    return (avg * n + prior_avg * prior_n) / (n + prior_n)


def _ratio(value: float, league_avg: float) -> float:
    # A competition where one side never scored gives no information.
    return value / league_avg if league_avg > 0 else 1.0


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def expected_goals(
    home_form: FormAverage,
    away_form: FormAverage,
    league_home: float,
    league_away: float,
    prior_n: float,
    config: Optional[EngineConfig] = None,
) -> ExpectedGoals:
    """Compute clamped expected goals for both sides.

    Args:
        home_form: Home team's weighted averages from its *home* window.
        away_form: Away team's weighted averages from its *away* window.
        league_home: League home-goals average (or fallback baseline).
        league_away: League away-goals average (or fallback baseline).
        prior_n: Shrinkage strength, normally the settings' window size.
        config: Engine constants; defaults to :meth:`EngineConfig.default`.
    """
    cfg = config or EngineConfig.default()

    adj_home_gf = shrink(home_form.goals_for, home_form.n, league_home, prior_n)
    adj_home_ga = shrink(home_form.goals_against, home_form.n, league_away, prior_n)
    adj_away_gf = shrink(away_form.goals_for, away_form.n, league_away, prior_n)
    adj_away_ga = shrink(away_form.goals_against, away_form.n, league_home, prior_n)

    attack_home = _ratio(adj_home_gf, league_home)
    defence_home = _ratio(adj_home_ga, league_away)
    attack_away = _ratio(adj_away_gf, league_away)
    defence_away = _ratio(adj_away_ga, league_home)

    xg_home = _clamp(attack_home * defence_away * league_home, cfg.xg_min, cfg.xg_max)
    xg_away = _clamp(attack_away * defence_home * league_away, cfg.xg_min, cfg.xg_max)
    return ExpectedGoals(xg_home, xg_away)
