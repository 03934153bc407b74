"""Engine-level constants: every fixed number the goal model relies on.

This module is the **registry** for constants that shape the expected-goals
and outcome models.  Nowhere else in the codebase should baseline goal
averages, the xG clamp, or the Poisson truncation depth be hard-coded.

:class:`EngineConfig` is a frozen dataclass.  :meth:`EngineConfig.default`
returns the calibrated defaults; override single values for an experiment
with :func:`dataclasses.replace`::

    from dataclasses import replace
    from footy_edge.core.engine_config import EngineConfig

    cfg = replace(EngineConfig.default(), empirical_weight=0.35)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

#: Fallback league-average home goals per match, used until a competition has
#: accumulated ``min_league_matches`` results.  European top-flight average.
BASELINE_HOME_GOALS: Final[float] = 1.35

#: Fallback league-average away goals per match.
BASELINE_AWAY_GOALS: Final[float] = 1.15

#: Lower and upper bounds on any single-side expected-goals value.
XG_MIN: Final[float] = 0.1
XG_MAX: Final[float] = 6.0

#: Highest goal count enumerated per side in the joint Poisson table.
DEFAULT_MAX_GOALS: Final[int] = 10

#: Weight of the empirical outcome model in the 1X2 blend.
DEFAULT_EMPIRICAL_WEIGHT: Final[float] = 0.5


@dataclass(frozen=True)
class EngineConfig:
    """Immutable bundle of goal-model constants.

    Attributes:
        baseline_home: Fallback home goals per match (early season).
        baseline_away: Fallback away goals per match (early season).
        xg_min: Floor applied to each side's expected goals.
        xg_max: Ceiling applied to each side's expected goals.
        max_goals: Per-side truncation of the joint Poisson table.  The
            outcome probabilities are renormalised after truncation so the
            missing tail mass (< 1e-4 at xG = 3) is redistributed.
        empirical_weight: Share of the empirical outcome model in the
            blended 1X2 probabilities.  0.0 = pure Poisson.
    """

    baseline_home: float = BASELINE_HOME_GOALS
    baseline_away: float = BASELINE_AWAY_GOALS
    xg_min: float = XG_MIN
    xg_max: float = XG_MAX
    max_goals: int = DEFAULT_MAX_GOALS
    empirical_weight: float = DEFAULT_EMPIRICAL_WEIGHT

    @classmethod
    def default(cls) -> EngineConfig:
        """Return the canonical configuration."""
        return cls()

    def __repr__(self) -> str:
        return (
            f"EngineConfig(baseline={self.baseline_home}/{self.baseline_away}, "
            f"xg=[{self.xg_min}, {self.xg_max}], "
            f"max_goals={self.max_goals}, "
            f"empirical_weight={self.empirical_weight})"
        )
