"""
Chronological backtest replay.

The replay walks fixtures in kickoff order and, for every fixture:

    1. prices the matchup from the state built by *earlier* fixtures only,
    2. grades the best market against the final score when the team of
       interest is playing,
    3. then folds the fixture's result into the rolling windows and the
       league baseline.

Step 3 always runs after steps 1-2, so a prediction for fixture ``i`` can
never see fixture ``i`` or anything later.

Fixtures missing a date, a team id, or either score are skipped.  All
rolling state is private to one replay; nothing is shared between calls.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from footy_edge.core.algo_settings import AlgoSettings
from footy_edge.core.engine_config import EngineConfig
from footy_edge.core.fixtures import Fixture, chronological
from footy_edge.core.form import LeagueBaseline, TeamForm, add_result
from footy_edge.core.markets import settle_pick
from footy_edge.services.market_picker import (
    NO_DATA,
    MatchupPricing,
    PickDecision,
    decide,
    price_matchup,
)

logger = logging.getLogger(__name__)

FixtureLike = Union[Fixture, Mapping]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BacktestPick:
    fixture_id: int
    date: object
    market: str
    probability: float
    hit: bool
    total_goals: int
    score: str
    is_home: bool


@dataclass
class BacktestResult:
    team_id: Optional[int]
    settings: AlgoSettings
    picks: List[BacktestPick] = field(default_factory=list)


@dataclass(frozen=True)
class TeamEvaluation:
    """Aggregate of one backtest run for one (team, settings) pair.

    ``evaluated`` counts every graded prediction; ``picks`` only those at or
    above the settings threshold.  ``coverage = picks / evaluated``.
    """

    picks: int
    hits: int
    hit_rate: float
    coverage: float
    evaluated: int


def summarize(picks: List[BacktestPick], threshold: float) -> TeamEvaluation:
    emitted = [p for p in picks if p.probability >= threshold]
    hits = sum(1 for p in emitted if p.hit)
    n = len(emitted)
    return TeamEvaluation(
        picks=n,
        hits=hits,
        hit_rate=hits / n if n else 0.0,
        coverage=n / len(picks) if picks else 0.0,
        evaluated=len(picks),
    )


# ---------------------------------------------------------------------------
# Replay state
# ---------------------------------------------------------------------------

def coerce_fixtures(fixtures: Iterable[FixtureLike]) -> List[Fixture]:
    return [f if isinstance(f, Fixture) else Fixture.from_row(f) for f in fixtures]


class ReplayState:
    """Rolling windows per team and baselines per competition."""

    def __init__(self, settings: AlgoSettings, config: Optional[EngineConfig] = None):
        self.settings = settings
        self.config = config or EngineConfig.default()
        self.teams: Dict[int, TeamForm] = {}
        self.leagues: Dict[int, LeagueBaseline] = {}

    def team(self, team_id: int) -> TeamForm:
        return self.teams.setdefault(team_id, TeamForm())

    def league(self, competition_id: int) -> LeagueBaseline:
        return self.leagues.setdefault(competition_id, LeagueBaseline())

    def price(self, competition_id: int, home_id: int, away_id: int) -> Optional[MatchupPricing]:
        league_home, league_away = self.league(competition_id).baseline(
            self.settings.min_league_matches,
            self.config.baseline_home,
            self.config.baseline_away,
        )
        return price_matchup(
            self.team(home_id).home,
            self.team(away_id).away,
            league_home,
            league_away,
            self.settings,
            self.config,
        )

    def update(self, fixture: Fixture) -> None:
        size = self.settings.window_size
        add_result(self.team(fixture.home_team_id).home, fixture.goals_home, fixture.goals_away, size)
        add_result(self.team(fixture.away_team_id).away, fixture.goals_away, fixture.goals_home, size)
        self.league(fixture.competition_id).record(fixture.goals_home, fixture.goals_away)


# ---------------------------------------------------------------------------
# Replayer
# ---------------------------------------------------------------------------

class BacktestReplayer:
    """Replays fixture history under one settings configuration."""

    def __init__(self, settings: AlgoSettings, config: Optional[EngineConfig] = None):
        self.settings = settings
        self.config = config or EngineConfig.default()

    def iter_predictions(
        self, fixtures: Iterable[FixtureLike]
    ) -> Iterator[Tuple[Fixture, Optional[MatchupPricing]]]:
        """Yield ``(fixture, pre-fixture pricing)`` in kickoff order.

        The fixture's own result is folded in only after the consumer
        resumes the generator.
        """
        state = ReplayState(self.settings, self.config)
        for fixture in chronological(coerce_fixtures(fixtures)):
            pricing = state.price(fixture.competition_id, fixture.home_team_id, fixture.away_team_id)
            yield fixture, pricing
            state.update(fixture)

    def run(self, fixtures: Iterable[FixtureLike], team_id: Optional[int]) -> BacktestResult:
        result = BacktestResult(team_id=team_id, settings=self.settings)
        if team_id is None:
            return result

        for fixture, pricing in self.iter_predictions(fixtures):
            if pricing is None or pricing.best is None or not fixture.involves(team_id):
                continue
            market = pricing.best.market
            result.picks.append(
                BacktestPick(
                    fixture_id=fixture.id,
                    date=fixture.date,
                    market=market,
                    probability=pricing.best.probability,
                    hit=bool(settle_pick(market, fixture.goals_home, fixture.goals_away)),
                    total_goals=fixture.total_goals,
                    score=f"{fixture.goals_home}-{fixture.goals_away}",
                    is_home=fixture.home_team_id == team_id,
                )
            )
        return result

    def evaluate(self, fixtures: Iterable[FixtureLike], team_id: int) -> TeamEvaluation:
        result = self.run(fixtures, team_id)
        return summarize(result.picks, self.settings.threshold)


def run_backtest(
    fixtures: Iterable[FixtureLike],
    team_id: Optional[int],
    settings: AlgoSettings,
    config: Optional[EngineConfig] = None,
) -> BacktestResult:
    return BacktestReplayer(settings, config).run(fixtures, team_id)


def evaluate_team(
    fixtures: Iterable[FixtureLike],
    team_id: int,
    settings: AlgoSettings,
    config: Optional[EngineConfig] = None,
) -> TeamEvaluation:
    return BacktestReplayer(settings, config).evaluate(fixtures, team_id)


# ---------------------------------------------------------------------------
# Live pick for an upcoming fixture
# ---------------------------------------------------------------------------

def compute_upcoming_pick(
    fixtures: Iterable[FixtureLike],
    upcoming: FixtureLike,
    settings: AlgoSettings,
    config: Optional[EngineConfig] = None,
) -> PickDecision:
    """
    Pick for a fixture that has not been played yet.

    Only history dated strictly before the upcoming kickoff is replayed
    (all history when the kickoff is unknown).  Missing team ids or
    insufficient history yield ``no-data``.
    """
    target = upcoming if isinstance(upcoming, Fixture) else Fixture.from_row(upcoming)
    if target.home_team_id is None or target.away_team_id is None:
        return NO_DATA

    state = ReplayState(settings, config)
    for fixture in chronological(coerce_fixtures(fixtures)):
        if target.date is not None and fixture.date >= target.date:
            break
        state.update(fixture)

    pricing = state.price(target.competition_id, target.home_team_id, target.away_team_id)
    decision = decide(pricing, settings.threshold)
    logger.debug(
        "Upcoming fixture %s (%s vs %s): %s",
        target.id, target.home_team_id, target.away_team_id, decision.status,
    )
    return decision
