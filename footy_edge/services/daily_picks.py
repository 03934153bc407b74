"""
Daily pick snapshot and settlement.

For every upcoming fixture, both sides get their own search: stored settings
(competition-scoped, then team-wide, then the default) seed the optimizer,
which replays that competition's history under the batch criteria.  The
winning settings are then applied to the upcoming fixture.  A pick becomes a
:class:`~footy_edge.schemas.DailyPick` row carrying both the model verdict
(``meets_algo_criteria``) and the price check (``meets_odds``); the row only
``meets_criteria`` when both hold.

Odds are read from a prefetched :class:`OddsCache`; nothing here performs
I/O.  Rows are returned, not stored: persistence belongs to the caller.

Tunable via env vars: DAILY_MIN_ODDS, DAILY_BOOKMAKER_ID (the optimizer's
batch floor lives in DAILY_MIN_TOTAL_PICKS).
"""

import logging
import os
from datetime import date, datetime, timezone
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from footy_edge.core.algo_settings import DEFAULT_ALGO_SETTINGS, AlgoSettings
from footy_edge.core.engine_config import EngineConfig
from footy_edge.core.fixtures import Fixture
from footy_edge.core.markets import market_family, settle_pick
from footy_edge.schemas import AlgoSettingsPayload, DailyPick
from footy_edge.services.backtest import FixtureLike, coerce_fixtures, compute_upcoming_pick
from footy_edge.services.odds_cache import OddsCache, OddsQuote
from footy_edge.services.optimizer import (
    OptimizationResult,
    SelectionCriteria,
    SettingsOptimizer,
    build_candidate_pool,
)
from footy_edge.services.settings_store import SettingsRepository, SettingsScope, resolve_settings

logger = logging.getLogger(__name__)

MIN_ODDS = float(os.getenv("DAILY_MIN_ODDS", "1.18"))
BOOKMAKER_ID = int(os.getenv("DAILY_BOOKMAKER_ID", "1"))

SIDES = ("home", "away")


def prefetch_odds(
    loader: Callable[[Sequence[int]], Iterable[OddsQuote]],
    upcoming: Iterable[FixtureLike],
    bookmaker_id: int = BOOKMAKER_ID,
) -> OddsCache:
    """Fetch prices for every upcoming fixture in one loader call."""
    return OddsCache.prefetch(loader, [f.id for f in coerce_fixtures(upcoming)], bookmaker_id)


class DailyPickBuilder:
    """
    Builds the pick snapshot for a set of upcoming fixtures.

    Optimization results are cached per ``(league, team)`` for the lifetime
    of the builder, so a team with two fixtures in one snapshot is only
    searched once.

    Args:
        optimizer: Defaults to a :class:`SettingsOptimizer` with the batch
            selection criteria.
        repo: Optional stored-settings repository used to seed each search.
        base_settings: Fallback when the repository has nothing.
        pool: Candidate settings; defaults to a fresh
            :func:`build_candidate_pool` sample.
        min_odds: Minimum decimal price for ``meets_odds``.
    """

    def __init__(
        self,
        optimizer: Optional[SettingsOptimizer] = None,
        repo: Optional[SettingsRepository] = None,
        base_settings: AlgoSettings = DEFAULT_ALGO_SETTINGS,
        pool: Optional[Sequence[AlgoSettings]] = None,
        min_odds: float = MIN_ODDS,
        config: Optional[EngineConfig] = None,
    ):
        self.config = config or EngineConfig.default()
        self.optimizer = optimizer or SettingsOptimizer(SelectionCriteria.batch(), self.config)
        self.repo = repo
        self.base_settings = base_settings
        self.pool = list(pool) if pool is not None else build_candidate_pool()
        self.min_odds = min_odds
        self._results: Dict[Tuple[int, int], Optional[OptimizationResult]] = {}

    def _optimize(self, league_id: int, team_id: int, history: List[Fixture]) -> Optional[OptimizationResult]:
        key = (league_id, team_id)
        if key not in self._results:
            seed = resolve_settings(self.repo, SettingsScope(team_id, league_id), self.base_settings)
            self._results[key] = self.optimizer.find_best(history, team_id, seed, self.pool)
        return self._results[key]

    def build(
        self,
        history: Iterable[FixtureLike],
        upcoming: Iterable[FixtureLike],
        odds: Optional[OddsCache] = None,
        snapshot_date: Optional[date] = None,
    ) -> List[DailyPick]:
        snapshot = snapshot_date or datetime.now(timezone.utc).date()
        by_league: Dict[int, List[Fixture]] = {}
        for fixture in coerce_fixtures(history):
            by_league.setdefault(fixture.competition_id, []).append(fixture)

        rows: List[DailyPick] = []
        for fixture in coerce_fixtures(upcoming):
            league_history = by_league.get(fixture.competition_id, [])
            for side in SIDES:
                team_id = fixture.home_team_id if side == "home" else fixture.away_team_id
                if team_id is None:
                    continue
                row = self._pick_for_side(fixture, side, team_id, league_history, odds, snapshot)
                if row is not None:
                    rows.append(row)

        logger.info(
            "Daily snapshot %s: %d picks (%d meet criteria)",
            snapshot, len(rows), sum(1 for r in rows if r.meets_criteria),
        )
        return rows

    def _pick_for_side(self, fixture, side, team_id, league_history, odds, snapshot) -> Optional[DailyPick]:
        result = self._optimize(fixture.competition_id, team_id, league_history)
        if result is None:
            return None

        decision = compute_upcoming_pick(league_history, fixture, result.settings, self.config)
        if not decision.is_pick:
            logger.debug("Fixture %s team %s: %s", fixture.id, team_id, decision.status)
            return None

        odd = odds.odd_for_pick(fixture.id, decision.market) if odds is not None else None
        meets_odds = odd is not None and odd >= self.min_odds
        evaluation = result.evaluation
        return DailyPick(
            snapshot_date=snapshot,
            fixture_id=fixture.id,
            fixture_date_utc=fixture.date,
            league_id=fixture.competition_id,
            season=fixture.season,
            team_id=team_id,
            side=side,
            pick=decision.market,
            market=market_family(decision.market),
            probability=decision.probability,
            hit_rate=evaluation.hit_rate,
            coverage=evaluation.coverage,
            picks_count=evaluation.picks,
            evaluated_count=evaluation.evaluated,
            odd=odd,
            meets_algo_criteria=result.meets_criteria,
            meets_odds=meets_odds,
            meets_criteria=result.meets_criteria and meets_odds,
            settings=AlgoSettingsPayload.from_settings(result.settings),
        )


def build_daily_picks(
    history: Iterable[FixtureLike],
    upcoming: Iterable[FixtureLike],
    odds: Optional[OddsCache] = None,
    snapshot_date: Optional[date] = None,
    **builder_kwargs,
) -> List[DailyPick]:
    return DailyPickBuilder(**builder_kwargs).build(history, upcoming, odds, snapshot_date)


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------

def resolve_pending(
    picks: Iterable[DailyPick],
    fixtures_by_id: Mapping[int, FixtureLike],
) -> List[DailyPick]:
    """Grade pending rows whose fixture now has a final score.

    Rows that are already settled, whose fixture is unknown or unplayed, or
    whose label cannot be graded are returned unchanged.
    """
    resolved: List[DailyPick] = []
    settled = 0
    for pick in picks:
        raw = fixtures_by_id.get(pick.fixture_id)
        fixture = None
        if raw is not None:
            fixture = raw if isinstance(raw, Fixture) else Fixture.from_row(raw)
        if (
            pick.status != "pending"
            or fixture is None
            or fixture.goals_home is None
            or fixture.goals_away is None
        ):
            resolved.append(pick)
            continue

        hit = settle_pick(pick.pick, fixture.goals_home, fixture.goals_away)
        if hit is None:
            logger.warning("Cannot grade pick %r for fixture %s", pick.pick, pick.fixture_id)
            resolved.append(pick)
            continue

        settled += 1
        resolved.append(
            pick.model_copy(
                update={
                    "status": "hit" if hit else "miss",
                    "goals_home": fixture.goals_home,
                    "goals_away": fixture.goals_away,
                }
            )
        )
    logger.info("Resolved %d pending picks", settled)
    return resolved
