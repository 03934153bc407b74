"""
Per-team settings search.

The optimizer replays a league's history under many candidate
configurations and keeps the one that would have produced the most picks
for a team while staying accurate.  Each candidate is scored with
:class:`~footy_edge.services.backtest.BacktestReplayer`.

Candidate pool
--------------
The full grid is the cross product of

    windows {10, 15, 20, 25, 30} x buckets {3, 5} x thresholds {0.55 .. 0.75}
    x min matches {5, 7, 10} x league floors {5, 10, 15}
    x 6 line sets x 3 recency-decay profiles

(8,100 configurations).  :func:`build_candidate_pool` shuffles the grid with
a seeded ``numpy`` generator and keeps the first ``pool_size`` entries: a
uniform sample without replacement, identical for identical seeds.

Selection
---------
A trial qualifies when ``hit_rate >= hit_min``, ``coverage >= coverage_min``
and ``picks >= min_total_picks``.  Trials are ranked by picks, then hit
rate, then coverage (all descending; earlier candidates win exact ties).
The best qualifying trial is returned with ``meets_criteria=True``;
otherwise the best trial overall is returned flagged ``False``.

Tunable via env vars: OPTIMIZER_POOL_SIZE, OPTIMIZER_SEED,
OPTIMIZER_HIT_MIN, OPTIMIZER_COVERAGE_MIN, DAILY_MIN_TOTAL_PICKS.
"""

import itertools
import logging
import os
import time
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from footy_edge.core.algo_settings import (
    DECAY_PROFILES,
    AlgoSettings,
    bucket_count,
    decay_weights,
    normalize_algo_settings,
)
from footy_edge.core.engine_config import EngineConfig
from footy_edge.core.fixtures import Fixture, chronological
from footy_edge.services.backtest import (
    BacktestReplayer,
    FixtureLike,
    TeamEvaluation,
    coerce_fixtures,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Search grid
# ---------------------------------------------------------------------------

WINDOWS = (10, 15, 20, 25, 30)
BUCKETS = (3, 5)
THRESHOLDS = (0.55, 0.6, 0.65, 0.7, 0.75)
MIN_MATCHES = (5, 7, 10)
MIN_LEAGUE_MATCHES = (5, 10, 15)
LINE_SETS = (
    (1.5, 2.5, 3.5),
    (2.5, 3.5, 4.5),
    (1.5, 2.5),
    ("1X", "X2", "12"),
    (1.5, "1X", "X2"),
    (2.5, "1X", "X2"),
)

POOL_SIZE = int(os.getenv("OPTIMIZER_POOL_SIZE", "30"))
_seed_env = os.getenv("OPTIMIZER_SEED")
DEFAULT_SEED: Optional[int] = int(_seed_env) if _seed_env else None

HIT_MIN = float(os.getenv("OPTIMIZER_HIT_MIN", "0.80"))
COVERAGE_MIN = float(os.getenv("OPTIMIZER_COVERAGE_MIN", "0.33"))
BATCH_MIN_TOTAL_PICKS = int(os.getenv("DAILY_MIN_TOTAL_PICKS", "25"))


@dataclass(frozen=True)
class SelectionCriteria:
    hit_min: float = HIT_MIN
    coverage_min: float = COVERAGE_MIN
    min_total_picks: int = 0

    @classmethod
    def batch(cls) -> "SelectionCriteria":
        """Criteria for the daily batch, which also demands pick volume."""
        return cls(min_total_picks=BATCH_MIN_TOTAL_PICKS)

    def accepts(self, evaluation: TeamEvaluation) -> bool:
        return (
            evaluation.hit_rate >= self.hit_min
            and evaluation.coverage >= self.coverage_min
            and evaluation.picks >= self.min_total_picks
        )


@dataclass(frozen=True)
class Trial:
    settings: AlgoSettings
    evaluation: TeamEvaluation


@dataclass(frozen=True)
class OptimizationResult:
    best: Trial
    meets_criteria: bool
    trials_evaluated: int

    @property
    def settings(self) -> AlgoSettings:
        return self.best.settings

    @property
    def evaluation(self) -> TeamEvaluation:
        return self.best.evaluation


def _rank_key(trial: Trial) -> Tuple[float, float, float]:
    ev = trial.evaluation
    return (-ev.picks, -ev.hit_rate, -ev.coverage)


def rank_trials(trials: Iterable[Trial]) -> List[Trial]:
    return sorted(trials, key=_rank_key)


# ---------------------------------------------------------------------------
# Candidate pool
# ---------------------------------------------------------------------------

def candidate_grid() -> List[AlgoSettings]:
    """Every configuration in the search grid, in deterministic order."""
    grid = []
    for window, bucket, threshold, min_matches, min_league, lines, profile in itertools.product(
        WINDOWS, BUCKETS, THRESHOLDS, MIN_MATCHES, MIN_LEAGUE_MATCHES, LINE_SETS, DECAY_PROFILES
    ):
        grid.append(
            normalize_algo_settings(
                window_size=window,
                bucket_size=bucket,
                threshold=threshold,
                min_matches=min_matches,
                min_league_matches=min_league,
                weights=decay_weights(bucket_count(window, bucket), DECAY_PROFILES[profile]),
                lines=lines,
            )
        )
    return grid


def build_candidate_pool(pool_size: int = POOL_SIZE, seed: Optional[int] = DEFAULT_SEED) -> List[AlgoSettings]:
    """Seeded uniform sample (without replacement) of ``pool_size`` grid entries.

    ``seed=None`` draws fresh OS entropy, so only pass it when
    reproducibility does not matter.
    """
    grid = candidate_grid()
    rng = np.random.default_rng(seed)
    order = rng.permutation(len(grid))
    return [grid[i] for i in order[:max(0, pool_size)]]


# ---------------------------------------------------------------------------
# Optimizer
# ---------------------------------------------------------------------------

class SettingsOptimizer:
    """
    Searches a candidate pool for the best settings per team.

    Backtest results are cached per ``(history, team, settings)``, where the
    history part is the sorted tuple of fixture ids, so re-optimizing a team
    against the same history re-uses earlier trials.

    Args:
        criteria: Qualification thresholds.
        config: Engine constants forwarded to every replay.
        max_candidates: Cap on settings evaluated per team (base included).
        time_budget_s: Wall-clock budget per team.  The base settings are
            always evaluated; further candidates stop once it is spent.
    """

    def __init__(
        self,
        criteria: Optional[SelectionCriteria] = None,
        config: Optional[EngineConfig] = None,
        max_candidates: Optional[int] = None,
        time_budget_s: Optional[float] = None,
    ):
        self.criteria = criteria or SelectionCriteria()
        self.config = config or EngineConfig.default()
        self.max_candidates = max_candidates
        self.time_budget_s = time_budget_s
        self._cache: Dict[Tuple[Tuple[Fixture, ...], int, AlgoSettings], TeamEvaluation] = {}

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def evaluate(self, fixtures: Sequence[Fixture], team_id: int, settings: AlgoSettings) -> TeamEvaluation:
        # Value key: replay order and scores both change the result.
        key = (tuple(chronological(fixtures)), team_id, settings)
        cached = self._cache.get(key)
        if cached is None:
            cached = BacktestReplayer(settings, self.config).evaluate(fixtures, team_id)
            self._cache[key] = cached
        return cached

    def _candidates(self, base: AlgoSettings, pool: Iterable[AlgoSettings]) -> List[AlgoSettings]:
        unique = list(dict.fromkeys([base, *pool]))
        if self.max_candidates is not None:
            unique = unique[:max(1, self.max_candidates)]
        return unique

    def find_best(
        self,
        fixtures: Iterable[FixtureLike],
        team_id: int,
        base_settings: AlgoSettings,
        pool: Iterable[AlgoSettings],
    ) -> Optional[OptimizationResult]:
        history = coerce_fixtures(fixtures)
        started = time.monotonic()
        trials: List[Trial] = []

        for settings in self._candidates(base_settings, pool):
            if (
                trials
                and self.time_budget_s is not None
                and time.monotonic() - started > self.time_budget_s
            ):
                logger.info(
                    "Team %s: time budget %.1fs spent after %d trials",
                    team_id, self.time_budget_s, len(trials),
                )
                break
            trials.append(Trial(settings, self.evaluate(history, team_id, settings)))

        if not trials:
            return None

        eligible = [t for t in trials if self.criteria.accepts(t.evaluation)]
        if eligible:
            best, meets = rank_trials(eligible)[0], True
        else:
            best, meets = rank_trials(trials)[0], False

        logger.info(
            "Team %s: %d trials, best picks=%d hit_rate=%.3f coverage=%.3f meets_criteria=%s",
            team_id, len(trials), best.evaluation.picks, best.evaluation.hit_rate,
            best.evaluation.coverage, meets,
        )
        return OptimizationResult(best=best, meets_criteria=meets, trials_evaluated=len(trials))


# ---------------------------------------------------------------------------
# Multi-team search
# ---------------------------------------------------------------------------

def _optimize_team_worker(
    fixtures: List[Fixture],
    team_id: int,
    base_settings: AlgoSettings,
    pool: List[AlgoSettings],
    criteria: SelectionCriteria,
    config: EngineConfig,
    max_candidates: Optional[int],
    time_budget_s: Optional[float],
) -> Tuple[int, Optional[OptimizationResult]]:
    """Top-level so it pickles for ProcessPoolExecutor.  Each worker owns its state."""
    optimizer = SettingsOptimizer(criteria, config, max_candidates, time_budget_s)
    return team_id, optimizer.find_best(fixtures, team_id, base_settings, pool)


def optimize_teams(
    fixtures: Iterable[FixtureLike],
    team_ids: Iterable[int],
    base_settings: AlgoSettings,
    pool: Sequence[AlgoSettings],
    optimizer: Optional[SettingsOptimizer] = None,
    max_workers: int = 1,
) -> Dict[int, Optional[OptimizationResult]]:
    """Run :meth:`SettingsOptimizer.find_best` for several teams of one league.

    Teams share no mutable state, so with ``max_workers > 1`` they are
    spread over a process pool.  Results are identical either way.
    """
    opt = optimizer or SettingsOptimizer()
    history = coerce_fixtures(fixtures)
    teams = list(dict.fromkeys(team_ids))

    if max_workers <= 1 or len(teams) <= 1:
        return {tid: opt.find_best(history, tid, base_settings, pool) for tid in teams}

    logger.info("Optimizing %d teams across %d workers", len(teams), max_workers)
    results: Dict[int, Optional[OptimizationResult]] = {}
    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(
                _optimize_team_worker,
                history, tid, base_settings, list(pool),
                opt.criteria, opt.config, opt.max_candidates, opt.time_budget_s,
            )
            for tid in teams
        ]
        for future in futures:
            tid, result = future.result()
            results[tid] = result
    return {tid: results[tid] for tid in teams}
