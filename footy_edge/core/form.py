"""Rolling team form and running league baselines.

Both structures are mutated **only** while replaying fixtures in date order.
A :class:`RollingWindow` holds one team's results at one venue (home or
away); a :class:`LeagueBaseline` accumulates a competition's goal totals.

Recency weighting
-----------------
A window is split into contiguous buckets of ``bucket_size`` matches counted
from the most recent backwards, so the oldest bucket may be short.  Bucket
``i`` receives ``weights[i]`` (0 = most recent); when the weight list is
shorter than the bucket count its last value repeats.  Each match in a
bucket counts with the bucket's weight, so uniform data averages to itself
regardless of the weights chosen.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Iterator, NamedTuple, Sequence

from footy_edge.core.engine_config import BASELINE_AWAY_GOALS, BASELINE_HOME_GOALS


class MatchRecord(NamedTuple):
    goals_for: int
    goals_against: int


class FormAverage(NamedTuple):
    goals_for: float
    goals_against: float
    n: int


class OutcomeRates(NamedTuple):
    win: float
    draw: float
    loss: float
    n: int


@dataclass
class RollingWindow:
    """Bounded FIFO of a team's recent results at one venue."""

    items: deque = field(default_factory=deque)

    def __len__(self) -> int:
        return len(self.items)


@dataclass
class TeamForm:
    """A team's two venue-specific windows."""

    home: RollingWindow = field(default_factory=RollingWindow)
    away: RollingWindow = field(default_factory=RollingWindow)


# ---------------------------------------------------------------------------
# RollingWindow operations
# ---------------------------------------------------------------------------


def add_result(window: RollingWindow, goals_for: int, goals_against: int, window_size: int) -> None:
    """Append a result, evicting the oldest entries beyond ``window_size``."""
    window.items.append(MatchRecord(goals_for, goals_against))
    while len(window.items) > window_size:
        window.items.popleft()


def _iter_buckets(
    items: Sequence[MatchRecord], bucket_size: int, weights: Sequence[float]
) -> Iterator[tuple[Sequence[MatchRecord], float]]:
    n = len(items)
    size = max(1, int(bucket_size))
    buckets = max(1, -(-n // size))
    for bucket in range(buckets):
        end = n - bucket * size
        start = max(0, end - size)
        chunk = items[start:end]
        if not chunk:
            continue
        if bucket < len(weights):
            weight = weights[bucket]
        else:
            weight = weights[-1] if weights else 1.0
        yield chunk, weight


def weighted_average(window: RollingWindow, bucket_size: int, weights: Sequence[float]) -> FormAverage:
    """Recency-weighted goals for/against per match, plus the raw sample size.

    Returns ``FormAverage(0, 0, 0)`` for an empty window.
    """
    items = list(window.items)
    n = len(items)
    if not n:
        return FormAverage(0.0, 0.0, 0)

    weighted_gf = weighted_ga = weight_sum = 0.0
    for chunk, weight in _iter_buckets(items, bucket_size, weights):
        weighted_gf += sum(m.goals_for for m in chunk) * weight
        weighted_ga += sum(m.goals_against for m in chunk) * weight
        weight_sum += len(chunk) * weight

    if not weight_sum:
        return FormAverage(0.0, 0.0, n)
    return FormAverage(weighted_gf / weight_sum, weighted_ga / weight_sum, n)


def weighted_outcome_rates(
    window: RollingWindow, bucket_size: int, weights: Sequence[float]
) -> OutcomeRates:
    """Recency-weighted win/draw/loss rates from the window owner's perspective."""
    items = list(window.items)
    n = len(items)
    if not n:
        return OutcomeRates(0.0, 0.0, 0.0, 0)

    win = draw = loss = weight_sum = 0.0
    for chunk, weight in _iter_buckets(items, bucket_size, weights):
        win += sum(1 for m in chunk if m.goals_for > m.goals_against) * weight
        loss += sum(1 for m in chunk if m.goals_for < m.goals_against) * weight
        draw += sum(1 for m in chunk if m.goals_for == m.goals_against) * weight
        weight_sum += len(chunk) * weight

    if not weight_sum:
        return OutcomeRates(0.0, 0.0, 0.0, n)
    return OutcomeRates(win / weight_sum, draw / weight_sum, loss / weight_sum, n)


# ---------------------------------------------------------------------------
# League baseline
# ---------------------------------------------------------------------------


@dataclass
class LeagueBaseline:
    """Running goal totals for one competition.  ``match_count`` only grows."""

    home_goals: float = 0.0
    away_goals: float = 0.0
    match_count: int = 0

    def record(self, goals_home: int, goals_away: int) -> None:
        self.home_goals += goals_home
        self.away_goals += goals_away
        self.match_count += 1

    def baseline(
        self,
        min_league_matches: int,
        fallback_home: float = BASELINE_HOME_GOALS,
        fallback_away: float = BASELINE_AWAY_GOALS,
    ) -> tuple[float, float]:
        """``(home_avg, away_avg)``; fixed fallbacks until enough matches are in."""
        if self.match_count >= min_league_matches and self.match_count > 0:
            return (
                self.home_goals / self.match_count,
                self.away_goals / self.match_count,
            )
        return fallback_home, fallback_away
