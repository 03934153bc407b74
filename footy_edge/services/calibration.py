"""
Market calibration multipliers for a league-season.

Offline sanity check of the model against bookmaker prices.  For every
fixture that has pre-kickoff odds, a simple retrospective model probability
is computed from both teams' earlier results in the same season (share of
matches over/under each line, or landing in each double-chance outcome,
averaged across the two teams).  The bookmaker price is converted to an
implied probability (de-vigged for over/under pairs) and the ratio

    market_prob / model_prob

is recorded per market line.  The per-line **median** ratio is the
multiplier; medians keep a handful of mispriced or freak results from
dominating.

Lines with no usable ratios fall back to the median across all lines of the
same family, then to 1.0.  A league-season without odds therefore yields
neutral multipliers rather than an error.

Not used in the live pick path.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from footy_edge.core.fixtures import Fixture
from footy_edge.core.markets import DOUBLE_CHANCE_LINES, parse_goal_label, line_key
from footy_edge.core.odds_math import remove_vig_proportional, remove_vig_shin
from footy_edge.services.backtest import FixtureLike, coerce_fixtures
from footy_edge.services.odds_cache import OddsQuote, group_by_fixture, latest_quotes

logger = logging.getLogger(__name__)

OVER_UNDER_LINES = ("0.5", "1.5", "2.5", "3.5", "4.5", "5.5")

DEVIG_METHODS = ("proportional", "shin")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _median(values: List[float]) -> Optional[float]:
    if not values:
        return None
    s = sorted(values)
    n = len(s)
    mid = n // 2
    return s[mid] if n % 2 else (s[mid - 1] + s[mid]) / 2.0


def _pct(count: int, total: int) -> int:
    # Whole percent, half rounded up.
    return int(math.floor(count / total * 100 + 0.5))


def _combine_pct(a: int, b: int) -> float:
    return max(0.0, min(100.0, (a + b) / 2.0))


@dataclass
class _HistoryStats:
    over: Dict[str, int]
    under: Dict[str, int]
    dc: Dict[str, int]


def _history_stats(history: List[tuple]) -> _HistoryStats:
    """Percentages (0-100) from one team's results as ``(goals_for, goals_against)``."""
    if not history:
        zeros = {line: 0 for line in OVER_UNDER_LINES}
        return _HistoryStats(dict(zeros), dict(zeros), {"1X": 0, "X2": 0, "12": 0})

    win = draw = lose = 0
    overs = {line: 0 for line in OVER_UNDER_LINES}
    unders = {line: 0 for line in OVER_UNDER_LINES}
    for gf, ga in history:
        if gf > ga:
            win += 1
        elif gf < ga:
            lose += 1
        else:
            draw += 1
        for line in OVER_UNDER_LINES:
            if gf + ga > float(line):
                overs[line] += 1
            else:
                unders[line] += 1

    total = len(history)
    return _HistoryStats(
        over={line: _pct(overs[line], total) for line in OVER_UNDER_LINES},
        under={line: _pct(unders[line], total) for line in OVER_UNDER_LINES},
        # From the team's own perspective: 1X = not lost, X2 = not won.
        dc={"1X": _pct(win + draw, total), "X2": _pct(draw + lose, total), "12": _pct(win + lose, total)},
    )


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class CalibrationMultipliers:
    over: Dict[str, float] = field(default_factory=dict)
    under: Dict[str, float] = field(default_factory=dict)
    double_chance: Dict[str, float] = field(default_factory=dict)
    overround: Dict[str, float] = field(default_factory=dict)
    fixtures_used: int = 0

    @classmethod
    def neutral(cls) -> "CalibrationMultipliers":
        return cls(
            over={line: 1.0 for line in OVER_UNDER_LINES},
            under={line: 1.0 for line in OVER_UNDER_LINES},
            double_chance={code: 1.0 for code in DOUBLE_CHANCE_LINES},
            overround={line: 1.0 for line in OVER_UNDER_LINES},
        )

    def multiplier(self, label: str) -> float:
        """Multiplier for a pick label; 1.0 for anything unknown."""
        trimmed = label.strip()
        if trimmed in DOUBLE_CHANCE_LINES:
            return self.double_chance.get(trimmed, 1.0)
        parsed = parse_goal_label(trimmed)
        if parsed is None:
            return 1.0
        side, line = parsed
        book = self.over if side == "over" else self.under
        return book.get(line_key(line), 1.0)

    def calibrate(self, label: str, probability: float) -> float:
        """Model probability scaled toward the market, capped at 1."""
        return min(1.0, probability * self.multiplier(label))


# ---------------------------------------------------------------------------
# Calibrator
# ---------------------------------------------------------------------------

def compute_calibration(
    fixtures: Iterable[FixtureLike],
    quotes: Iterable[OddsQuote],
    devig: str = "proportional",
) -> CalibrationMultipliers:
    """Build calibration multipliers for one league-season.

    Args:
        fixtures: All fixtures of the league-season (any order).
        quotes: Odds snapshots for those fixtures from a single bookmaker.
        devig: ``"proportional"`` or ``"shin"`` for over/under pairs.
    """
    if devig not in DEVIG_METHODS:
        raise ValueError(f"Unknown devig method {devig!r}; expected one of {DEVIG_METHODS}")

    ordered = sorted((f for f in coerce_fixtures(fixtures) if f.date is not None), key=lambda f: f.date)
    if not ordered:
        return CalibrationMultipliers.neutral()

    kickoffs = {f.id: f.date for f in ordered}
    books = group_by_fixture(latest_quotes(quotes, kickoffs))
    if not books:
        logger.info("No pre-kickoff odds for %d fixtures; using neutral multipliers", len(ordered))
        return CalibrationMultipliers.neutral()

    ratios_over: Dict[str, List[float]] = {line: [] for line in OVER_UNDER_LINES}
    ratios_under: Dict[str, List[float]] = {line: [] for line in OVER_UNDER_LINES}
    overrounds: Dict[str, List[float]] = {line: [] for line in OVER_UNDER_LINES}
    ratios_dc: Dict[str, List[float]] = {code: [] for code in DOUBLE_CHANCE_LINES}
    history: Dict[int, List[tuple]] = {}
    used = 0

    for fixture in ordered:
        book = books.get(fixture.id)
        if book is not None:
            used += 1
            home = _history_stats(history.get(fixture.home_team_id, []))
            away = _history_stats(history.get(fixture.away_team_id, []))
            _collect_over_under(book, home, away, devig, ratios_over, ratios_under, overrounds)
            _collect_double_chance(book, home, away, ratios_dc)
        _record(history, fixture)

    return _summarize(ratios_over, ratios_under, overrounds, ratios_dc, used)


def _record(history: Dict[int, List[tuple]], fixture: Fixture) -> None:
    if fixture.goals_home is None or fixture.goals_away is None:
        return
    if fixture.home_team_id is not None:
        history.setdefault(fixture.home_team_id, []).append((fixture.goals_home, fixture.goals_away))
    if fixture.away_team_id is not None:
        history.setdefault(fixture.away_team_id, []).append((fixture.goals_away, fixture.goals_home))


def _collect_over_under(book, home, away, devig, ratios_over, ratios_under, overrounds) -> None:
    for line, over_odd in book.over.items():
        under_odd = book.under.get(line)
        if line not in ratios_over or not over_odd or not under_odd:
            continue
        try:
            if devig == "shin":
                market_over, market_under = remove_vig_shin(over_odd, under_odd)
            else:
                market_over, market_under = remove_vig_proportional([over_odd, under_odd])
        except ValueError as exc:
            logger.debug("Skipping line %s: %s", line, exc)
            continue
        overrounds[line].append(1.0 / over_odd + 1.0 / under_odd)

        model_over = _combine_pct(home.over[line], away.over[line]) / 100.0
        model_under = _combine_pct(home.under[line], away.under[line]) / 100.0
        if model_over > 0:
            ratios_over[line].append(market_over / model_over)
        if model_under > 0:
            ratios_under[line].append(market_under / model_under)


def _collect_double_chance(book, home, away, ratios_dc) -> None:
    # The away team's "not lost" is the fixture's X2, and vice versa.
    model = {
        "1X": _combine_pct(home.dc["1X"], away.dc["X2"]) / 100.0,
        "X2": _combine_pct(home.dc["X2"], away.dc["1X"]) / 100.0,
        "12": _combine_pct(home.dc["12"], away.dc["12"]) / 100.0,
    }
    for code in DOUBLE_CHANCE_LINES:
        odd = book.double_chance.get(code)
        if not odd or odd < 1.0 or model[code] <= 0:
            continue
        ratios_dc[code].append((1.0 / odd) / model[code])


def _summarize(ratios_over, ratios_under, overrounds, ratios_dc, used) -> CalibrationMultipliers:
    def flat(groups: Dict[str, List[float]]) -> List[float]:
        return [v for values in groups.values() for v in values]

    default_over = _median(flat(ratios_over)) or 1.0
    default_under = _median(flat(ratios_under)) or 1.0
    default_overround = _median(flat(overrounds)) or 1.0
    default_dc = _median(flat(ratios_dc)) or 1.0

    result = CalibrationMultipliers(
        over={line: _median(ratios_over[line]) or default_over for line in OVER_UNDER_LINES},
        under={line: _median(ratios_under[line]) or default_under for line in OVER_UNDER_LINES},
        double_chance={code: _median(ratios_dc[code]) or default_dc for code in DOUBLE_CHANCE_LINES},
        overround={line: _median(overrounds[line]) or default_overround for line in OVER_UNDER_LINES},
        fixtures_used=used,
    )
    logger.info(
        "Calibration from %d fixtures: over 2.5 x%.3f, under 2.5 x%.3f, overround 2.5 %.3f",
        used, result.over["2.5"], result.under["2.5"], result.overround["2.5"],
    )
    return result
