"""
Tests for the chronological backtest replay and upcoming picks
Run with: pytest tests/test_backtest.py -v
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from footy_edge.core.algo_settings import normalize_algo_settings
from footy_edge.core.fixtures import Fixture
from footy_edge.services.backtest import (
    BacktestPick,
    BacktestReplayer,
    ReplayState,
    compute_upcoming_pick,
    evaluate_team,
    run_backtest,
    summarize,
)

START = datetime(2024, 8, 1, 15, 0, tzinfo=timezone.utc)

# Double round robin for four teams, repeated
PAIRINGS = [
    ((1, 2), (3, 4)),
    ((3, 1), (4, 2)),
    ((1, 4), (2, 3)),
    ((2, 1), (4, 3)),
    ((1, 3), (2, 4)),
    ((4, 1), (3, 2)),
]


def fx(fid, day, home, away, gh=None, ga=None, comp=1):
    return Fixture(
        id=fid,
        date=START + timedelta(days=day),
        competition_id=comp,
        home_team_id=home,
        away_team_id=away,
        goals_home=gh,
        goals_away=ga,
    )


def league_fixtures(rounds=36, comp=1, start_id=1):
    fixtures = []
    fid = start_id
    for r in range(rounds):
        for home, away in PAIRINGS[r % len(PAIRINGS)]:
            fixtures.append(fx(fid, r * 7, home, away, (r + home) % 4, (2 * r + away) % 3, comp))
            fid += 1
    return fixtures


SETTINGS = normalize_algo_settings(
    window_size=10, bucket_size=5, min_matches=3, min_league_matches=5, threshold=0.5
)


# ---------------------------------------------------------------------------
# Replay
# ---------------------------------------------------------------------------

class TestReplay:

    def test_produces_picks(self):
        result = run_backtest(league_fixtures(), 1, SETTINGS)
        assert result.picks
        assert all(p.fixture_id for p in result.picks)

    def test_deterministic(self):
        fixtures = league_fixtures()
        assert run_backtest(fixtures, 2, SETTINGS) == run_backtest(fixtures, 2, SETTINGS)

    def test_input_order_does_not_matter(self):
        fixtures = league_fixtures()
        rounds = [fixtures[i:i + 2] for i in range(0, len(fixtures), 2)]
        shuffled = [f for chunk in reversed(rounds) for f in chunk]
        assert run_backtest(shuffled, 3, SETTINGS).picks == run_backtest(fixtures, 3, SETTINGS).picks

    def test_no_look_ahead(self):
        fixtures = league_fixtures()
        replayer = BacktestReplayer(SETTINGS)
        full = list(replayer.iter_predictions(fixtures))

        # Changing a later result must not change any earlier prediction
        cut = 40
        altered = fixtures[:cut] + [replace(f, goals_home=9, goals_away=9) for f in fixtures[cut:]]
        changed = list(replayer.iter_predictions(altered))
        assert [p for _, p in full[: cut + 1]] == [p for _, p in changed[: cut + 1]]

    def test_fixture_own_result_not_used(self):
        fixtures = league_fixtures()
        last = fixtures[-1]
        flipped = fixtures[:-1] + [replace(last, goals_home=7, goals_away=0)]
        a = run_backtest(fixtures, last.home_team_id, SETTINGS).picks[-1]
        b = run_backtest(flipped, last.home_team_id, SETTINGS).picks[-1]
        assert a.fixture_id == b.fixture_id == last.id
        assert a.probability == b.probability
        assert a.market == b.market

    def test_unplayable_fixtures_skipped(self):
        fixtures = league_fixtures()
        noisy = fixtures + [
            fx(900, 3, 1, 2),
            replace(fx(901, 10, 1, 3, 2, 2), date=None),
            fx(902, 12, None, 3, 1, 0),
        ]
        assert run_backtest(noisy, 1, SETTINGS) == run_backtest(fixtures, 1, SETTINGS)

    def test_accepts_rows(self):
        rows = [
            {
                "id": f.id,
                "date_utc": f.date.isoformat().replace("+00:00", "Z"),
                "competition_id": f.competition_id,
                "home_team_id": f.home_team_id,
                "away_team_id": f.away_team_id,
                "goals_home": f.goals_home,
                "goals_away": f.goals_away,
            }
            for f in league_fixtures()
        ]
        assert run_backtest(rows, 4, SETTINGS).picks == run_backtest(league_fixtures(), 4, SETTINGS).picks

    def test_no_team_gives_no_picks(self):
        assert run_backtest(league_fixtures(), None, SETTINGS).picks == []

    def test_picks_only_for_team_of_interest(self):
        by_id = {f.id: f for f in league_fixtures()}
        for pick in run_backtest(by_id.values(), 2, SETTINGS).picks:
            fixture = by_id[pick.fixture_id]
            assert fixture.involves(2)
            assert pick.is_home == (fixture.home_team_id == 2)

    def test_window_bound_during_replay(self):
        state = ReplayState(normalize_algo_settings(window_size=5))
        for fixture in league_fixtures(rounds=30):
            state.update(fixture)
            for form in state.teams.values():
                assert len(form.home) <= 5
                assert len(form.away) <= 5

    def test_grading_uses_final_score(self):
        for pick in run_backtest(league_fixtures(), 1, SETTINGS).picks:
            gh, ga = (int(g) for g in pick.score.split("-"))
            if pick.market.startswith("Over"):
                assert pick.hit == (gh + ga > float(pick.market.split()[1]))
            elif pick.market.startswith("Under"):
                assert pick.hit == (gh + ga <= float(pick.market.split()[1]))


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

def bp(probability, hit):
    return BacktestPick(1, START, "Over 2.5", probability, hit, 3, "2-1", True)


class TestEvaluation:

    def test_summarize_filters_by_threshold(self):
        ev = summarize([bp(0.7, True), bp(0.6, True), bp(0.8, False)], 0.65)
        assert ev.picks == 2
        assert ev.hits == 1
        assert ev.hit_rate == pytest.approx(0.5)
        assert ev.coverage == pytest.approx(2 / 3)
        assert ev.evaluated == 3

    def test_summarize_empty(self):
        ev = summarize([], 0.65)
        assert (ev.picks, ev.hits, ev.hit_rate, ev.coverage, ev.evaluated) == (0, 0, 0.0, 0.0, 0)

    def test_threshold_half_covers_everything(self):
        # max(P(over), P(under)) is always at least 0.5
        ev = evaluate_team(league_fixtures(), 1, SETTINGS)
        assert ev.evaluated > 0
        assert ev.picks == ev.evaluated
        assert ev.coverage == pytest.approx(1.0)

    def test_higher_threshold_never_adds_picks(self):
        low = evaluate_team(league_fixtures(), 1, SETTINGS)
        high = evaluate_team(league_fixtures(), 1, replace(SETTINGS, threshold=0.8))
        assert high.picks <= low.picks
        assert high.evaluated == low.evaluated


# ---------------------------------------------------------------------------
# Upcoming pick
# ---------------------------------------------------------------------------

class TestUpcomingPick:

    def test_no_history_is_no_data(self):
        decision = compute_upcoming_pick([], fx(1000, 400, 1, 2), SETTINGS)
        assert decision.status == "no-data"

    def test_missing_team_is_no_data(self):
        decision = compute_upcoming_pick(league_fixtures(), fx(1000, 400, 1, None), SETTINGS)
        assert decision.status == "no-data"

    def test_with_history_picks(self):
        decision = compute_upcoming_pick(league_fixtures(), fx(1000, 400, 1, 2), SETTINGS)
        assert decision.is_pick
        assert decision.probability >= SETTINGS.threshold

    def test_ignores_fixtures_on_or_after_kickoff(self):
        fixtures = league_fixtures()
        upcoming = fx(1000, 100, 3, 4)
        before = [f for f in fixtures if f.date < upcoming.date]
        assert len(before) < len(fixtures)
        assert compute_upcoming_pick(fixtures, upcoming, SETTINGS) == compute_upcoming_pick(
            before, upcoming, SETTINGS
        )
