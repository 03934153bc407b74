"""
Tests for market calibration multipliers
Run with: pytest tests/test_calibration.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from footy_edge.core.fixtures import Fixture
from footy_edge.services.calibration import (
    OVER_UNDER_LINES,
    CalibrationMultipliers,
    compute_calibration,
)
from footy_edge.services.odds_cache import DOUBLE_CHANCE_MARKET, OVER_UNDER_MARKET, OddsQuote

START = datetime(2024, 8, 10, 15, 0, tzinfo=timezone.utc)


def fx(fid, day, home, away, gh, ga):
    return Fixture(
        id=fid,
        date=START + timedelta(days=day),
        competition_id=39,
        home_team_id=home,
        away_team_id=away,
        goals_home=gh,
        goals_away=ga,
    )


def quote(fixture, label, value, market=OVER_UNDER_MARKET, hours_before=3):
    return OddsQuote(fixture.id, market, label, value, fixture.date - timedelta(hours=hours_before))


# Team 1 wins both earlier meetings: 3-1 at home, 2-0 away
FIXTURES = [fx(1, 0, 1, 2, 3, 1), fx(2, 7, 2, 1, 0, 2), fx(3, 14, 1, 2, 1, 1)]


class TestNeutral:

    def test_no_fixtures(self):
        result = compute_calibration([], [])
        assert result == CalibrationMultipliers.neutral()

    def test_no_odds(self):
        result = compute_calibration(FIXTURES, [])
        assert all(v == 1.0 for v in result.over.values())
        assert all(v == 1.0 for v in result.double_chance.values())
        assert result.fixtures_used == 0

    def test_unknown_devig_method(self):
        with pytest.raises(ValueError):
            compute_calibration(FIXTURES, [], devig="additive")

    def test_unknown_label_multiplier(self):
        assert CalibrationMultipliers.neutral().multiplier("Both Teams Score") == 1.0


class TestRatios:

    def quotes(self):
        third = FIXTURES[2]
        return [
            quote(third, "Over 2.5", 1.8),
            quote(third, "Under 2.5", 2.0),
            quote(third, "Home/Draw", 1.25, market=DOUBLE_CHANCE_MARKET),
            # Posted at kickoff: must be ignored
            quote(third, "Over 2.5", 5.0, hours_before=0),
        ]

    def test_over_under_ratio(self):
        # Both teams: one of two matches over 2.5, so the model says 50/50
        result = compute_calibration(FIXTURES, self.quotes())
        market_over = (1 / 1.8) / (1 / 1.8 + 1 / 2.0)
        assert result.fixtures_used == 1
        assert result.over["2.5"] == pytest.approx(market_over / 0.5)
        assert result.under["2.5"] == pytest.approx((1 - market_over) / 0.5)
        assert result.overround["2.5"] == pytest.approx(1 / 1.8 + 1 / 2.0)

    def test_lines_without_data_use_family_median(self):
        result = compute_calibration(FIXTURES, self.quotes())
        for line in OVER_UNDER_LINES:
            assert result.over[line] == pytest.approx(result.over["2.5"])

    def test_double_chance_ratio(self):
        # Team 1 won both earlier meetings, so the model prices 1X at 100%
        result = compute_calibration(FIXTURES, self.quotes())
        assert result.double_chance["1X"] == pytest.approx(0.8)
        assert result.double_chance["X2"] == pytest.approx(0.8)

    def test_shin_devig(self):
        result = compute_calibration(FIXTURES, self.quotes(), devig="shin")
        assert result.over["2.5"] > 0
        assert result.over["2.5"] + result.under["2.5"] == pytest.approx(2.0)

    def test_calibrate_caps_at_one(self):
        result = compute_calibration(FIXTURES, self.quotes())
        assert result.calibrate("Over 2.5", 0.9) == pytest.approx(0.9 * result.over["2.5"])
        assert result.calibrate("Over 2.5", 0.99) == 1.0
        assert result.calibrate("Under 2.5", 0.5) == pytest.approx(0.5 * result.under["2.5"])
