"""
Tests for pydantic payload schemas
Run with: pytest tests/test_schemas.py -v
"""

from datetime import date

import pytest
from pydantic import ValidationError

from footy_edge.core.algo_settings import DEFAULT_ALGO_SETTINGS, normalize_algo_settings
from footy_edge.schemas import AlgoSettingsPayload, DailyPick, TeamEvaluationOut
from footy_edge.services.backtest import TeamEvaluation


class TestAlgoSettingsPayload:

    def test_camel_and_snake_case_agree(self):
        camel = AlgoSettingsPayload.model_validate({"windowSize": 20, "minLeagueMatches": 8})
        snake = AlgoSettingsPayload.model_validate({"window_size": 20, "min_league_matches": 8})
        assert camel.to_settings() == snake.to_settings()
        assert camel.to_settings().window_size == 20

    def test_empty_payload_gives_defaults(self):
        assert AlgoSettingsPayload().to_settings() == DEFAULT_ALGO_SETTINGS

    def test_junk_values_dropped_not_rejected(self):
        payload = AlgoSettingsPayload.model_validate({
            "windowSize": "abc",
            "threshold": None,
            "minMatches": True,
            "weights": [1, "x", float("nan"), 0.5],
            "lines": [2.5, None, True, "x2", {"line": 3}],
            "unknownField": 42,
        })
        settings = payload.to_settings()
        assert settings.window_size == 30
        assert settings.threshold == pytest.approx(0.65)
        assert settings.min_matches == 5
        assert settings.weights == (1.0, 0.5, 0.5, 0.5, 0.5, 0.5)
        assert settings.lines == (2.5, "X2")

    def test_out_of_range_clamped(self):
        settings = AlgoSettingsPayload(windowSize=500, threshold=0.2).to_settings()
        assert settings.window_size == 60
        assert settings.threshold == pytest.approx(0.5)

    def test_from_settings_round_trip(self):
        settings = normalize_algo_settings(window_size=12, lines=[1.5, "12"])
        dumped = AlgoSettingsPayload.from_settings(settings).model_dump(by_alias=True)
        assert dumped["windowSize"] == 12
        assert AlgoSettingsPayload.model_validate(dumped).to_settings() == settings


class TestOutputSchemas:

    def test_evaluation_from_attributes(self):
        ev = TeamEvaluation(picks=10, hits=8, hit_rate=0.8, coverage=0.5, evaluated=20)
        out = TeamEvaluationOut.model_validate(ev)
        assert out.hit_rate == 0.8

    def test_daily_pick_rejects_bad_probability(self):
        with pytest.raises(ValidationError):
            DailyPick(
                snapshot_date=date(2024, 9, 14),
                fixture_id=1,
                league_id=39,
                team_id=10,
                side="home",
                pick="Over 2.5",
                market="over_under",
                probability=1.2,
                hit_rate=0.8,
                coverage=0.4,
                picks_count=30,
                evaluated_count=75,
                meets_algo_criteria=True,
                meets_odds=False,
                meets_criteria=False,
                settings=AlgoSettingsPayload(),
            )
