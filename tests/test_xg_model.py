"""
Tests for the expected-goals model
Run with: pytest tests/test_xg_model.py -v
"""

from dataclasses import replace

import pytest

from footy_edge.core.engine_config import EngineConfig
from footy_edge.core.form import FormAverage
from footy_edge.core.xg_model import expected_goals, shrink


class TestShrink:

    def test_no_samples_returns_prior(self):
        assert shrink(2.7, 0, 1.35, 10) == 1.35

    def test_full_window_sits_halfway(self):
        assert shrink(2.0, 10, 1.0, 10) == pytest.approx(1.5)

    def test_large_sample_approaches_average(self):
        assert shrink(2.0, 10_000, 1.0, 10) == pytest.approx(2.0, abs=1e-2)


class TestExpectedGoals:

    def test_league_average_teams_get_league_average_xg(self):
        home = FormAverage(1.35, 1.15, 10)
        away = FormAverage(1.15, 1.35, 10)
        xg = expected_goals(home, away, 1.35, 1.15, prior_n=10)
        assert xg.home == pytest.approx(1.35)
        assert xg.away == pytest.approx(1.15)
        assert xg.total == pytest.approx(2.5)

    def test_teams_without_history_are_league_average(self):
        empty = FormAverage(0.0, 0.0, 0)
        xg = expected_goals(empty, empty, 1.6, 1.2, prior_n=30)
        assert xg.home == pytest.approx(1.6)
        assert xg.away == pytest.approx(1.2)

    def test_stronger_attack_raises_xg(self):
        base = expected_goals(FormAverage(1.35, 1.15, 10), FormAverage(1.15, 1.35, 10), 1.35, 1.15, 10)
        strong = expected_goals(FormAverage(2.5, 1.15, 10), FormAverage(1.15, 1.35, 10), 1.35, 1.15, 10)
        assert strong.home > base.home
        assert strong.away == pytest.approx(base.away)

    def test_clamped_to_bounds(self):
        home = FormAverage(20.0, 0.0, 30)
        away = FormAverage(0.0, 20.0, 30)
        xg = expected_goals(home, away, 1.35, 1.15, prior_n=1)
        assert xg.home == 6.0
        assert xg.away == 0.1

    def test_zero_league_average_does_not_divide_by_zero(self):
        form = FormAverage(1.0, 1.0, 10)
        xg = expected_goals(form, form, 0.0, 0.0, prior_n=10)
        assert xg.home == 0.1
        assert xg.away == 0.1

    def test_custom_clamp(self):
        cfg = replace(EngineConfig.default(), xg_max=3.0)
        xg = expected_goals(FormAverage(20.0, 0.0, 30), FormAverage(0.0, 20.0, 30), 1.35, 1.15, 1, cfg)
        assert xg.home == 3.0
