"""
Tests for Poisson / empirical outcome probabilities
Run with: pytest tests/test_outcomes.py -v
"""

import math

import pytest

from footy_edge.core.form import OutcomeRates
from footy_edge.core.outcomes import (
    OutcomeProbs,
    blend_outcomes,
    double_chance_probability,
    empirical_outcomes,
    over_under_probabilities,
    poisson_outcomes,
)
from footy_edge.core.poisson_math import joint_score_matrix, poisson_cdf, poisson_series


class TestPoissonMath:

    def test_series_sums_to_one(self):
        assert poisson_series(1.2, 10).sum() == pytest.approx(1.0, abs=1e-6)

    def test_zero_rate_is_point_mass(self):
        series = poisson_series(0.0, 10)
        assert series[0] == 1.0
        assert series[1:].sum() == 0.0

    def test_cdf_edges(self):
        assert poisson_cdf(2.0, -1) == 0.0
        assert poisson_cdf(0.0, 3) == 1.0

    def test_cdf_value(self):
        expected = math.exp(-2.5) * (1 + 2.5 + 2.5 ** 2 / 2)
        assert poisson_cdf(2.5, 2) == pytest.approx(expected, abs=1e-12)

    def test_joint_matrix_shape(self):
        assert joint_score_matrix(1.4, 1.1, 10).shape == (11, 11)


class TestPoissonOutcomes:

    def test_normalized(self):
        probs = poisson_outcomes(1.4, 1.1)
        assert probs.total == pytest.approx(1.0, abs=1e-9)

    def test_home_favoured_when_home_xg_higher(self):
        probs = poisson_outcomes(2.0, 0.8)
        assert probs.home_win > probs.away_win

    def test_symmetric_rates(self):
        probs = poisson_outcomes(1.3, 1.3)
        assert probs.home_win == pytest.approx(probs.away_win, abs=1e-12)

    def test_zero_rates_are_a_certain_draw(self):
        probs = poisson_outcomes(0.0, 0.0)
        assert probs.draw == pytest.approx(1.0)


class TestEmpiricalOutcomes:

    def test_none_without_history(self):
        rates = OutcomeRates(0.5, 0.25, 0.25, 4)
        assert empirical_outcomes(rates, OutcomeRates(0, 0, 0, 0)) is None
        assert empirical_outcomes(OutcomeRates(0, 0, 0, 0), rates) is None

    def test_combines_home_win_with_away_loss(self):
        home = OutcomeRates(0.6, 0.2, 0.2, 5)
        away = OutcomeRates(0.2, 0.4, 0.4, 5)
        probs = empirical_outcomes(home, away)
        assert probs.home_win == pytest.approx(0.5)
        assert probs.draw == pytest.approx(0.3)
        assert probs.away_win == pytest.approx(0.2)


class TestBlend:

    def test_none_empirical_is_pure_poisson(self):
        poisson = poisson_outcomes(1.5, 1.0)
        assert blend_outcomes(poisson, None) == poisson

    def test_blend_is_normalized_midpoint(self):
        a = OutcomeProbs(0.5, 0.3, 0.2)
        b = OutcomeProbs(0.3, 0.3, 0.4)
        blended = blend_outcomes(a, b, 0.5)
        assert blended.home_win == pytest.approx(0.4)
        assert blended.away_win == pytest.approx(0.3)
        assert blended.total == pytest.approx(1.0, abs=1e-9)


class TestMarkets:

    @pytest.mark.parametrize("lam", [0.4, 2.5, 4.8])
    @pytest.mark.parametrize("line", [0.5, 2.5, 3.5])
    def test_over_under_complementary(self, lam, line):
        p_over, p_under = over_under_probabilities(lam, line)
        assert p_over + p_under == pytest.approx(1.0, abs=1e-12)

    def test_under_uses_floor_of_line(self):
        _, p_under = over_under_probabilities(2.5, 2.5)
        assert p_under == pytest.approx(poisson_cdf(2.5, 2))

    def test_double_chance(self):
        probs = OutcomeProbs(0.5, 0.3, 0.2)
        assert double_chance_probability(probs, "1X") == pytest.approx(0.8)
        assert double_chance_probability(probs, "X2") == pytest.approx(0.5)
        assert double_chance_probability(probs, "12") == pytest.approx(0.7)
        assert double_chance_probability(probs, "??") == 0.0
