"""
Tests for odds conversion and the normal CDF approximation
Run with: pytest tests/test_odds_math.py -v
"""

import math

import numpy as np
import pytest

from backend.core.odds_math import (
    ODDS_CEILING,
    ODDS_FLOOR,
    book_overround,
    erf_approx,
    normal_cdf,
    odds_from_probability,
)


class TestErfApprox:
    """Abramowitz–Stegun erf against the library erf"""

    @pytest.mark.parametrize("x", np.linspace(-4.0, 4.0, 81))
    def test_matches_math_erf(self, x):
        assert erf_approx(x) == pytest.approx(math.erf(x), abs=2e-7)

    def test_odd_symmetry(self):
        assert erf_approx(-0.7) == pytest.approx(-erf_approx(0.7))


class TestNormalCdf:

    def test_centre(self):
        assert normal_cdf(0.0) == pytest.approx(0.5, abs=1e-7)

    def test_known_quantiles(self):
        assert normal_cdf(1.96) == pytest.approx(0.975, abs=1e-4)
        assert normal_cdf(-1.96) == pytest.approx(0.025, abs=1e-4)

    def test_tails_saturate(self):
        assert normal_cdf(10.0) == pytest.approx(1.0, abs=1e-9)
        assert normal_cdf(-10.0) == pytest.approx(0.0, abs=1e-9)


class TestOddsFromProbability:

    @pytest.mark.parametrize("prob, margin, expected", [
        (0.50, 1.06, 2.12),
        (0.25, 1.06, 4.24),
        (0.04, 1.06, 26.5),
        (0.90, 1.06, 1.18),
        (0.97, 1.00, 1.03),
    ])
    def test_margin_over_probability(self, prob, margin, expected):
        assert odds_from_probability(prob, margin) == expected

    def test_longshot_returns_ceiling(self):
        assert odds_from_probability(0.01, 1.06) == ODDS_CEILING
        assert odds_from_probability(0.0, 1.06) == ODDS_CEILING

    def test_near_certain_returns_floor(self):
        assert odds_from_probability(0.98, 1.06) == ODDS_FLOOR
        assert odds_from_probability(1.0, 1.06) == ODDS_FLOOR

    def test_raw_price_above_ceiling_is_clamped(self):
        # 1.06 / 0.03 = 35.3
        assert odds_from_probability(0.03, 1.06) == ODDS_CEILING

    def test_margin_below_one_rejected(self):
        with pytest.raises(ValueError):
            odds_from_probability(0.5, 0.95)

    @pytest.mark.parametrize("margin", [1.0, 1.06, 1.08, 1.25])
    def test_bounded_for_all_probabilities(self, margin):
        for prob in np.linspace(0.0, 1.0, 1001):
            assert ODDS_FLOOR <= odds_from_probability(prob, margin) <= ODDS_CEILING

    @pytest.mark.parametrize("margin", [1.0, 1.06, 1.08])
    def test_non_increasing_in_probability(self, margin):
        prices = [odds_from_probability(p, margin) for p in np.linspace(0.0, 1.0, 1001)]
        assert all(a >= b for a, b in zip(prices, prices[1:]))


class TestBookOverround:

    def test_fair_two_way_book(self):
        assert book_overround([2.0, 2.0]) == pytest.approx(1.0)

    def test_margin_on_probability_book(self):
        # Each side priced at 1.06 / 0.5
        assert book_overround([2.12, 2.12]) == pytest.approx(2 / 2.12)

    def test_empty(self):
        assert book_overround([]) == 0.0
