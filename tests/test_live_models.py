"""
Tests for the in-play Poisson and score-margin models
Run with: pytest tests/test_live_models.py -v
"""

from dataclasses import replace

import pytest

from backend.core.live_models import (
    FALLBACK_PRIOR,
    LiveOdds,
    OutcomeProbabilities,
    live_probabilities,
    margin_live_probabilities,
    poisson_live_probabilities,
    price_outcomes,
)
from backend.core.odds_math import ODDS_CEILING, ODDS_FLOOR
from backend.core.sport_config import SportModelConfig, get_sport_model


def _total(probs: OutcomeProbabilities) -> float:
    return probs.home_win + probs.draw + probs.away_win


class TestPoissonModel:
    """Independent Poisson scoring over the remaining time"""

    @pytest.mark.parametrize("slug, home, away, elapsed", [
        ("football", 0, 0, 0),
        ("football", 2, 1, 80),
        ("ice-hockey", 1, 3, 45),
        ("handball", 12, 10, 25),
        ("rugby", 7, 10, 50),
        ("esoccer-short", 1, 1, 3),
    ])
    def test_probabilities_sum_to_one(self, slug, home, away, elapsed):
        probs = poisson_live_probabilities(home, away, elapsed, get_sport_model(slug))
        assert _total(probs) == pytest.approx(1.0, abs=1e-6)
        assert min(probs.home_win, probs.draw, probs.away_win) >= 0

    def test_football_leader_at_seventy_minutes(self):
        cfg = get_sport_model("football")
        probs = poisson_live_probabilities(1, 0, 70, cfg)

        assert probs.home_win > probs.away_win > 0
        assert probs.draw > 0

        odds = price_outcomes(probs, cfg)
        assert odds.home < odds.away
        assert odds.draw is not None

    def test_symmetric_rates_and_tied_score(self):
        cfg = replace(SportModelConfig.football(), avg_rate_away=1.37)
        probs = poisson_live_probabilities(1, 1, 30, cfg)
        assert probs.home_win == pytest.approx(probs.away_win, abs=1e-12)

    def test_late_two_goal_lead_is_near_certain(self):
        probs = poisson_live_probabilities(2, 0, 94, get_sport_model("football"))
        assert probs.home_win > 0.97

    def test_zero_cutoff_freezes_current_score(self):
        cfg = get_sport_model("football")
        probs = poisson_live_probabilities(1, 0, 10, cfg, max_add=0)
        assert probs == OutcomeProbabilities(1.0, 0.0, 0.0)

    def test_tail_pruning_stops_past_the_mean(self):
        # With every post-mean term "negligible", only zero extra goals remain
        cfg = get_sport_model("football")
        probs = poisson_live_probabilities(0, 0, 70, cfg, tail_threshold=1.0)
        assert probs == OutcomeProbabilities(0.0, 1.0, 0.0)

    def test_high_scoring_sport_is_not_pruned_to_the_prior(self):
        # Low goal counts are individually tiny for handball but are not tail
        probs = poisson_live_probabilities(0, 0, 5, get_sport_model("handball"))
        assert probs != FALLBACK_PRIOR
        assert _total(probs) == pytest.approx(1.0, abs=1e-6)

    def test_degenerate_rates_fall_back_to_prior(self):
        cfg = replace(SportModelConfig.handball(), avg_rate_home=5000, avg_rate_away=5000)
        probs = poisson_live_probabilities(0, 0, 0, cfg)
        assert probs == FALLBACK_PRIOR

    def test_elapsed_beyond_full_time_keeps_one_minute(self):
        cfg = get_sport_model("football")
        assert poisson_live_probabilities(1, 1, 200, cfg) == poisson_live_probabilities(1, 1, 94, cfg)


class TestMarginModel:
    """Gaussian final score differential"""

    def test_basketball_twenty_point_lead_late(self):
        cfg = get_sport_model("basketball")
        probs = margin_live_probabilities(80, 60, 40, cfg)

        assert probs.home_win == pytest.approx(0.995)
        assert probs.draw == 0.0

        odds = price_outcomes(probs, cfg)
        assert odds.home == ODDS_FLOOR
        assert odds.away == ODDS_CEILING
        assert odds.draw is None

    def test_tip_off_favours_home_rate(self):
        probs = margin_live_probabilities(0, 0, 0, get_sport_model("basketball"))
        assert 0.6 < probs.home_win < 0.7

    def test_away_is_complement(self):
        probs = margin_live_probabilities(50, 55, 30, get_sport_model("basketball"))
        assert probs.home_win + probs.away_win == pytest.approx(1.0)
        assert probs.home_win < 0.5

    def test_symmetric_rates_and_tied_score(self):
        cfg = replace(SportModelConfig.basketball(), avg_rate_away=110)
        probs = margin_live_probabilities(70, 70, 36, cfg)
        assert probs.home_win == pytest.approx(probs.away_win, abs=1e-6)

    @pytest.mark.parametrize("home, away, expected_home", [
        (3, 1, 0.99),
        (1, 3, 0.01),
        (2, 2, 0.50),
    ])
    def test_vanishing_std_means_game_decided(self, home, away, expected_home):
        cfg = replace(SportModelConfig.volleyball(), score_std_per_minute=1e-4)
        probs = margin_live_probabilities(home, away, 60, cfg)
        assert probs.home_win == pytest.approx(expected_home)
        assert probs.away_win == pytest.approx(1.0 - expected_home)

    def test_probability_clamped(self):
        probs = margin_live_probabilities(0, 60, 47, get_sport_model("basketball"))
        assert probs.home_win == pytest.approx(0.005)


class TestDispatchAndPricing:

    def test_dispatch_by_family(self):
        football = get_sport_model("football")
        basketball = get_sport_model("basketball")
        assert live_probabilities(1, 0, 70, football) == poisson_live_probabilities(1, 0, 70, football)
        assert live_probabilities(80, 60, 40, basketball) == margin_live_probabilities(80, 60, 40, basketball)

    def test_price_outcomes_uses_sport_margin(self):
        probs = OutcomeProbabilities(0.5, 0.25, 0.25)
        odds = price_outcomes(probs, get_sport_model("esoccer-short"))
        assert odds == LiveOdds(home=2.16, away=4.32, draw=4.32)

    def test_as_dict_omits_missing_draw(self):
        assert LiveOdds(1.5, 2.5).as_dict() == {"home": 1.5, "away": 2.5}
        assert LiveOdds(1.5, 2.5, 4.0).as_dict() == {"home": 1.5, "away": 2.5, "draw": 4.0}

    def test_recalculation_is_deterministic(self):
        cfg = get_sport_model("ice-hockey")
        first = price_outcomes(live_probabilities(2, 2, 41, cfg), cfg)
        second = price_outcomes(live_probabilities(2, 2, 41, cfg), cfg)
        assert first == second
