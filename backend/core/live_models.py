"""In-play outcome probability models.

Two interchangeable models turn ``(current score, elapsed minutes, sport
config)`` into home/draw/away probabilities for the remainder of a match.
Both use **fixed** full-match scoring rates from the sport registry rather
than rates implied by market prices: the current score and the time left
carry all the live information.

Poisson model (sports with draws)
---------------------------------
Each side's *additional* scoring over the remaining time is an independent
Poisson count with mean ``avg_rate × remaining_ratio``.  The joint mass over
all ``(addH, addA)`` pairs up to a cutoff is bucketed by the final-score
comparison::

    P(home) = Σ P(addH; λh') · P(addA; λa')   over  h + addH > a + addA

The cutoff is 15 extra scores for high-scoring sports (handball, rugby) and
8 otherwise.  Each side's enumeration stops at the first tail term whose mass
falls below ``1e-8``.  Both constants are empirical tuning values, kept as
named, overridable module constants.

Margin model (sports without draws)
-----------------------------------
The final point differential is Normal around the current margin plus the
expected drift from the two scoring rates, with variance growing linearly in
remaining time::

    μ = (h − a) + (rate_h − rate_a) · t_rem
    σ = std_per_minute · sqrt(t_rem)
    P(home) = Φ(μ / σ)   clamped to [0.005, 0.995]

Run tests with::

    pytest tests/test_live_models.py -v
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, Final, Optional

import numpy as np
from scipy.stats import poisson

from backend.core.odds_math import normal_cdf, odds_from_probability
from backend.core.sport_config import ModelFamily, SportModelConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Poisson tuning constants
# ---------------------------------------------------------------------------

#: Full-match home rate above which a sport counts as high-scoring.
HIGH_SCORING_RATE: Final[float] = 10.0

#: Extra-score cutoff for high-scoring sports.
HIGH_SCORING_MAX_ADD: Final[int] = 15

#: Extra-score cutoff for everything else.
DEFAULT_MAX_ADD: Final[int] = 8

#: Tail mass below which enumeration of one side stops.
TAIL_PRUNE_THRESHOLD: Final[float] = 1e-8

#: Remaining time never drops below one minute in the Poisson model.
POISSON_MIN_REMAINING: Final[float] = 1.0

# ---------------------------------------------------------------------------
# Margin tuning constants
# ---------------------------------------------------------------------------

#: Remaining time never drops below half a minute in the margin model.
MARGIN_MIN_REMAINING: Final[float] = 0.5

#: At or below this σ the game is treated as decided.
DECIDED_STD_EPSILON: Final[float] = 0.01

#: Leader's probability once a game is decided.
DECIDED_LEADER_PROB: Final[float] = 0.99

#: Bounds on the margin model's home-win probability.
MARGIN_PROB_FLOOR: Final[float] = 0.005
MARGIN_PROB_CEILING: Final[float] = 0.995


@dataclass(frozen=True, slots=True)
class OutcomeProbabilities:
    """Home / draw / away probabilities; sums to 1.0."""

    home_win: float
    draw: float
    away_win: float

    def as_percentages(self) -> Dict[str, float]:
        """Rounded to one decimal place, for log lines."""
        return {
            "home": round(self.home_win * 100, 1),
            "draw": round(self.draw * 100, 1),
            "away": round(self.away_win * 100, 1),
        }


#: Used when the Poisson enumeration collects no mass at all.
FALLBACK_PRIOR: Final[OutcomeProbabilities] = OutcomeProbabilities(0.4, 0.2, 0.4)


@dataclass(frozen=True, slots=True)
class LiveOdds:
    """Decimal prices for the moneyline selections of one event."""

    home: float
    away: float
    draw: Optional[float] = None

    def as_dict(self) -> Dict[str, float]:
        result = {"home": self.home, "away": self.away}
        if self.draw is not None:
            result["draw"] = self.draw
        return result


# ---------------------------------------------------------------------------
# Poisson model
# ---------------------------------------------------------------------------

def _pruned_pmf(lam: float, max_add: int, tail_threshold: float) -> np.ndarray:
    """``P(k; lam)`` for ``k = 0..max_add``, cut at the first negligible tail term.

    Only terms past the mean count as tail, so a large ``lam`` whose low
    counts are individually tiny is not truncated before its bulk.
    """
    ks = np.arange(max_add + 1)
    pmf = poisson.pmf(ks, lam)
    negligible = (ks > lam) & (pmf < tail_threshold)
    if negligible.any():
        pmf = pmf[: int(np.argmax(negligible))]
    return pmf


def poisson_live_probabilities(
    home_score: int,
    away_score: int,
    elapsed: float,
    config: SportModelConfig,
    *,
    max_add: Optional[int] = None,
    tail_threshold: float = TAIL_PRUNE_THRESHOLD,
) -> OutcomeProbabilities:
    """Outcome probabilities from independent Poisson scoring over the remainder.

    Args:
        home_score: Current home score.
        away_score: Current away score.
        elapsed: Minutes already played.
        config: Sport configuration (Poisson family).
        max_add: Extra-score cutoff per side.  Defaults to
            :data:`HIGH_SCORING_MAX_ADD` when ``avg_rate_home`` exceeds
            :data:`HIGH_SCORING_RATE`, else :data:`DEFAULT_MAX_ADD`.
        tail_threshold: Tail-pruning mass threshold.

    Returns:
        Normalised :class:`OutcomeProbabilities`, or :data:`FALLBACK_PRIOR`
        when no mass is collected.
    """
    total_time = config.total_time_minutes
    ratio = max(POISSON_MIN_REMAINING, total_time - elapsed) / total_time
    lam_home = config.avg_rate_home * ratio
    lam_away = config.avg_rate_away * ratio

    if max_add is None:
        max_add = (
            HIGH_SCORING_MAX_ADD
            if config.avg_rate_home > HIGH_SCORING_RATE
            else DEFAULT_MAX_ADD
        )

    pmf_home = _pruned_pmf(lam_home, max_add, tail_threshold)
    pmf_away = _pruned_pmf(lam_away, max_add, tail_threshold)

    joint = np.outer(pmf_home, pmf_away)
    final_home = home_score + np.arange(len(pmf_home))[:, None]
    final_away = away_score + np.arange(len(pmf_away))[None, :]

    home_mass = float(joint[final_home > final_away].sum())
    draw_mass = float(joint[final_home == final_away].sum())
    away_mass = float(joint[final_home < final_away].sum())

    total = home_mass + draw_mass + away_mass
    if not math.isfinite(total) or total <= 0:
        logger.debug(
            "Poisson model collected no mass (lambda=%.3f/%.3f) - using prior",
            lam_home, lam_away,
        )
        return FALLBACK_PRIOR

    return OutcomeProbabilities(
        home_win=home_mass / total,
        draw=draw_mass / total,
        away_win=away_mass / total,
    )


# ---------------------------------------------------------------------------
# Margin model
# ---------------------------------------------------------------------------

def margin_live_probabilities(
    home_score: int,
    away_score: int,
    elapsed: float,
    config: SportModelConfig,
) -> OutcomeProbabilities:
    """Home/away probabilities from a Gaussian final score differential.

    The model has no draw component; ``draw`` is always 0.
    """
    time_remaining = max(MARGIN_MIN_REMAINING, config.total_time_minutes - elapsed)
    current_margin = home_score - away_score

    expected_drift = (
        config.home_rate_per_minute - config.away_rate_per_minute
    ) * time_remaining
    expected_final_margin = current_margin + expected_drift
    std = config.score_std_per_minute * math.sqrt(time_remaining)

    if std <= DECIDED_STD_EPSILON:
        if current_margin > 0:
            return OutcomeProbabilities(DECIDED_LEADER_PROB, 0.0, 1.0 - DECIDED_LEADER_PROB)
        if current_margin < 0:
            return OutcomeProbabilities(1.0 - DECIDED_LEADER_PROB, 0.0, DECIDED_LEADER_PROB)
        return OutcomeProbabilities(0.5, 0.0, 0.5)

    home_win = normal_cdf(expected_final_margin / std)
    home_win = max(MARGIN_PROB_FLOOR, min(MARGIN_PROB_CEILING, home_win))
    return OutcomeProbabilities(home_win=home_win, draw=0.0, away_win=1.0 - home_win)


# ---------------------------------------------------------------------------
# Dispatch and pricing
# ---------------------------------------------------------------------------

_MODELS: Final[Dict[ModelFamily, Callable[..., OutcomeProbabilities]]] = {
    ModelFamily.POISSON: poisson_live_probabilities,
    ModelFamily.MARGIN: margin_live_probabilities,
}


def live_probabilities(
    home_score: int,
    away_score: int,
    elapsed: float,
    config: SportModelConfig,
) -> OutcomeProbabilities:
    """Run the model family configured for the sport."""
    model = _MODELS[config.model_family]
    return model(home_score, away_score, elapsed, config)


def price_outcomes(probs: OutcomeProbabilities, config: SportModelConfig) -> LiveOdds:
    """Apply the sport's live margin to each outcome independently."""
    margin = config.live_margin
    return LiveOdds(
        home=odds_from_probability(probs.home_win, margin),
        away=odds_from_probability(probs.away_win, margin),
        draw=odds_from_probability(probs.draw, margin) if config.has_draws else None,
    )
