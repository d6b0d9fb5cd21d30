"""Fundamental odds mathematics - the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services or models.

The pillars exposed are:

1. **Normal CDF** - Abramowitz–Stegun rational ``erf`` approximation.
2. **Odds conversion** - fair probability + house margin → clamped decimal
   price, and the book overround of a set of decimal prices.

Design decisions
----------------
* Live prices use *margin-on-probability*: each outcome is priced
  independently as ``margin / p``.  The margin is not distributed
  proportionally across outcomes, so every selection carries the full
  house edge on its own.
* Prices are clamped to ``[1.02, 31.00]``.  Near-certain outcomes are
  floored at 1.02 and long shots capped at 31.00 so a mis-modelled late
  swing cannot expose the book to unbounded liability.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

import math
from typing import Final, Iterable

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: Lowest decimal price ever offered live.
ODDS_FLOOR: Final[float] = 1.02

#: Highest decimal price ever offered live.
ODDS_CEILING: Final[float] = 31.00

#: Probabilities at or below this are priced at the ceiling outright.
LONGSHOT_PROB: Final[float] = 0.01

#: Probabilities at or above this are priced at the floor outright.
CERTAINTY_PROB: Final[float] = 0.98

# Abramowitz & Stegun 7.1.26 coefficients (|error| <= 1.5e-7).
_AS_P: Final[float] = 0.3275911
_AS_A1: Final[float] = 0.254829592
_AS_A2: Final[float] = -0.284496736
_AS_A3: Final[float] = 1.421413741
_AS_A4: Final[float] = -1.453152027
_AS_A5: Final[float] = 1.061405429


# ---------------------------------------------------------------------------
# Normal distribution
# ---------------------------------------------------------------------------


def erf_approx(x: float) -> float:
    """Error function via the Abramowitz–Stegun 7.1.26 approximation.

    The polynomial in ``t = 1 / (1 + p·|x|)`` is evaluated in Horner form and
    the odd symmetry ``erf(−x) = −erf(x)`` extends it to negative inputs.
    Maximum absolute error is 1.5e-7, far below the 0.01 price tick.

    Examples::

        erf_approx(0.0)  → 0.0   (to within 1e-9)
        erf_approx(1.0)  → 0.8427
        erf_approx(-1.0) → -0.8427
    """
    sign = 1.0 if x >= 0 else -1.0
    x = abs(x)
    t = 1.0 / (1.0 + _AS_P * x)
    poly = ((((_AS_A5 * t + _AS_A4) * t + _AS_A3) * t + _AS_A2) * t + _AS_A1) * t
    return sign * (1.0 - poly * math.exp(-x * x))


def normal_cdf(z: float) -> float:
    """Standard normal CDF Φ(z) built on :func:`erf_approx`."""
    return 0.5 * (1.0 + erf_approx(z / math.sqrt(2.0)))


# ---------------------------------------------------------------------------
# Odds conversion
# ---------------------------------------------------------------------------


def odds_from_probability(prob: float, margin: float) -> float:
    """Convert a fair outcome probability into a margin-adjusted decimal price.

    Args:
        prob: Model probability of the outcome, in ``[0, 1]``.
        margin: Multiplicative house margin (``1.06`` = 6 % edge).  Values
            below 1.0 would price above fair value and are rejected.

    Returns:
        Decimal odds in ``[1.02, 31.00]``, rounded to two decimals.

    Raises:
        ValueError: If ``margin < 1.0``.

    Examples::

        odds_from_probability(0.50, 1.06)  → 2.12
        odds_from_probability(0.005, 1.06) → 31.00  (long shot, capped)
        odds_from_probability(0.99, 1.06)  → 1.02   (near-certain, floored)
    """
    if margin < 1.0:
        raise ValueError(f"margin {margin!r} must be >= 1.0")
    if prob <= LONGSHOT_PROB:
        return ODDS_CEILING
    if prob >= CERTAINTY_PROB:
        return ODDS_FLOOR
    raw = margin / prob
    return round(max(ODDS_FLOOR, min(ODDS_CEILING, raw)), 2)


def book_overround(decimal_odds: Iterable[float]) -> float:
    """Sum of implied probabilities ``Σ 1/odds`` for one market.

    A fair book sums to 1.0; a 6 % margin-on-probability book on a
    two-way market sums to roughly 1.06.  Returns 0.0 for an empty market.
    """
    return sum(1.0 / o for o in decimal_odds if o > 0)
