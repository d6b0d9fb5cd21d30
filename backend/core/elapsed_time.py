"""Elapsed-time resolution from provider-shaped live metadata.

Feed adapters store whatever clock information their provider exposes on the
event's ``metadata`` JSON.  The shapes differ by provider and sport:

* API-Sports football fixtures carry ``elapsed`` as an integer minute.
* BetsAPI events carry a ``timer`` dict (``tm`` minutes, ``ts`` seconds,
  ``ta`` added time, ``q`` period number) and a derived ``statusShort``.
* Most other sports only report a period code in ``statusShort``
  (``"Q3"``, ``"P2"``, ``"HT"``).
* Virtual sports often report ``elapsed`` as a string, or nothing at all.

:func:`resolve_elapsed_minutes` tries an ordered chain of extractors and
returns the first answer, clamped to ``[0, total_time_minutes - 1]``.  When
nothing matches it returns None and the caller must skip repricing rather
than guess.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, Final, Mapping, Optional, Tuple

from backend.core.sport_config import SportModelConfig

Metadata = Mapping[str, Any]
Extractor = Callable[[str, Metadata, SportModelConfig], Optional[float]]


# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

#: Representative minute for each period code - hand-tuned period midpoints,
#: not derived from live clocks.
PERIOD_MINUTES: Final[Dict[str, Dict[str, float]]] = {
    "football": {"1H": 25, "HT": 45, "2H": 70, "ET": 95},
    "basketball": {"Q1": 6, "Q2": 18, "HT": 24, "BT": 24, "Q3": 30, "Q4": 42, "OT": 48},
    "ice-hockey": {"P1": 10, "BT": 20, "P2": 30, "P3": 50, "OT": 60},
    "handball": {"1H": 15, "HT": 30, "2H": 45},
    "rugby": {"1H": 20, "HT": 40, "2H": 60},
    "volleyball": {"S1": 15, "S2": 35, "S3": 55, "S4": 75, "S5": 90},
}

#: Sports whose provider timer counts *down* within numbered periods,
#: mapped to the period length in minutes.
COUNTDOWN_PERIOD_MINUTES: Final[Dict[str, float]] = {
    "basketball": 12,
    "ice-hockey": 20,
    "ebasketball": 5,
}

#: Sports whose provider timer counts *up* from kick-off.
CLOCK_UP_SPORTS: Final[frozenset[str]] = frozenset({
    "football",
    "rugby",
    "handball",
    "esoccer-short",
    "esoccer-medium",
    "esoccer-long",
})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _as_number(value: Any) -> Optional[float]:
    """Numeric value of an int/float/numeric string, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def clamp_elapsed(minutes: float, config: SportModelConfig) -> float:
    """Clamp to ``[0, total_time_minutes - 1]`` so some time always remains."""
    return max(0.0, min(float(minutes), config.total_time_minutes - 1))


# ---------------------------------------------------------------------------
# Extractors - tried in order
# ---------------------------------------------------------------------------

def from_elapsed_field(sport_slug: str, metadata: Metadata,
                       config: SportModelConfig) -> Optional[float]:
    """Rule 1: a positive numeric ``elapsed`` minute reported by the feed."""
    elapsed = metadata.get("elapsed")
    if isinstance(elapsed, bool) or not isinstance(elapsed, (int, float)):
        return None
    if not math.isfinite(elapsed) or elapsed <= 0:
        return None
    return float(elapsed)


def from_provider_timer(sport_slug: str, metadata: Metadata,
                        config: SportModelConfig) -> Optional[float]:
    """Rule 2: derive minutes from a BetsAPI-style ``timer`` sub-dict."""
    timer = metadata.get("timer")
    if not isinstance(timer, Mapping):
        return None

    minutes = _as_number(timer.get("tm"))
    if minutes is None:
        return None

    if sport_slug in CLOCK_UP_SPORTS:
        seconds = _as_number(timer.get("ts")) or 0.0
        added = _as_number(timer.get("ta")) or 0.0
        elapsed = minutes + math.floor(seconds / 60) + added
    elif sport_slug in COUNTDOWN_PERIOD_MINUTES:
        period_len = COUNTDOWN_PERIOD_MINUTES[sport_slug]
        period = _as_number(timer.get("q")) or 1.0
        elapsed = (period - 1) * period_len + max(0.0, period_len - minutes)
    else:
        return None

    return elapsed if elapsed > 0 else None


def from_period_code(sport_slug: str, metadata: Metadata,
                     config: SportModelConfig) -> Optional[float]:
    """Rule 3: representative minute for the current ``statusShort`` code."""
    table = PERIOD_MINUTES.get(sport_slug)
    if table is None:
        return None
    code = metadata.get("statusShort") or ""
    return table.get(str(code))


def from_virtual_clock(sport_slug: str, metadata: Metadata,
                       config: SportModelConfig) -> Optional[float]:
    """Rule 4: virtual sports parse a string minute, else assume half-time."""
    if not config.is_virtual:
        return None
    elapsed = metadata.get("elapsed")
    if isinstance(elapsed, str):
        minutes = _as_number(elapsed)
        if minutes is not None and math.floor(minutes) > 0:
            return float(math.floor(minutes))
    return float(math.floor(config.total_time_minutes * 0.5))


#: The fallback chain.  Order matters: exact clocks beat period midpoints,
#: which beat the virtual-sport default.
EXTRACTORS: Final[Tuple[Extractor, ...]] = (
    from_elapsed_field,
    from_provider_timer,
    from_period_code,
    from_virtual_clock,
)


def resolve_elapsed_minutes(
    sport_slug: str,
    metadata: Optional[Metadata],
    config: SportModelConfig,
    extractors: Tuple[Extractor, ...] = EXTRACTORS,
) -> Optional[float]:
    """Minutes of match time played, or None when it cannot be determined.

    Args:
        sport_slug: Sport identifier of the event.
        metadata: Provider metadata bag from the event record.  ``None`` or
            a non-mapping value resolves to None.
        config: Sport configuration, used for clamping and the virtual-sport
            default.
        extractors: Override the fallback chain (tests, new providers).

    Returns:
        Elapsed minutes in ``[0, total_time_minutes - 1]``, or None.
    """
    if not isinstance(metadata, Mapping):
        return None
    for extractor in extractors:
        minutes = extractor(sport_slug, metadata, config)
        if minutes is not None:
            return clamp_elapsed(minutes, config)
    return None
