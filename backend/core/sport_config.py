"""Sport-level model configuration - all sport-specific constants in one place.

This module is the **registry** for every live-pricing constant that differs
between sports.  Nowhere else in the codebase should match durations,
baseline scoring rates, or live margins be hard-coded.

Architecture
------------
:class:`SportModelConfig` is a frozen dataclass carrying all per-sport
constants.  Named constructors (:meth:`SportModelConfig.football`,
:meth:`SportModelConfig.basketball`, ...) return pre-populated instances and
:data:`SPORT_MODELS` maps each sport slug to its instance.  To add a new sport:

1. Add a ``@classmethod`` constructor here.
2. Register it in :func:`_build_registry`.
3. If its feed reports a period code, add a table to
   :mod:`backend.core.elapsed_time`.

The registry is built once at import and exposed read-only, so concurrent
readers need no synchronisation.

Typical usage::

    from backend.core.sport_config import get_sport_model

    cfg = get_sport_model("football")
    if cfg is None:
        ...  # sport not priced live

    # Override a single constant for an A/B test:
    from dataclasses import replace
    wider = replace(cfg, live_margin=1.08)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Final, Mapping, Optional


#: Sport identifier strings used in event records and feed adapters.
SPORT_ID_FOOTBALL: Final[str] = "football"
SPORT_ID_ICE_HOCKEY: Final[str] = "ice-hockey"
SPORT_ID_HANDBALL: Final[str] = "handball"
SPORT_ID_RUGBY: Final[str] = "rugby"
SPORT_ID_BASKETBALL: Final[str] = "basketball"
SPORT_ID_AMERICAN_FOOTBALL: Final[str] = "american-football"
SPORT_ID_VOLLEYBALL: Final[str] = "volleyball"
SPORT_ID_BASEBALL: Final[str] = "baseball"
SPORT_ID_ESOCCER_SHORT: Final[str] = "esoccer-short"
SPORT_ID_ESOCCER_MEDIUM: Final[str] = "esoccer-medium"
SPORT_ID_ESOCCER_LONG: Final[str] = "esoccer-long"
SPORT_ID_EBASKETBALL: Final[str] = "ebasketball"

#: Standard house edge for live prices on real-world sports (6 %).
DEFAULT_LIVE_MARGIN: Final[float] = 1.06

#: Virtual sports are priced with a wider edge (8 %).
VIRTUAL_LIVE_MARGIN: Final[float] = 1.08


class ModelFamily(str, Enum):
    """Which live probability model prices a sport."""

    POISSON = "poisson"   # independent goal counts, draws possible
    MARGIN = "margin"     # Gaussian final point differential, no draws


@dataclass(frozen=True)
class SportModelConfig:
    """Immutable live-pricing configuration for a single sport.

    Attributes:
        sport_id: Sport slug (``"football"``, ``"basketball"``, ...) as stored
            on the event's sport record.
        sport_name: Human-readable name for logging.
        total_time_minutes: Full match duration in minutes of play,
            including typical stoppage time for football.
        has_draws: True when a drawn result settles the moneyline market as
            a draw; such sports get a third ("Draw") selection.
        avg_rate_home: Expected home scoring units over a full match
            (goals, points, sets or runs depending on the sport).
        avg_rate_away: Expected away scoring units over a full match.
        model_family: :class:`ModelFamily` used to price the sport.
        live_margin: Multiplicative overround applied to each outcome's fair
            price.  ``1.06`` means a 6 % house edge.
        score_std_per_minute: Standard deviation of the score differential
            accumulated per minute of play.  Only read by the margin model;
            zero for Poisson sports.
        is_virtual: True for short-format simulated sports, whose feeds
            often report elapsed time as a string or not at all.
    """

    sport_id: str
    sport_name: str
    total_time_minutes: float
    has_draws: bool
    avg_rate_home: float
    avg_rate_away: float
    model_family: ModelFamily
    live_margin: float = DEFAULT_LIVE_MARGIN
    score_std_per_minute: float = 0.0
    is_virtual: bool = False

    def __post_init__(self) -> None:
        if self.total_time_minutes <= 0:
            raise ValueError(
                f"{self.sport_id}: total_time_minutes must be > 0, "
                f"got {self.total_time_minutes!r}"
            )
        if self.live_margin < 1.0:
            raise ValueError(
                f"{self.sport_id}: live_margin must be >= 1.0, got {self.live_margin!r}"
            )
        if self.model_family is ModelFamily.MARGIN and self.score_std_per_minute <= 0:
            raise ValueError(
                f"{self.sport_id}: margin-model sports need a positive "
                "score_std_per_minute"
            )

    # ------------------------------------------------------------------ #
    #  Named constructors - sports with draws (Poisson)                    #
    # ------------------------------------------------------------------ #

    @classmethod
    def football(cls) -> SportModelConfig:
        """Association football: 90 minutes plus ~5 minutes of stoppage."""
        return cls(
            sport_id=SPORT_ID_FOOTBALL,
            sport_name="Football",
            total_time_minutes=95,
            has_draws=True,
            avg_rate_home=1.37,
            avg_rate_away=1.13,
            model_family=ModelFamily.POISSON,
        )

    @classmethod
    def ice_hockey(cls) -> SportModelConfig:
        return cls(
            sport_id=SPORT_ID_ICE_HOCKEY,
            sport_name="Ice Hockey",
            total_time_minutes=60,
            has_draws=True,
            avg_rate_home=2.9,
            avg_rate_away=2.6,
            model_family=ModelFamily.POISSON,
        )

    @classmethod
    def handball(cls) -> SportModelConfig:
        return cls(
            sport_id=SPORT_ID_HANDBALL,
            sport_name="Handball",
            total_time_minutes=60,
            has_draws=True,
            avg_rate_home=27,
            avg_rate_away=25,
            model_family=ModelFamily.POISSON,
        )

    @classmethod
    def rugby(cls) -> SportModelConfig:
        return cls(
            sport_id=SPORT_ID_RUGBY,
            sport_name="Rugby",
            total_time_minutes=80,
            has_draws=True,
            avg_rate_home=22,
            avg_rate_away=20,
            model_family=ModelFamily.POISSON,
        )

    # ------------------------------------------------------------------ #
    #  Named constructors - sports without draws (score margin)            #
    # ------------------------------------------------------------------ #

    @classmethod
    def basketball(cls) -> SportModelConfig:
        """Four 12-minute quarters; ~1.8 points of margin SD per minute."""
        return cls(
            sport_id=SPORT_ID_BASKETBALL,
            sport_name="Basketball",
            total_time_minutes=48,
            has_draws=False,
            avg_rate_home=110,
            avg_rate_away=105,
            model_family=ModelFamily.MARGIN,
            score_std_per_minute=1.8,
        )

    @classmethod
    def american_football(cls) -> SportModelConfig:
        return cls(
            sport_id=SPORT_ID_AMERICAN_FOOTBALL,
            sport_name="American Football",
            total_time_minutes=60,
            has_draws=False,
            avg_rate_home=24,
            avg_rate_away=21,
            model_family=ModelFamily.MARGIN,
            score_std_per_minute=0.7,
        )

    @classmethod
    def volleyball(cls) -> SportModelConfig:
        """Scored in sets, so the rates and SD are per set, not per point."""
        return cls(
            sport_id=SPORT_ID_VOLLEYBALL,
            sport_name="Volleyball",
            total_time_minutes=100,
            has_draws=False,
            avg_rate_home=2.6,
            avg_rate_away=2.4,
            model_family=ModelFamily.MARGIN,
            score_std_per_minute=0.08,
        )

    @classmethod
    def baseball(cls) -> SportModelConfig:
        return cls(
            sport_id=SPORT_ID_BASEBALL,
            sport_name="Baseball",
            total_time_minutes=54,
            has_draws=False,
            avg_rate_home=4.5,
            avg_rate_away=4.0,
            model_family=ModelFamily.MARGIN,
            score_std_per_minute=0.4,
        )

    # ------------------------------------------------------------------ #
    #  Named constructors - virtual sports                                 #
    # ------------------------------------------------------------------ #

    @classmethod
    def esoccer(cls, sport_id: str, total_time_minutes: float,
                avg_rate_home: float, avg_rate_away: float) -> SportModelConfig:
        """eSoccer variants differ only in match length and scoring rate.

        Durations carry a one- or two-minute buffer over the nominal
        match length (6, 8 and 10-12 minute formats).
        """
        return cls(
            sport_id=sport_id,
            sport_name=f"eSoccer ({sport_id.split('-', 1)[-1]})",
            total_time_minutes=total_time_minutes,
            has_draws=True,
            avg_rate_home=avg_rate_home,
            avg_rate_away=avg_rate_away,
            model_family=ModelFamily.POISSON,
            live_margin=VIRTUAL_LIVE_MARGIN,
            is_virtual=True,
        )

    @classmethod
    def ebasketball(cls) -> SportModelConfig:
        return cls(
            sport_id=SPORT_ID_EBASKETBALL,
            sport_name="eBasketball",
            total_time_minutes=20,
            has_draws=False,
            avg_rate_home=50,
            avg_rate_away=45,
            model_family=ModelFamily.MARGIN,
            live_margin=VIRTUAL_LIVE_MARGIN,
            score_std_per_minute=1.5,
            is_virtual=True,
        )

    # ------------------------------------------------------------------ #
    #  Convenience accessors                                               #
    # ------------------------------------------------------------------ #

    @property
    def home_rate_per_minute(self) -> float:
        return self.avg_rate_home / self.total_time_minutes

    @property
    def away_rate_per_minute(self) -> float:
        return self.avg_rate_away / self.total_time_minutes

    def __repr__(self) -> str:
        return (
            f"SportModelConfig(sport_id={self.sport_id!r}, "
            f"model={self.model_family.value}, "
            f"total={self.total_time_minutes}, "
            f"margin={self.live_margin})"
        )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

def _build_registry() -> Mapping[str, SportModelConfig]:
    configs = [
        SportModelConfig.football(),
        SportModelConfig.ice_hockey(),
        SportModelConfig.handball(),
        SportModelConfig.rugby(),
        SportModelConfig.basketball(),
        SportModelConfig.american_football(),
        SportModelConfig.volleyball(),
        SportModelConfig.baseball(),
        SportModelConfig.esoccer(SPORT_ID_ESOCCER_SHORT, 7, 2.5, 2.0),
        SportModelConfig.esoccer(SPORT_ID_ESOCCER_MEDIUM, 9, 3.0, 2.5),
        SportModelConfig.esoccer(SPORT_ID_ESOCCER_LONG, 14, 4.0, 3.5),
        SportModelConfig.ebasketball(),
    ]
    return MappingProxyType({cfg.sport_id: cfg for cfg in configs})


#: Read-only slug → config mapping.  Built once; never mutated.
SPORT_MODELS: Final[Mapping[str, SportModelConfig]] = _build_registry()


def get_sport_model(sport_slug: Optional[str]) -> Optional[SportModelConfig]:
    """Return the config for ``sport_slug``, or None if it is not priced live."""
    if not sport_slug:
        return None
    return SPORT_MODELS.get(sport_slug)


def supported_sports() -> list[str]:
    """Sorted list of sport slugs the live engine can price."""
    return sorted(SPORT_MODELS)
