"""
Data-store access for the live odds engine.

Thin functions over a SQLAlchemy session: reading the live event set and
reading/writing an event's market and selections.  Functions flush but never
commit - the caller owns the transaction so one recalculation commits (or
rolls back) as a unit.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from backend.models import (
    Competition,
    Event,
    EventStatus,
    Market,
    MarketStatus,
    MarketType,
    Selection,
    SelectionStatus,
    Sport,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Live event snapshots
# ---------------------------------------------------------------------------

def _score_value(scores: Optional[Mapping[str, Any]], side: str) -> int:
    """Score for ``side`` from the scores JSON; missing reads as 0."""
    if not scores:
        return 0
    value = scores.get(side)
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValueError(f"invalid {side} score {value!r}")
    score = int(value)
    if score < 0:
        raise ValueError(f"negative {side} score {value!r}")
    return score


@dataclass(frozen=True)
class LiveEventSnapshot:
    """Read-only view of a live event as the engine needs it.

    Scores are parsed lazily so a malformed row only fails its own
    recalculation, not the whole live-set read.
    """

    event_id: str
    sport_slug: Optional[str]
    scores: Optional[Mapping[str, Any]]
    metadata: Optional[Mapping[str, Any]]

    @property
    def home_score(self) -> int:
        return _score_value(self.scores, "home")

    @property
    def away_score(self) -> int:
        return _score_value(self.scores, "away")


def fetch_live_events(db: Session) -> List[LiveEventSnapshot]:
    """All events that are both in LIVE status and flagged live."""
    rows = (
        db.query(Event.id, Event.scores, Event.event_metadata, Sport.slug)
        .join(Competition, Event.competition_id == Competition.id)
        .join(Sport, Competition.sport_id == Sport.id)
        .filter(Event.status == EventStatus.LIVE)
        .filter(Event.is_live.is_(True))
        .all()
    )
    return [
        LiveEventSnapshot(
            event_id=event_id,
            sport_slug=slug,
            scores=scores if isinstance(scores, Mapping) else None,
            metadata=metadata if isinstance(metadata, Mapping) else None,
        )
        for event_id, scores, metadata, slug in rows
    ]


def get_event(db: Session, event_id: str) -> Optional[Event]:
    return db.get(Event, event_id)


def is_event_live(event: Event) -> bool:
    """Same predicate as :func:`fetch_live_events`: LIVE status and the live flag."""
    return event.status == EventStatus.LIVE and bool(event.is_live)


def snapshot_from_event(event: Event) -> LiveEventSnapshot:
    """Snapshot of a loaded event, for ad-hoc single-event recalculation."""
    competition = event.competition
    sport = competition.sport if competition is not None else None
    return LiveEventSnapshot(
        event_id=event.id,
        sport_slug=sport.slug if sport is not None else None,
        scores=event.scores if isinstance(event.scores, Mapping) else None,
        metadata=event.event_metadata if isinstance(event.event_metadata, Mapping) else None,
    )


# ---------------------------------------------------------------------------
# Markets and selections
# ---------------------------------------------------------------------------

def find_market(
    db: Session,
    event_id: str,
    market_type: MarketType = MarketType.MONEYLINE,
) -> Optional[Market]:
    """First market of ``market_type`` on the event, in any status."""
    return (
        db.query(Market)
        .filter(Market.event_id == event_id, Market.type == market_type)
        .order_by(Market.sort_order.asc())
        .first()
    )


def create_market_with_selections(
    db: Session,
    event_id: str,
    name: str,
    market_key: str,
    market_type: MarketType,
    selections: Sequence[Tuple[str, str, float]],
) -> Market:
    """Create an OPEN market with ACTIVE ``(name, outcome, odds)`` selections."""
    market = Market(
        event_id=event_id,
        name=name,
        market_key=market_key,
        type=market_type,
        status=MarketStatus.OPEN,
        selections=[
            Selection(name=sel_name, outcome=outcome, odds=odds,
                      status=SelectionStatus.ACTIVE)
            for sel_name, outcome, odds in selections
        ],
    )
    db.add(market)
    db.flush()
    logger.info(
        "Created %s market %s for event %s (%d selections)",
        market_type.value, market.id, event_id, len(selections),
    )
    return market


def update_market_status(db: Session, market: Market, status: MarketStatus) -> None:
    market.status = status
    db.flush()


def reset_inactive_selections(db: Session, market: Market) -> int:
    """Set every non-ACTIVE selection back to ACTIVE with its result cleared.

    Returns the number of selections reset.  The market's selections are
    reloaded from the database on next access.
    """
    count = (
        db.query(Selection)
        .filter(Selection.market_id == market.id)
        .filter(Selection.status != SelectionStatus.ACTIVE)
        .update(
            {Selection.status: SelectionStatus.ACTIVE, Selection.result: None},
            synchronize_session="fetch",
        )
    )
    db.flush()
    db.refresh(market)
    return count


def update_selection_odds(db: Session, selection: Selection, odds: float) -> None:
    selection.odds = odds
    db.flush()
