"""
Live in-play odds recalculation.

Recomputes moneyline prices for live events from the current score and
elapsed time, then writes them into each event's "Match Winner" market.

Pipeline (per event):
    1. Look up the sport's model config        - skip if the sport is unpriced.
    2. Resolve elapsed minutes from metadata   - skip if the clock is unknown.
    3. Poisson or margin model → probabilities → margin-adjusted odds.
    4. Under the event's lock, reconcile the market:
         event missing        → skip
         event no longer live → skip, settled markets stay settled
         no market            → create it with freshly priced selections
         market not OPEN      → reopen, reset selections to ACTIVE, re-read
         < 2 ACTIVE selections → skip, nothing written
         otherwise            → write odds to each ACTIVE selection
    5. Commit once.

Entry points:
    recalculate_live_odds()      - one event; called by feed adapters on a
                                   score change or when an event goes live
    recalculate_all_live_odds()  - every live event; called by the scheduler

Neither raises.  Failures are logged with the event id and reported as
``updated=False``.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.orm import Session

from backend.core.elapsed_time import resolve_elapsed_minutes
from backend.core.live_models import LiveOdds, live_probabilities, price_outcomes
from backend.core.odds_math import book_overround
from backend.core.sport_config import get_sport_model
from backend.models import MarketStatus, MarketType, Outcome, SelectionStatus, SessionLocal
from backend.services.event_locks import locks_for_session
from backend.services.market_store import (
    create_market_with_selections,
    fetch_live_events,
    find_market,
    get_event,
    is_event_live,
    reset_inactive_selections,
    update_market_status,
    update_selection_odds,
)

logger = logging.getLogger(__name__)

MONEYLINE_MARKET_NAME = "Match Winner"
DRAW_SELECTION_NAME = "Draw"

# Skip reasons reported on RecalcResult
SKIP_NO_MODEL = "no_model"
SKIP_ELAPSED_UNRESOLVED = "elapsed_unresolved"
SKIP_EVENT_NOT_FOUND = "event_not_found"
SKIP_NOT_LIVE = "not_live"
SKIP_INSUFFICIENT_SELECTIONS = "insufficient_selections"
SKIP_LOCK_TIMEOUT = "lock_timeout"
SKIP_ERROR = "error"

# Market synchronisation outcomes
SYNC_UPDATED = "updated"
SYNC_EVENT_NOT_FOUND = SKIP_EVENT_NOT_FOUND
SYNC_NOT_LIVE = SKIP_NOT_LIVE
SYNC_INSUFFICIENT_SELECTIONS = SKIP_INSUFFICIENT_SELECTIONS


@dataclass
class RecalcResult:
    """Outcome of one event's recalculation; ``updated`` is the success signal."""

    updated: bool
    new_odds: Optional[Dict[str, float]] = None
    skip_reason: Optional[str] = None


# ---------------------------------------------------------------------------
# Market synchroniser
# ---------------------------------------------------------------------------

def moneyline_market_key(event_id: str) -> str:
    return f"moneyline_{event_id}"


def sync_moneyline_market(db: Session, event_id: str, odds: LiveOdds) -> str:
    """
    Reconcile the event's moneyline market with freshly computed odds.

    Returns one of SYNC_UPDATED, SYNC_EVENT_NOT_FOUND, SYNC_NOT_LIVE,
    SYNC_INSUFFICIENT_SELECTIONS.  Writes are flushed, not committed.
    """
    event = get_event(db, event_id)
    if event is None:
        logger.warning("Live odds: event %s not found, cannot sync market", event_id)
        return SYNC_EVENT_NOT_FOUND

    # Settled markets on finished events are final; never reopen or create.
    if not is_event_live(event):
        logger.info(
            "Live odds: event %s is %s (is_live=%s), not repricing",
            event_id, event.status.value, event.is_live,
        )
        return SYNC_NOT_LIVE

    market = find_market(db, event_id, MarketType.MONEYLINE)

    # A live event's market should never be settled yet; a premature
    # settlement is recovered by reopening it.
    if market is not None and market.status != MarketStatus.OPEN:
        logger.warning(
            "Moneyline market %s on live event %s was %s - reopening",
            market.id, event_id, market.status.value,
        )
        update_market_status(db, market, MarketStatus.OPEN)
        reset = reset_inactive_selections(db, market)
        logger.info("Reset %d selections to ACTIVE on market %s", reset, market.id)

    if market is None:
        selections = [
            (event.home_team or "Home", Outcome.HOME.value, odds.home),
            (event.away_team or "Away", Outcome.AWAY.value, odds.away),
        ]
        if odds.draw is not None:
            selections.append((DRAW_SELECTION_NAME, Outcome.DRAW.value, odds.draw))

        market = create_market_with_selections(
            db,
            event_id=event_id,
            name=MONEYLINE_MARKET_NAME,
            market_key=moneyline_market_key(event_id),
            market_type=MarketType.MONEYLINE,
            selections=selections,
        )

    active = [s for s in market.selections if s.status == SelectionStatus.ACTIVE]
    if len(active) < 2:
        logger.info(
            "Market %s has %d active selections - not repricing", market.id, len(active),
        )
        return SYNC_INSUFFICIENT_SELECTIONS

    odds_by_outcome = {Outcome.HOME.value: odds.home, Outcome.AWAY.value: odds.away}
    if odds.draw is not None:
        odds_by_outcome[Outcome.DRAW.value] = odds.draw

    for selection in active:
        new_odds = odds_by_outcome.get(selection.outcome)
        if new_odds is None:
            continue
        update_selection_odds(db, selection, new_odds)

    return SYNC_UPDATED


# ---------------------------------------------------------------------------
# Single event
# ---------------------------------------------------------------------------

def recalculate_live_odds(
    event_id: str,
    home_score: int,
    away_score: int,
    sport_slug: Optional[str],
    metadata: Optional[Mapping[str, Any]] = None,
    *,
    db: Optional[Session] = None,
    locks=None,
) -> RecalcResult:
    """
    Recalculate and persist moneyline odds for one live event.

    Args:
        event_id:    Event primary key.
        home_score:  Current home score (non-negative).
        away_score:  Current away score (non-negative).
        sport_slug:  Sport slug keying the model registry.
        metadata:    Provider metadata bag carrying the match clock.
        db:          Session to use; a new one is opened (and closed) if omitted.
        locks:       Per-event lock capability (``hold(event_id)``).  Defaults
                     to advisory locks on PostgreSQL, the in-process
                     registry elsewhere.

    Returns:
        RecalcResult.  ``updated`` is True only when odds were committed.
    """
    config = get_sport_model(sport_slug)
    if config is None:
        logger.debug("Live odds: no model for sport %r (event %s)", sport_slug, event_id)
        return RecalcResult(updated=False, skip_reason=SKIP_NO_MODEL)

    owns_session = db is None
    if owns_session:
        db = SessionLocal()

    try:
        if home_score < 0 or away_score < 0:
            raise ValueError(f"negative score {home_score}-{away_score}")

        elapsed = resolve_elapsed_minutes(sport_slug, metadata, config)
        if elapsed is None:
            logger.debug(
                "Live odds: elapsed time unresolved for event %s (%s)", event_id, sport_slug,
            )
            return RecalcResult(updated=False, skip_reason=SKIP_ELAPSED_UNRESOLVED)

        probs = live_probabilities(home_score, away_score, elapsed, config)
        odds = price_outcomes(probs, config)

        if locks is None:
            locks = locks_for_session(db)

        with locks.hold(event_id) as acquired:
            if not acquired:
                return RecalcResult(updated=False, skip_reason=SKIP_LOCK_TIMEOUT)

            outcome = sync_moneyline_market(db, event_id, odds)
            if outcome != SYNC_UPDATED:
                db.rollback()
                return RecalcResult(updated=False, skip_reason=outcome)
            db.commit()

        new_odds = odds.as_dict()
        logger.info(
            "Odds recalculated: event=%s sport=%s score=%d-%d elapsed=%.1f "
            "probs=%s odds=%s overround=%.3f",
            event_id[:12], sport_slug, home_score, away_score, elapsed,
            probs.as_percentages(), new_odds, book_overround(new_odds.values()),
        )
        return RecalcResult(updated=True, new_odds=new_odds)

    except Exception as exc:
        logger.error("Odds recalc failed for event %s: %s", event_id, exc, exc_info=True)
        try:
            db.rollback()
        except Exception as rollback_exc:
            logger.error("Rollback failed for event %s: %s", event_id, rollback_exc)
        return RecalcResult(updated=False, skip_reason=SKIP_ERROR)

    finally:
        if owns_session:
            db.close()


# ---------------------------------------------------------------------------
# Batch: all live events
# ---------------------------------------------------------------------------

def recalculate_all_live_odds(*, db: Optional[Session] = None, locks=None) -> int:
    """
    Recalculate odds for every event in LIVE status with the live flag set.

    Called by the scheduler.  One event's failure never aborts the batch.

    Returns:
        Number of events whose odds were updated.
    """
    owns_session = db is None
    if owns_session:
        db = SessionLocal()

    updated = 0
    skipped: Counter = Counter()
    try:
        try:
            live_events = fetch_live_events(db)
        except Exception as exc:
            logger.error("Batch odds recalculation failed reading live events: %s",
                         exc, exc_info=True)
            db.rollback()
            return 0

        logger.info("Recalculating odds for %d live events", len(live_events))

        for snapshot in live_events:
            try:
                result = recalculate_live_odds(
                    snapshot.event_id,
                    snapshot.home_score,
                    snapshot.away_score,
                    snapshot.sport_slug,
                    snapshot.metadata,
                    db=db,
                    locks=locks,
                )
            except Exception as exc:
                logger.error(
                    "Live odds recalculation failed for event %s: %s",
                    snapshot.event_id, exc, exc_info=True,
                )
                skipped[SKIP_ERROR] += 1
                continue

            if result.updated:
                updated += 1
            else:
                skipped[result.skip_reason or SKIP_ERROR] += 1

        logger.info(
            "Live odds recalculation complete: %d/%d updated, skipped=%s",
            updated, len(live_events), dict(skipped),
        )
        return updated

    finally:
        if owns_session:
            db.close()
