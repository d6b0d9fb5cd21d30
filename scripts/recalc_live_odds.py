#!/usr/bin/env python3
"""
One-shot live odds recalculation.

    python scripts/recalc_live_odds.py               # every live event
    python scripts/recalc_live_odds.py --event <id>  # a single event
    python scripts/recalc_live_odds.py --sports      # list priced sports

Useful when the API process (and its scheduler) is down.

Exit codes for --event: 0 repriced, 1 not found, 2 skipped, 3 not live,
4 malformed scores.
"""

import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dotenv import load_dotenv
load_dotenv()

import argparse
import logging

from backend.core.sport_config import SPORT_MODELS
from backend.models import SessionLocal
from backend.services.live_odds import recalculate_all_live_odds, recalculate_live_odds
from backend.services.market_store import get_event, is_event_live, snapshot_from_event

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def list_sports() -> None:
    for slug, cfg in sorted(SPORT_MODELS.items()):
        print(
            f"{slug:<20} {cfg.model_family.value:<8} "
            f"{cfg.total_time_minutes:>5.0f} min  draws={'yes' if cfg.has_draws else 'no':<3} "
            f"margin={cfg.live_margin:.2f}"
        )


def recalc_event(event_id: str, db=None) -> int:
    """Reprice one event; returns the process exit code."""
    owns_session = db is None
    if owns_session:
        db = SessionLocal()
    try:
        event = get_event(db, event_id)
        if event is None:
            logger.error("Event %s not found", event_id)
            return 1
        if not is_event_live(event):
            logger.error("Event %s is %s, only live events are repriced",
                         event_id, event.status.value)
            return 3
        snap = snapshot_from_event(event)
        try:
            home_score, away_score = snap.home_score, snap.away_score
        except (TypeError, ValueError) as e:
            logger.error("Event %s has malformed scores: %s", event_id, e)
            return 4
        result = recalculate_live_odds(
            snap.event_id, home_score, away_score,
            snap.sport_slug, snap.metadata, db=db,
        )
        if result.updated:
            logger.info("Event %s repriced: %s", event_id, result.new_odds)
            return 0
        logger.warning("Event %s not updated (%s)", event_id, result.skip_reason)
        return 2
    finally:
        if owns_session:
            db.close()


def main() -> int:
    parser = argparse.ArgumentParser(description="Recalculate live moneyline odds")
    parser.add_argument("--event", help="Recalculate a single event by id")
    parser.add_argument("--sports", action="store_true", help="List priced sports and exit")
    args = parser.parse_args()

    if args.sports:
        list_sports()
        return 0
    if args.event:
        return recalc_event(args.event)

    updated = recalculate_all_live_odds()
    logger.info("%d live events updated", updated)
    return 0


if __name__ == "__main__":
    sys.exit(main())
