"""Tests for the one-shot recalculation script."""

from backend.models import EventStatus, Market, MarketStatus, SelectionResult, SelectionStatus
from scripts.recalc_live_odds import recalc_event


class TestRecalcEvent:

    def test_live_event_repriced(self, db, make_live_event):
        event = make_live_event(scores={"home": 1, "away": 0}, metadata={"elapsed": 70})
        assert recalc_event(event.id, db=db) == 0
        assert db.query(Market).filter(Market.event_id == event.id).count() == 1

    def test_unknown_event(self, db):
        assert recalc_event("missing", db=db) == 1

    def test_skipped_event(self, db, make_live_event):
        event = make_live_event(metadata={"statusShort": "LIVE"})
        assert recalc_event(event.id, db=db) == 2

    def test_malformed_scores_exit_non_zero(self, db, make_live_event):
        event = make_live_event(scores={"home": "abc", "away": 1}, metadata={"elapsed": 30})
        assert recalc_event(event.id, db=db) == 4
        assert db.query(Market).count() == 0

    def test_ended_event_keeps_settled_market(self, db, make_live_event, make_market):
        event = make_live_event(status=EventStatus.ENDED, is_live=False,
                                metadata={"elapsed": 90})
        market = make_market(event, status=MarketStatus.SETTLED, selections=[
            ("Arsenal", "HOME", 2.5, SelectionStatus.WON, SelectionResult.WIN),
            ("Chelsea", "AWAY", 2.8, SelectionStatus.LOST, SelectionResult.LOSE),
        ])

        assert recalc_event(event.id, db=db) == 3

        db.expire_all()
        market = db.get(Market, market.id)
        assert market.status == MarketStatus.SETTLED
        assert [s.result for s in market.selections] == [
            SelectionResult.WIN, SelectionResult.LOSE,
        ]
