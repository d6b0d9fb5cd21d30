"""
Tests for the live odds admin API
Run with: pytest tests/test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient

from backend.main import app
from backend.models import (
    EventStatus,
    Market,
    MarketStatus,
    SelectionResult,
    SelectionStatus,
    get_db,
)

ADMIN = {"X-API-Key": "test-admin-key"}
USER = {"X-API-Key": "test-user-key"}


@pytest.fixture
def client(db):
    # No context manager: the lifespan (and its scheduler) is not started
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestAuth:

    def test_missing_key(self, client):
        assert client.get("/api/live-odds/sports").status_code == 401

    def test_unknown_key(self, client):
        resp = client.get("/api/live-odds/sports", headers={"X-API-Key": "nope"})
        assert resp.status_code == 401

    def test_admin_routes_reject_plain_users(self, client):
        assert client.post("/admin/live-odds/recalculate", headers=USER).status_code == 403
        assert client.get("/admin/live-odds/scheduler", headers=USER).status_code == 403


class TestPublic:

    def test_root(self, client):
        body = client.get("/").json()
        assert body["status"] == "operational"

    def test_sports_listing(self, client):
        body = client.get("/api/live-odds/sports", headers=USER).json()
        assert body["count"] == 12
        football = next(s for s in body["sports"] if s["sport_id"] == "football")
        assert football["model_family"] == "poisson"
        assert football["has_draws"] is True


class TestRecalculation:

    def test_batch_trigger(self, client, db, make_live_event):
        make_live_event(scores={"home": 1, "away": 0}, metadata={"elapsed": 70})
        make_live_event(sport_slug="basketball", scores={"home": 40, "away": 38},
                        metadata={"statusShort": "Q2"})
        make_live_event(metadata={"elapsed": 70}, is_live=False)

        resp = client.post("/admin/live-odds/recalculate", headers=ADMIN)

        assert resp.status_code == 200
        assert resp.json() == {"events_updated": 2}

    def test_single_event(self, client, db, make_live_event):
        event = make_live_event(scores={"home": 2, "away": 1}, metadata={"elapsed": 60})

        resp = client.post(f"/admin/live-odds/events/{event.id}/recalculate", headers=ADMIN)

        assert resp.status_code == 200
        body = resp.json()
        assert body["event_id"] == event.id
        assert body["updated"] is True
        assert set(body["new_odds"]) == {"home", "away", "draw"}
        assert body["new_odds"]["home"] < body["new_odds"]["away"]
        assert db.query(Market).filter(Market.event_id == event.id).count() == 1

    def test_single_event_skip_reason(self, client, make_live_event):
        event = make_live_event(metadata={"statusShort": "LIVE"})
        body = client.post(
            f"/admin/live-odds/events/{event.id}/recalculate", headers=ADMIN,
        ).json()
        assert body["updated"] is False
        assert body["new_odds"] is None
        assert body["skip_reason"] == "elapsed_unresolved"

    def test_ended_event_with_settled_market_is_refused(
        self, client, db, make_live_event, make_market,
    ):
        event = make_live_event(status=EventStatus.ENDED, is_live=False,
                                scores={"home": 3, "away": 0}, metadata={"elapsed": 90})
        market = make_market(event, status=MarketStatus.SETTLED, selections=[
            ("Arsenal", "HOME", 2.5, SelectionStatus.WON, SelectionResult.WIN),
            ("Chelsea", "AWAY", 2.8, SelectionStatus.LOST, SelectionResult.LOSE),
            ("Draw", "DRAW", 3.2, SelectionStatus.LOST, SelectionResult.LOSE),
        ])

        resp = client.post(f"/admin/live-odds/events/{event.id}/recalculate", headers=ADMIN)

        assert resp.status_code == 409
        db.expire_all()
        market = db.get(Market, market.id)
        assert market.status == MarketStatus.SETTLED
        assert [s.status for s in market.selections] == [
            SelectionStatus.WON, SelectionStatus.LOST, SelectionStatus.LOST,
        ]
        assert all(s.result is not None for s in market.selections)

    def test_unknown_event(self, client):
        resp = client.post("/admin/live-odds/events/missing/recalculate", headers=ADMIN)
        assert resp.status_code == 404

    def test_malformed_scores(self, client, make_live_event):
        event = make_live_event(scores={"home": -2, "away": 0}, metadata={"elapsed": 10})
        resp = client.post(f"/admin/live-odds/events/{event.id}/recalculate", headers=ADMIN)
        assert resp.status_code == 422


def test_scheduler_status_when_disabled(client):
    body = client.get("/admin/live-odds/scheduler", headers=ADMIN).json()
    assert body == {"running": False, "jobs": {}}
