"""Shared fixtures: in-memory SQLite session and live event factories."""

import os

# Must be set before anything imports backend.models / backend.auth.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["API_KEY_USER1"] = "test-admin-key"
os.environ["API_KEY_USER2"] = "test-user-key"
os.environ["LIVE_ODDS_SCHEDULER_ENABLED"] = "false"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.models import (
    Base,
    Competition,
    Event,
    EventStatus,
    Market,
    MarketStatus,
    MarketType,
    Selection,
    Sport,
)


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(db_engine):
    Session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def make_live_event(db):
    """Factory for events with their sport and competition rows."""

    def _make(
        sport_slug="football",
        home_team="Arsenal",
        away_team="Chelsea",
        scores=None,
        metadata=None,
        status=EventStatus.LIVE,
        is_live=True,
    ):
        sport = db.query(Sport).filter(Sport.slug == sport_slug).first()
        if sport is None:
            sport = Sport(slug=sport_slug, name=sport_slug.title())
            db.add(sport)
            db.flush()
        competition = Competition(sport_id=sport.id, name=f"{sport_slug} league")
        db.add(competition)
        db.flush()
        event = Event(
            competition_id=competition.id,
            name=f"{home_team} vs {away_team}",
            home_team=home_team,
            away_team=away_team,
            status=status,
            is_live=is_live,
            scores=scores if scores is not None else {"home": 0, "away": 0},
            event_metadata=metadata,
        )
        db.add(event)
        db.commit()
        return event

    return _make


@pytest.fixture
def make_market(db):
    """Factory for a moneyline market with ``(name, outcome, odds, status, result)`` rows."""

    def _make(event, status=MarketStatus.OPEN, selections=()):
        market = Market(
            event_id=event.id,
            name="Match Winner",
            market_key=f"moneyline_{event.id}",
            type=MarketType.MONEYLINE,
            status=status,
            selections=[
                Selection(name=name, outcome=outcome, odds=odds,
                          status=sel_status, result=result)
                for name, outcome, odds, sel_status, result in selections
            ],
        )
        db.add(market)
        db.commit()
        return market

    return _make
