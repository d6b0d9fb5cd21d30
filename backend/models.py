"""
Database models for the live odds engine
SQLAlchemy ORM with PostgreSQL

The engine reads live events and reads/writes their moneyline market and
selections.  Everything else about events (ingestion, settlement, bets) is
owned by other services sharing this schema.
"""

import enum
import os
import uuid
from datetime import datetime

from dotenv import load_dotenv
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql://postgres@127.0.0.1:5432/live_odds")

# pool_pre_ping keeps long-lived scheduler connections healthy
engine = create_engine(DATABASE_URL, pool_pre_ping=True, echo=False)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Status vocabularies
# ---------------------------------------------------------------------------

class EventStatus(str, enum.Enum):
    UPCOMING = "UPCOMING"
    LIVE = "LIVE"
    ENDED = "ENDED"
    CANCELLED = "CANCELLED"
    POSTPONED = "POSTPONED"


class MarketType(str, enum.Enum):
    MONEYLINE = "MONEYLINE"
    SPREAD = "SPREAD"
    TOTAL = "TOTAL"
    PROP = "PROP"
    OUTRIGHT = "OUTRIGHT"


class MarketStatus(str, enum.Enum):
    OPEN = "OPEN"
    SUSPENDED = "SUSPENDED"
    SETTLED = "SETTLED"
    CANCELLED = "CANCELLED"
    VOIDED = "VOIDED"


class SelectionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    WON = "WON"
    LOST = "LOST"
    VOID = "VOID"
    PUSH = "PUSH"


class SelectionResult(str, enum.Enum):
    WIN = "WIN"
    LOSE = "LOSE"
    VOID = "VOID"
    PUSH = "PUSH"
    HALF_WIN = "HALF_WIN"
    HALF_LOSE = "HALF_LOSE"


class Outcome(str, enum.Enum):
    """Moneyline outcome tag stored on each selection."""

    HOME = "HOME"
    AWAY = "AWAY"
    DRAW = "DRAW"


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

class Sport(Base):
    """Sport catalogue entry; ``slug`` keys the live model registry"""

    __tablename__ = "sports"

    id = Column(String(36), primary_key=True, default=_new_id)
    slug = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)

    competitions = relationship("Competition", back_populates="sport")


class Competition(Base):
    """League or tournament"""

    __tablename__ = "competitions"

    id = Column(String(36), primary_key=True, default=_new_id)
    sport_id = Column(String(36), ForeignKey("sports.id"), nullable=False, index=True)
    name = Column(String, nullable=False)

    sport = relationship("Sport", back_populates="competitions")
    events = relationship("Event", back_populates="competition")


class Event(Base):
    """A fixture; scores and metadata are written by the feed adapters"""

    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=_new_id)
    competition_id = Column(String(36), ForeignKey("competitions.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    home_team = Column(String)
    away_team = Column(String)
    start_time = Column(DateTime, default=datetime.utcnow)
    status = Column(Enum(EventStatus, name="event_status"), nullable=False,
                    default=EventStatus.UPCOMING, index=True)

    # {"home": int, "away": int}
    scores = Column(JSON)
    # Provider-shaped clock info: elapsed, statusShort, timer{tm, ts, ta, q}
    event_metadata = Column("metadata", JSON)
    is_live = Column(Boolean, nullable=False, default=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    competition = relationship("Competition", back_populates="events")
    markets = relationship("Market", back_populates="event")


class Market(Base):
    """A betting market on an event"""

    __tablename__ = "markets"

    id = Column(String(36), primary_key=True, default=_new_id)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    market_key = Column(String, nullable=False)
    type = Column(Enum(MarketType, name="market_type"), nullable=False)
    period = Column(String, nullable=False, default="FT")
    status = Column(Enum(MarketStatus, name="market_status"), nullable=False,
                    default=MarketStatus.OPEN)
    sort_order = Column(Integer, nullable=False, default=0)

    event = relationship("Event", back_populates="markets")
    selections = relationship(
        "Selection",
        back_populates="market",
        order_by="Selection.name",
        cascade="all, delete-orphan",
    )


class Selection(Base):
    """One priced outcome of a market"""

    __tablename__ = "selections"

    id = Column(String(36), primary_key=True, default=_new_id)
    market_id = Column(String(36), ForeignKey("markets.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    outcome = Column(String, nullable=False)  # "HOME" | "AWAY" | "DRAW" on moneylines
    odds = Column(Float, nullable=False)      # decimal odds > 1.0
    status = Column(Enum(SelectionStatus, name="selection_status"), nullable=False,
                    default=SelectionStatus.ACTIVE)
    result = Column(Enum(SelectionResult, name="selection_result"))

    market = relationship("Market", back_populates="selections")


# Create all tables
def init_db():
    """Initialize database tables"""
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    init_db()
