#!/usr/bin/env python3
"""
Database initialization script
Creates all tables and optionally seeds a demo live event
"""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Load .env file
from dotenv import load_dotenv
load_dotenv()

from backend.models import Base, engine, SessionLocal
from backend.models import Competition, Event, EventStatus, Sport
from backend.core.sport_config import SPORT_MODELS
import logging
from sqlalchemy import text, inspect

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init_database(drop_existing: bool = False):
    """
    Initialize database tables

    Args:
        drop_existing: If True, drops all tables first (DANGER: data loss!)
    """
    logger.info("Initializing live odds database...")

    if drop_existing:
        logger.warning("Dropping all existing tables!")
        response = input("Are you sure? This will delete all data. Type 'yes' to confirm: ")
        if response.lower() != 'yes':
            logger.info("Aborted.")
            return False

        Base.metadata.drop_all(bind=engine)
        logger.info("Existing tables dropped")

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")

    inspector = inspect(engine)
    tables = inspector.get_table_names()
    logger.info("Tables: %s", ", ".join(tables))

    return True


def seed_test_data():
    """Add every priced sport plus one live football match for development"""
    logger.info("Seeding test data...")

    db = SessionLocal()

    try:
        existing = {slug for (slug,) in db.query(Sport.slug).all()}
        for slug, cfg in SPORT_MODELS.items():
            if slug not in existing:
                db.add(Sport(slug=slug, name=cfg.sport_name))
        db.flush()

        football = db.query(Sport).filter(Sport.slug == "football").one()
        league = Competition(sport_id=football.id, name="Demo League")
        db.add(league)
        db.flush()

        db.add(Event(
            competition_id=league.id,
            name="Home FC vs Away United",
            home_team="Home FC",
            away_team="Away United",
            status=EventStatus.LIVE,
            is_live=True,
            scores={"home": 1, "away": 0},
            event_metadata={"elapsed": 70, "statusShort": "2H"},
        ))
        db.commit()

        logger.info("Test data seeded")

    except Exception as e:
        logger.error("Error seeding data: %s", e)
        db.rollback()

    finally:
        db.close()


def check_connection():
    """Test database connection"""
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        db.close()
        logger.info("Database connection successful")
        return True
    except Exception as e:
        logger.error("Database connection failed: %s", e)
        return False


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Initialize live odds database")
    parser.add_argument("--drop", action="store_true", help="Drop existing tables (DANGER!)")
    parser.add_argument("--seed", action="store_true", help="Seed demo data")
    parser.add_argument("--check", action="store_true", help="Only check connection")

    args = parser.parse_args()

    if args.check:
        check_connection()
    else:
        if check_connection():
            if init_database(drop_existing=args.drop) and args.seed:
                seed_test_data()

            logger.info("Database initialization complete!")
        else:
            logger.error("Cannot initialize database - connection failed")
            sys.exit(1)
