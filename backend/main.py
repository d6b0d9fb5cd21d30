"""
FastAPI application for the live odds engine
Hosts the recalculation scheduler and the admin trigger endpoints
"""

from fastapi import FastAPI, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from contextlib import asynccontextmanager
from datetime import datetime
import logging
import os

from backend.models import get_db
from backend.auth import verify_api_key, verify_admin_api_key
from backend.core.sport_config import SPORT_MODELS
from backend.services.live_odds import recalculate_all_live_odds, recalculate_live_odds
from backend.services.market_store import get_event, is_event_live, snapshot_from_event
from backend.schemas import (
    BatchRecalcResponse,
    RecalcResponse,
    SchedulerStatus,
    SportModelOut,
    SportModelsResponse,
)

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

APP_NAME = "Live Odds Engine"
APP_VERSION = "2.0"

# Scheduler instance
scheduler = BackgroundScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("Starting %s", APP_NAME)

    enabled = os.getenv("LIVE_ODDS_SCHEDULER_ENABLED", "true").lower() == "true"
    interval = int(os.getenv("LIVE_ODDS_INTERVAL_SEC", "30"))

    if enabled:
        # max_instances=1: a slow pass is never overlapped by the next one
        scheduler.add_job(
            _live_odds_job,
            IntervalTrigger(seconds=interval),
            id="live_odds_recalc",
            name="Live Odds Recalculation",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        logger.info("Scheduler started: live odds every %ds", interval)
    else:
        logger.info("Live odds scheduler disabled (LIVE_ODDS_SCHEDULER_ENABLED=false)")

    yield

    logger.info("Shutting down %s", APP_NAME)
    if scheduler.running:
        scheduler.shutdown()


app = FastAPI(
    title=APP_NAME,
    description="In-play moneyline repricing for live events",
    version=APP_VERSION,
    lifespan=lifespan,
)


# ============================================================================
# SCHEDULED JOB
# ============================================================================

def _live_odds_job():
    """Reprice every live event - runs every LIVE_ODDS_INTERVAL_SEC seconds."""
    try:
        updated = recalculate_all_live_odds()
        logger.info("Live odds job: %d events updated", updated)
    except Exception as exc:
        logger.error("Live odds job failed: %s", exc, exc_info=True)


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    """Health check"""
    return {
        "app": APP_NAME,
        "version": APP_VERSION,
        "status": "operational",
        "timestamp": datetime.utcnow().isoformat(),
    }


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint"""
    health = {"status": "healthy", "database": "connected", "scheduler": "running"}

    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Health check database error: %s", e)
        health["status"] = "degraded"
        health["database"] = f"error: {str(e)}"

    if not scheduler.running:
        health["status"] = "degraded"
        health["scheduler"] = "stopped"

    return health


# ============================================================================
# AUTHENTICATED ENDPOINTS
# ============================================================================

@app.get("/api/live-odds/sports", response_model=SportModelsResponse)
async def list_sport_models(user: str = Depends(verify_api_key)):
    """Sports the engine prices live, with their model parameters."""
    sports = [
        SportModelOut(
            sport_id=cfg.sport_id,
            sport_name=cfg.sport_name,
            model_family=cfg.model_family.value,
            total_time_minutes=cfg.total_time_minutes,
            has_draws=cfg.has_draws,
            live_margin=cfg.live_margin,
        )
        for _, cfg in sorted(SPORT_MODELS.items())
    ]
    return SportModelsResponse(sports=sports, count=len(sports))


# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================

@app.post("/admin/live-odds/recalculate", response_model=BatchRecalcResponse)
def trigger_live_odds_recalc(
    user: str = Depends(verify_admin_api_key),
    db: Session = Depends(get_db),
):
    """Run a full live-set pass now, outside the schedule."""
    logger.info("Manual live odds recalculation triggered by %s", user)
    updated = recalculate_all_live_odds(db=db)
    return BatchRecalcResponse(events_updated=updated)


@app.post("/admin/live-odds/events/{event_id}/recalculate", response_model=RecalcResponse)
def trigger_event_recalc(
    event_id: str,
    user: str = Depends(verify_admin_api_key),
    db: Session = Depends(get_db),
):
    """Reprice a single event from its stored score and metadata."""
    event = get_event(db, event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    if not is_event_live(event):
        raise HTTPException(
            status_code=409,
            detail=f"Event is {event.status.value}, only live events are repriced",
        )

    snapshot = snapshot_from_event(event)
    try:
        home_score, away_score = snapshot.home_score, snapshot.away_score
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=f"Malformed scores: {exc}")

    result = recalculate_live_odds(
        snapshot.event_id,
        home_score,
        away_score,
        snapshot.sport_slug,
        snapshot.metadata,
        db=db,
    )
    return RecalcResponse.from_result(event_id, result)


@app.get("/admin/live-odds/scheduler", response_model=SchedulerStatus)
async def get_scheduler_status(user: str = Depends(verify_admin_api_key)):
    """Scheduler state and next run time of each job."""
    jobs = {
        job.id: job.next_run_time.isoformat() if job.next_run_time else None
        for job in scheduler.get_jobs()
    }
    return SchedulerStatus(running=scheduler.running, jobs=jobs)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Catch-all exception handler"""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": type(exc).__name__}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
