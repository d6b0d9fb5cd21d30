"""
Pydantic request/response schemas for the live odds admin API.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Recalculation
# ---------------------------------------------------------------------------

class LiveOddsOut(BaseModel):
    """Decimal prices written to the moneyline selections."""

    home: float = Field(..., ge=1.02, le=31.0)
    away: float = Field(..., ge=1.02, le=31.0)
    draw: Optional[float] = Field(None, ge=1.02, le=31.0)


class RecalcResponse(BaseModel):
    """Result of recalculating a single event."""

    event_id: str
    updated: bool
    new_odds: Optional[LiveOddsOut] = None
    skip_reason: Optional[str] = Field(
        None, description="Why odds were not written, when updated is false"
    )

    @classmethod
    def from_result(cls, event_id: str, result) -> "RecalcResponse":
        return cls(
            event_id=event_id,
            updated=result.updated,
            new_odds=LiveOddsOut(**result.new_odds) if result.new_odds else None,
            skip_reason=result.skip_reason,
        )


class BatchRecalcResponse(BaseModel):
    """Result of a full live-set pass."""

    events_updated: int = Field(..., ge=0)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class SportModelOut(BaseModel):
    sport_id: str
    sport_name: str
    model_family: str
    total_time_minutes: float
    has_draws: bool
    live_margin: float


class SportModelsResponse(BaseModel):
    sports: List[SportModelOut]
    count: int


class SchedulerStatus(BaseModel):
    running: bool
    jobs: Dict[str, Optional[str]] = Field(
        default_factory=dict, description="job id → next run time (ISO 8601)"
    )
