"""
Client Progress API Router

Strength and volume read models: current best lifts, tonnage per period
and per-session progression of one exercise.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import DOMAIN_ERRORS, to_api_exception
from schemas import OneRepMaxResponse, ProgressionResponse, TonnageResponse
from services import training_volume

router = APIRouter(prefix="/v1/clients", tags=["Progress"])


@router.get("/{client_id}/1rms", response_model=List[OneRepMaxResponse])
def get_one_rep_maxes(client_id: UUID, db: Session = Depends(get_db)):
    return training_volume.one_rep_maxes(db, client_id)


@router.get("/{client_id}/tonnage", response_model=TonnageResponse)
def get_tonnage(
    client_id: UUID,
    period: str = Query("week", description="day, week, month or year; anything else is the last 7 days"),
    db: Session = Depends(get_db),
):
    """Total weight x reps lifted in the period."""
    return TonnageResponse(
        tonnage=training_volume.tonnage(db, client_id, period),
        period=period,
    )


@router.get("/{client_id}/progression", response_model=ProgressionResponse)
def get_progression(
    client_id: UUID,
    exercise: Optional[str] = None,
    period: str = Query("month"),
    db: Session = Depends(get_db),
):
    """Heaviest set of one exercise per session date."""
    try:
        points = training_volume.progression(db, client_id, exercise, period)
    except DOMAIN_ERRORS as e:
        raise to_api_exception(e)

    return ProgressionResponse(
        exercise=exercise,
        period=period,
        progression=[p.__dict__ for p in points],
    )
