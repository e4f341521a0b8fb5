"""
Coached Session API Router

A trainer marks a session with a client as complete, with the sets performed.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import DOMAIN_ERRORS, to_api_exception
from schemas import SessionComplete, SessionCompleteResponse
from services.session_completion import LoggedSet, complete_session

router = APIRouter(prefix="/v1/coaching", tags=["Coaching"])


@router.post("/complete", response_model=SessionCompleteResponse)
def complete(request: SessionComplete, db: Session = Depends(get_db)):
    """
    Record a completed session.

    Writes the workout log, the completion, the sets and any improved best
    lifts in one transaction.
    """
    set_logs = [
        LoggedSet(
            exercise_id=s.exercise_id,
            set_number=s.set_number,
            weight_kg=s.weight_kg,
            reps_completed=s.reps_completed,
        )
        for s in request.set_logs
    ]
    try:
        result = complete_session(
            db,
            client_id=request.client_id,
            workout_id=request.workout_id,
            client_program_id=request.client_program_id,
            set_logs=set_logs,
            notes=request.session_notes,
            trainer_id=request.trainer_id,
        )
    except DOMAIN_ERRORS as e:
        raise to_api_exception(e)

    return SessionCompleteResponse(
        workout_log_id=result.workout_log_id,
        completion_id=result.completion_id,
        sets_logged=result.sets_logged,
        one_rep_maxes_updated=result.one_rep_maxes_updated,
    )
