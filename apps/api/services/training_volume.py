"""
Training volume and strength progress read models.

- tonnage: total weight x reps lifted in a reporting period
- progression: heaviest set of one exercise per session date
- one_rep_maxes: stored current best lifts
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.exceptions import SessionValidationError
from models import ClientOneRepMax, SetLog, WorkoutExercise, WorkoutLog
from services import strength
from services.date_utils import as_date, iso, period_start, utcnow

PERIODS = ("day", "week", "month", "year")

# Progression charts default to the current month
DEFAULT_PROGRESSION_PERIOD = "month"


@dataclass
class ProgressionPoint:
    date: str
    weight: float
    reps: int


def tonnage(db: Session, client_id: UUID, period: str = "week", now: Optional[datetime] = None) -> int:
    """Rounded sum of weight x reps over sessions completed since the period start."""
    now = now or utcnow()
    since = period_start(period, now)
    sets = (
        db.query(SetLog)
        .join(WorkoutLog, SetLog.workout_log_id == WorkoutLog.id)
        .filter(WorkoutLog.client_id == client_id, WorkoutLog.completed_at >= since)
        .all()
    )
    return int(round(strength.tonnage(sets)))


def progression(
    db: Session,
    client_id: UUID,
    exercise_name: str,
    period: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[ProgressionPoint]:
    """
    Heaviest set of an exercise per session date, oldest first.

    The session date is the log's scheduled date, else its completion date.
    Exercise names match case-insensitively.
    """
    if not exercise_name or not exercise_name.strip():
        raise SessionValidationError("Exercise name required")

    now = now or utcnow()
    if period not in PERIODS:
        period = DEFAULT_PROGRESSION_PERIOD
    since = period_start(period, now)

    rows = (
        db.query(SetLog, WorkoutLog.scheduled_date, WorkoutLog.completed_at)
        .join(WorkoutLog, SetLog.workout_log_id == WorkoutLog.id)
        .join(WorkoutExercise, SetLog.exercise_id == WorkoutExercise.id)
        .filter(
            WorkoutLog.client_id == client_id,
            WorkoutLog.completed_at >= since,
            func.lower(WorkoutExercise.exercise_name) == exercise_name.strip().lower(),
            SetLog.weight_kg.isnot(None),
        )
        .order_by(SetLog.created_at)
        .all()
    )

    sessions: Dict[str, ProgressionPoint] = {}
    for set_log, scheduled_date, completed_at in rows:
        day = iso(scheduled_date or as_date(completed_at))
        existing = sessions.get(day)
        if existing is None or set_log.weight_kg > existing.weight:
            sessions[day] = ProgressionPoint(
                date=day,
                weight=set_log.weight_kg,
                reps=set_log.reps_completed or 0,
            )

    return [sessions[day] for day in sorted(sessions)]


def one_rep_maxes(db: Session, client_id: UUID) -> List[ClientOneRepMax]:
    return (
        db.query(ClientOneRepMax)
        .filter(ClientOneRepMax.client_id == client_id)
        .order_by(ClientOneRepMax.exercise_name)
        .all()
    )
