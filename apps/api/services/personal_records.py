"""
Personal Record (PR) Detection Service

Scans a client's recently logged sets, picks the best set per exercise by
estimated 1RM (Epley, see services.strength) and records it when it beats the
stored personal record.

A PR only ever moves up: the stored estimate is replaced solely when the new
estimate, at stored precision (0.1 kg), is strictly greater. Re-scanning the
same sets is therefore a no-op.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from core.database import upsert
from models import PersonalRecord, SetLog, WorkoutExercise, WorkoutLog
from services.strength import best_set, estimate_one_rep_max
from services.date_utils import round_to

logger = logging.getLogger(__name__)

# Stored precision of PersonalRecord.estimated_1rm
ESTIMATE_PRECISION = 0.1


@dataclass
class PRCandidate:
    exercise_name: str
    weight_kg: float
    reps: int
    estimated_1rm: float  # Rounded to ESTIMATE_PRECISION


@dataclass
class NewPersonalRecord:
    candidate: PRCandidate
    previous_1rm: Optional[float]

    @property
    def improvement(self) -> Optional[float]:
        if self.previous_1rm is None:
            return None
        return round_to(self.candidate.estimated_1rm - self.previous_1rm, ESTIMATE_PRECISION)

    def to_metadata(self) -> Dict:
        return {
            "exercise": self.candidate.exercise_name,
            "weight": self.candidate.weight_kg,
            "reps": self.candidate.reps,
            "estimated_1rm": self.candidate.estimated_1rm,
            "previous_1rm": self.previous_1rm,
            "improvement": self.improvement,
        }


def recent_sets(db: Session, client_id: UUID, since: datetime):
    """(SetLog, exercise_name) rows logged since `since` that carry weight and reps."""
    return (
        db.query(SetLog, WorkoutExercise.exercise_name)
        .join(WorkoutLog, SetLog.workout_log_id == WorkoutLog.id)
        .join(WorkoutExercise, SetLog.exercise_id == WorkoutExercise.id)
        .filter(
            WorkoutLog.client_id == client_id,
            SetLog.created_at >= since,
            SetLog.weight_kg.isnot(None),
            SetLog.reps_completed.isnot(None),
        )
        .order_by(SetLog.created_at, SetLog.set_number)
        .all()
    )


def best_candidates(rows) -> List[PRCandidate]:
    """Best set per exercise; exercises whose sets carry no usable load are dropped."""
    by_exercise: Dict[str, List[SetLog]] = {}
    for set_log, exercise_name in rows:
        if not exercise_name:
            continue
        by_exercise.setdefault(exercise_name, []).append(set_log)

    candidates = []
    for exercise_name, sets in by_exercise.items():
        top = best_set(sets)
        if top is None:
            continue
        estimate = estimate_one_rep_max(top.weight_kg, top.reps_completed)
        candidates.append(
            PRCandidate(
                exercise_name=exercise_name,
                weight_kg=top.weight_kg,
                reps=top.reps_completed,
                estimated_1rm=round_to(estimate, ESTIMATE_PRECISION),
            )
        )
    return candidates


def record_if_improved(
    db: Session,
    client_id: UUID,
    candidate: PRCandidate,
    now: datetime,
) -> Optional[NewPersonalRecord]:
    """
    Upsert the candidate when it beats the stored record.

    Returns the new record (with the previous estimate) or None. Does not commit.
    """
    existing = (
        db.query(PersonalRecord)
        .filter(
            PersonalRecord.client_id == client_id,
            PersonalRecord.exercise_name == candidate.exercise_name,
        )
        .first()
    )
    previous = existing.estimated_1rm if existing is not None else None

    if previous is not None and candidate.estimated_1rm <= previous:
        return None

    upsert(
        db,
        PersonalRecord,
        values={
            "client_id": client_id,
            "exercise_name": candidate.exercise_name,
            "weight_kg": candidate.weight_kg,
            "reps": candidate.reps,
            "estimated_1rm": candidate.estimated_1rm,
            "achieved_at": now,
        },
        conflict_columns=("client_id", "exercise_name"),
        update_columns=("weight_kg", "reps", "estimated_1rm", "achieved_at"),
    )
    if existing is not None:
        # The upsert bypassed the ORM; drop the cached attributes
        db.expire(existing)

    logger.info(
        f"New PR for client {client_id}: {candidate.exercise_name} "
        f"{candidate.weight_kg}kg x {candidate.reps} (e1RM {candidate.estimated_1rm}, previous {previous})"
    )
    return NewPersonalRecord(candidate=candidate, previous_1rm=previous)


def detect_personal_records(
    db: Session,
    client_id: UUID,
    now: datetime,
    lookback_days: int = 7,
) -> List[NewPersonalRecord]:
    """Scan the trailing window for one client and record every improvement."""
    since = now - timedelta(days=lookback_days)
    new_records = []
    for candidate in best_candidates(recent_sets(db, client_id, since)):
        record = record_if_improved(db, client_id, candidate, now)
        if record is not None:
            new_records.append(record)
    return new_records
