"""
Coached session completion.

A trainer finishing a session with a client writes, in one transaction:

- a WorkoutLog for the session (scheduled for today)
- a WorkoutCompletion linked to the assignment and the log
- one SetLog per performed set
- the client's current best lift (ClientOneRepMax) for every exercise whose
  best set beats it, rounded to the nearest 0.5 kg

The payload is validated completely before anything is written.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from core.database import upsert
from core.exceptions import EntityNotFoundError, SessionValidationError
from models import (
    Client,
    ClientOneRepMax,
    ClientProgram,
    ProgramWorkout,
    SetLog,
    WorkoutCompletion,
    WorkoutExercise,
    WorkoutLog,
)
from services.date_utils import round_to, utcnow
from services.strength import best_set, estimate_one_rep_max

logger = logging.getLogger(__name__)

# Stored precision of ClientOneRepMax.weight_kg
ONE_REP_MAX_PRECISION = 0.5


@dataclass
class LoggedSet:
    exercise_id: UUID
    set_number: int = 1
    weight_kg: Optional[float] = None
    reps_completed: Optional[int] = None


@dataclass
class CompletedSession:
    workout_log_id: UUID
    completion_id: UUID
    sets_logged: int
    one_rep_maxes_updated: Dict[str, float]


def _workout_exercises(db: Session, workout: ProgramWorkout) -> Dict[UUID, WorkoutExercise]:
    """Exercises of the workout and of its variations, by id."""
    workout_ids = [workout.id] + [
        w.id for w in db.query(ProgramWorkout.id).filter(ProgramWorkout.parent_workout_id == workout.id)
    ]
    exercises = db.query(WorkoutExercise).filter(WorkoutExercise.workout_id.in_(workout_ids)).all()
    return {e.id: e for e in exercises}


def validate_session(
    db: Session,
    client_id: UUID,
    workout_id: UUID,
    client_program_id: Optional[UUID],
    set_logs: Sequence,
) -> Dict[UUID, WorkoutExercise]:
    """Reject an inconsistent payload. Returns the workout's exercises by id."""
    if db.query(Client).filter(Client.id == client_id).first() is None:
        raise EntityNotFoundError("Client", client_id)

    workout = db.query(ProgramWorkout).filter(ProgramWorkout.id == workout_id).first()
    if workout is None:
        raise EntityNotFoundError("Workout", workout_id)

    if client_program_id is not None:
        assignment = db.query(ClientProgram).filter(ClientProgram.id == client_program_id).first()
        if assignment is None:
            raise EntityNotFoundError("Assignment", client_program_id)
        if assignment.client_id != client_id:
            raise SessionValidationError(f"Assignment {client_program_id} belongs to another client")

    exercises = _workout_exercises(db, workout)
    for s in set_logs:
        if s.exercise_id not in exercises:
            raise SessionValidationError(f"Exercise {s.exercise_id} is not part of workout {workout_id}")
        if s.weight_kg is not None and s.weight_kg < 0:
            raise SessionValidationError(f"Negative weight on set {s.set_number}")
        if s.reps_completed is not None and s.reps_completed < 0:
            raise SessionValidationError(f"Negative reps on set {s.set_number}")
    return exercises


def update_one_rep_maxes(
    db: Session,
    client_id: UUID,
    set_logs: Sequence,
    exercises: Dict[UUID, WorkoutExercise],
    now: datetime,
) -> Dict[str, float]:
    """Raise the stored best lift for every exercise the session improved."""
    by_exercise: Dict[str, List] = {}
    for s in set_logs:
        by_exercise.setdefault(exercises[s.exercise_id].exercise_name, []).append(s)

    updated = {}
    for exercise_name, sets in by_exercise.items():
        top = best_set(sets)
        if top is None:
            continue
        weight = round_to(estimate_one_rep_max(top.weight_kg, top.reps_completed), ONE_REP_MAX_PRECISION)

        current = (
            db.query(ClientOneRepMax)
            .filter(ClientOneRepMax.client_id == client_id, ClientOneRepMax.exercise_name == exercise_name)
            .first()
        )
        # Compared at stored (0.5 kg) precision
        if current is not None and weight <= current.weight_kg:
            continue

        upsert(
            db,
            ClientOneRepMax,
            values={
                "client_id": client_id,
                "exercise_name": exercise_name,
                "weight_kg": weight,
                "updated_at": now,
            },
            conflict_columns=("client_id", "exercise_name"),
            update_columns=("weight_kg", "updated_at"),
        )
        if current is not None:
            db.expire(current)
        updated[exercise_name] = weight
    return updated


def complete_session(
    db: Session,
    client_id: UUID,
    workout_id: UUID,
    client_program_id: Optional[UUID] = None,
    set_logs: Sequence = (),
    notes: Optional[str] = None,
    trainer_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> CompletedSession:
    """Record a finished session. Commits on success, rolls back on failure."""
    now = now or utcnow()
    exercises = validate_session(db, client_id, workout_id, client_program_id, set_logs)

    try:
        workout_log = WorkoutLog(
            client_id=client_id,
            workout_id=workout_id,
            trainer_id=trainer_id,
            scheduled_date=now.date(),
            completed_at=now,
            notes=notes or None,
        )
        db.add(workout_log)
        db.flush()

        completion = WorkoutCompletion(
            client_id=client_id,
            workout_id=workout_id,
            client_program_id=client_program_id,
            workout_log_id=workout_log.id,
            scheduled_date=now.date(),
            completed_at=now,
        )
        db.add(completion)

        for s in set_logs:
            db.add(
                SetLog(
                    workout_log_id=workout_log.id,
                    exercise_id=s.exercise_id,
                    set_number=s.set_number,
                    weight_kg=s.weight_kg,
                    reps_completed=s.reps_completed,
                    created_at=now,
                )
            )
        db.flush()

        updated = update_one_rep_maxes(db, client_id, set_logs, exercises, now)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Failed to record session for client {client_id}, workout {workout_id}")
        raise

    logger.info(
        f"Session completed for client {client_id}: workout {workout_id}, "
        f"{len(set_logs)} sets, {len(updated)} best lifts raised"
    )
    return CompletedSession(
        workout_log_id=workout_log.id,
        completion_id=completion.id,
        sets_logged=len(set_logs),
        one_rep_maxes_updated=updated,
    )
