"""
Pytest configuration and fixtures

Tests run against an in-memory SQLite database. The schema is created fresh
for every test and dropped afterwards, so application code is free to commit
and nothing leaks between tests.
"""
import pytest
import sys
import os
from uuid import uuid4
from datetime import datetime, date, timezone

# Must be set before core.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ.setdefault("LOG_FORMAT", "text")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.database import Base, SessionLocal, engine  # noqa: E402
from models import (  # noqa: E402
    Client,
    ClientProgram,
    Program,
    ProgramWorkout,
    SetLog,
    WorkoutCompletion,
    WorkoutExercise,
    WorkoutLog,
)

CRON_SECRET = "test-cron-secret"

# Fixed clock for the adherence tests: Monday 2025-03-10 06:00 UTC
NOW = datetime(2025, 3, 10, 6, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def db_session():
    """
    Session on a freshly created schema.

    Everything is dropped after the test completes.
    """
    Base.metadata.create_all(engine)
    session = SessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(engine)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_client(db_session):
    def _make(full_name="Test Client", email=None, role="client", is_active=True):
        client = Client(
            email=email or f"test_{uuid4()}@example.com",
            full_name=full_name,
            role=role,
            is_active=is_active,
        )
        db_session.add(client)
        db_session.commit()
        return client

    return _make


@pytest.fixture
def make_program(db_session):
    """
    Program with workouts given as (name, week_number, day_of_week) tuples.

    Each workout gets one exercise named after the workout unless
    `exercises` maps the workout name to a list of exercise names.
    """
    def _make(name="Strength Block", workouts=(), duration_weeks=None, exercises=None):
        program = Program(name=name, duration_weeks=duration_weeks)
        db_session.add(program)
        db_session.flush()

        for i, (workout_name, week, day) in enumerate(workouts):
            workout = ProgramWorkout(
                program_id=program.id,
                name=workout_name,
                week_number=week,
                day_of_week=day,
                order_index=i,
            )
            db_session.add(workout)
            db_session.flush()
            names = (exercises or {}).get(workout_name, [workout_name])
            for j, exercise_name in enumerate(names):
                db_session.add(WorkoutExercise(workout_id=workout.id, exercise_name=exercise_name, order_index=j))

        db_session.commit()
        db_session.refresh(program)
        return program

    return _make


@pytest.fixture
def make_assignment(db_session):
    def _make(client, program, start_date=date(2025, 1, 6), duration_weeks=4, order_index=0, is_active=True):
        assignment = ClientProgram(
            client_id=client.id,
            program_id=program.id,
            start_date=start_date,
            duration_weeks=duration_weeks,
            order_index=order_index,
            is_active=is_active,
        )
        db_session.add(assignment)
        db_session.commit()
        return assignment

    return _make


@pytest.fixture
def make_completion(db_session):
    def _make(client, workout, scheduled_date, completed_at=None, assignment=None):
        if completed_at is None:
            completed_at = datetime(scheduled_date.year, scheduled_date.month, scheduled_date.day, 18, 0, tzinfo=timezone.utc)
        completion = WorkoutCompletion(
            client_id=client.id,
            workout_id=workout.id,
            client_program_id=assignment.id if assignment is not None else None,
            scheduled_date=scheduled_date,
            completed_at=completed_at,
        )
        db_session.add(completion)
        db_session.commit()
        return completion

    return _make


@pytest.fixture
def log_sets(db_session):
    """Write a workout log with (weight_kg, reps) sets of one exercise."""
    def _log(client, exercise, sets, created_at, workout=None):
        workout_log = WorkoutLog(
            client_id=client.id,
            workout_id=workout.id if workout is not None else exercise.workout_id,
            scheduled_date=created_at.date(),
            completed_at=created_at,
        )
        db_session.add(workout_log)
        db_session.flush()
        for i, (weight, reps) in enumerate(sets, start=1):
            db_session.add(
                SetLog(
                    workout_log_id=workout_log.id,
                    exercise_id=exercise.id,
                    set_number=i,
                    weight_kg=weight,
                    reps_completed=reps,
                    created_at=created_at,
                )
            )
        db_session.commit()
        return workout_log

    return _log
