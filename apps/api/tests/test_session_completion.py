"""
Tests for coached session completion and the volume read models.
"""
import pytest
from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

from core.exceptions import EntityNotFoundError, SessionValidationError
from models import ClientOneRepMax, SetLog, WorkoutCompletion, WorkoutLog
from services.session_completion import LoggedSet, complete_session
from services.training_volume import one_rep_maxes, progression, tonnage

NOW = datetime(2025, 3, 12, 17, 30, tzinfo=timezone.utc)  # Wednesday


@pytest.fixture
def program(make_program):
    return make_program(
        workouts=[("Lower", 1, 3)],
        exercises={"Lower": ["Back Squat", "Romanian Deadlift"]},
    )


@pytest.fixture
def workout(program):
    return program.workouts[0]


@pytest.fixture
def squat(workout):
    return next(e for e in workout.exercises if e.exercise_name == "Back Squat")


@pytest.fixture
def rdl(workout):
    return next(e for e in workout.exercises if e.exercise_name == "Romanian Deadlift")


class TestCompleteSession:

    def test_writes_log_completion_and_sets(self, db_session, make_client, make_assignment, program, workout, squat):
        client = make_client()
        assignment = make_assignment(client, program)

        result = complete_session(
            db_session,
            client.id,
            workout.id,
            client_program_id=assignment.id,
            set_logs=[LoggedSet(squat.id, 1, 100, 5), LoggedSet(squat.id, 2, 100, 4)],
            notes="Felt strong",
            now=NOW,
        )

        log = db_session.get(WorkoutLog, result.workout_log_id)
        assert log.scheduled_date == date(2025, 3, 12)
        assert log.notes == "Felt strong"

        completion = db_session.get(WorkoutCompletion, result.completion_id)
        assert completion.client_program_id == assignment.id
        assert completion.workout_log_id == log.id
        assert completion.scheduled_date == date(2025, 3, 12)

        assert db_session.query(SetLog).filter_by(workout_log_id=log.id).count() == 2
        assert result.sets_logged == 2

    def test_best_lift_rounded_to_half_kilo(self, db_session, make_client, workout, squat):
        client = make_client()

        result = complete_session(
            db_session, client.id, workout.id,
            set_logs=[LoggedSet(squat.id, 1, 100, 5), LoggedSet(squat.id, 2, 102.5, 3)],
            now=NOW,
        )

        # 100 x 5 -> 116.67, 102.5 x 3 -> 112.75
        assert result.one_rep_maxes_updated == {"Back Squat": 116.5}
        stored = db_session.query(ClientOneRepMax).filter_by(client_id=client.id).one()
        assert stored.weight_kg == 116.5

    def test_best_lift_only_raised(self, db_session, make_client, workout, squat):
        client = make_client()
        db_session.add(ClientOneRepMax(client_id=client.id, exercise_name="Back Squat", weight_kg=150, updated_at=NOW))
        db_session.commit()

        result = complete_session(db_session, client.id, workout.id, set_logs=[LoggedSet(squat.id, 1, 100, 5)], now=NOW)

        assert result.one_rep_maxes_updated == {}
        assert db_session.query(ClientOneRepMax).filter_by(client_id=client.id).one().weight_kg == 150

    def test_best_lift_equal_after_rounding_is_not_rewritten(self, db_session, make_client, workout, squat):
        client = make_client()
        stored = ClientOneRepMax(client_id=client.id, exercise_name="Back Squat", weight_kg=100.0, updated_at=NOW - timedelta(days=30))
        db_session.add(stored)
        db_session.commit()
        db_session.refresh(stored)
        stamped = stored.updated_at

        # 93.9 x 2 -> 100.16, which rounds to the stored 100.0
        result = complete_session(db_session, client.id, workout.id, set_logs=[LoggedSet(squat.id, 1, 93.9, 2)], now=NOW)

        assert result.one_rep_maxes_updated == {}
        db_session.refresh(stored)
        assert stored.weight_kg == 100.0
        assert stored.updated_at == stamped

    def test_best_lift_replaced_when_beaten(self, db_session, make_client, workout, squat, rdl):
        client = make_client()
        db_session.add(ClientOneRepMax(client_id=client.id, exercise_name="Back Squat", weight_kg=110, updated_at=NOW))
        db_session.commit()

        result = complete_session(
            db_session, client.id, workout.id,
            set_logs=[LoggedSet(squat.id, 1, 100, 5), LoggedSet(rdl.id, 1, 80, None)],
            now=NOW,
        )

        assert result.one_rep_maxes_updated == {"Back Squat": 116.5}
        assert db_session.query(ClientOneRepMax).filter_by(client_id=client.id).one().weight_kg == 116.5

    def test_unknown_workout(self, db_session, make_client):
        client = make_client()
        with pytest.raises(EntityNotFoundError):
            complete_session(db_session, client.id, uuid4(), now=NOW)

    def test_unknown_client(self, db_session, workout):
        with pytest.raises(EntityNotFoundError):
            complete_session(db_session, uuid4(), workout.id, now=NOW)

    def test_exercise_from_another_workout_rejected(self, db_session, make_client, make_program, workout):
        client = make_client()
        other = make_program(name="Other", workouts=[("Upper", 1, 1)])
        bench = other.workouts[0].exercises[0]

        with pytest.raises(SessionValidationError):
            complete_session(db_session, client.id, workout.id, set_logs=[LoggedSet(bench.id, 1, 60, 5)], now=NOW)

        assert db_session.query(WorkoutLog).count() == 0

    def test_negative_values_rejected(self, db_session, make_client, workout, squat):
        client = make_client()
        with pytest.raises(SessionValidationError):
            complete_session(db_session, client.id, workout.id, set_logs=[LoggedSet(squat.id, 1, -5, 5)], now=NOW)
        assert db_session.query(WorkoutLog).count() == 0

    def test_assignment_of_another_client_rejected(self, db_session, make_client, make_assignment, program, workout):
        client, other = make_client(), make_client()
        assignment = make_assignment(other, program)
        with pytest.raises(SessionValidationError):
            complete_session(db_session, client.id, workout.id, client_program_id=assignment.id, now=NOW)


class TestTrainingVolume:

    def test_tonnage_by_period(self, db_session, make_client, log_sets, squat):
        client = make_client()
        log_sets(client, squat, [(100, 5), (100, 5)], NOW - timedelta(hours=1))  # this week
        log_sets(client, squat, [(60, 10)], datetime(2025, 3, 3, 18, tzinfo=timezone.utc))  # last week
        log_sets(client, squat, [(50, 10)], datetime(2025, 2, 20, 18, tzinfo=timezone.utc))  # last month

        assert tonnage(db_session, client.id, "day", now=NOW) == 1000
        assert tonnage(db_session, client.id, "week", now=NOW) == 1000
        assert tonnage(db_session, client.id, "month", now=NOW) == 1600
        assert tonnage(db_session, client.id, "year", now=NOW) == 2100

    def test_tonnage_unknown_period_is_last_seven_days(self, db_session, make_client, log_sets, squat):
        client = make_client()
        log_sets(client, squat, [(60, 10)], NOW - timedelta(days=6))
        log_sets(client, squat, [(60, 10)], NOW - timedelta(days=8))

        assert tonnage(db_session, client.id, "fortnight", now=NOW) == 600

    def test_tonnage_without_sessions(self, db_session, make_client):
        client = make_client()
        assert tonnage(db_session, client.id, "week", now=NOW) == 0

    def test_progression_heaviest_set_per_session(self, db_session, make_client, log_sets, squat, rdl):
        client = make_client()
        log_sets(client, squat, [(100, 5), (110, 2)], datetime(2025, 3, 3, 18, tzinfo=timezone.utc))
        log_sets(client, squat, [(105, 5)], datetime(2025, 3, 10, 18, tzinfo=timezone.utc))
        log_sets(client, rdl, [(140, 5)], datetime(2025, 3, 10, 18, tzinfo=timezone.utc))

        points = progression(db_session, client.id, "back squat", "month", now=NOW)

        assert [(p.date, p.weight, p.reps) for p in points] == [
            ("2025-03-03", 110, 2),
            ("2025-03-10", 105, 5),
        ]

    def test_progression_requires_exercise(self, db_session, make_client):
        client = make_client()
        with pytest.raises(SessionValidationError):
            progression(db_session, client.id, "  ", now=NOW)

    def test_one_rep_maxes(self, db_session, make_client, workout, squat):
        client = make_client()
        complete_session(db_session, client.id, workout.id, set_logs=[LoggedSet(squat.id, 1, 100, 5)], now=NOW)

        rows = one_rep_maxes(db_session, client.id)

        assert [(r.exercise_name, r.weight_kg) for r in rows] == [("Back Squat", 116.5)]
