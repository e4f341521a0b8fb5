"""
Tests for strength estimation and personal record detection.
"""
import pytest
from datetime import timedelta
from types import SimpleNamespace

from models import PersonalRecord
from services.personal_records import detect_personal_records
from services.strength import best_set, estimate_one_rep_max, tonnage


class TestStrength:

    def test_epley(self):
        assert estimate_one_rep_max(100, 5) == pytest.approx(116.6667, rel=1e-4)
        assert estimate_one_rep_max(100, 1) == pytest.approx(103.3333, rel=1e-4)

    def test_high_reps_stay_finite(self):
        assert estimate_one_rep_max(20, 40) == pytest.approx(46.6667, rel=1e-4)

    @pytest.mark.parametrize("weight,reps", [(None, 5), (100, None), (0, 5), (100, 0), (-10, 5)])
    def test_unusable_sets(self, weight, reps):
        assert estimate_one_rep_max(weight, reps) is None

    def test_best_set_first_wins_ties(self):
        a = SimpleNamespace(weight_kg=100, reps_completed=3)
        b = SimpleNamespace(weight_kg=100, reps_completed=3)
        c = SimpleNamespace(weight_kg=90, reps_completed=5)
        assert best_set([a, b, c]) is a

    def test_best_set_none_without_load(self):
        assert best_set([SimpleNamespace(weight_kg=None, reps_completed=5)]) is None

    def test_tonnage(self):
        sets = [
            SimpleNamespace(weight_kg=100, reps_completed=5),
            SimpleNamespace(weight_kg=None, reps_completed=10),
            SimpleNamespace(weight_kg=60, reps_completed=10),
        ]
        assert tonnage(sets) == 1100


class TestDetectPersonalRecords:

    @pytest.fixture
    def squat(self, make_program):
        program = make_program(workouts=[("Squat", 1, 1)])
        return program.workouts[0].exercises[0]

    def test_first_record(self, db_session, make_client, log_sets, squat, now):
        client = make_client()
        log_sets(client, squat, [(100, 5), (110, 1)], now - timedelta(days=1))

        records = detect_personal_records(db_session, client.id, now)
        db_session.commit()

        assert len(records) == 1
        record = records[0]
        assert record.candidate.exercise_name == "Squat"
        assert (record.candidate.weight_kg, record.candidate.reps) == (100, 5)
        assert record.candidate.estimated_1rm == pytest.approx(116.7)
        assert record.previous_1rm is None
        assert record.improvement is None

        stored = db_session.query(PersonalRecord).filter_by(client_id=client.id).one()
        assert stored.estimated_1rm == pytest.approx(116.7)

    def test_rescan_is_noop(self, db_session, make_client, log_sets, squat, now):
        client = make_client()
        log_sets(client, squat, [(100, 1)], now - timedelta(days=1))
        detect_personal_records(db_session, client.id, now)
        db_session.commit()

        assert detect_personal_records(db_session, client.id, now) == []

    def test_improvement_replaces_record(self, db_session, make_client, log_sets, squat, now):
        client = make_client()
        log_sets(client, squat, [(100, 5)], now - timedelta(days=20))
        detect_personal_records(db_session, client.id, now - timedelta(days=19))
        db_session.commit()

        log_sets(client, squat, [(105, 5)], now - timedelta(days=1))
        records = detect_personal_records(db_session, client.id, now)
        db_session.commit()

        assert len(records) == 1
        assert records[0].previous_1rm == pytest.approx(116.7)
        assert records[0].improvement == pytest.approx(5.8)
        assert records[0].to_metadata()["previous_1rm"] == pytest.approx(116.7)

        stored = db_session.query(PersonalRecord).filter_by(client_id=client.id).one()
        assert stored.weight_kg == 105
        assert stored.estimated_1rm == pytest.approx(122.5)

    def test_weaker_set_never_lowers_record(self, db_session, make_client, log_sets, squat, now):
        client = make_client()
        db_session.add(
            PersonalRecord(
                client_id=client.id,
                exercise_name="Squat",
                weight_kg=140,
                reps=1,
                estimated_1rm=144.7,
                achieved_at=now - timedelta(days=60),
            )
        )
        db_session.commit()
        log_sets(client, squat, [(100, 5)], now - timedelta(days=1))

        assert detect_personal_records(db_session, client.id, now) == []
        stored = db_session.query(PersonalRecord).filter_by(client_id=client.id).one()
        assert stored.estimated_1rm == pytest.approx(144.7)

    def test_sets_outside_window_ignored(self, db_session, make_client, log_sets, squat, now):
        client = make_client()
        log_sets(client, squat, [(100, 5)], now - timedelta(days=8))

        assert detect_personal_records(db_session, client.id, now, lookback_days=7) == []

    def test_other_clients_sets_ignored(self, db_session, make_client, log_sets, squat, now):
        client, other = make_client(), make_client()
        log_sets(other, squat, [(100, 5)], now - timedelta(days=1))

        assert detect_personal_records(db_session, client.id, now) == []
