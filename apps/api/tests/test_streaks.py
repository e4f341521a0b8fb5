"""
Tests for the workout streak state machine.
"""
from datetime import date, datetime, timedelta, timezone

from models import ClientStreak
from services.streaks import StreakPhase, apply_observation, next_streak_state

TODAY = date(2025, 3, 10)


def _state(current=0, longest=0, last=None, start=None, observed=None, **kwargs):
    return next_streak_state(
        current_streak=current,
        longest_streak=longest,
        last_workout_date=last,
        streak_start_date=start,
        last_completed=observed,
        today=TODAY,
        **kwargs,
    )


class TestNextStreakState:

    def test_no_history(self):
        t = _state()
        assert t.phase == StreakPhase.NO_HISTORY
        assert t.changed is False
        assert t.current_streak == 0

    def test_first_workout_today_starts_streak(self):
        t = _state(observed=TODAY)
        assert t.phase == StreakPhase.ACTIVE
        assert t.current_streak == 1
        assert t.longest_streak == 1
        assert t.streak_start_date == TODAY
        assert t.last_workout_date == TODAY
        assert t.changed is True

    def test_workout_yesterday_extends(self):
        start = TODAY - timedelta(days=5)
        t = _state(current=4, longest=4, last=TODAY - timedelta(days=2), start=start, observed=TODAY - timedelta(days=1))
        assert t.current_streak == 5
        assert t.longest_streak == 5
        assert t.streak_start_date == start

    def test_longest_kept_when_current_is_lower(self):
        t = _state(current=2, longest=20, last=TODAY - timedelta(days=1), start=TODAY - timedelta(days=2), observed=TODAY)
        assert t.current_streak == 3
        assert t.longest_streak == 20

    def test_same_observation_is_noop(self):
        t = _state(current=3, longest=3, last=TODAY, start=TODAY - timedelta(days=2), observed=TODAY)
        assert t.changed is False
        assert t.current_streak == 3
        assert t.milestone is None

    def test_milestone_reported(self):
        t = _state(current=6, longest=6, last=TODAY - timedelta(days=1), start=TODAY - timedelta(days=6), observed=TODAY)
        assert t.current_streak == 7
        assert t.milestone == 7

    def test_non_milestone(self):
        t = _state(current=7, longest=7, last=TODAY - timedelta(days=1), start=TODAY - timedelta(days=7), observed=TODAY)
        assert t.milestone is None

    def test_custom_milestones(self):
        t = _state(current=1, longest=1, last=TODAY - timedelta(days=1), start=TODAY - timedelta(days=1), observed=TODAY, milestones=(2,))
        assert t.milestone == 2

    def test_gap_breaks_long_streak(self):
        observed = TODAY - timedelta(days=3)
        t = _state(current=9, longest=9, last=observed, start=observed - timedelta(days=8), observed=observed)
        assert t.phase == StreakPhase.BROKEN
        assert t.current_streak == 0
        assert t.longest_streak == 9
        assert t.streak_start_date is None
        assert t.last_workout_date == observed
        assert t.lost_streak == 9
        assert t.changed is True

    def test_gap_breaks_short_streak_silently(self):
        observed = TODAY - timedelta(days=3)
        t = _state(current=2, longest=5, last=observed, start=observed - timedelta(days=1), observed=observed)
        assert t.current_streak == 0
        assert t.lost_streak is None

    def test_already_reset_writes_nothing(self):
        observed = TODAY - timedelta(days=3)
        t = _state(current=0, longest=9, last=observed, start=None, observed=observed)
        assert t.changed is False
        assert t.lost_streak is None

    def test_longest_never_below_current(self):
        current, longest, last, start = 0, 0, None, None
        for offset in range(10, -1, -1):
            day = TODAY - timedelta(days=offset)
            t = next_streak_state(current, longest, last, start, day, day)
            current, longest, last, start = t.current_streak, t.longest_streak, t.last_workout_date, t.streak_start_date
            assert longest >= current
        assert current == 11


class TestApplyObservation:

    def test_creates_zeroed_row_without_history(self, db_session, make_client, now):
        client = make_client()

        transition, written = apply_observation(db_session, client.id, None, now)
        db_session.commit()

        assert written is True
        row = db_session.query(ClientStreak).filter_by(client_id=client.id).one()
        assert (row.current_streak, row.longest_streak, row.last_workout_date) == (0, 0, None)

    def test_second_run_without_history_writes_nothing(self, db_session, make_client, now):
        client = make_client()
        apply_observation(db_session, client.id, None, now)
        db_session.commit()

        _, written = apply_observation(db_session, client.id, None, now)

        assert written is False

    def test_missing_row_with_history_counts_from_zero(self, db_session, make_client, now):
        client = make_client()

        transition, written = apply_observation(db_session, client.id, now.date(), now)

        assert written is True
        assert transition.current_streak == 1
        row = db_session.query(ClientStreak).filter_by(client_id=client.id).one()
        assert row.streak_start_date == now.date()

    def test_persists_reset(self, db_session, make_client, now):
        client = make_client()
        observed = now.date() - timedelta(days=4)
        db_session.add(
            ClientStreak(
                client_id=client.id,
                current_streak=8,
                longest_streak=8,
                last_workout_date=observed,
                streak_start_date=observed - timedelta(days=7),
                updated_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
            )
        )
        db_session.commit()

        transition, written = apply_observation(db_session, client.id, observed, now)
        db_session.commit()

        assert written is True
        assert transition.lost_streak == 8
        row = db_session.query(ClientStreak).filter_by(client_id=client.id).one()
        assert row.current_streak == 0
        assert row.longest_streak == 8
        assert row.streak_start_date is None
        assert row.last_workout_date == observed
