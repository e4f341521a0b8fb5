"""
Tests for admin notification dedup and the inbox operations.
"""
import pytest
from datetime import timedelta
from uuid import uuid4

from core.exceptions import EntityNotFoundError
from models import AdminNotification
from services.notification_sink import (
    MISSED_WORKOUT,
    NEW_PR,
    dismiss_notification,
    emit_notification,
    has_recent_notification,
    list_notifications,
    lock_client,
)


def _emit(db, client, now, notification_type=MISSED_WORKOUT, window_days=7):
    return emit_notification(
        db,
        client.id,
        notification_type,
        title="Title",
        message="Message",
        metadata={"days_missed": 4},
        window_days=window_days,
        now=now,
    )


class TestEmitNotification:

    def test_inserts_with_metadata(self, db_session, make_client, now):
        client = make_client()

        row = _emit(db_session, client, now)
        db_session.commit()

        assert row is not None
        stored = db_session.get(AdminNotification, row.id)
        assert stored.payload == {"days_missed": 4}
        assert stored.is_dismissed is False

    def test_duplicate_inside_window_suppressed(self, db_session, make_client, now):
        client = make_client()
        _emit(db_session, client, now)

        assert _emit(db_session, client, now + timedelta(days=3)) is None
        assert db_session.query(AdminNotification).count() == 1

    def test_window_expired_allows_new_one(self, db_session, make_client, now):
        client = make_client()
        _emit(db_session, client, now)

        assert _emit(db_session, client, now + timedelta(days=8)) is not None

    def test_dismissed_does_not_block(self, db_session, make_client, now):
        client = make_client()
        row = _emit(db_session, client, now)
        dismiss_notification(db_session, row.id)

        assert _emit(db_session, client, now + timedelta(hours=1)) is not None

    def test_dedup_is_per_type_and_client(self, db_session, make_client, now):
        client, other = make_client(), make_client()
        _emit(db_session, client, now)

        assert _emit(db_session, client, now, notification_type=NEW_PR) is not None
        assert _emit(db_session, other, now) is not None

    def test_no_window_never_deduplicates(self, db_session, make_client, now):
        client = make_client()
        _emit(db_session, client, now, notification_type=NEW_PR, window_days=None)
        assert _emit(db_session, client, now, notification_type=NEW_PR, window_days=None) is not None

    def test_unknown_type_rejected(self, db_session, make_client, now):
        client = make_client()
        with pytest.raises(ValueError):
            _emit(db_session, client, now, notification_type="birthday")

    def test_has_recent_notification(self, db_session, make_client, now):
        client = make_client()
        assert has_recent_notification(db_session, client.id, MISSED_WORKOUT, 7, now) is False
        _emit(db_session, client, now)
        assert has_recent_notification(db_session, client.id, MISSED_WORKOUT, 7, now) is True

    def test_lock_client(self, db_session, make_client):
        client = make_client()
        assert lock_client(db_session, client.id).id == client.id
        assert lock_client(db_session, uuid4()) is None


class TestInbox:

    def test_list_newest_first_hides_dismissed(self, db_session, make_client, now):
        client = make_client()
        older = _emit(db_session, client, now - timedelta(days=10))
        newer = _emit(db_session, client, now)
        dismissed = _emit(db_session, client, now, notification_type=NEW_PR)
        dismiss_notification(db_session, dismissed.id)
        db_session.commit()

        assert [n.id for n in list_notifications(db_session)] == [newer.id, older.id]
        assert len(list_notifications(db_session, include_dismissed=True)) == 3

    def test_list_filters_by_client(self, db_session, make_client, now):
        client, other = make_client(), make_client()
        _emit(db_session, client, now)
        _emit(db_session, other, now)

        rows = list_notifications(db_session, client_id=other.id)
        assert [n.client_id for n in rows] == [other.id]

    def test_dismiss_unknown(self, db_session):
        with pytest.raises(EntityNotFoundError):
            dismiss_notification(db_session, uuid4())
