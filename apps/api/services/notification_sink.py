"""
Admin notification sink.

Append-only store of coach-facing notifications. The only contract the
adherence engine relies on:

    insert unless an undismissed notification of the same type for the same
    client was created within the trailing dedup window.

Dedup is a read-then-write, so callers hold the per-client lock from
`lock_client` for the whole unit of work; two batch runs touching the same
client then serialize and the second one sees the first one's row.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from core.exceptions import EntityNotFoundError
from models import AdminNotification, Client
from services.date_utils import utcnow

logger = logging.getLogger(__name__)

MISSED_WORKOUT = "missed_workout"
NEW_PR = "new_pr"
STREAK_ACHIEVED = "streak_achieved"
STREAK_LOST = "streak_lost"

NOTIFICATION_TYPES = (MISSED_WORKOUT, NEW_PR, STREAK_ACHIEVED, STREAK_LOST)


def lock_client(db: Session, client_id: UUID) -> Optional[Client]:
    """
    Take the client's row lock for the rest of the transaction.

    SELECT ... FOR UPDATE on PostgreSQL; SQLite ignores the clause and
    serializes writers on its own.
    """
    return (
        db.query(Client)
        .filter(Client.id == client_id)
        .with_for_update()
        .one_or_none()
    )


def has_recent_notification(
    db: Session,
    client_id: UUID,
    notification_type: str,
    window_days: int,
    now: datetime,
) -> bool:
    cutoff = now - timedelta(days=window_days)
    return db.query(
        db.query(AdminNotification.id)
        .filter(
            AdminNotification.client_id == client_id,
            AdminNotification.type == notification_type,
            AdminNotification.is_dismissed.is_(False),
            AdminNotification.created_at >= cutoff,
        )
        .exists()
    ).scalar()


def emit_notification(
    db: Session,
    client_id: UUID,
    notification_type: str,
    title: str,
    message: str,
    metadata: Optional[Dict[str, Any]] = None,
    window_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Optional[AdminNotification]:
    """
    Insert a notification unless an equivalent one is still open.

    window_days=None disables the dedup check (event notifications such as a
    new PR are unique by construction). Does not commit.

    Returns:
        The new row, or None when suppressed as a duplicate.
    """
    if notification_type not in NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type: {notification_type}")

    now = now or utcnow()
    if window_days is not None and has_recent_notification(db, client_id, notification_type, window_days, now):
        logger.debug(f"Suppressed duplicate {notification_type} notification for client {client_id}")
        return None

    notification = AdminNotification(
        client_id=client_id,
        type=notification_type,
        title=title,
        message=message,
        payload=metadata or {},
        is_dismissed=False,
        created_at=now,
    )
    db.add(notification)
    db.flush()
    return notification


def list_notifications(
    db: Session,
    include_dismissed: bool = False,
    client_id: Optional[UUID] = None,
    limit: int = 50,
) -> List[AdminNotification]:
    query = db.query(AdminNotification)
    if not include_dismissed:
        query = query.filter(AdminNotification.is_dismissed.is_(False))
    if client_id is not None:
        query = query.filter(AdminNotification.client_id == client_id)
    return query.order_by(AdminNotification.created_at.desc()).limit(limit).all()


def dismiss_notification(db: Session, notification_id: UUID) -> AdminNotification:
    """Mark a notification handled; this re-opens its dedup window."""
    notification = db.query(AdminNotification).filter(AdminNotification.id == notification_id).first()
    if notification is None:
        raise EntityNotFoundError("Notification", notification_id)
    notification.is_dismissed = True
    db.flush()
    return notification
