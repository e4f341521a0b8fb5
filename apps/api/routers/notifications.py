"""
Admin Notification API Router

Inbox for coach-facing notifications raised by the adherence batch.
Dismissing a notification re-opens its dedup window.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import DOMAIN_ERRORS, to_api_exception
from schemas import NotificationResponse
from services import notification_sink

router = APIRouter(prefix="/v1/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
def list_notifications(
    include_dismissed: bool = False,
    client_id: Optional[UUID] = None,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Newest first."""
    return notification_sink.list_notifications(
        db,
        include_dismissed=include_dismissed,
        client_id=client_id,
        limit=limit,
    )


@router.post("/{notification_id}/dismiss", response_model=NotificationResponse)
def dismiss_notification(notification_id: UUID, db: Session = Depends(get_db)):
    try:
        return notification_sink.dismiss_notification(db, notification_id)
    except DOMAIN_ERRORS as e:
        raise to_api_exception(e)
