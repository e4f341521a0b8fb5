"""
Client Schedule API Router

Serves the resolved weekly schedule and completion index to the calendar.
"""
from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import NotFoundError
from models import Client
from services import schedule_resolver

router = APIRouter(prefix="/v1/clients", tags=["Schedule"])


@router.get("/{client_id}/schedule")
def get_schedule(client_id: UUID, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Week-by-week schedule across all active assignments plus completions.

    A client without active assignments gets an empty one-week grid.
    """
    if db.get(Client, client_id) is None:
        raise NotFoundError("Client", str(client_id))
    return schedule_resolver.resolve(db, client_id).to_response()
