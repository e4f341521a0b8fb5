"""
Program Assignment API Router

Manages a client's program timeline: list, append, change duration, remove
and reorder. Every mutation re-dates the affected assignments so the
timeline stays contiguous.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import DOMAIN_ERRORS, NotFoundError, to_api_exception
from models import Client
from schemas import AssignmentCreate, AssignmentReorder, AssignmentResponse, AssignmentUpdate
from services import timeline_sequencer

router = APIRouter(prefix="/v1", tags=["Assignments"])


@router.get("/clients/{client_id}/assignments", response_model=List[AssignmentResponse])
def list_assignments(client_id: UUID, db: Session = Depends(get_db)):
    """A client's assignments in timeline order."""
    if db.get(Client, client_id) is None:
        raise NotFoundError("Client", str(client_id))
    return timeline_sequencer.load_timeline(db, client_id)


@router.post("/clients/{client_id}/assignments", response_model=AssignmentResponse, status_code=201)
def create_assignment(client_id: UUID, request: AssignmentCreate, db: Session = Depends(get_db)):
    """Append a program to the end of the client's timeline."""
    try:
        return timeline_sequencer.append_assignment(
            db,
            client_id,
            request.program_id,
            duration_weeks=request.duration_weeks,
            notes=request.notes,
        )
    except DOMAIN_ERRORS as e:
        raise to_api_exception(e)


@router.patch("/assignments/{assignment_id}", response_model=List[AssignmentResponse])
def update_assignment(assignment_id: UUID, request: AssignmentUpdate, db: Session = Depends(get_db)):
    """Change an assignment's duration. Returns the re-dated timeline."""
    try:
        return timeline_sequencer.change_duration(db, assignment_id, request.duration_weeks)
    except DOMAIN_ERRORS as e:
        raise to_api_exception(e)


@router.delete("/assignments/{assignment_id}", response_model=List[AssignmentResponse])
def delete_assignment(assignment_id: UUID, db: Session = Depends(get_db)):
    """Remove an assignment. Returns the remaining, re-dated timeline."""
    try:
        return timeline_sequencer.remove_assignment(db, assignment_id)
    except DOMAIN_ERRORS as e:
        raise to_api_exception(e)


@router.post("/clients/{client_id}/assignments/reorder", response_model=List[AssignmentResponse])
def reorder_assignments(client_id: UUID, request: AssignmentReorder, db: Session = Depends(get_db)):
    try:
        return timeline_sequencer.move_assignment(db, client_id, request.assignment_id, request.target_index)
    except DOMAIN_ERRORS as e:
        raise to_api_exception(e)
