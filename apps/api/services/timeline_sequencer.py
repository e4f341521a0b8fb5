"""
Program Timeline Sequencer

Lays a client's program assignments end to end on the calendar.

Dates are derived data: start_date of assignment i is the day after the
inclusive end_date of assignment i-1, and end_date = start + weeks*7 - 1.
Any edit (append, duration change, removal, drag-and-drop move) re-runs the
forward fold over every assignment downstream of the edit.

Writes happen inside one transaction, one flush per assignment, in timeline
order. A resolver reading concurrently may see the old or the new timeline;
these dates are advisory scheduling data so that window is accepted.
"""
from datetime import date, timedelta
from typing import Iterator, List, Optional, Sequence, Tuple
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from core.exceptions import EntityNotFoundError, InvalidDurationError
from models import Client, ClientProgram, Program
from services.date_utils import inclusive_end, utcnow

logger = logging.getLogger(__name__)

DEFAULT_DURATION_WEEKS = 4


def validate_duration(duration_weeks, assignment_id=None) -> int:
    # bool is an int subclass; True weeks is not a duration
    if isinstance(duration_weeks, bool) or not isinstance(duration_weeks, int) or duration_weeks <= 0:
        raise InvalidDurationError(duration_weeks, assignment_id)
    return duration_weeks


def _fold(assignments: Sequence, start: date) -> Iterator[Tuple[int, object, date, date]]:
    cursor = start
    for i, assignment in enumerate(assignments):
        end = inclusive_end(cursor, assignment.duration_weeks)
        yield i, assignment, cursor, end
        cursor = end + timedelta(days=1)


def _anchor(assignments: Sequence, anchor_date: Optional[date], today: Optional[date]) -> date:
    if anchor_date is not None:
        return anchor_date
    if assignments[0].start_date is not None:
        return assignments[0].start_date
    return today or utcnow().date()


def resequence(assignments: Sequence, anchor_date: Optional[date] = None, today: Optional[date] = None) -> List:
    """
    Recompute start/end dates (and order_index) for assignments in the given order.

    Args:
        assignments: desired order; objects with start_date, end_date,
            duration_weeks and order_index attributes
        anchor_date: explicit start of the first assignment; defaults to the
            first assignment's current start_date, then to today

    Raises:
        InvalidDurationError: before anything is modified, if any duration
            is not a positive integer
    """
    if not assignments:
        return []

    for a in assignments:
        validate_duration(a.duration_weeks, getattr(a, "id", None))

    for i, assignment, start, end in _fold(assignments, _anchor(assignments, anchor_date, today)):
        assignment.start_date = start
        assignment.end_date = end
        assignment.order_index = i

    return list(assignments)


def resequence_and_persist(
    db: Session,
    assignments: Sequence[ClientProgram],
    anchor_date: Optional[date] = None,
    today: Optional[date] = None,
    index_offset: int = 0,
) -> List[ClientProgram]:
    """
    Resequence and write each assignment in order, committing once at the end.

    index_offset keeps order_index absolute when only a suffix of the
    timeline is passed in.
    """
    if not assignments:
        return []

    for a in assignments:
        validate_duration(a.duration_weeks, a.id)

    try:
        for i, assignment, start, end in _fold(assignments, _anchor(assignments, anchor_date, today)):
            assignment.start_date = start
            assignment.end_date = end
            assignment.order_index = index_offset + i
            db.flush()
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Resequencing failed, timeline left unchanged")
        raise

    return list(assignments)


def load_timeline(db: Session, client_id: UUID) -> List[ClientProgram]:
    """A client's assignments in timeline order."""
    return (
        db.query(ClientProgram)
        .filter(ClientProgram.client_id == client_id)
        .order_by(ClientProgram.order_index, ClientProgram.start_date, ClientProgram.created_at)
        .all()
    )


def next_start_date(assignments: Sequence, today: date) -> date:
    """Day after the last assignment ends, or today for an empty timeline."""
    if not assignments:
        return today
    last = assignments[-1]
    end = last.end_date or inclusive_end(last.start_date or today, last.duration_weeks)
    return end + timedelta(days=1)


def current_assignment(assignments: Sequence, today: date):
    """Assignment whose inclusive date range contains today, if any."""
    for a in assignments:
        if a.start_date and a.start_date <= today and (a.end_date is None or a.end_date >= today):
            return a
    return None


def append_assignment(
    db: Session,
    client_id: UUID,
    program_id: UUID,
    duration_weeks: Optional[int] = None,
    today: Optional[date] = None,
    notes: Optional[str] = None,
) -> ClientProgram:
    """
    Add a program to the end of a client's timeline.

    Duration falls back to the program's default, then to 4 weeks. The
    first assignment a client gets is marked active.
    """
    today = today or utcnow().date()

    if db.query(Client).filter(Client.id == client_id).first() is None:
        raise EntityNotFoundError("Client", client_id)
    program = db.query(Program).filter(Program.id == program_id).first()
    if program is None:
        raise EntityNotFoundError("Program", program_id)

    if duration_weeks is None:
        duration_weeks = program.duration_weeks or DEFAULT_DURATION_WEEKS
    validate_duration(duration_weeks)

    timeline = load_timeline(db, client_id)
    assignment = ClientProgram(
        client_id=client_id,
        program_id=program_id,
        duration_weeks=duration_weeks,
        is_active=len(timeline) == 0,
        notes=notes,
    )
    db.add(assignment)

    resequence_and_persist(
        db,
        [assignment],
        anchor_date=next_start_date(timeline, today),
        index_offset=len(timeline),
    )
    logger.info(
        f"Assigned program {program_id} to client {client_id}: "
        f"{assignment.start_date} -> {assignment.end_date}"
    )
    return assignment


def _get_assignment(db: Session, assignment_id: UUID) -> ClientProgram:
    assignment = db.query(ClientProgram).filter(ClientProgram.id == assignment_id).first()
    if assignment is None:
        raise EntityNotFoundError("Assignment", assignment_id)
    return assignment


def change_duration(db: Session, assignment_id: UUID, duration_weeks: int) -> List[ClientProgram]:
    """
    Change one assignment's length and shift everything after it.

    Assignments before the edited one keep their dates. Returns the full
    timeline.
    """
    validate_duration(duration_weeks, assignment_id)
    assignment = _get_assignment(db, assignment_id)

    timeline = load_timeline(db, assignment.client_id)
    idx = next(i for i, a in enumerate(timeline) if a.id == assignment.id)

    assignment.duration_weeks = duration_weeks
    resequence_and_persist(db, timeline[idx:], index_offset=idx)
    return timeline


def remove_assignment(db: Session, assignment_id: UUID, today: Optional[date] = None) -> List[ClientProgram]:
    """
    Delete an assignment and close the gap it leaves.

    The remaining timeline is re-anchored on its first assignment's current
    start date. When the deleted row was the client's only active one, the
    assignment covering today (else the first remaining one) becomes active.
    Returns the remaining timeline.
    """
    today = today or utcnow().date()
    assignment = _get_assignment(db, assignment_id)
    client_id = assignment.client_id
    was_active = assignment.is_active

    db.delete(assignment)
    db.flush()

    remaining = load_timeline(db, client_id)
    if not remaining:
        db.commit()
        return []

    if was_active and not any(a.is_active for a in remaining):
        resequence(remaining)
        successor = current_assignment(remaining, today) or remaining[0]
        successor.is_active = True
        logger.info(f"Assignment {successor.id} activated after removing {assignment_id}")
    return resequence_and_persist(db, remaining)


def move_assignment(db: Session, client_id: UUID, assignment_id: UUID, target_index: int) -> List[ClientProgram]:
    """
    Drag-and-drop reorder: move one assignment to target_index.

    The timeline keeps its original first start date; every assignment is
    re-dated in the new order.
    """
    timeline = load_timeline(db, client_id)
    try:
        source_index = next(i for i, a in enumerate(timeline) if a.id == assignment_id)
    except StopIteration:
        raise EntityNotFoundError("Assignment", assignment_id)

    target_index = max(0, min(target_index, len(timeline) - 1))
    anchor = timeline[0].start_date

    moved = timeline.pop(source_index)
    timeline.insert(target_index, moved)

    return resequence_and_persist(db, timeline, anchor_date=anchor)
