"""
Schedule Resolver

Read-side projection answering "what is due for this client, and what has
been done" for the calendar UI and the adherence batch.

Output:
- by_week_and_day: week_number -> day_of_week (0..6) -> [ScheduledWorkout].
  Every week 1..max_week and every weekday is present; rest days are empty
  lists. Several active assignments may put workouts on the same slot; they
  accumulate, nothing is overwritten.
- by_day: legacy flat week-1 view (day -> workout, last one wins) kept for
  single-week consumers.
- completion_index: each completion is registered under three keys of
  decreasing specificity

      "YYYY-MM-DD:<workout_id>:<assignment_id>"   exact
      "YYYY-MM-DD:<workout_id>"                   workout
      "YYYY-MM-DD:any"                            loose

  so completions recorded before they carried an assignment link still match.
- completions_by_date: legacy date -> workout_id map.

Any number of assignments may be active at once; nothing here assumes one.
No writes.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from models import ClientProgram, Program, WorkoutCompletion
from services.date_utils import as_date, day_of_week, inclusive_end, iso, utcnow

logger = logging.getLogger(__name__)

# How far back completions are pulled for the calendar. Policy, not a setting.
COMPLETION_LOOKBACK_DAYS = 90

DAYS_OF_WEEK = range(7)

MATCH_EXACT = "exact"
MATCH_WORKOUT = "workout"
ANY_WORKOUT = "any"


@dataclass
class ScheduledWorkout:
    workout_id: str
    workout_name: str
    program_name: str
    assignment_id: str
    week_number: int
    day_of_week: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def to_response(self) -> Dict:
        return {
            "dayOfWeek": self.day_of_week,
            "workoutId": self.workout_id,
            "workoutName": self.workout_name,
            "programName": self.program_name,
            "clientProgramId": self.assignment_id,
            "weekNumber": self.week_number,
        }


@dataclass
class ResolvedSchedule:
    by_week_and_day: Dict[int, Dict[int, List[ScheduledWorkout]]]
    by_day: Dict[int, ScheduledWorkout] = field(default_factory=dict)
    completion_index: Dict[str, bool] = field(default_factory=dict)
    completions_by_date: Dict[str, str] = field(default_factory=dict)
    max_week: int = 1
    earliest_start: Optional[date] = None

    def to_response(self) -> Dict:
        """JSON shape served to both the legacy and the multi-week calendar."""
        return {
            "scheduleByDay": {d: w.to_response() for d, w in self.by_day.items()},
            "scheduleByWeekAndDay": {
                week: {day: [w.to_response() for w in slot] for day, slot in days.items()}
                for week, days in self.by_week_and_day.items()
            },
            "completionsByDate": dict(self.completions_by_date),
            "completionsByDateAndWorkout": dict(self.completion_index),
            "programStartDate": iso(self.earliest_start),
            "maxWeek": self.max_week,
        }


def empty_week_grid(max_week: int) -> Dict[int, Dict[int, List[ScheduledWorkout]]]:
    return {week: {day: [] for day in DAYS_OF_WEEK} for week in range(1, max_week + 1)}


def completion_keys(scheduled_date, workout_id, assignment_id=None) -> List[str]:
    """Index keys for one completion, most specific first."""
    day = iso(as_date(scheduled_date))
    keys = []
    if assignment_id:
        keys.append(f"{day}:{workout_id}:{assignment_id}")
    keys.append(f"{day}:{workout_id}")
    keys.append(f"{day}:{ANY_WORKOUT}")
    return keys


def build_completion_index(completions) -> Dict[str, bool]:
    index: Dict[str, bool] = {}
    for c in completions:
        for key in completion_keys(c.scheduled_date, c.workout_id, c.client_program_id):
            index[key] = True
    return index


def lookup_completion(
    index: Dict[str, bool],
    day,
    workout_id,
    assignment_id=None,
) -> Optional[str]:
    """
    Find a completion for a due workout, falling back from exact to workout level.

    Returns MATCH_EXACT, MATCH_WORKOUT or None.
    """
    day = iso(as_date(day))
    if assignment_id and index.get(f"{day}:{workout_id}:{assignment_id}"):
        return MATCH_EXACT
    if index.get(f"{day}:{workout_id}"):
        return MATCH_WORKOUT
    return None


def is_on_schedule(index: Dict[str, bool], day) -> bool:
    """Whether anything was completed on that date, whichever workout it was."""
    return bool(index.get(f"{iso(as_date(day))}:{ANY_WORKOUT}"))


def due_on(schedule: ResolvedSchedule, day: date) -> List[ScheduledWorkout]:
    """
    Workouts due on a calendar date.

    Each slot only counts while its own assignment covers the date. Its
    week number is counted from that assignment's start and wraps around the
    assignment's last program week. Slots without a start date fall back to
    the earliest active start.
    """
    if schedule.earliest_start is None:
        return []

    program_weeks: Dict[str, int] = {}
    for days in schedule.by_week_and_day.values():
        for slot_list in days.values():
            for slot in slot_list:
                program_weeks[slot.assignment_id] = max(program_weeks.get(slot.assignment_id, 1), slot.week_number)

    due = []
    for week in sorted(schedule.by_week_and_day):
        for slot in schedule.by_week_and_day[week][day_of_week(day)]:
            start = slot.start_date or schedule.earliest_start
            if day < start or (slot.end_date is not None and day > slot.end_date):
                continue
            if ((day - start).days // 7) % program_weeks[slot.assignment_id] + 1 == week:
                due.append(slot)
    return due


def _active_assignments(db: Session, client_id: UUID) -> List[ClientProgram]:
    return (
        db.query(ClientProgram)
        .options(selectinload(ClientProgram.program).selectinload(Program.workouts))
        .filter(ClientProgram.client_id == client_id, ClientProgram.is_active.is_(True))
        .order_by(ClientProgram.order_index)
        .populate_existing()
        .all()
    )


def _recent_completions(db: Session, client_id: UUID, assignment_ids: List[UUID], since: date):
    query = db.query(WorkoutCompletion).filter(
        WorkoutCompletion.client_id == client_id,
        WorkoutCompletion.scheduled_date >= since,
    )
    if assignment_ids:
        # Unlinked legacy records stay visible
        query = query.filter(
            or_(
                WorkoutCompletion.client_program_id.in_(assignment_ids),
                WorkoutCompletion.client_program_id.is_(None),
            )
        )
    return query.order_by(WorkoutCompletion.scheduled_date, WorkoutCompletion.completed_at).all()


def resolve(db: Session, client_id: UUID, now: Optional[datetime] = None) -> ResolvedSchedule:
    """Build the schedule grid and completion index for one client."""
    now = now or utcnow()
    assignments = _active_assignments(db, client_id)

    slots: List[ScheduledWorkout] = []
    max_week = 1
    earliest_start = None

    for cp in assignments:
        if cp.start_date and (earliest_start is None or cp.start_date < earliest_start):
            earliest_start = cp.start_date

        program = cp.program
        if program is None:
            continue

        end_date = cp.end_date
        if end_date is None and cp.start_date and cp.duration_weeks:
            end_date = inclusive_end(cp.start_date, cp.duration_weeks)

        for workout in program.workouts:
            # Variations/finishers hang off a parent and never take a slot
            if workout.parent_workout_id is not None or workout.day_of_week is None:
                continue
            week = workout.week_number or 1
            max_week = max(max_week, week)
            slots.append(
                ScheduledWorkout(
                    workout_id=str(workout.id),
                    workout_name=workout.name,
                    program_name=program.name,
                    assignment_id=str(cp.id),
                    week_number=week,
                    day_of_week=workout.day_of_week,
                    start_date=cp.start_date,
                    end_date=end_date,
                )
            )

    by_week_and_day = empty_week_grid(max_week)
    by_day: Dict[int, ScheduledWorkout] = {}
    for slot in slots:
        by_week_and_day[slot.week_number][slot.day_of_week].append(slot)
        if slot.week_number == 1:
            by_day[slot.day_of_week] = slot

    since = now.date() - timedelta(days=COMPLETION_LOOKBACK_DAYS)
    completions = _recent_completions(db, client_id, [cp.id for cp in assignments], since)

    completions_by_date = {iso(c.scheduled_date): str(c.workout_id) for c in completions}

    logger.debug(
        f"Resolved schedule for client {client_id}: {len(assignments)} active assignments, "
        f"{len(slots)} slots, {len(completions)} completions"
    )

    return ResolvedSchedule(
        by_week_and_day=by_week_and_day,
        by_day=by_day,
        completion_index=build_completion_index(completions),
        completions_by_date=completions_by_date,
        max_week=max_week,
        earliest_start=earliest_start,
    )
