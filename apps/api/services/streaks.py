"""
Workout Streak Service

A streak is the number of consecutive daily batch observations in which the
client's most recent completion was today or yesterday.

States: NO_HISTORY (never completed anything), ACTIVE(n), BROKEN.

    last completion is None                     -> NO_HISTORY, zeroed row ensured
    last completion today/yesterday, new date   -> ACTIVE(n + 1)
    last completion today/yesterday, same date  -> unchanged
    gap of 2+ days                              -> BROKEN: current = 0

A broken streak records the observed last completion date (historical fact,
not the batch date), so repeated runs over the same observation write nothing.
"""
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from models import ClientStreak
from services.date_utils import utcnow

logger = logging.getLogger(__name__)

# Streak lengths (days) that raise a streak_achieved notification
STREAK_MILESTONES = (7, 14, 30, 60, 90, 100)


class StreakPhase(str, Enum):
    NO_HISTORY = "no_history"
    ACTIVE = "active"
    BROKEN = "broken"


@dataclass
class StreakTransition:
    """Result of feeding one observation to the streak machine."""
    phase: StreakPhase
    current_streak: int
    longest_streak: int
    last_workout_date: Optional[date]
    streak_start_date: Optional[date]
    changed: bool
    milestone: Optional[int] = None  # New streak length if it is a milestone
    lost_streak: Optional[int] = None  # Previous length when a long streak broke
    previous_streak: int = 0


def next_streak_state(
    current_streak: int,
    longest_streak: int,
    last_workout_date: Optional[date],
    streak_start_date: Optional[date],
    last_completed: Optional[date],
    today: date,
    milestones: Iterable[int] = STREAK_MILESTONES,
    lost_threshold: int = 7,
) -> StreakTransition:
    """Pure transition function; nothing is read or written here."""
    if last_completed is None:
        return StreakTransition(
            phase=StreakPhase.NO_HISTORY,
            current_streak=current_streak,
            longest_streak=longest_streak,
            last_workout_date=last_workout_date,
            streak_start_date=streak_start_date,
            changed=False,
            previous_streak=current_streak,
        )

    # Completions dated in the future count as today
    days_since = (today - last_completed).days

    if days_since <= 1:
        if last_completed == last_workout_date:
            return StreakTransition(
                phase=StreakPhase.ACTIVE if current_streak > 0 else StreakPhase.BROKEN,
                current_streak=current_streak,
                longest_streak=longest_streak,
                last_workout_date=last_workout_date,
                streak_start_date=streak_start_date,
                changed=False,
                previous_streak=current_streak,
            )

        new_streak = current_streak + 1
        start = streak_start_date if current_streak > 0 and streak_start_date else last_completed
        return StreakTransition(
            phase=StreakPhase.ACTIVE,
            current_streak=new_streak,
            longest_streak=max(longest_streak, new_streak),
            last_workout_date=last_completed,
            streak_start_date=start,
            changed=True,
            milestone=new_streak if new_streak in set(milestones) else None,
            previous_streak=current_streak,
        )

    already_reset = (
        current_streak == 0
        and streak_start_date is None
        and last_workout_date == last_completed
    )
    return StreakTransition(
        phase=StreakPhase.BROKEN,
        current_streak=0,
        longest_streak=longest_streak,
        last_workout_date=last_completed,
        streak_start_date=None,
        changed=not already_reset,
        lost_streak=current_streak if current_streak >= lost_threshold else None,
        previous_streak=current_streak,
    )


def get_or_create_streak(db: Session, client_id: UUID, now: Optional[datetime] = None):
    """
    Load the client's streak row, creating a zeroed one if absent.

    Returns (row, created).
    """
    streak = db.query(ClientStreak).filter(ClientStreak.client_id == client_id).first()
    if streak is not None:
        return streak, False

    streak = ClientStreak(
        client_id=client_id,
        current_streak=0,
        longest_streak=0,
        updated_at=now or utcnow(),
    )
    db.add(streak)
    db.flush()
    return streak, True


def apply_observation(
    db: Session,
    client_id: UUID,
    last_completed: Optional[date],
    now: datetime,
    milestones: Iterable[int] = STREAK_MILESTONES,
    lost_threshold: int = 7,
):
    """
    Advance a client's stored streak with today's observation.

    Returns (transition, written) where written tells whether the row was
    inserted or updated. Does not commit.
    """
    streak, created = get_or_create_streak(db, client_id, now)

    transition = next_streak_state(
        current_streak=streak.current_streak,
        longest_streak=streak.longest_streak,
        last_workout_date=streak.last_workout_date,
        streak_start_date=streak.streak_start_date,
        last_completed=last_completed,
        today=now.date(),
        milestones=milestones,
        lost_threshold=lost_threshold,
    )

    if transition.changed:
        streak.current_streak = transition.current_streak
        streak.longest_streak = transition.longest_streak
        streak.last_workout_date = transition.last_workout_date
        streak.streak_start_date = transition.streak_start_date
        streak.updated_at = now
        db.flush()
        logger.debug(
            f"Streak for client {client_id}: {transition.previous_streak} -> "
            f"{transition.current_streak} ({transition.phase.value})"
        )

    return transition, created or transition.changed
