"""
Daily Adherence Analytics Batch

Once a day, for every active client:

1. lock the client row (serializes concurrent runs per client)
2. find the last completed workout
3. flag a missed workout when an active program has gone untouched too long
4. advance the streak state machine (milestones / lost streaks)
5. detect new personal records in the trailing window
6. commit

Each client is its own unit of work. Everything is computed relative to the
`now` passed in, and every write is either idempotent for the same observation
or guarded by a notification dedup window, so running the batch twice on the
same day changes nothing the second time.
"""
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Tuple, Union
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from models import Client, ClientProgram, WorkoutCompletion
from services import notification_sink
from services.date_utils import as_date, display_name, utcnow
from services.personal_records import NewPersonalRecord, detect_personal_records
from services.streaks import STREAK_MILESTONES, StreakTransition, apply_observation

logger = logging.getLogger(__name__)

NEVER = "never"

CLIENT_ROLE = "client"


@dataclass(frozen=True)
class AdherenceConfig:
    """Policy knobs for one batch run."""
    lookback_days: int = 7  # PR window and missed-workout dedup window
    missed_after_days: int = 3
    streak_lost_min: int = 7
    streak_lost_window_days: int = 7
    milestones: Tuple[int, ...] = STREAK_MILESTONES

    @classmethod
    def from_settings(cls, settings) -> "AdherenceConfig":
        return cls(
            lookback_days=settings.ADHERENCE_LOOKBACK_DAYS,
            missed_after_days=settings.ADHERENCE_MISSED_AFTER_DAYS,
            streak_lost_min=settings.ADHERENCE_STREAK_LOST_MIN,
            streak_lost_window_days=settings.ADHERENCE_STREAK_LOST_WINDOW_DAYS,
        )


@dataclass
class ClientOutcome:
    client_id: str
    days_since_workout: Union[int, str]
    missed_workout: bool = False
    streak: int = 0
    streak_written: bool = False
    milestone: Optional[int] = None
    lost_streak: Optional[int] = None
    new_prs: List[str] = field(default_factory=list)
    notifications: int = 0


@dataclass
class BatchSummary:
    clients_processed: int = 0
    missed_workouts: int = 0
    streaks_updated: int = 0
    prs_detected: int = 0
    notifications_created: int = 0
    aborted: bool = False
    clients: List[ClientOutcome] = field(default_factory=list)

    def record(self, outcome: ClientOutcome) -> None:
        self.clients.append(outcome)
        self.clients_processed += 1
        self.missed_workouts += int(outcome.missed_workout)
        self.streaks_updated += int(outcome.streak_written)
        self.prs_detected += len(outcome.new_prs)
        self.notifications_created += outcome.notifications

    def totals(self) -> Dict:
        return {
            "clients_processed": self.clients_processed,
            "missed_workouts": self.missed_workouts,
            "streaks_updated": self.streaks_updated,
            "prs_detected": self.prs_detected,
            "notifications_created": self.notifications_created,
            "aborted": self.aborted,
        }

    def to_dict(self) -> Dict:
        data = self.totals()
        data["clients"] = [asdict(c) for c in self.clients]
        return data


def eligible_clients(db: Session) -> List[Client]:
    return (
        db.query(Client)
        .filter(Client.is_active.is_(True), Client.role == CLIENT_ROLE)
        .order_by(Client.created_at, Client.id)
        .all()
    )


def last_completed_date(db: Session, client_id: UUID) -> Optional[date]:
    """Date part of the client's most recent completion, by completion time."""
    latest = (
        db.query(WorkoutCompletion.completed_at)
        .filter(WorkoutCompletion.client_id == client_id)
        .order_by(WorkoutCompletion.completed_at.desc())
        .first()
    )
    return as_date(latest[0]) if latest else None


def has_active_assignment(db: Session, client_id: UUID) -> bool:
    return db.query(
        db.query(ClientProgram.id)
        .filter(ClientProgram.client_id == client_id, ClientProgram.is_active.is_(True))
        .exists()
    ).scalar()


def _check_missed_workout(
    db: Session,
    client: Client,
    name: str,
    days_since: Optional[int],
    now: datetime,
    config: AdherenceConfig,
) -> bool:
    if days_since is not None and days_since < config.missed_after_days:
        return False

    if days_since is None:
        message = f"{name} has never logged a workout"
    else:
        message = f"{name} hasn't logged a workout in {days_since} days"

    created = notification_sink.emit_notification(
        db,
        client.id,
        notification_sink.MISSED_WORKOUT,
        title=f"{name} hasn't worked out",
        message=message,
        metadata={"days_missed": days_since},
        window_days=config.lookback_days,
        now=now,
    )
    return created is not None


def _streak_notifications(
    db: Session,
    client: Client,
    name: str,
    transition: StreakTransition,
    now: datetime,
    config: AdherenceConfig,
) -> int:
    created = 0
    if transition.milestone is not None:
        n = transition.milestone
        row = notification_sink.emit_notification(
            db,
            client.id,
            notification_sink.STREAK_ACHIEVED,
            title=f"🔥 {name} reached a {n}-day streak!",
            message=f"{name} has been consistently working out for {n} days straight. Great consistency!",
            metadata={"streak_days": n},
            now=now,
        )
        created += row is not None

    if transition.lost_streak is not None:
        n = transition.lost_streak
        row = notification_sink.emit_notification(
            db,
            client.id,
            notification_sink.STREAK_LOST,
            title=f"{name} lost their {n}-day streak",
            message=f"{name}'s workout streak of {n} days has been broken. Consider reaching out to check in.",
            metadata={"lost_streak": n},
            window_days=config.streak_lost_window_days,
            now=now,
        )
        created += row is not None

    return created


def _pr_notification(db: Session, client: Client, name: str, record: NewPersonalRecord, now: datetime) -> bool:
    c = record.candidate
    detail = f"{c.exercise_name}: {c.weight_kg:g}kg x {c.reps} (est 1RM: {round(c.estimated_1rm)}kg"
    if record.improvement:
        detail += f", +{record.improvement}kg"
    detail += ")"

    row = notification_sink.emit_notification(
        db,
        client.id,
        notification_sink.NEW_PR,
        title=f"🏆 {name} hit a new PR!",
        message=detail,
        metadata=record.to_metadata(),
        now=now,
    )
    return row is not None


def process_client(db: Session, client: Client, now: datetime, config: AdherenceConfig) -> ClientOutcome:
    """Run every check for one client. Does not commit."""
    notification_sink.lock_client(db, client.id)

    name = display_name(client.full_name, client.email)
    last_completed = last_completed_date(db, client.id)
    days_since = (now.date() - last_completed).days if last_completed else None

    outcome = ClientOutcome(
        client_id=str(client.id),
        days_since_workout=days_since if days_since is not None else NEVER,
    )

    if has_active_assignment(db, client.id):
        outcome.missed_workout = _check_missed_workout(db, client, name, days_since, now, config)
        outcome.notifications += int(outcome.missed_workout)

    transition, written = apply_observation(
        db,
        client.id,
        last_completed,
        now,
        milestones=config.milestones,
        lost_threshold=config.streak_lost_min,
    )
    outcome.streak = transition.current_streak
    outcome.streak_written = written
    outcome.milestone = transition.milestone
    outcome.lost_streak = transition.lost_streak
    outcome.notifications += _streak_notifications(db, client, name, transition, now, config)

    for record in detect_personal_records(db, client.id, now, lookback_days=config.lookback_days):
        outcome.new_prs.append(record.candidate.exercise_name)
        outcome.notifications += int(_pr_notification(db, client, name, record, now))

    return outcome


def run_daily(
    db: Session,
    now: Optional[datetime] = None,
    config: Optional[AdherenceConfig] = None,
    should_stop: Optional[Callable[[], bool]] = None,
) -> BatchSummary:
    """
    Process every eligible client, committing after each one.

    A failure rolls back the client being processed and propagates; clients
    already committed stay committed and the next run picks up the rest.
    """
    now = now or utcnow()
    config = config or AdherenceConfig()
    summary = BatchSummary()

    client_ids = [c.id for c in eligible_clients(db)]
    logger.info(f"Adherence batch starting for {len(client_ids)} clients at {now.isoformat()}")

    for client_id in client_ids:
        if should_stop is not None and should_stop():
            summary.aborted = True
            logger.warning(
                f"Adherence batch stopped early after {summary.clients_processed} of {len(client_ids)} clients"
            )
            break

        try:
            client = db.get(Client, client_id)
            if client is None:
                continue
            outcome = process_client(db, client, now, config)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception(f"Adherence batch failed for client {client_id}")
            raise

        summary.record(outcome)

    logger.info("Adherence batch finished", extra={"extra_fields": summary.totals()})
    return summary
