from sqlalchemy import Column, Integer, Boolean, CheckConstraint, Float, Date, DateTime, ForeignKey, Text, Index, UniqueConstraint, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import JSONB
from core.database import Base
import uuid
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Client(Base):
    """
    Coaching client profile.

    Only the columns the timeline/adherence engine reads live here; the rest of
    the profile (contact details, billing, organization) is owned elsewhere.
    """
    __tablename__ = "client"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    email = Column(Text, unique=True, nullable=True)
    full_name = Column(Text, nullable=True)
    role = Column(Text, default="client", nullable=False)  # 'client', 'trainer', 'admin'
    is_active = Column(Boolean, default=True, nullable=False)

    assignments = relationship(
        "ClientProgram",
        back_populates="client",
        order_by="ClientProgram.order_index",
        cascade="all, delete-orphan",
    )
    streak = relationship("ClientStreak", back_populates="client", uselist=False)


class Program(Base):
    __tablename__ = "program"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=True)  # strength, cardio, hyrox, hybrid, ...
    duration_weeks = Column(Integer, nullable=True)  # Default length when assigned
    is_active = Column(Boolean, default=True, nullable=False)

    workouts = relationship(
        "ProgramWorkout",
        back_populates="program",
        order_by="ProgramWorkout.order_index",
        cascade="all, delete-orphan",
    )


class ProgramWorkout(Base):
    """
    A workout definition inside a program.

    Slot on the calendar = (week_number, day_of_week). Variations/finishers
    point at their parent via parent_workout_id and never occupy a slot.
    """
    __tablename__ = "program_workout"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    program_id = Column(Uuid, ForeignKey("program.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    day_of_week = Column(Integer, nullable=True)  # 0 = Sunday .. 6 = Saturday, NULL = unscheduled
    week_number = Column(Integer, nullable=True)  # 1..N, NULL read as week 1
    parent_workout_id = Column(Uuid, ForeignKey("program_workout.id", ondelete="CASCADE"), nullable=True)
    order_index = Column(Integer, default=0, nullable=False)

    program = relationship("Program", back_populates="workouts")
    exercises = relationship(
        "WorkoutExercise",
        back_populates="workout",
        order_by="WorkoutExercise.order_index",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("day_of_week IS NULL OR (day_of_week >= 0 AND day_of_week <= 6)", name="ck_program_workout_day_of_week"),
        CheckConstraint("week_number IS NULL OR week_number >= 1", name="ck_program_workout_week_number"),
    )


class WorkoutExercise(Base):
    __tablename__ = "workout_exercise"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workout_id = Column(Uuid, ForeignKey("program_workout.id", ondelete="CASCADE"), nullable=False, index=True)
    exercise_name = Column(Text, nullable=False)
    order_index = Column(Integer, default=0, nullable=False)

    workout = relationship("ProgramWorkout", back_populates="exercises")


class ClientProgram(Base):
    """
    A program assignment: one client running one program for a date range.

    start_date/end_date are derived from order_index + duration_weeks by the
    timeline sequencer; end_date is inclusive.
    """
    __tablename__ = "client_program"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Uuid, ForeignKey("client.id", ondelete="CASCADE"), nullable=False)
    program_id = Column(Uuid, ForeignKey("program.id"), nullable=False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    duration_weeks = Column(Integer, nullable=False)
    order_index = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    client = relationship("Client", back_populates="assignments")
    program = relationship("Program")

    __table_args__ = (
        CheckConstraint("duration_weeks > 0", name="ck_client_program_duration_positive"),
        Index("ix_client_program_client_order", "client_id", "order_index"),
        Index("ix_client_program_client_active", "client_id", "is_active"),
    )


class WorkoutLog(Base):
    """One logged training session."""
    __tablename__ = "workout_log"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Uuid, ForeignKey("client.id", ondelete="CASCADE"), nullable=False, index=True)
    workout_id = Column(Uuid, ForeignKey("program_workout.id"), nullable=True)
    trainer_id = Column(Uuid, ForeignKey("client.id"), nullable=True)
    scheduled_date = Column(Date, nullable=True)
    completed_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    notes = Column(Text, nullable=True)

    set_logs = relationship("SetLog", back_populates="workout_log", cascade="all, delete-orphan")


class WorkoutCompletion(Base):
    """
    Completion record for a scheduled workout.

    client_program_id is NULL on records written before completions were
    linked to an assignment; readers must tolerate that.
    """
    __tablename__ = "workout_completion"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Uuid, ForeignKey("client.id", ondelete="CASCADE"), nullable=False)
    workout_id = Column(Uuid, ForeignKey("program_workout.id"), nullable=False)
    client_program_id = Column(Uuid, ForeignKey("client_program.id", ondelete="SET NULL"), nullable=True)
    workout_log_id = Column(Uuid, ForeignKey("workout_log.id", ondelete="SET NULL"), nullable=True)
    scheduled_date = Column(Date, nullable=False)
    completed_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_workout_completion_client_scheduled", "client_id", "scheduled_date"),
        Index("ix_workout_completion_client_completed", "client_id", "completed_at"),
    )


class SetLog(Base):
    """A single performed set. Immutable once written."""
    __tablename__ = "set_log"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workout_log_id = Column(Uuid, ForeignKey("workout_log.id", ondelete="CASCADE"), nullable=False, index=True)
    exercise_id = Column(Uuid, ForeignKey("workout_exercise.id"), nullable=False)
    set_number = Column(Integer, nullable=False, default=1)
    weight_kg = Column(Float, nullable=True)
    reps_completed = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)

    workout_log = relationship("WorkoutLog", back_populates="set_logs")
    exercise = relationship("WorkoutExercise")


class ClientOneRepMax(Base):
    """Current best lift per exercise, maintained when sessions are completed."""
    __tablename__ = "client_one_rep_max"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Uuid, ForeignKey("client.id", ondelete="CASCADE"), nullable=False)
    exercise_name = Column(Text, nullable=False)
    weight_kg = Column(Float, nullable=False)  # Nearest 0.5 kg
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("client_id", "exercise_name", name="uq_client_one_rep_max_client_exercise"),
    )


class ClientStreak(Base):
    """
    Daily workout streak, one row per client.

    longest_streak >= current_streak always holds.
    """
    __tablename__ = "client_streak"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Uuid, ForeignKey("client.id", ondelete="CASCADE"), nullable=False, unique=True)
    current_streak = Column(Integer, default=0, nullable=False)
    longest_streak = Column(Integer, default=0, nullable=False)
    last_workout_date = Column(Date, nullable=True)
    streak_start_date = Column(Date, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    client = relationship("Client", back_populates="streak")

    __table_args__ = (
        CheckConstraint("longest_streak >= current_streak", name="ck_client_streak_longest_ge_current"),
    )


class PersonalRecord(Base):
    """Best estimated 1RM per (client, exercise). Only ever increases."""
    __tablename__ = "personal_record"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Uuid, ForeignKey("client.id", ondelete="CASCADE"), nullable=False)
    exercise_name = Column(Text, nullable=False)
    weight_kg = Column(Float, nullable=False)
    reps = Column(Integer, nullable=False)
    estimated_1rm = Column(Float, nullable=False)  # Rounded to 0.1 kg
    achieved_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("client_id", "exercise_name", name="uq_personal_record_client_exercise"),
    )


class AdminNotification(Base):
    """
    Admin-facing notification about a client.

    Deduplicated per (client, type) among undismissed rows created inside a
    trailing window; see services.notification_sink.
    """
    __tablename__ = "admin_notification"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Uuid, ForeignKey("client.id", ondelete="CASCADE"), nullable=False)
    type = Column(Text, nullable=False)  # missed_workout, new_pr, streak_achieved, streak_lost
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    payload = Column("metadata", JSONType, nullable=True)
    is_dismissed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_admin_notification_dedup", "client_id", "type", "is_dismissed", "created_at"),
    )
