from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, date
from uuid import UUID
from typing import Optional, List, Dict, Any


class AssignmentCreate(BaseModel):
    program_id: UUID
    duration_weeks: Optional[int] = None  # Defaults to the program's length, then 4
    notes: Optional[str] = None


class AssignmentUpdate(BaseModel):
    """Change an assignment's length; later assignments shift with it."""
    duration_weeks: int


class AssignmentReorder(BaseModel):
    assignment_id: UUID
    target_index: int = Field(ge=0)


class AssignmentResponse(BaseModel):
    id: UUID
    client_id: UUID
    program_id: UUID
    start_date: Optional[date]
    end_date: Optional[date]  # Inclusive
    duration_weeks: int
    order_index: int
    is_active: bool
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SetLogCreate(BaseModel):
    exercise_id: UUID
    set_number: int = 1
    weight_kg: Optional[float] = None
    reps_completed: Optional[int] = None


class SessionComplete(BaseModel):
    client_id: UUID
    workout_id: UUID
    client_program_id: Optional[UUID] = None
    trainer_id: Optional[UUID] = None
    session_notes: Optional[str] = None
    set_logs: List[SetLogCreate] = []


class SessionCompleteResponse(BaseModel):
    success: bool = True
    workout_log_id: UUID
    completion_id: UUID
    sets_logged: int
    one_rep_maxes_updated: Dict[str, float] = {}


class OneRepMaxResponse(BaseModel):
    exercise_name: str
    weight_kg: float
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TonnageResponse(BaseModel):
    tonnage: int
    period: str


class ProgressionPointResponse(BaseModel):
    date: str
    weight: float
    reps: int

    model_config = ConfigDict(from_attributes=True)


class ProgressionResponse(BaseModel):
    exercise: str
    period: str
    progression: List[ProgressionPointResponse]


class NotificationResponse(BaseModel):
    id: UUID
    client_id: UUID
    type: str
    title: str
    message: str
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="payload")
    is_dismissed: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class CronRunResponse(BaseModel):
    message: str
    timestamp: datetime
    results: Dict[str, Any]
