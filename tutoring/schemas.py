import uuid
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime

from tutoring.status import SessionPriority, SessionStatus


class SessionCreate(BaseModel):
    tutor_id: uuid.UUID
    course_id: str = Field(..., min_length=1, max_length=64)
    scheduled_date: datetime
    duration_minutes: int = Field(60, gt=0)
    student_question: str = Field(..., min_length=1)
    priority: SessionPriority = SessionPriority.MEDIUM


class SessionRead(BaseModel):
    id: int
    student_id: uuid.UUID
    tutor_id: uuid.UUID
    course_id: str
    scheduled_date: datetime
    scheduled_end: datetime
    duration_minutes: int
    status: SessionStatus
    priority: SessionPriority
    student_question: str
    tutor_notes: str | None = None
    session_summary: str | None = None
    materials: list[str] | None = None
    cancel_reason: str | None = None
    cancelled_by: uuid.UUID | None = None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SessionStatusUpdate(BaseModel):
    status: SessionStatus
    expected_version: int | None = None
    session_summary: str | None = None
    materials: list[str] | None = None
    reason: str | None = None


class SessionCancel(BaseModel):
    reason: str = Field(..., min_length=1)
    expected_version: int | None = None


class SessionNotes(BaseModel):
    notes: str = Field(..., min_length=1)
    append: bool = False
    expected_version: int | None = None


class SessionUpdate(BaseModel):
    scheduled_date: datetime | None = None
    duration_minutes: int | None = Field(None, gt=0)
    course_id: str | None = Field(None, min_length=1, max_length=64)
    priority: SessionPriority | None = None
    expected_version: int | None = None


class SessionStats(BaseModel):
    counts: dict[SessionStatus, int]
    total: int
