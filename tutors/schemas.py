import uuid
from pydantic import BaseModel, Field, ConfigDict, field_validator
from datetime import date, datetime, time


class TimeSlotBase(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0=Sunday, 6=Saturday")
    start_time: time
    end_time: time
    recurrence_end_date: date | None = None

    @field_validator('end_time')
    def check_time_order(cls, v, values):
        if 'start_time' in values.data and v <= values.data['start_time']:
            raise ValueError('end_time must be after start_time')
        return v


class TimeSlotCreate(TimeSlotBase):
    pass


class TimeSlotUpdate(BaseModel):
    is_available: bool | None = None
    recurrence_end_date: date | None = None


class TimeSlotRead(TimeSlotBase):
    id: int
    tutor_id: uuid.UUID
    is_available: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AvailableWindowRead(BaseModel):
    start: datetime
    end: datetime

    model_config = ConfigDict(from_attributes=True)
