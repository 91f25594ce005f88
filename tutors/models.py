import uuid
from datetime import date, datetime, time
from enum import IntEnum
from sqlalchemy import Integer, ForeignKey, Time, Boolean, SmallInteger, Date
from sqlalchemy.orm import Mapped, mapped_column

from db import Base, UTCDateTime, utcnow


class DayOfWeek(IntEnum):
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def of(cls, day: date) -> "DayOfWeek":
        # Python: Mon=0, Sun=6.
        return cls((day.weekday() + 1) % 7)


def minutes_since_midnight(value: time) -> int:
    return value.hour * 60 + value.minute


class TimeSlot(Base):
    """A recurring weekly availability declaration owned by one tutor."""

    __tablename__ = "time_slots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tutor_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False) # 0=Sunday, 6=Saturday
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    recurrence_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def start_minute(self) -> int:
        return minutes_since_midnight(self.start_time)

    @property
    def end_minute(self) -> int:
        return minutes_since_midnight(self.end_time)

    @property
    def length_minutes(self) -> int:
        return self.end_minute - self.start_minute

    def overlaps(self, day_of_week: int, start_minute: int, end_minute: int) -> bool:
        if self.day_of_week != day_of_week:
            return False
        return self.start_minute < end_minute and start_minute < self.end_minute

    def __repr__(self) -> str:
        return (
            f"TimeSlot({DayOfWeek(self.day_of_week).name} "
            f"{self.start_time:%H:%M}-{self.end_time:%H:%M}, tutor={self.tutor_id})"
        )
