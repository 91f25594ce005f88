from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Iterable

from errors import ValidationError
from tutors.models import DayOfWeek, TimeSlot


@dataclass(frozen=True, order=True)
class AvailableWindow:
    """A concrete, date-bound half-open interval ``[start, end)``."""

    start: datetime
    end: datetime

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def contains(self, start: datetime, end: datetime) -> bool:
        return self.start <= start and end <= self.end


def to_utc(value: datetime, field: str = "datetime") -> datetime:
    if value.tzinfo is None:
        raise ValidationError(f"{field} must be timezone-aware", details={"field": field})
    return value.astimezone(timezone.utc)


class SlotExpander:
    """
    Turns recurring TimeSlot records into concrete windows for a query range.

    Pure computation: slots come in, windows go out, nothing is read or
    written, so it can be called concurrently without coordination.
    """

    def __init__(self, granularity_minutes: int = 15):
        self.granularity = timedelta(minutes=granularity_minutes)

    def expand(
        self,
        slots: Iterable[TimeSlot],
        window_start: datetime,
        window_end: datetime,
        now: datetime,
    ) -> list[AvailableWindow]:
        window_start = to_utc(window_start)
        window_end = to_utc(window_end)
        now = to_utc(now)

        # Nothing before "now" is bookable.
        lower = max(window_start, now)
        if lower >= window_end:
            return []

        first_day = lower.date()
        windows = []
        for slot in slots:
            if not slot.is_available:
                continue

            offset = (slot.day_of_week - DayOfWeek.of(first_day)) % 7
            day = first_day + timedelta(days=offset)
            while True:
                day_start = datetime.combine(day, time.min, tzinfo=timezone.utc)
                if day_start >= window_end:
                    break
                if slot.recurrence_end_date is not None and day > slot.recurrence_end_date:
                    break

                start = day_start + timedelta(minutes=slot.start_minute)
                end = day_start + timedelta(minutes=slot.end_minute)
                clipped_start = max(start, lower)
                clipped_end = min(end, window_end)
                if clipped_start > start:
                    clipped_start = self._align(clipped_start, day_start)
                if clipped_start < clipped_end:
                    windows.append(AvailableWindow(clipped_start, clipped_end))

                day += timedelta(days=7)

        windows.sort()
        return windows

    def covers(
        self,
        slots: Iterable[TimeSlot],
        start: datetime,
        end: datetime,
    ) -> bool:
        """True if ``[start, end)`` sits inside a single expansion of an available slot."""
        start = to_utc(start)
        end = to_utc(end)
        if start.date() != (end - timedelta(microseconds=1)).date():
            return False

        day = start.date()
        day_start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        weekday = DayOfWeek.of(day)
        for slot in slots:
            if not slot.is_available or slot.day_of_week != weekday:
                continue
            if slot.recurrence_end_date is not None and day > slot.recurrence_end_date:
                continue
            window = AvailableWindow(
                day_start + timedelta(minutes=slot.start_minute),
                day_start + timedelta(minutes=slot.end_minute),
            )
            if window.contains(start, end):
                return True
        return False

    def _align(self, instant: datetime, day_start: datetime) -> datetime:
        steps = -(-(instant - day_start) // self.granularity)
        return day_start + steps * self.granularity
