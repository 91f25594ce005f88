"""Shared helpers for the test suites."""

from datetime import date, datetime, time, timezone

# A Tuesday; the first Monday after it is NEXT_MONDAY.
NOW = datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)
NEXT_MONDAY = date(2030, 1, 7)
COURSE_ID = "math-101"


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


class RecordingNotifier:
    def __init__(self):
        self.events = []

    async def notify(self, event, session):
        self.events.append((event, session.id))


class FailingNotifier:
    async def notify(self, event, session):
        raise RuntimeError("mail server down")


__all__ = ["COURSE_ID", "NEXT_MONDAY", "NOW", "FailingNotifier", "RecordingNotifier", "at"]
