import logging
import uuid
from datetime import datetime, timedelta

from clock import Clock
from config import Settings
from courses.catalog import CourseCatalog
from errors import NotFoundError, ValidationError
from tutoring.conflicts import ConflictGuard, subtract
from tutoring.store import SessionStore
from tutors.expander import AvailableWindow, SlotExpander, to_utc
from tutors.store import TimeSlotStore

logger = logging.getLogger(__name__)


class AvailabilityFinder:
    """
    Lists the bookable windows of a tutor.

    Read path only. The result may be slightly stale by the time the student
    books; SchedulingService re-checks everything inside its transaction.
    """

    def __init__(
        self,
        time_slots: TimeSlotStore,
        sessions: SessionStore,
        catalog: CourseCatalog,
        expander: SlotExpander,
        guard: ConflictGuard,
        clock: Clock,
        settings: Settings,
    ):
        self.time_slots = time_slots
        self.sessions = sessions
        self.catalog = catalog
        self.expander = expander
        self.guard = guard
        self.clock = clock
        self.settings = settings

    async def find(
        self,
        tutor_id: uuid.UUID,
        student_id: uuid.UUID | None,
        window_start: datetime,
        window_end: datetime,
        duration_minutes: int,
        course_id: str | None = None,
    ) -> list[AvailableWindow]:
        window_start = to_utc(window_start, "window_start")
        window_end = to_utc(window_end, "window_end")
        if window_start >= window_end:
            raise ValidationError("window_start must be before window_end")
        self._check_duration(duration_minutes)

        if not await self.time_slots.tutor_exists(tutor_id):
            raise NotFoundError(f"Tutor {tutor_id} not found", details={"tutor_id": str(tutor_id)})

        if course_id is not None and not await self.catalog.teaches(tutor_id, course_id):
            logger.info("Tutor %s does not teach course %s", tutor_id, course_id)
            return []

        # Same bookable horizon as SchedulingService.validate_window
        now = self.clock.now()
        earliest = now + timedelta(minutes=self.settings.min_advance_minutes)
        latest_start = now + timedelta(days=self.settings.max_advance_days)

        slots = await self.time_slots.list_for_tutor(tutor_id, active_only=True)
        windows = self.expander.expand(slots, window_start, window_end, earliest)
        if not windows:
            return []

        blocking = self.guard.blocking_statuses
        busy = self.guard.busy_intervals(
            await self.sessions.list_for_tutor(tutor_id, blocking, window_start, window_end)
        )
        if student_id is not None and not self.settings.allow_student_conflicts:
            busy += self.guard.busy_intervals(
                await self.sessions.list_for_student(student_id, blocking, window_start, window_end)
            )

        step = timedelta(minutes=duration_minutes)
        offers = set()
        for window in windows:
            for free in subtract(window, busy):
                cursor = free.start
                while cursor + step <= free.end and cursor <= latest_start:
                    offers.add(AvailableWindow(cursor, cursor + step))
                    cursor += step

        return sorted(offers)

    def _check_duration(self, duration_minutes: int) -> None:
        low = self.settings.min_session_minutes
        high = self.settings.max_session_minutes
        if duration_minutes <= 0 or not low <= duration_minutes <= high:
            raise ValidationError(
                f"Duration must be between {low} and {high} minutes",
                details={"duration_minutes": duration_minutes},
            )
