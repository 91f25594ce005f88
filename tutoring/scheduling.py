import logging
import uuid
from datetime import datetime, timedelta
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from clock import Clock
from config import Settings
from courses.catalog import CourseCatalog
from errors import (
    NotFoundError,
    SlotUnavailableError,
    StudentConflictError,
    ValidationError,
    WriteConflict,
)
from notifications import Notifier, notify_safely
from tutoring.conflicts import ConflictGuard
from tutoring.models import TutoringSession
from tutoring.status import SessionPriority, SessionStatus
from tutoring.store import SessionStore
from tutors.expander import SlotExpander, to_utc
from tutors.store import TimeSlotStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_on_write_conflict(
    operation: Callable[[], Awaitable[T]], retries: int, description: str
) -> T:
    """Run ``operation``, re-running it from scratch on store write conflicts."""
    for attempt in range(retries + 1):
        try:
            return await operation()
        except WriteConflict as exc:
            logger.warning(
                "Write conflict during %s (attempt %d/%d): %s",
                description,
                attempt + 1,
                retries + 1,
                exc,
            )
    raise SlotUnavailableError(
        f"Could not complete {description}; the time slot is contended, please search again",
        code="write_conflict",
    )


class SchedulingService:
    def __init__(
        self,
        time_slots: TimeSlotStore,
        sessions: SessionStore,
        catalog: CourseCatalog,
        expander: SlotExpander,
        guard: ConflictGuard,
        notifier: Notifier,
        clock: Clock,
        settings: Settings,
    ):
        self.time_slots = time_slots
        self.sessions = sessions
        self.catalog = catalog
        self.expander = expander
        self.guard = guard
        self.notifier = notifier
        self.clock = clock
        self.settings = settings

    async def schedule_session(
        self,
        student_id: uuid.UUID,
        tutor_id: uuid.UUID,
        course_id: str,
        start: datetime,
        duration_minutes: int,
        student_question: str,
        priority: SessionPriority = SessionPriority.MEDIUM,
    ) -> TutoringSession:
        start = to_utc(start, "start")
        self.validate_window(start, duration_minutes)
        question = self._validate_question(student_question)
        if student_id == tutor_id:
            raise ValidationError("A tutor cannot book a session with themselves")

        # Collaborator lookups stay outside the tutor's critical section.
        if not await self.time_slots.tutor_exists(tutor_id):
            raise NotFoundError(f"Tutor {tutor_id} not found", details={"tutor_id": str(tutor_id)})
        await self.ensure_course(tutor_id, course_id)

        async def reserve() -> TutoringSession:
            async with self.sessions.tutor_transaction(tutor_id) as db:
                end = start + timedelta(minutes=duration_minutes)
                await self.check_window(db, tutor_id, student_id, start, end)
                session = TutoringSession(
                    student_id=student_id,
                    tutor_id=tutor_id,
                    course_id=course_id,
                    status=SessionStatus.REQUESTED,
                    priority=SessionPriority(priority),
                    student_question=question,
                )
                session.set_window(start, duration_minutes)
                db.add(session)
                await db.flush()
            return session

        session = await retry_on_write_conflict(
            reserve, self.settings.booking_max_retries, f"booking for tutor {tutor_id}"
        )
        logger.info(
            "Session %s requested: tutor=%s student=%s start=%s duration=%d",
            session.id,
            tutor_id,
            student_id,
            start.isoformat(),
            duration_minutes,
        )
        await notify_safely(self.notifier, "session.requested", session)
        return session

    def validate_window(self, start: datetime, duration_minutes: int) -> None:
        low = self.settings.min_session_minutes
        high = self.settings.max_session_minutes
        if duration_minutes <= 0 or not low <= duration_minutes <= high:
            raise ValidationError(
                f"Duration must be between {low} and {high} minutes",
                details={"duration_minutes": duration_minutes},
            )

        now = self.clock.now()
        if start < now:
            raise ValidationError(
                "Scheduled date must be in the future", details={"start": start.isoformat()}
            )
        if start < now + timedelta(minutes=self.settings.min_advance_minutes):
            raise ValidationError(
                f"Sessions must be scheduled at least {self.settings.min_advance_minutes} "
                "minutes in advance"
            )
        if start > now + timedelta(days=self.settings.max_advance_days):
            raise ValidationError(
                f"Cannot schedule sessions more than {self.settings.max_advance_days} days in advance"
            )

    async def ensure_course(self, tutor_id: uuid.UUID, course_id: str) -> None:
        if not course_id or not course_id.strip():
            raise ValidationError("Course ID is required")
        if not await self.catalog.teaches(tutor_id, course_id):
            raise NotFoundError(
                f"Course {course_id} is not taught by tutor {tutor_id}",
                details={"course_id": course_id, "tutor_id": str(tutor_id)},
            )

    async def check_window(
        self,
        db: AsyncSession,
        tutor_id: uuid.UUID,
        student_id: uuid.UUID,
        start: datetime,
        end: datetime,
        exclude_id: int | None = None,
    ) -> None:
        """
        Re-derive, inside the caller's transaction, that ``[start, end)`` is
        covered by an available slot and not blocked by another session.
        """
        slots = await self.time_slots.list_for_tutor(tutor_id, active_only=True, db=db)
        if not self.expander.covers(slots, start, end):
            raise SlotUnavailableError(
                "Tutor is not available at the requested time",
                code="not_covered",
                details={"start": start.isoformat(), "end": end.isoformat()},
            )

        blocking = self.guard.blocking_statuses
        existing = await self.sessions.find_overlapping(
            db, start, end, blocking, tutor_id=tutor_id, exclude_id=exclude_id
        )
        conflicts = self.guard.conflicting(start, end, existing, exclude_id=exclude_id)
        if conflicts:
            raise SlotUnavailableError(
                "Tutor is not available at the requested time",
                code="tutor_conflict",
                details={"conflicting_session_ids": [s.id for s in conflicts]},
            )

        if not self.settings.allow_student_conflicts:
            own = await self.sessions.find_overlapping(
                db, start, end, blocking, student_id=student_id, exclude_id=exclude_id
            )
            if self.guard.conflicting(start, end, own, exclude_id=exclude_id):
                raise StudentConflictError(
                    "You already have a session scheduled at this time",
                    code="student_conflict",
                )

    def _validate_question(self, question: str) -> str:
        limit = self.settings.max_question_length
        if not question or not question.strip():
            raise ValidationError("Student question is required")
        if len(question) > limit:
            raise ValidationError(f"Student question cannot exceed {limit} characters")
        return question.strip()
