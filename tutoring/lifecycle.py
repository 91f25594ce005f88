import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Iterable

from clock import Clock
from config import Settings
from errors import (
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedActionError,
    ValidationError,
)
from notifications import Notifier, notify_safely
from tutoring.models import TutoringSession
from tutoring.scheduling import SchedulingService, retry_on_write_conflict
from tutoring.status import (
    ACTIVE_STATUSES,
    Role,
    SessionPriority,
    SessionStatus,
    allowed_actors,
    next_statuses,
)
from tutoring.store import SessionStore
from tutors.expander import to_utc

logger = logging.getLogger(__name__)

PERIODS = ("today", "upcoming", "past")


@dataclass
class SessionChanges:
    scheduled_date: datetime | None = None
    duration_minutes: int | None = None
    course_id: str | None = None
    priority: SessionPriority | None = None


def _as_status(value) -> SessionStatus:
    try:
        return SessionStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown session status: {value}") from None


class SessionLifecycleManager:
    def __init__(
        self,
        sessions: SessionStore,
        scheduling: SchedulingService,
        notifier: Notifier,
        clock: Clock,
        settings: Settings,
    ):
        self.sessions = sessions
        self.scheduling = scheduling
        self.notifier = notifier
        self.clock = clock
        self.settings = settings

    async def update_status(
        self,
        session_id: int,
        actor_id: uuid.UUID,
        new_status: SessionStatus,
        expected_version: int | None = None,
        session_summary: str | None = None,
        materials: Iterable[str] | None = None,
        reason: str | None = None,
    ) -> TutoringSession:
        new_status = _as_status(new_status)
        if new_status == SessionStatus.CANCELLED:
            return await self.cancel(session_id, actor_id, reason, expected_version)

        summary_limit = self.settings.max_summary_length
        now = self.clock.now()

        def mutate(record: TutoringSession) -> None:
            # The edge is checked before the payload
            self._authorize_transition(record, actor_id, new_status)
            if session_summary is not None and len(session_summary) > summary_limit:
                raise ValidationError(f"Session summary cannot exceed {summary_limit} characters")
            if new_status == SessionStatus.IN_PROGRESS and now < record.scheduled_date:
                raise InvalidTransitionError(
                    "A session cannot start before its scheduled time",
                    details={"scheduled_date": record.scheduled_date.isoformat()},
                )
            if new_status == SessionStatus.COMPLETED:
                record.session_summary = session_summary
                record.materials = list(materials) if materials else None
            record.status = new_status

        record = await self.sessions.update(session_id, expected_version, mutate)
        logger.info("Session %s moved to %s by %s", session_id, new_status.value, actor_id)
        await notify_safely(self.notifier, f"session.{new_status.value.lower()}", record)
        return record

    async def cancel(
        self,
        session_id: int,
        actor_id: uuid.UUID,
        reason: str | None,
        expected_version: int | None = None,
    ) -> TutoringSession:
        limit = self.settings.max_cancel_reason_length

        def mutate(record: TutoringSession) -> None:
            self._authorize_transition(record, actor_id, SessionStatus.CANCELLED)
            if not reason or not reason.strip():
                raise ValidationError("Cancel reason is required")
            if len(reason) > limit:
                raise ValidationError(f"Cancel reason cannot exceed {limit} characters")
            record.status = SessionStatus.CANCELLED
            record.cancel_reason = reason.strip()
            record.cancelled_by = actor_id

        record = await self.sessions.update(session_id, expected_version, mutate)
        logger.info("Session %s cancelled by %s: %s", session_id, actor_id, record.cancel_reason)
        await notify_safely(self.notifier, "session.cancelled", record)
        return record

    async def add_notes(
        self,
        session_id: int,
        tutor_id: uuid.UUID,
        notes: str,
        append: bool = False,
        expected_version: int | None = None,
    ) -> TutoringSession:
        limit = self.settings.max_notes_length
        if not notes or not notes.strip():
            raise ValidationError("Notes cannot be empty")

        def mutate(record: TutoringSession) -> None:
            self._require_tutor(record, tutor_id)
            if record.is_terminal:
                raise InvalidTransitionError(
                    f"Notes cannot be added to a {record.status.value} session"
                )
            text = notes.strip()
            if append and record.tutor_notes:
                text = f"{record.tutor_notes}\n\n{text}"
            if len(text) > limit:
                raise ValidationError(f"Tutor notes cannot exceed {limit} characters")
            record.tutor_notes = text

        record = await self.sessions.update(session_id, expected_version, mutate)
        await notify_safely(self.notifier, "session.notes_updated", record)
        return record

    async def update_session(
        self,
        session_id: int,
        tutor_id: uuid.UUID,
        changes: SessionChanges,
        expected_version: int | None = None,
    ) -> TutoringSession:
        current = await self._get(session_id)
        self._require_tutor(current, tutor_id)
        self._require_open(current)
        # The new window is built from this read, so the write must not land on a newer version
        if expected_version is None:
            expected_version = current.version

        if changes.course_id is not None and changes.course_id != current.course_id:
            await self.scheduling.ensure_course(tutor_id, changes.course_id)

        start = current.scheduled_date
        duration = current.duration_minutes
        if changes.scheduled_date is not None:
            start = to_utc(changes.scheduled_date, "scheduled_date")
        if changes.duration_minutes is not None:
            duration = changes.duration_minutes
        window_changed = start != current.scheduled_date or duration != current.duration_minutes

        def mutate(record: TutoringSession) -> None:
            self._require_tutor(record, tutor_id)
            self._require_open(record)
            if window_changed:
                record.set_window(start, duration)
            if changes.course_id is not None:
                record.course_id = changes.course_id
            if changes.priority is not None:
                record.priority = SessionPriority(changes.priority)

        if not window_changed:
            record = await self.sessions.update(session_id, expected_version, mutate)
        else:
            self.scheduling.validate_window(start, duration)
            end = start + timedelta(minutes=duration)

            async def reschedule() -> TutoringSession:
                async with self.sessions.tutor_transaction(current.tutor_id) as db:
                    await self.scheduling.check_window(
                        db, current.tutor_id, current.student_id, start, end, exclude_id=session_id
                    )
                    return await self.sessions.update(session_id, expected_version, mutate, db=db)

            record = await retry_on_write_conflict(
                reschedule, self.settings.booking_max_retries, f"rescheduling session {session_id}"
            )
            logger.info("Session %s rescheduled to %s (%d min)", session_id, start.isoformat(), duration)

        await notify_safely(self.notifier, "session.updated", record)
        return record

    async def get_session(self, session_id: int, actor_id: uuid.UUID) -> TutoringSession:
        record = await self._get(session_id)
        if record.participant_role(actor_id) is None:
            raise UnauthorizedActionError("You are not a participant of this session")
        return record

    async def list_sessions(
        self,
        user_id: uuid.UUID,
        role: Role,
        status: SessionStatus | None = None,
        period: str | None = None,
        limit: int | None = None,
    ) -> list[TutoringSession]:
        if limit is not None and limit <= 0:
            raise ValidationError("Limit must be greater than 0")
        if period is not None and period not in PERIODS:
            raise ValidationError(f"Period must be one of {', '.join(PERIODS)}")

        statuses = [_as_status(status)] if status is not None else None
        if Role(role) == Role.TUTOR:
            sessions = await self.sessions.list_for_tutor(user_id, statuses)
        else:
            sessions = await self.sessions.list_for_student(user_id, statuses)

        if period is not None:
            sessions = self._filter_period(sessions, period)
        sessions = list(sessions)
        return sessions[:limit] if limit else sessions

    async def tutor_stats(self, tutor_id: uuid.UUID) -> dict[SessionStatus, int]:
        return await self.sessions.stats_for_tutor(tutor_id)

    def _filter_period(self, sessions, period: str) -> list[TutoringSession]:
        today = datetime.combine(self.clock.now().date(), time.min, tzinfo=timezone.utc)
        tomorrow = today + timedelta(days=1)
        if period == "today":
            return [s for s in sessions if today <= s.scheduled_date < tomorrow]
        if period == "upcoming":
            return [
                s for s in sessions if s.scheduled_date >= today and s.status in ACTIVE_STATUSES
            ]
        return [s for s in sessions if s.scheduled_date < today or s.is_terminal]

    def _authorize_transition(
        self, record: TutoringSession, actor_id: uuid.UUID, target: SessionStatus
    ) -> None:
        role = record.participant_role(actor_id)
        if role is None:
            raise UnauthorizedActionError("You are not a participant of this session")

        actors = allowed_actors(record.status, target)
        if actors is None:
            raise InvalidTransitionError(
                f"Cannot move session from {record.status.value} to {target.value}",
                details={
                    "from": record.status.value,
                    "to": target.value,
                    "allowed": [s.value for s in next_statuses(record.status)],
                },
            )
        if role not in actors:
            raise UnauthorizedActionError(
                f"A {role.value} cannot move a session from {record.status.value} to {target.value}"
            )

    def _require_tutor(self, record: TutoringSession, tutor_id: uuid.UUID) -> None:
        if record.tutor_id != tutor_id:
            raise UnauthorizedActionError("Only the session's tutor can do this")

    def _require_open(self, record: TutoringSession) -> None:
        if record.is_terminal:
            raise InvalidTransitionError(
                f"A {record.status.value} session can no longer be changed"
            )

    async def _get(self, session_id: int) -> TutoringSession:
        record = await self.sessions.get(session_id)
        if record is None:
            raise NotFoundError(f"Session {session_id} not found", details={"session_id": session_id})
        return record
