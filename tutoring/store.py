import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Iterable, Sequence

from sqlalchemy import func, select, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from errors import ConcurrencyConflictError, NotFoundError, WriteConflict
from tutoring.locks import KeyedLocks
from tutoring.models import TutoringSession
from tutoring.status import SessionStatus

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected, lock_not_available
_RETRYABLE_SQLSTATES = {"40001", "40P01", "55P03"}


def _is_write_conflict(exc: DBAPIError) -> bool:
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code in _RETRYABLE_SQLSTATES:
        return True
    return "database is locked" in str(orig).lower()


def _overlapping(query, start: datetime, end: datetime):
    # [s1, e1) and [s2, e2) overlap iff s1 < e2 and s2 < e1
    return query.where(
        TutoringSession.scheduled_date < end,
        TutoringSession.scheduled_end > start,
    )


class SessionStore:
    """
    Persists tutoring sessions.

    Reads open their own short-lived session. Writes that must be atomic with
    a check (booking, rescheduling) go through ``tutor_transaction``, which
    serialises work per tutor and never across tutors.
    """

    def __init__(self, session_maker: async_sessionmaker, locks: KeyedLocks | None = None):
        self.session_maker = session_maker
        self.locks = locks or KeyedLocks()

    @asynccontextmanager
    async def tutor_transaction(self, tutor_id: uuid.UUID) -> AsyncIterator[AsyncSession]:
        key = str(tutor_id)
        async with self.locks.hold(key):
            async with self.session_maker() as db:
                try:
                    async with db.begin():
                        if db.bind.dialect.name == "postgresql":
                            # Covers other processes sharing the database.
                            await db.execute(
                                text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
                                {"key": key},
                            )
                        yield db
                except DBAPIError as exc:
                    if _is_write_conflict(exc):
                        raise WriteConflict(str(exc.orig)) from exc
                    raise

    async def get(self, session_id: int) -> TutoringSession | None:
        async with self.session_maker() as db:
            return await db.get(TutoringSession, session_id)

    async def find_overlapping(
        self,
        db: AsyncSession,
        start: datetime,
        end: datetime,
        statuses: Iterable[SessionStatus],
        tutor_id: uuid.UUID | None = None,
        student_id: uuid.UUID | None = None,
        exclude_id: int | None = None,
    ) -> Sequence[TutoringSession]:
        query = _overlapping(select(TutoringSession), start, end).where(
            TutoringSession.status.in_(list(statuses))
        )
        if tutor_id is not None:
            query = query.where(TutoringSession.tutor_id == tutor_id)
        if student_id is not None:
            query = query.where(TutoringSession.student_id == student_id)
        if exclude_id is not None:
            query = query.where(TutoringSession.id != exclude_id)
        result = await db.execute(query.order_by(TutoringSession.scheduled_date))
        return result.scalars().all()

    async def list_for_tutor(
        self,
        tutor_id: uuid.UUID,
        statuses: Iterable[SessionStatus] | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Sequence[TutoringSession]:
        return await self._list(TutoringSession.tutor_id == tutor_id, statuses, start, end)

    async def list_for_student(
        self,
        student_id: uuid.UUID,
        statuses: Iterable[SessionStatus] | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Sequence[TutoringSession]:
        return await self._list(TutoringSession.student_id == student_id, statuses, start, end)

    async def _list(self, owner_clause, statuses, start, end) -> Sequence[TutoringSession]:
        query = select(TutoringSession).where(owner_clause)
        if statuses is not None:
            query = query.where(TutoringSession.status.in_(list(statuses)))
        if start is not None:
            query = query.where(TutoringSession.scheduled_end > start)
        if end is not None:
            query = query.where(TutoringSession.scheduled_date < end)
        query = query.order_by(TutoringSession.scheduled_date)

        async with self.session_maker() as db:
            result = await db.execute(query)
            return result.scalars().all()

    async def stats_for_tutor(self, tutor_id: uuid.UUID) -> dict[SessionStatus, int]:
        query = (
            select(TutoringSession.status, func.count())
            .where(TutoringSession.tutor_id == tutor_id)
            .group_by(TutoringSession.status)
        )
        async with self.session_maker() as db:
            result = await db.execute(query)
            counts = {status: 0 for status in SessionStatus}
            for status, count in result.all():
                counts[SessionStatus(status)] = count
            return counts

    async def update(
        self,
        session_id: int,
        expected_version: int | None,
        mutate: Callable[[TutoringSession], None],
        db: AsyncSession | None = None,
    ) -> TutoringSession:
        """
        Load, check the version, apply ``mutate`` and flush.

        ``mutate`` may raise to abort; nothing is written in that case. When
        ``db`` is given the caller owns the transaction.
        """
        if db is not None:
            return await self._apply(db, session_id, expected_version, mutate)

        async with self.session_maker() as own:
            try:
                async with own.begin():
                    record = await self._apply(own, session_id, expected_version, mutate)
            except DBAPIError as exc:
                if _is_write_conflict(exc):
                    raise ConcurrencyConflictError(
                        f"Session {session_id} was modified concurrently"
                    ) from exc
                raise
            return record

    async def _apply(self, db, session_id, expected_version, mutate) -> TutoringSession:
        record = await db.get(TutoringSession, session_id)
        if record is None:
            raise NotFoundError(f"Session {session_id} not found", details={"session_id": session_id})
        if expected_version is not None and record.version != expected_version:
            raise ConcurrencyConflictError(
                f"Session {session_id} is at version {record.version}, not {expected_version}",
                details={"session_id": session_id, "version": record.version},
            )
        mutate(record)
        try:
            await db.flush()
        except StaleDataError as exc:
            raise ConcurrencyConflictError(
                f"Session {session_id} was modified concurrently",
                details={"session_id": session_id},
            ) from exc
        return record
