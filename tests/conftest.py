"""
Shared fixtures for the scheduling tests.

Each test gets its own SQLite file database and a FixedClock pinned to
Tuesday 2030-01-01 09:00 UTC, so "next Monday" is always 2030-01-07.
"""

import uuid
from datetime import datetime, time

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from clock import FixedClock
from config import Settings
from courses.catalog import SqlCourseCatalog
from db import Base
from tutoring.conflicts import ConflictGuard
from tutoring.lifecycle import SessionLifecycleManager
from tutoring.models import TutoringSession
from tutoring.scheduling import SchedulingService
from tutoring.status import SessionStatus
from tutoring.store import SessionStore
from tutors.availability import AvailabilityFinder
from tutors.expander import SlotExpander
from tutors.models import DayOfWeek
from tutors.service import TimeSlotService
from tutors.store import TimeSlotStore
from users.models import STUDENT, TUTOR, User

from tests._utils import COURSE_ID, NEXT_MONDAY, NOW, RecordingNotifier, at


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tutoring.db'}", connect_args={"timeout": 30}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def notifier():
    return RecordingNotifier()


async def make_user(session_maker, role: str, name: str) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{name}-{uuid.uuid4().hex[:8]}@example.com",
        hashed_password="not-a-real-hash",
        full_name=name.title(),
        role=role,
    )
    async with session_maker() as db:
        db.add(user)
        await db.commit()
    return user


@pytest.fixture
async def tutor(session_maker):
    return await make_user(session_maker, TUTOR, "tutor")


@pytest.fixture
async def other_tutor(session_maker):
    return await make_user(session_maker, TUTOR, "other-tutor")


@pytest.fixture
async def student(session_maker):
    return await make_user(session_maker, STUDENT, "student")


@pytest.fixture
async def other_student(session_maker):
    return await make_user(session_maker, STUDENT, "other-student")


@pytest.fixture
def time_slot_store(session_maker):
    return TimeSlotStore(session_maker)


@pytest.fixture
def session_store(session_maker):
    return SessionStore(session_maker)


@pytest.fixture
async def catalog(session_maker, tutor):
    catalog = SqlCourseCatalog(session_maker)
    await catalog.assign(tutor.id, COURSE_ID)
    return catalog


@pytest.fixture
def expander(settings):
    return SlotExpander(settings.slot_granularity_minutes)


@pytest.fixture
def guard(settings):
    return ConflictGuard(settings.requested_blocks_slot)


@pytest.fixture
def time_slot_service(time_slot_store, clock, settings):
    return TimeSlotService(time_slot_store, clock, settings)


@pytest.fixture
def finder(time_slot_store, session_store, catalog, expander, guard, clock, settings):
    return AvailabilityFinder(
        time_slot_store, session_store, catalog, expander, guard, clock, settings
    )


@pytest.fixture
def scheduling(time_slot_store, session_store, catalog, expander, guard, notifier, clock, settings):
    return SchedulingService(
        time_slot_store, session_store, catalog, expander, guard, notifier, clock, settings
    )


@pytest.fixture
def lifecycle(session_store, scheduling, notifier, clock, settings):
    return SessionLifecycleManager(session_store, scheduling, notifier, clock, settings)


@pytest.fixture
async def monday_slot(time_slot_service, tutor):
    """Tutor is available every Monday 10:00-12:00."""
    return await time_slot_service.create_time_slot(
        tutor.id, DayOfWeek.MONDAY, time(10, 0), time(12, 0)
    )


@pytest.fixture
def book(scheduling, tutor, monday_slot):
    async def _book(student_id, hour, minute=0, duration=30, day=NEXT_MONDAY):
        return await scheduling.schedule_session(
            student_id=student_id,
            tutor_id=tutor.id,
            course_id=COURSE_ID,
            start=at(day, hour, minute),
            duration_minutes=duration,
            student_question="How do I factor polynomials?",
        )

    return _book


@pytest.fixture
def insert_session(session_maker, tutor, student):
    """Write a session row in any status, bypassing the booking rules."""

    async def _insert(status: SessionStatus, start: datetime | None = None, duration: int = 30):
        record = TutoringSession(
            student_id=student.id,
            tutor_id=tutor.id,
            course_id=COURSE_ID,
            status=status,
            student_question="Help with limits",
        )
        record.set_window(start or at(NEXT_MONDAY, 10), duration)
        async with session_maker() as db:
            db.add(record)
            await db.commit()
        return record

    return _insert
