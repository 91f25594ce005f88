"""
Request-scoped construction of the scheduling services.

Everything is built from explicit parts so tests can swap the clock, the
notifier or the session factory through ``app.dependency_overrides``.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import async_sessionmaker

from clock import Clock, SystemClock
from config import Settings, get_settings
from courses.catalog import SqlCourseCatalog
from db import async_session_maker
from notifications import LoggingNotifier, Notifier
from tutoring.conflicts import ConflictGuard
from tutoring.lifecycle import SessionLifecycleManager
from tutoring.locks import KeyedLocks
from tutoring.scheduling import SchedulingService
from tutoring.store import SessionStore
from tutors.availability import AvailabilityFinder
from tutors.expander import SlotExpander
from tutors.service import TimeSlotService
from tutors.store import TimeSlotStore


def get_session_maker() -> async_sessionmaker:
    return async_session_maker


def get_clock() -> Clock:
    return SystemClock()


def get_notifier() -> Notifier:
    return LoggingNotifier()


def get_tutor_locks(request: Request) -> KeyedLocks:
    # Shared by every request of the process; created at startup.
    return request.app.state.tutor_locks


def get_time_slot_store(session_maker: async_sessionmaker = Depends(get_session_maker)):
    return TimeSlotStore(session_maker)


def get_session_store(
    session_maker: async_sessionmaker = Depends(get_session_maker),
    locks: KeyedLocks = Depends(get_tutor_locks),
):
    return SessionStore(session_maker, locks)


def get_course_catalog(session_maker: async_sessionmaker = Depends(get_session_maker)):
    return SqlCourseCatalog(session_maker)


def get_conflict_guard(settings: Settings = Depends(get_settings)):
    return ConflictGuard(requested_blocks_slot=settings.requested_blocks_slot)


def get_slot_expander(settings: Settings = Depends(get_settings)):
    return SlotExpander(granularity_minutes=settings.slot_granularity_minutes)


def get_time_slot_service(
    store: TimeSlotStore = Depends(get_time_slot_store),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
):
    return TimeSlotService(store, clock, settings)


def get_availability_finder(
    time_slots: TimeSlotStore = Depends(get_time_slot_store),
    sessions: SessionStore = Depends(get_session_store),
    catalog: SqlCourseCatalog = Depends(get_course_catalog),
    expander: SlotExpander = Depends(get_slot_expander),
    guard: ConflictGuard = Depends(get_conflict_guard),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
):
    return AvailabilityFinder(time_slots, sessions, catalog, expander, guard, clock, settings)


def get_scheduling_service(
    time_slots: TimeSlotStore = Depends(get_time_slot_store),
    sessions: SessionStore = Depends(get_session_store),
    catalog: SqlCourseCatalog = Depends(get_course_catalog),
    expander: SlotExpander = Depends(get_slot_expander),
    guard: ConflictGuard = Depends(get_conflict_guard),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
):
    return SchedulingService(
        time_slots, sessions, catalog, expander, guard, notifier, clock, settings
    )


def get_lifecycle_manager(
    sessions: SessionStore = Depends(get_session_store),
    scheduling: SchedulingService = Depends(get_scheduling_service),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
):
    return SessionLifecycleManager(sessions, scheduling, notifier, clock, settings)
