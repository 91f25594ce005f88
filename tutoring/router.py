from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from dependencies import get_lifecycle_manager, get_scheduling_service
from users.auth import current_active_user, get_current_tutor
from users.models import User

from tutoring.lifecycle import SessionChanges, SessionLifecycleManager
from tutoring.scheduling import SchedulingService
from tutoring.schemas import (
    SessionCancel, SessionCreate, SessionNotes, SessionRead, SessionStats,
    SessionStatusUpdate, SessionUpdate
)
from tutoring.status import Role, SessionStatus

router = APIRouter()


@router.post("/", response_model=SessionRead)
async def schedule_session(
    session_data: SessionCreate,
    user: User = Depends(current_active_user),
    scheduling: SchedulingService = Depends(get_scheduling_service),
):
    # The current user books for themselves
    return await scheduling.schedule_session(
        student_id=user.id,
        tutor_id=session_data.tutor_id,
        course_id=session_data.course_id,
        start=session_data.scheduled_date,
        duration_minutes=session_data.duration_minutes,
        student_question=session_data.student_question,
        priority=session_data.priority,
    )


@router.get("/me", response_model=List[SessionRead])
async def get_my_sessions(
    status: Optional[SessionStatus] = None,
    period: Optional[str] = Query(None, pattern="^(today|upcoming|past)$"),
    limit: Optional[int] = Query(None, gt=0),
    user: User = Depends(current_active_user),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle_manager),
):
    # Tutors see the sessions they teach, everyone else the ones they booked
    role = Role.TUTOR if user.is_tutor else Role.STUDENT
    return await lifecycle.list_sessions(user.id, role, status, period, limit)


@router.get("/me/stats", response_model=SessionStats)
async def get_my_stats(
    user: User = Depends(get_current_tutor),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle_manager),
):
    counts = await lifecycle.tutor_stats(user.id)
    return SessionStats(counts=counts, total=sum(counts.values()))


@router.get("/{session_id}", response_model=SessionRead)
async def get_session(
    session_id: int,
    user: User = Depends(current_active_user),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle_manager),
):
    return await lifecycle.get_session(session_id, user.id)


@router.patch("/{session_id}/status", response_model=SessionRead)
async def update_session_status(
    session_id: int,
    status_update: SessionStatusUpdate,
    user: User = Depends(current_active_user),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle_manager),
):
    return await lifecycle.update_status(
        session_id,
        user.id,
        status_update.status,
        expected_version=status_update.expected_version,
        session_summary=status_update.session_summary,
        materials=status_update.materials,
        reason=status_update.reason,
    )


@router.post("/{session_id}/cancel", response_model=SessionRead)
async def cancel_session(
    session_id: int,
    cancel_data: SessionCancel,
    user: User = Depends(current_active_user),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle_manager),
):
    return await lifecycle.cancel(
        session_id, user.id, cancel_data.reason, cancel_data.expected_version
    )


@router.post("/{session_id}/notes", response_model=SessionRead)
async def add_session_notes(
    session_id: int,
    notes_data: SessionNotes,
    user: User = Depends(get_current_tutor),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle_manager),
):
    return await lifecycle.add_notes(
        session_id,
        user.id,
        notes_data.notes,
        append=notes_data.append,
        expected_version=notes_data.expected_version,
    )


@router.patch("/{session_id}", response_model=SessionRead)
async def update_tutoring_session(
    session_id: int,
    session_update: SessionUpdate,
    user: User = Depends(get_current_tutor),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle_manager),
):
    changes = SessionChanges(
        scheduled_date=session_update.scheduled_date,
        duration_minutes=session_update.duration_minutes,
        course_id=session_update.course_id,
        priority=session_update.priority,
    )
    return await lifecycle.update_session(
        session_id, user.id, changes, expected_version=session_update.expected_version
    )
