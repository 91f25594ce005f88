import uuid
from datetime import datetime
from fastapi import APIRouter, Depends, Query, status

from dependencies import get_availability_finder, get_time_slot_service
from users.auth import current_active_user, get_current_tutor
from users.models import User

from tutors.availability import AvailabilityFinder
from tutors.schemas import (
    TimeSlotCreate, TimeSlotUpdate, TimeSlotRead, AvailableWindowRead
)
from tutors.service import TimeSlotService

router = APIRouter()


# Time Slot Endpoints

@router.post("/me/time-slots", response_model=TimeSlotRead)
async def create_time_slot(
    slot_data: TimeSlotCreate,
    user: User = Depends(get_current_tutor),
    service: TimeSlotService = Depends(get_time_slot_service),
):
    return await service.create_time_slot(
        user.id,
        slot_data.day_of_week,
        slot_data.start_time,
        slot_data.end_time,
        slot_data.recurrence_end_date,
    )


@router.get("/me/time-slots", response_model=list[TimeSlotRead])
async def list_my_time_slots(
    user: User = Depends(get_current_tutor),
    service: TimeSlotService = Depends(get_time_slot_service),
):
    return await service.list_time_slots(user.id)


@router.patch("/me/time-slots/{time_slot_id}", response_model=TimeSlotRead)
async def update_time_slot(
    time_slot_id: int,
    slot_update: TimeSlotUpdate,
    user: User = Depends(get_current_tutor),
    service: TimeSlotService = Depends(get_time_slot_service),
):
    update_data = slot_update.model_dump(exclude_unset=True)
    slot = None
    if "recurrence_end_date" in update_data:
        slot = await service.set_recurrence_end_date(
            user.id, time_slot_id, update_data["recurrence_end_date"]
        )
    if update_data.get("is_available") is not None:
        slot = await service.set_time_slot_availability(
            user.id, time_slot_id, update_data["is_available"]
        )
    if slot is None:
        slot = await service.get_owned_slot(user.id, time_slot_id)
    return slot


@router.delete("/me/time-slots/{time_slot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_time_slot(
    time_slot_id: int,
    user: User = Depends(get_current_tutor),
    service: TimeSlotService = Depends(get_time_slot_service),
):
    await service.delete_time_slot(user.id, time_slot_id)
    return None


@router.get("/{tutor_id}/available-slots", response_model=list[AvailableWindowRead])
async def find_available_slots(
    tutor_id: uuid.UUID,
    start: datetime,
    end: datetime,
    duration_minutes: int = Query(60, gt=0),
    course_id: str | None = None,
    user: User = Depends(current_active_user),
    finder: AvailabilityFinder = Depends(get_availability_finder),
):
    return await finder.find(tutor_id, user.id, start, end, duration_minutes, course_id)
