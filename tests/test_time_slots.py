import uuid
from datetime import date, time

import pytest

from errors import NotFoundError, UnauthorizedActionError, ValidationError
from tutoring.status import SessionStatus
from tutors.models import DayOfWeek

from tests._utils import NEXT_MONDAY, at


@pytest.mark.asyncio
async def test_create_and_list(time_slot_service, tutor):
    slot = await time_slot_service.create_time_slot(
        tutor.id, DayOfWeek.WEDNESDAY, time(14), time(16), date(2030, 3, 1)
    )

    assert slot.id is not None
    assert slot.is_available
    assert slot.length_minutes == 120
    assert [s.id for s in await time_slot_service.list_time_slots(tutor.id)] == [slot.id]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "day, start, end",
    [
        (7, time(10), time(12)),
        (-1, time(10), time(12)),
        (DayOfWeek.MONDAY, time(12), time(10)),
        (DayOfWeek.MONDAY, time(10), time(10)),
        (DayOfWeek.MONDAY, time(10), time(10, 15)),
        (DayOfWeek.MONDAY, time(8), time(17)),
    ],
)
async def test_invalid_slots(time_slot_service, tutor, day, start, end):
    with pytest.raises(ValidationError):
        await time_slot_service.create_time_slot(tutor.id, day, start, end)


@pytest.mark.asyncio
async def test_recurrence_end_in_the_past(time_slot_service, tutor):
    with pytest.raises(ValidationError):
        await time_slot_service.create_time_slot(
            tutor.id, DayOfWeek.MONDAY, time(10), time(12), date(2029, 12, 1)
        )


@pytest.mark.asyncio
async def test_overlapping_slots_on_the_same_day(time_slot_service, tutor, monday_slot):
    with pytest.raises(ValidationError):
        await time_slot_service.create_time_slot(tutor.id, DayOfWeek.MONDAY, time(11), time(13))

    adjacent = await time_slot_service.create_time_slot(
        tutor.id, DayOfWeek.MONDAY, time(12), time(13)
    )
    other_day = await time_slot_service.create_time_slot(
        tutor.id, DayOfWeek.TUESDAY, time(11), time(13)
    )
    assert adjacent.id and other_day.id


@pytest.mark.asyncio
async def test_unknown_tutor(time_slot_service):
    with pytest.raises(NotFoundError):
        await time_slot_service.create_time_slot(uuid.uuid4(), DayOfWeek.MONDAY, time(10), time(12))


@pytest.mark.asyncio
async def test_only_the_owner_can_change_a_slot(time_slot_service, other_tutor, monday_slot):
    with pytest.raises(UnauthorizedActionError):
        await time_slot_service.set_time_slot_availability(other_tutor.id, monday_slot.id, False)
    with pytest.raises(UnauthorizedActionError):
        await time_slot_service.delete_time_slot(other_tutor.id, monday_slot.id)
    with pytest.raises(NotFoundError):
        await time_slot_service.delete_time_slot(other_tutor.id, 9999)


@pytest.mark.asyncio
async def test_recurrence_end_can_be_moved(time_slot_service, tutor, monday_slot):
    slot = await time_slot_service.set_recurrence_end_date(tutor.id, monday_slot.id, NEXT_MONDAY)
    assert slot.recurrence_end_date == NEXT_MONDAY

    slot = await time_slot_service.set_recurrence_end_date(tutor.id, monday_slot.id, None)
    assert slot.recurrence_end_date is None


@pytest.mark.asyncio
async def test_deleting_a_slot_keeps_booked_sessions(
    time_slot_service, session_store, book, tutor, student, monday_slot
):
    session = await book(student.id, 10)

    await time_slot_service.delete_time_slot(tutor.id, monday_slot.id)

    assert await time_slot_service.list_time_slots(tutor.id) == []
    stored = await session_store.get(session.id)
    assert stored.status == SessionStatus.REQUESTED
    assert stored.scheduled_date == at(NEXT_MONDAY, 10)
