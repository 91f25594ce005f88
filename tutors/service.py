import logging
import uuid
from datetime import date, time

from clock import Clock
from config import Settings
from errors import NotFoundError, UnauthorizedActionError, ValidationError
from tutors.models import DayOfWeek, TimeSlot, minutes_since_midnight
from tutors.store import TimeSlotStore

logger = logging.getLogger(__name__)


class TimeSlotService:
    """Tutor-side management of recurring availability."""

    def __init__(self, store: TimeSlotStore, clock: Clock, settings: Settings):
        self.store = store
        self.clock = clock
        self.settings = settings

    async def create_time_slot(
        self,
        tutor_id: uuid.UUID,
        day_of_week: int,
        start_time: time,
        end_time: time,
        recurrence_end_date: date | None = None,
    ) -> TimeSlot:
        try:
            day = DayOfWeek(day_of_week)
        except ValueError:
            raise ValidationError(
                "Day of week must be between 0 (Sunday) and 6 (Saturday)",
                details={"day_of_week": day_of_week},
            ) from None

        start_minute = minutes_since_midnight(start_time)
        end_minute = minutes_since_midnight(end_time)
        if start_minute >= end_minute:
            raise ValidationError("Start time must be before end time")

        length = end_minute - start_minute
        if not self.settings.min_slot_minutes <= length <= self.settings.max_slot_minutes:
            raise ValidationError(
                f"Time slot must be between {self.settings.min_slot_minutes} "
                f"and {self.settings.max_slot_minutes} minutes long",
                details={"length_minutes": length},
            )
        self._check_recurrence_end(recurrence_end_date)

        if not await self.store.tutor_exists(tutor_id):
            raise NotFoundError(f"Tutor {tutor_id} not found", details={"tutor_id": str(tutor_id)})

        for existing in await self.store.list_for_tutor(tutor_id, day_of_week=day):
            if existing.overlaps(day, start_minute, end_minute):
                raise ValidationError(
                    f"Time slot overlaps with existing availability: {existing!r}",
                    details={"time_slot_id": existing.id},
                )

        slot = await self.store.add(
            TimeSlot(
                tutor_id=tutor_id,
                day_of_week=int(day),
                start_time=start_time,
                end_time=end_time,
                recurrence_end_date=recurrence_end_date,
                is_available=True,
            )
        )
        logger.info("Created %r", slot)
        return slot

    async def delete_time_slot(self, tutor_id: uuid.UUID, time_slot_id: int) -> None:
        # Booked sessions are standalone facts and are left untouched.
        await self.get_owned_slot(tutor_id, time_slot_id)
        await self.store.delete(time_slot_id)
        logger.info("Deleted time slot %s of tutor %s", time_slot_id, tutor_id)

    async def set_time_slot_availability(
        self, tutor_id: uuid.UUID, time_slot_id: int, is_available: bool
    ) -> TimeSlot:
        slot = await self.get_owned_slot(tutor_id, time_slot_id)
        slot.is_available = is_available
        return await self.store.save(slot)

    async def set_recurrence_end_date(
        self, tutor_id: uuid.UUID, time_slot_id: int, recurrence_end_date: date | None
    ) -> TimeSlot:
        slot = await self.get_owned_slot(tutor_id, time_slot_id)
        self._check_recurrence_end(recurrence_end_date)
        slot.recurrence_end_date = recurrence_end_date
        return await self.store.save(slot)

    async def list_time_slots(self, tutor_id: uuid.UUID) -> list[TimeSlot]:
        return list(await self.store.list_for_tutor(tutor_id))

    async def get_owned_slot(self, tutor_id: uuid.UUID, time_slot_id: int) -> TimeSlot:
        slot = await self.store.get(time_slot_id)
        if slot is None:
            raise NotFoundError(
                f"Time slot {time_slot_id} not found", details={"time_slot_id": time_slot_id}
            )
        if slot.tutor_id != tutor_id:
            raise UnauthorizedActionError("Only the owning tutor can modify this time slot")
        return slot

    def _check_recurrence_end(self, recurrence_end_date: date | None) -> None:
        if recurrence_end_date is not None and recurrence_end_date < self.clock.now().date():
            raise ValidationError(
                "Recurrence end date cannot be in the past",
                details={"recurrence_end_date": recurrence_end_date.isoformat()},
            )
