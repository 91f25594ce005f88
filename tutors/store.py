import uuid
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tutors.models import TimeSlot
from users.models import User


class TimeSlotStore:
    """Persists recurring weekly availability records per tutor."""

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def tutor_exists(self, tutor_id: uuid.UUID) -> bool:
        async with self.session_maker() as session:
            user = await session.get(User, tutor_id)
            return user is not None and user.is_tutor

    async def get(self, slot_id: int) -> TimeSlot | None:
        async with self.session_maker() as session:
            return await session.get(TimeSlot, slot_id)

    async def list_for_tutor(
        self,
        tutor_id: uuid.UUID,
        active_only: bool = False,
        day_of_week: int | None = None,
        db: AsyncSession | None = None,
    ) -> Sequence[TimeSlot]:
        query = select(TimeSlot).where(TimeSlot.tutor_id == tutor_id)
        if active_only:
            query = query.where(TimeSlot.is_available)
        if day_of_week is not None:
            query = query.where(TimeSlot.day_of_week == day_of_week)
        query = query.order_by(TimeSlot.day_of_week, TimeSlot.start_time)

        if db is not None:
            result = await db.execute(query)
            return result.scalars().all()
        async with self.session_maker() as session:
            result = await session.execute(query)
            return result.scalars().all()

    async def add(self, slot: TimeSlot) -> TimeSlot:
        async with self.session_maker() as session:
            session.add(slot)
            await session.commit()
            await session.refresh(slot)
            return slot

    async def save(self, slot: TimeSlot) -> TimeSlot:
        async with self.session_maker() as session:
            slot = await session.merge(slot)
            await session.commit()
            await session.refresh(slot)
            return slot

    async def delete(self, slot_id: int) -> None:
        async with self.session_maker() as session:
            slot = await session.get(TimeSlot, slot_id)
            if slot is not None:
                await session.delete(slot)
                await session.commit()
