import uuid
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from courses.models import CourseTutor


class CourseCatalog(Protocol):
    async def teaches(self, tutor_id: uuid.UUID, course_id: str) -> bool: ...


class SqlCourseCatalog:
    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def teaches(self, tutor_id: uuid.UUID, course_id: str) -> bool:
        async with self.session_maker() as session:
            result = await session.execute(
                select(CourseTutor).where(
                    CourseTutor.tutor_id == tutor_id,
                    CourseTutor.course_id == course_id,
                )
            )
            return result.scalar_one_or_none() is not None

    async def assign(self, tutor_id: uuid.UUID, course_id: str) -> None:
        async with self.session_maker() as session:
            if await session.get(CourseTutor, (course_id, tutor_id)) is None:
                session.add(CourseTutor(course_id=course_id, tutor_id=tutor_id))
                await session.commit()
