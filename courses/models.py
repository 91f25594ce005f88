import uuid
from sqlalchemy import String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from db import Base


class CourseTutor(Base):
    """Which tutors teach which course. The course catalog itself lives elsewhere."""

    __tablename__ = "course_tutors"

    course_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    tutor_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), primary_key=True)
