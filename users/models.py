from fastapi_users.db import SQLAlchemyBaseUserTableUUID
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from db import Base

STUDENT = "student"
TUTOR = "tutor"
ADMIN = "admin"


class User(SQLAlchemyBaseUserTableUUID, Base):
    """Account for students and tutors; the id is the actor id of every session operation."""

    __tablename__ = "users"

    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default=STUDENT, nullable=False)

    @property
    def is_tutor(self) -> bool:
        return self.role == TUTOR
