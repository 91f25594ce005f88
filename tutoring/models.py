import uuid
from datetime import datetime, timedelta
from sqlalchemy import String, Integer, Text, ForeignKey, BigInteger, JSON, Enum
from sqlalchemy.orm import Mapped, mapped_column

from db import Base, UTCDateTime, utcnow
from tutoring.status import Role, SessionPriority, SessionStatus, TERMINAL_STATUSES


class TutoringSession(Base):
    __tablename__ = "tutoring_sessions"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    student_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    tutor_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False)

    scheduled_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    # Denormalised so overlap queries stay plain column comparisons.
    scheduled_end: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[SessionStatus] = mapped_column(
        Enum(SessionStatus, native_enum=False, length=20),
        default=SessionStatus.REQUESTED,
        nullable=False,
    )
    priority: Mapped[SessionPriority] = mapped_column(
        Enum(SessionPriority, native_enum=False, length=10),
        default=SessionPriority.MEDIUM,
        nullable=False,
    )

    student_question: Mapped[str] = mapped_column(Text, nullable=False)
    tutor_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    session_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    materials: Mapped[list | None] = mapped_column(JSON, nullable=True)
    cancel_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def set_window(self, start: datetime, duration_minutes: int) -> None:
        self.scheduled_date = start
        self.duration_minutes = duration_minutes
        self.scheduled_end = start + timedelta(minutes=duration_minutes)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def participant_role(self, actor_id: uuid.UUID) -> Role | None:
        if actor_id == self.tutor_id:
            return Role.TUTOR
        if actor_id == self.student_id:
            return Role.STUDENT
        return None
