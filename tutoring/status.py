# Only place that decides which status changes are legal and who may make them.

from enum import Enum


class SessionStatus(str, Enum):
    REQUESTED = "REQUESTED"
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


class SessionPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Role(str, Enum):
    STUDENT = "student"
    TUTOR = "tutor"


TERMINAL_STATUSES = frozenset(
    {SessionStatus.COMPLETED, SessionStatus.CANCELLED, SessionStatus.NO_SHOW}
)
ACTIVE_STATUSES = frozenset(
    {SessionStatus.REQUESTED, SessionStatus.SCHEDULED, SessionStatus.IN_PROGRESS}
)

_BOTH = frozenset({Role.STUDENT, Role.TUTOR})
_TUTOR = frozenset({Role.TUTOR})

TRANSITIONS: dict[tuple[SessionStatus, SessionStatus], frozenset[Role]] = {
    (SessionStatus.REQUESTED, SessionStatus.SCHEDULED): _TUTOR,
    (SessionStatus.REQUESTED, SessionStatus.CANCELLED): _BOTH,
    (SessionStatus.SCHEDULED, SessionStatus.IN_PROGRESS): _TUTOR,
    (SessionStatus.SCHEDULED, SessionStatus.CANCELLED): _BOTH,
    (SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED): _TUTOR,
    (SessionStatus.IN_PROGRESS, SessionStatus.NO_SHOW): _TUTOR,
}


def allowed_actors(source: SessionStatus, target: SessionStatus) -> frozenset[Role] | None:
    """Roles allowed to move a session from ``source`` to ``target``, or None if the edge does not exist."""
    return TRANSITIONS.get((SessionStatus(source), SessionStatus(target)))


def next_statuses(source: SessionStatus) -> list[SessionStatus]:
    return [target for (src, target) in TRANSITIONS if src == source]
