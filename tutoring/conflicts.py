# Intervals are half-open [start, end); touching intervals do not overlap.

import logging
from datetime import datetime
from typing import Iterable

from tutoring.models import TutoringSession
from tutoring.status import SessionStatus
from tutors.expander import AvailableWindow

logger = logging.getLogger(__name__)


def overlaps(s1: datetime, e1: datetime, s2: datetime, e2: datetime) -> bool:
    return s1 < e2 and s2 < e1


def merge(intervals: Iterable[tuple[datetime, datetime]]) -> list[tuple[datetime, datetime]]:
    ordered = sorted(intervals)
    if not ordered:
        return []
    merged = []
    cs, ce = ordered[0]
    for s, e in ordered[1:]:
        if s <= ce:
            ce = max(ce, e)
        else:
            merged.append((cs, ce))
            cs, ce = s, e
    merged.append((cs, ce))
    return merged


def subtract(
    window: AvailableWindow, busy: Iterable[tuple[datetime, datetime]]
) -> list[AvailableWindow]:
    """Remove every busy interval from ``window``; returns the free pieces in order."""
    segments = [(window.start, window.end)]
    for cs, ce in merge(busy):
        pieces = []
        for s, e in segments:
            if e <= cs or s >= ce:
                pieces.append((s, e))
                continue
            if s < cs:
                pieces.append((s, cs))
            if e > ce:
                pieces.append((ce, e))
        segments = pieces
        if not segments:
            break
    return [AvailableWindow(s, e) for s, e in segments if e > s]


class ConflictGuard:
    def __init__(self, requested_blocks_slot: bool = True):
        self.requested_blocks_slot = requested_blocks_slot

    @property
    def blocking_statuses(self) -> frozenset[SessionStatus]:
        statuses = {SessionStatus.SCHEDULED, SessionStatus.IN_PROGRESS}
        if self.requested_blocks_slot:
            statuses.add(SessionStatus.REQUESTED)
        return frozenset(statuses)

    def is_blocking(self, status: SessionStatus) -> bool:
        return SessionStatus(status) in self.blocking_statuses

    def conflicting(
        self,
        start: datetime,
        end: datetime,
        sessions: Iterable[TutoringSession],
        exclude_id: int | None = None,
    ) -> list[TutoringSession]:
        conflicts = [
            session
            for session in sessions
            if session.id != exclude_id
            and self.is_blocking(session.status)
            and overlaps(start, end, session.scheduled_date, session.scheduled_end)
        ]
        if conflicts:
            logger.info(
                "Found %d conflicting sessions between %s and %s", len(conflicts), start, end
            )
        return conflicts

    def busy_intervals(self, sessions: Iterable[TutoringSession]) -> list[tuple[datetime, datetime]]:
        return [
            (session.scheduled_date, session.scheduled_end)
            for session in sessions
            if self.is_blocking(session.status)
        ]
