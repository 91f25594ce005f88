import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def notify(self, event: str, session) -> None: ...


class LoggingNotifier:
    async def notify(self, event: str, session) -> None:
        logger.info(
            "%s: session=%s tutor=%s student=%s status=%s",
            event,
            session.id,
            session.tutor_id,
            session.student_id,
            session.status,
        )


async def notify_safely(notifier: Notifier, event: str, session) -> None:
    # Notifications are best-effort; the session is already committed.
    try:
        await notifier.notify(event, session)
    except Exception as exc:
        logger.warning(
            "Notification %s for session %s failed: %s", event, session.id, exc
        )
