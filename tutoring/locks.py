import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator
from weakref import WeakValueDictionary

logger = logging.getLogger(__name__)


class KeyedLocks:
    """
    One ``asyncio.Lock`` per key, created on first use and dropped once no
    caller holds a reference to it.
    """

    def __init__(self) -> None:
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._lock_for(key)
        if lock.locked():
            logger.debug("Waiting for lock %s", key)
        async with lock:
            yield
