import asyncio
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator

import structlog

logger = structlog.get_logger(__name__)


class SlotLockRegistry:
    """In-process locks serialising booking commits per calendar day.

    Only covers requests served by this process; the unique slot index and
    the PostgreSQL advisory lock taken by the commit guard cover the rest.
    """

    def __init__(self):
        self._locks: dict[tuple[int, str], asyncio.Lock] = {}
        self._holders: dict[tuple[int, str], int] = {}

    @staticmethod
    def day_key(day: date) -> str:
        return f"slot_lock:{day.isoformat()}"

    @asynccontextmanager
    async def hold(self, day: date) -> AsyncIterator[None]:
        """Hold the lock for ``day`` for the duration of the block."""
        # asyncio locks are bound to the loop they were first awaited on
        key = (id(asyncio.get_running_loop()), self.day_key(day))
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                logger.debug("Slot lock acquired", lock_key=key[1])
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                self._locks.pop(key, None)

    def is_locked(self, day: date) -> bool:
        key = (id(asyncio.get_running_loop()), self.day_key(day))
        lock = self._locks.get(key)
        return bool(lock and lock.locked())


# Global lock registry instance
slot_locks = SlotLockRegistry()
