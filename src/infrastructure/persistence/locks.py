import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Hashable, Tuple


class KeyedLockRegistry:
    """In-process advisory locks, one ``asyncio.Lock`` per key.

    Used to serialize check-then-insert sequences per parking spot and charge
    submissions per reservation. Holders must keep the lock until their
    transaction has committed. Row locks taken with ``SELECT ... FOR UPDATE``
    cover the multi-process case on backends that support them.

    A key's lock lives only while some task holds or waits for it.
    """

    def __init__(self):
        self._locks: Dict[Tuple, asyncio.Lock] = {}
        self._users: Dict[Tuple, int] = {}

    @asynccontextmanager
    async def lock(self, *key: Hashable):
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield lock
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def users(self, *key: Hashable) -> int:
        """Tasks holding or waiting for the lock on ``key``."""
        return self._users.get(key, 0)

    def __len__(self):
        return len(self._locks)


# Shared by every request handled by this process
lock_registry = KeyedLockRegistry()
