"""Keyed asyncio locks.

Provides one asyncio.Lock per key so that callers contending for different
keys never wait on each other. A key's lock is dropped as soon as nobody
holds it or waits for it, so the table only grows with live contention.

Example:
    locks = KeyedLock()

    async with locks.acquire((tenant_id, "Thermostat")):
        profile = await repo.find_by_name(tenant_id, "Thermostat")
        if profile is None:
            profile, _ = await repo.insert_if_absent(new_profile)
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


class KeyedLock:
    """Mutual exclusion striped by key.

    Bound to the event loop that first awaits it, like asyncio.Lock.
    """

    def __init__(self):
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    @asynccontextmanager
    async def acquire(self, key: Hashable) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1

        try:
            async with lock:
                logger.debug(f"Acquired lock for {key!r}")
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def locked(self, key: Hashable) -> bool:
        """Check whether ``key`` is currently held."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
