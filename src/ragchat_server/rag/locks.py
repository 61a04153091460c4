"""
Per-Key Serialization

Ingestion for one conversation runs a delete → create → add sequence against
a remote index addressed purely by name. Two concurrent uploads for the same
conversation must not interleave that sequence, so each index name gets its
own ``asyncio.Lock`` for the duration of an ingestion.

Locks are reference counted and dropped once no task holds or waits on them,
so the map does not grow with the number of conversations ever seen.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class KeyedLock:
    """
    A map of lazily created asyncio locks keyed by string.

    Must be used from a single event loop.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """
        Hold the lock for ``key`` for the body of the ``async with`` block.
        """
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        """Number of keys currently held or waited on."""
        return len(self._locks)
