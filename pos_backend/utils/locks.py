"""
Per-key asyncio locks.

Baserow has no conditional write, so the upsert's lookup-then-write runs
under a lock for its foreign id. Only writers inside this process are
serialised; a second process can still race.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Hashable


class KeyedLock:
    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._waiters: Dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable):
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                # last holder drops the entry so the map stays bounded
                del self._waiters[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
