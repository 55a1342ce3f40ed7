"""
Cache Service: in-memory TTL cache for catalog reads (categories, variations).

The cache is advisory: a miss or an expired entry just means "fetch fresh".
Entries carry their own TTL and a background task sweeps out expired ones.
There is no lock; everything runs on one event loop.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class CacheService:
    def __init__(self, default_ttl: float = 300, sweep_interval: float = 60,
                 clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._sweeper: Optional[asyncio.Task] = None

    def get(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None):
        self._entries[key] = (self._clock() + (ttl or self.default_ttl), value)

    def delete(self, key: str):
        self._entries.pop(key, None)

    def flush(self):
        self._entries.clear()

    async def get_or_fetch(self, key: str, fetch: Callable, ttl: Optional[float] = None) -> Any:
        """Cached value for `key`, else await `fetch()` and cache its result."""
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"Cache HIT: {key}")
            return cached
        logger.debug(f"Cache MISS: {key}")
        value = await fetch()
        self.set(key, value, ttl)
        return value

    def sweep(self) -> int:
        """Evict every expired entry. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Cache sweep evicted {len(expired)} entries")
        return len(expired)

    async def _sweep_loop(self):
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep()

    def start_sweeper(self):
        """Start the background sweep task. Needs a running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())
            logger.info(f"Cache sweeper started (every {self.sweep_interval}s)")

    async def stop_sweeper(self):
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None
            logger.info("Cache sweeper stopped")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
