"""Per-process in-memory cache store.

Holds CacheEntry objects in a dict. Expired entries are purged on read
(lazily) and by an optional background sweep task. Every instance of the
service has its own copy, so cross-instance coherence relies on the
invalidation bus.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from app.domain.value_objects import CacheEntry

logger = logging.getLogger(__name__)


class InMemoryCacheStore:
    """Dict-backed store with TTL. Operations never suspend mid-mutation.

    Args:
        clock: Monotonic time source in seconds (injectable for tests).
    """

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock
        self._sweeper: asyncio.Task[None] | None = None

    async def connect(self) -> None:
        """No-op; the store is always available."""

    async def disconnect(self) -> None:
        """Stop the sweeper and drop all entries."""
        await self.stop_sweeper()
        self._entries.clear()

    def is_available(self) -> bool:
        return True

    async def ping(self) -> bool:
        return True

    async def read(self, key: str) -> str | None:
        """Return payload or None; an expired entry is deleted, never returned."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            logger.debug("Cache EXPIRED: %s", key)
            return None
        return entry.value

    async def write(self, key: str, value: str, ttl: int | None = None) -> None:
        now = self._clock()
        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            stored_at=now,
            expires_at=now + ttl if ttl is not None else None,
        )

    async def delete(self, key: str) -> int:
        return 1 if self._entries.pop(key, None) is not None else 0

    async def delete_prefix(self, prefix: str) -> int:
        doomed = [k for k in self._entries if k.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    async def count_prefix(self, prefix: str) -> int:
        now = self._clock()
        return sum(
            1
            for k, entry in self._entries.items()
            if k.startswith(prefix) and not entry.is_expired(now)
        )

    def entry(self, key: str) -> CacheEntry | None:
        """Return the raw entry (including expired ones) for diagnostics."""
        return self._entries.get(key)

    def sweep(self) -> int:
        """Delete every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Cache SWEEP: %d expired entries removed", len(expired))
        return len(expired)

    def start_sweeper(self, interval_seconds: float) -> None:
        """Start the background sweep task (no-op if running or interval <= 0)."""
        if interval_seconds <= 0 or self._sweeper is not None:
            return
        self._sweeper = asyncio.create_task(self._sweep_loop(interval_seconds))
        logger.info("In-memory cache sweeper started (every %ss)", interval_seconds)

    async def stop_sweeper(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        task, self._sweeper = self._sweeper, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("In-memory cache sweeper stopped")

    async def _sweep_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            self.sweep()

    def __len__(self) -> int:
        return len(self._entries)
