"""In-memory TTL cache fronting slow external lookups.

One instance is created per engine and handed to the detectors that talk to
the network. Entries are immutable and always replaced whole, so a reader
never sees a half-updated value. Keys are namespaced by the caller
(``market:...``, ``threat:...``, ``ledger:...``).
"""

import asyncio
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the clock reading at which it stops being valid."""
    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class TTLCache:
    """Bounded key/value cache with per-entry TTL and optional refresh-ahead.

    When ``refresh_ahead`` is positive, a hit on an entry that expires within
    that many seconds returns the cached value immediately and schedules a
    background fetch that swaps in a fresh entry.
    """

    def __init__(
        self,
        default_ttl: float = 300.0,
        max_entries: int = 10000,
        refresh_ahead: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self.refresh_ahead = refresh_ahead
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._refreshing: dict[str, asyncio.Task] = {}

        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.refreshes = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Return the live entry for key, dropping it if expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry

    def get(self, key: str) -> Optional[Any]:
        entry = self.get_entry(key)
        return entry.value if entry else None

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> CacheEntry:
        """Store value under key, replacing any previous entry."""
        entry = CacheEntry(
            key=key,
            value=value,
            expires_at=self._clock() + (self.default_ttl if ttl is None else ttl),
        )
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            elif len(self._entries) >= self.max_entries:
                self._entries.popitem(last=False)
                self.evictions += 1
            self._entries[key] = entry
        return entry

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        ttl: Optional[float] = None,
    ) -> Any:
        """Return the cached value for key, calling fetch on a miss.

        Errors from fetch propagate and leave the cache untouched.
        """
        entry = self.get_entry(key)
        if entry is not None:
            self.hits += 1
            logger.debug("Cache hit for %s", key)
            if self.refresh_ahead > 0 and entry.expires_at - self._clock() <= self.refresh_ahead:
                self._schedule_refresh(key, fetch, ttl)
            return entry.value

        self.misses += 1
        logger.debug("Cache miss for %s", key)
        value = await fetch()
        self.set(key, value, ttl)
        return value

    def _schedule_refresh(self, key: str, fetch: Callable[[], Awaitable[Any]], ttl: Optional[float]) -> None:
        if key in self._refreshing:
            return
        task = asyncio.create_task(self._refresh(key, fetch, ttl))
        self._refreshing[key] = task
        task.add_done_callback(lambda _: self._refreshing.pop(key, None))

    async def _refresh(self, key: str, fetch: Callable[[], Awaitable[Any]], ttl: Optional[float]) -> None:
        try:
            value = await fetch()
        except Exception:
            # The old entry stays until it expires.
            logger.error("Background refresh of %s failed", key, exc_info=True)
            return
        self.set(key, value, ttl)
        self.refreshes += 1
        logger.debug("Refreshed %s in background", key)

    async def aclose(self) -> None:
        """Cancel background refreshes still in flight."""
        tasks = list(self._refreshing.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._refreshing.clear()

    @property
    def stats(self) -> dict:
        return {
            "size": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "refreshes": self.refreshes,
        }
