"""In-process TTL cache for recommendation lists.

One instance per engine; nothing is shared across processes. Entries are
replace-only, so a single lock around the map is enough.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: Any
    expires_at: datetime


class ResultCache:
    """
    Key -> payload map with per-entry expiry and an LRU size bound.

    get() misses on absent or expired keys (expired entries are evicted on the way);
    set() stores with expires_at = now + ttl and evicts the least recently used
    entry once max_entries is exceeded.
    """

    def __init__(self, ttl_seconds: int = 30 * 60, max_entries: int = 1024, clock: Clock = utc_now):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if now >= entry.expires_at:
                del self._entries[key]
                logger.debug("cache expired key=%s", key)
                return None
            self._entries.move_to_end(key)
            return entry.payload

    def set(self, key: str, payload: Any) -> None:
        entry = CacheEntry(key=key, payload=payload, expires_at=self._clock() + self.ttl)
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("cache lru_evict key=%s", evicted)

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for k in keys:
                del self._entries[k]
            return len(keys)

    def clear(self) -> int:
        with self._lock:
            n = len(self._entries)
            self._entries.clear()
            return n

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
