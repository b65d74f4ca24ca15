# recoengine/utils/locks.py
from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict
import asyncio

class KeyedLock:
    """
    Per-key asyncio locks for a single engine instance.
    Prevents several concurrent cache misses for the same key from each hitting the store.
    """
    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            # drop the lock object once nobody holds or waits on it
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)
