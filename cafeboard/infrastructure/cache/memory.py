from __future__ import annotations

import time
from collections import OrderedDict
from typing import Any, Callable, Optional


class MemoryCacheBackend:
    """In-process TTL store bounded to ``max_entries``.

    Writing to a full store evicts the entry that was written least recently.
    Expired entries are dropped lazily on read.
    """

    def __init__(
        self,
        max_entries: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[str, tuple[Optional[float], Any]] = OrderedDict()

    async def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._store[key]
            return None
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        expires_at = None
        if ttl_seconds:
            expires_at = self._clock() + ttl_seconds
        self._store.pop(key, None)
        self._store[key] = (expires_at, value)
        while len(self._store) > self.max_entries:
            self._store.popitem(last=False)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def clear(self) -> None:
        self._store.clear()

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
