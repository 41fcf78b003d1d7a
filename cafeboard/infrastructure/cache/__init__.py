"""Cache backends: an in-process TTL store and a Redis store."""

from typing import Any, Protocol

from .memory import MemoryCacheBackend
from .redis_backend import RedisCacheBackend


class CacheBackend(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(
        self, key: str, value: Any, ttl_seconds: int | None = None
    ) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> None: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


__all__ = ["CacheBackend", "MemoryCacheBackend", "RedisCacheBackend"]
