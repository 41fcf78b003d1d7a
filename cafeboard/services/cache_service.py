from typing import Any, Awaitable, Callable, TypeVar

from cafeboard.core.logger import get_logger
from cafeboard.core.metrics import (
    CACHE_ERRORS_TOTAL,
    CACHE_HITS_TOTAL,
    CACHE_MISSES_TOTAL,
)
from cafeboard.infrastructure.cache import CacheBackend

logger = get_logger("cache.service")

T = TypeVar("T")


class CacheService:
    """Best-effort cache facade over a backend.

    No cache failure reaches the caller: reads degrade to a miss, writes are
    logged and dropped. ``None`` means "absent", so ``None`` itself is never
    worth caching.
    """

    def __init__(self, backend: CacheBackend, default_ttl_seconds: int | None = None):
        self.backend = backend
        self.default_ttl_seconds = default_ttl_seconds

    async def get(self, key: str) -> Any | None:
        try:
            value = await self.backend.get(key)
        except Exception as e:
            self._absorb("get", key, e)
            return None
        self._record_lookup(key, value)
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        try:
            await self.backend.set(key, value, ttl)
            logger.debug("cache_set", extra={"entry": key, "ttl_seconds": ttl})
        except Exception as e:
            self._absorb("set", key, e)

    async def delete(self, key: str) -> None:
        try:
            await self.backend.delete(key)
            logger.debug("cache_deleted", extra={"entry": key})
        except Exception as e:
            self._absorb("delete", key, e)

    async def clear(self) -> None:
        try:
            await self.backend.clear()
            logger.info("cache_cleared")
        except Exception as e:
            self._absorb("clear", None, e)

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        ttl_seconds: int | None = None,
    ) -> T:
        """Cached value for ``key``, computing and storing it on a miss.

        ``factory`` runs at most once. If the read fails the cache is bypassed
        for this call; if ``factory`` raises, nothing is stored and the
        exception propagates as-is.
        """
        try:
            cached = await self.backend.get(key)
        except Exception as e:
            self._absorb("get", key, e)
            logger.warning("cache_bypassed", extra={"entry": key})
            return await factory()

        self._record_lookup(key, cached)
        if cached is not None:
            return cached

        logger.debug("cache_generating", extra={"entry": key})
        value = await factory()
        await self.set(key, value, ttl_seconds)
        return value

    def _record_lookup(self, key: str, value: Any) -> None:
        if value is None:
            CACHE_MISSES_TOTAL.inc()
            logger.debug("cache_miss", extra={"entry": key})
        else:
            CACHE_HITS_TOTAL.inc()
            logger.debug("cache_hit", extra={"entry": key})

    def _absorb(self, operation: str, key: str | None, error: Exception) -> None:
        CACHE_ERRORS_TOTAL.labels(operation=operation).inc()
        logger.error(
            "cache_operation_failed",
            extra={"operation": operation, "entry": key, "error": str(error)},
            exc_info=True,
        )
