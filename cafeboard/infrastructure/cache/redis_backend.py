import json
from typing import Any

from redis.asyncio import Redis

from cafeboard.core.errors import CacheOperationFailed


class RedisCacheBackend:
    """Redis-backed cache store.

    Notes:
        - Values are JSON documents written with ``SET ... EX ttl``.
        - All keys live under ``key_prefix`` so ``clear`` never touches
          data owned by other applications sharing the instance.
        - Redis and serialisation failures surface as CacheOperationFailed.
    """

    def __init__(self, redis: Redis, key_prefix: str = "cafeboard:"):
        self.r = redis
        self.key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self.r.get(self._key(key))
            if raw is None:
                return None
            return json.loads(raw)
        except Exception as e:
            raise CacheOperationFailed("get", key) from e

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        try:
            payload = json.dumps(value)
            await self.r.set(self._key(key), payload, ex=ttl_seconds or None)
        except Exception as e:
            raise CacheOperationFailed("set", key) from e

    async def delete(self, key: str) -> None:
        try:
            await self.r.delete(self._key(key))
        except Exception as e:
            raise CacheOperationFailed("delete", key) from e

    async def clear(self) -> None:
        try:
            keys = [k async for k in self.r.scan_iter(match=f"{self.key_prefix}*")]
            if keys:
                await self.r.delete(*keys)
        except Exception as e:
            raise CacheOperationFailed("clear") from e

    async def ping(self) -> bool:
        return bool(await self.r.ping())

    async def close(self) -> None:
        await self.r.aclose()
