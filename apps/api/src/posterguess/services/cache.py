from __future__ import annotations

import asyncio
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from redis.asyncio import Redis

CATALOG_CACHE_PREFIX = "posterguess:catalog"


class CacheBackend(ABC):
    """Abstract cache contract for catalog payloads."""

    @abstractmethod
    async def get(self, key: str) -> Any:
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        raise NotImplementedError

    @abstractmethod
    async def clear(self) -> None:
        raise NotImplementedError

    async def remember(
        self,
        key: str,
        ttl: int | None,
        creator: Callable[[], Awaitable[Any]],
    ) -> Any:
        existing = await self.get(key)
        if existing is not None:
            return existing
        value = await creator()
        await self.set(key, value, ttl)
        return value


class InMemoryCache(CacheBackend):
    """Simple process-local cache with TTL support."""

    def __init__(self) -> None:
        self._store: dict[str, tuple[Any, float | None]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Any:
        async with self._lock:
            entry = self._store.get(key)
            if not entry:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at < time.time():
                del self._store[key]
                return None
            return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        if value is None:
            async with self._lock:
                self._store.pop(key, None)
            return
        expires_at = time.time() + ttl if ttl else None
        async with self._lock:
            self._store[key] = (value, expires_at)

    async def clear(self) -> None:
        async with self._lock:
            self._store.clear()


class RedisCache(CacheBackend):
    """Redis-backed cache."""

    def __init__(self, client: Redis) -> None:
        self._client = client

    async def get(self, key: str) -> Any:
        raw = await self._client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        if value is None:
            await self._client.delete(key)
            return
        payload = json.dumps(value, ensure_ascii=False)
        if ttl:
            await self._client.set(key, payload, ex=ttl)
        else:
            await self._client.set(key, payload)

    async def clear(self) -> None:
        keys = [key async for key in self._client.scan_iter(match=f"{CATALOG_CACHE_PREFIX}:*")]
        if keys:
            await self._client.delete(*keys)


_cache: CacheBackend | None = None


async def get_cache(redis_url: str | None = None) -> CacheBackend:
    global _cache
    if _cache is not None:
        return _cache
    if redis_url:
        redis_client = Redis.from_url(redis_url, decode_responses=True)
        _cache = RedisCache(redis_client)
    else:
        _cache = InMemoryCache()
    return _cache


def reset_cache() -> None:
    global _cache
    _cache = None
