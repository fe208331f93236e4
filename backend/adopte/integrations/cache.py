"""Cache service with Protocol pattern for dependency injection.

Provides RedisCacheService (shared cache) and LocalCacheService (in-process
fallback). The auth layer keeps revoked token ids here until they expire.
"""

import json
import logging
import threading
import time
from typing import Protocol

import redis

logger = logging.getLogger(__name__)


class CacheService(Protocol):
    """Cache service interface."""

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str, ttl: int) -> None: ...
    def delete(self, key: str) -> None: ...
    def get_json(self, key: str) -> dict | None: ...
    def set_json(self, key: str, data: dict, ttl: int) -> None: ...


class RedisCacheService:
    """Redis-backed cache implementation."""

    def __init__(self, redis_url: str) -> None:
        self._client = redis.from_url(redis_url, decode_responses=True, socket_connect_timeout=2)
        self._client.ping()

    def get(self, key: str) -> str | None:
        try:
            return self._client.get(key)
        except redis.RedisError:
            logger.warning("Redis GET failed for %s", key)
            return None

    def set(self, key: str, value: str, ttl: int) -> None:
        try:
            self._client.setex(key, ttl, value)
        except redis.RedisError:
            logger.warning("Redis SETEX failed for %s", key)

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError:
            logger.warning("Redis DEL failed for %s", key)

    def get_json(self, key: str) -> dict | None:
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None

    def set_json(self, key: str, data: dict, ttl: int) -> None:
        self.set(key, json.dumps(data, ensure_ascii=False), ttl)


class LocalCacheService:
    """Process-local TTL cache used when Redis is not configured or unreachable."""

    # Expired entries are swept on write once the store grows past this size
    SWEEP_THRESHOLD = 1024

    def __init__(self) -> None:
        self._data: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()
        self._sweep_at = self.SWEEP_THRESHOLD

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= time.monotonic():
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: str, ttl: int) -> None:
        if ttl <= 0:
            return
        with self._lock:
            now = time.monotonic()
            if len(self._data) >= self._sweep_at:
                self._sweep(now)
            self._data[key] = (value, now + ttl)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._data.items() if expires_at <= now]
        for key in expired:
            del self._data[key]
        self._sweep_at = max(self.SWEEP_THRESHOLD, 2 * len(self._data))

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def get_json(self, key: str) -> dict | None:
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None

    def set_json(self, key: str, data: dict, ttl: int) -> None:
        self.set(key, json.dumps(data, ensure_ascii=False), ttl)


def create_cache_service(redis_url: str) -> CacheService:
    """Factory: create the appropriate cache service based on configuration."""
    if not redis_url:
        return LocalCacheService()
    try:
        return RedisCacheService(redis_url)
    except redis.RedisError:
        logger.warning("Redis unavailable at startup, using in-process cache")
        return LocalCacheService()
