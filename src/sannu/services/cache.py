"""
Key/value cache used for tenant lookups.

Uses Redis when REDIS_URL is configured, otherwise a per-process TTL dict.
Values are JSON-serialisable dicts.
"""
import json
import logging
import threading
import time
from typing import Any, Optional

import redis

from sannu.config import get_redis_url

logger = logging.getLogger(__name__)


class MemoryCache:
    """Thread-safe in-process cache with per-key expiry."""

    def __init__(self):
        self._data = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at is not None and expires_at < time.monotonic():
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        expires_at = time.monotonic() + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._data[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class RedisCache:
    """Cache backed by a Redis server; values stored as JSON."""

    def __init__(self, url: str):
        self.client = redis.Redis.from_url(url, decode_responses=True)

    def get(self, key: str) -> Optional[Any]:
        raw = self.client.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        self.client.set(key, json.dumps(value, default=str), ex=ttl_seconds)

    def delete(self, key: str) -> None:
        self.client.delete(key)

    def clear(self) -> None:
        for key in self.client.scan_iter("tenant.*"):
            self.client.delete(key)


_cache = None


def get_cache():
    """Return the process-wide cache backend, creating it on first use."""
    global _cache
    if _cache is None:
        url = get_redis_url()
        if url:
            logger.info("Using Redis tenant cache")
            _cache = RedisCache(url)
        else:
            _cache = MemoryCache()
    return _cache


def reset_cache() -> None:
    """Drop the backend so the next call re-reads configuration."""
    global _cache
    _cache = None
