from unittest.mock import MagicMock, patch

from sannu.auth.rate_limit import RateLimiter, throttle_key
from sannu.services.cache import MemoryCache, RedisCache, get_cache, reset_cache


def test_memory_cache_expiry():
    cache = MemoryCache()
    cache.set("a", {"id": 1})
    cache.set("b", {"id": 2}, ttl_seconds=-1)

    assert cache.get("a") == {"id": 1}
    assert cache.get("b") is None
    cache.delete("a")
    assert cache.get("a") is None


def test_get_cache_uses_redis_when_configured(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    reset_cache()

    with patch("sannu.services.cache.redis.Redis.from_url") as from_url:
        cache = get_cache()

    assert isinstance(cache, RedisCache)
    from_url.assert_called_once_with("redis://localhost:6379/0", decode_responses=True)


def test_redis_cache_serialises_json():
    cache = RedisCache.__new__(RedisCache)
    cache.client = MagicMock()
    cache.client.get.return_value = '{"id": 3}'

    cache.set("tenant.slug.acme", {"id": 3}, 60)

    cache.client.set.assert_called_once_with("tenant.slug.acme", '{"id": 3}', ex=60)
    assert cache.get("tenant.slug.acme") == {"id": 3}


def test_get_cache_defaults_to_memory():
    assert isinstance(get_cache(), MemoryCache)


def test_throttle_key_normalises_email():
    assert throttle_key(" Ada@Example.com ", "1.2.3.4") == "ada@example.com|1.2.3.4"
    assert throttle_key("ada@example.com", None) == "ada@example.com|-"


def test_rate_limiter_counts_and_clears():
    limiter = RateLimiter(max_attempts=2, decay_seconds=60, cache=MemoryCache())

    assert limiter.hit("k") == 1
    assert not limiter.too_many_attempts("k")
    assert limiter.hit("k") == 2
    assert limiter.too_many_attempts("k")
    assert 0 < limiter.available_in("k") <= 60

    limiter.clear("k")
    assert limiter.attempts("k") == 0
    assert limiter.available_in("k") == 0
