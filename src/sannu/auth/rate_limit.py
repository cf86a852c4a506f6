"""
Fixed-window attempt limiter for login.

Counters live in the shared cache backend (Redis when configured), keyed
by "email|ip" so one address cannot lock out an account everywhere.
"""
import logging
import math
import time

from sannu.services.cache import get_cache

logger = logging.getLogger(__name__)

MAX_LOGIN_ATTEMPTS = 5
DECAY_SECONDS = 60


def throttle_key(email: str, ip_address: str) -> str:
    return f"{(email or '').strip().lower()}|{ip_address or '-'}"


class RateLimiter:
    def __init__(self, max_attempts: int = MAX_LOGIN_ATTEMPTS, decay_seconds: int = DECAY_SECONDS, cache=None):
        self.max_attempts = max_attempts
        self.decay_seconds = decay_seconds
        self.cache = cache if cache is not None else get_cache()

    def _key(self, key: str) -> str:
        return f"login.throttle.{key}"

    def _state(self, key: str):
        state = self.cache.get(self._key(key))
        if state is None or state["reset_at"] <= time.time():
            return None
        return state

    def attempts(self, key: str) -> int:
        state = self._state(key)
        return state["attempts"] if state else 0

    def too_many_attempts(self, key: str) -> bool:
        return self.attempts(key) >= self.max_attempts

    def hit(self, key: str) -> int:
        state = self._state(key) or {"attempts": 0, "reset_at": time.time() + self.decay_seconds}
        state["attempts"] += 1
        ttl = max(1, int(state["reset_at"] - time.time()))
        self.cache.set(self._key(key), state, ttl)
        return state["attempts"]

    def available_in(self, key: str) -> int:
        state = self._state(key)
        if state is None:
            return 0
        return max(0, math.ceil(state["reset_at"] - time.time()))

    def clear(self, key: str) -> None:
        self.cache.delete(self._key(key))
