import threading
from typing import Any
import redis
from cachetools import TTLCache
from .config import settings

# Counters only need to outlive one rate-limit window (one minute) plus slack.
COUNTER_TTL_SECONDS = 120

# In-process cache for quick wins and local dev.
_local_cache = TTLCache(maxsize=4096, ttl=settings.CACHE_TTL_SECONDS)
# Counters live apart from cached payloads so they never evict them.
_local_counters = TTLCache(maxsize=65536, ttl=COUNTER_TTL_SECONDS)
_counter_lock = threading.Lock()

class Cache:
    """
    Thin abstraction over Redis/in-memory so swapping is one flag away.
    """
    def __init__(self):
        self.backend = None
        if settings.USE_REDIS:
            self.backend = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)

    def get(self, key: str) -> Any | None:
        if self.backend:
            return self.backend.get(key)
        return _local_cache.get(key)

    def set(self, key: str, value: str) -> None:
        if self.backend:
            self.backend.setex(key, settings.CACHE_TTL_SECONDS, value)
        else:
            _local_cache[key] = value

    def incr(self, key: str) -> int:
        """
        Atomically bump a short-lived counter and return the new value.
        Expiry is set once, on the first hit, so later hits never extend it.
        """
        if self.backend:
            count = int(self.backend.incr(key))
            if count == 1:
                self.backend.expire(key, COUNTER_TTL_SECONDS)
            return count
        with _counter_lock:
            count = _local_counters.get(key, 0) + 1
            _local_counters[key] = count
            return count

    def clear(self) -> None:
        """Drop in-process entries (Redis keys expire on their own)."""
        with _counter_lock:
            _local_counters.clear()
        _local_cache.clear()

cache = Cache()
