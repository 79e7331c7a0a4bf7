import json
import logging
import time
from typing import Any, Dict, List, Optional

import redis

from aipreview.cache import CacheEntry


log = logging.getLogger(__name__)

KEY_PREFIX = "aipreview:"


class RedisCache:
    """Shared cache backend with the TTLCache interface. Redis owns expiry via SETEX."""

    def __init__(self, url: str = "redis://localhost:6379/0", ttl_seconds: int = 3600, client: Any = None):
        self.ttl_seconds = ttl_seconds
        self._redis = client if client is not None else redis.from_url(url, decode_responses=True)
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[CacheEntry]:
        try:
            raw = self._redis.get(KEY_PREFIX + key)
        except redis.RedisError as e:
            log.warning("Redis get failed for %s: %s", key, e)
            raw = None
        if not raw:
            self.misses += 1
            return None
        try:
            payload = json.loads(raw)
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            log.warning("Dropping undecodable cache entry %s", key)
            self.misses += 1
            return None
        self.hits += 1
        return CacheEntry(key, payload.get("value"), float(payload.get("inserted_at") or 0.0), bool(payload.get("is_mock")))

    def set(self, key: str, value: Any, is_mock: bool = False) -> None:
        payload = {"value": value, "is_mock": is_mock, "inserted_at": time.time()}
        raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        try:
            if self.ttl_seconds > 0:
                self._redis.setex(KEY_PREFIX + key, self.ttl_seconds, raw)
            else:
                self._redis.set(KEY_PREFIX + key, raw)
        except redis.RedisError as e:
            log.warning("Redis set failed for %s: %s", key, e)

    def keys(self) -> List[str]:
        try:
            return [k[len(KEY_PREFIX):] for k in self._redis.scan_iter(match=KEY_PREFIX + "*")]
        except redis.RedisError as e:
            log.warning("Redis scan failed: %s", e)
            return []

    def sweep(self) -> int:
        return 0

    def stats(self) -> Dict[str, int]:
        return {"keys": len(self.keys()), "hits": self.hits, "misses": self.misses}
