import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional


log = logging.getLogger(__name__)

PROJECT_PREFIX = "project_"
WEBSITE_PREFIX = "website_"
COMBINED_PREFIX = "combined_"


@dataclass
class CacheEntry:
    key: str
    value: Any
    inserted_at: float
    is_mock: bool = False


class TTLCache:
    """In-process key/value store with a fixed time-to-live.

    Expired entries are dropped lazily on read and in bulk by sweep(); the
    service runs sweep() every check period. A ttl of 0 never expires.
    """

    def __init__(self, ttl_seconds: int = 3600, clock: Optional[Callable[[], float]] = None):
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return self.ttl_seconds > 0 and now - entry.inserted_at >= self.ttl_seconds

    def get(self, key: str) -> Optional[CacheEntry]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._expired(entry, now):
                del self._entries[key]
                entry = None
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
            return entry

    def set(self, key: str, value: Any, is_mock: bool = False) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(key, value, self._clock(), is_mock)

    def keys(self) -> List[str]:
        now = self._clock()
        with self._lock:
            return [k for k, e in self._entries.items() if not self._expired(e, now)]

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if self._expired(e, now)]
            for k in expired:
                del self._entries[k]
        if expired:
            log.debug("Swept %d expired cache entries", len(expired))
        return len(expired)

    def stats(self) -> Dict[str, int]:
        return {"keys": len(self.keys()), "hits": self.hits, "misses": self.misses}
