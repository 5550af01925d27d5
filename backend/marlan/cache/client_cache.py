"""In-process TTL cache"""
import time
from typing import Any, Dict, Optional, Tuple

DEFAULT_TTL_SECONDS = 30 * 60
DEFAULT_MAX_ENTRIES = 10_000


class ClientCache:
    """
    Dict-backed cache with a per-entry time to live

    Entries past their TTL are dropped on read. Inserts sweep expired entries
    once per default TTL or when the cache is full; a full cache then evicts
    its oldest entry. The clock is injectable so expiry can be tested
    without sleeping.
    """

    def __init__(self, default_ttl: float = DEFAULT_TTL_SECONDS, clock=time.monotonic,
                 max_entries: int = DEFAULT_MAX_ENTRIES):
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._last_sweep = clock()
        # key -> (value, stored_at, ttl)
        self._entries: Dict[str, Tuple[Any, float, float]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stored_at, ttl = entry
        if self._clock() - stored_at > ttl:
            del self._entries[key]
            return None
        return value

    def _sweep(self, now: float):
        self._last_sweep = now
        expired = [k for k, (_, stored_at, ttl) in self._entries.items() if now - stored_at > ttl]
        for key in expired:
            del self._entries[key]

    def set(self, key: str, value: Any, ttl: Optional[float] = None):
        now = self._clock()
        self._entries.pop(key, None)
        if len(self._entries) >= self.max_entries or now - self._last_sweep >= self.default_ttl:
            self._sweep(now)
        while len(self._entries) >= self.max_entries:
            # dicts keep insertion order, so the first key is the oldest
            del self._entries[next(iter(self._entries))]
        self._entries[key] = (value, now, ttl if ttl is not None else self.default_ttl)

    def remove(self, key: str):
        self._entries.pop(key, None)

    def clear(self):
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
