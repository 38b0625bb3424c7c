"""
In-memory TTL cache for rendered payloads, one per widget instance.
"""
import time
from typing import Callable, Hashable, Optional


class CacheFullError(Exception):
    """Raised by ContentCache.set when no slot can be freed."""


class ContentCache:
    """
    Bounded cache of payloads with a fixed time-to-live.

    Entries past their TTL are treated as absent. When full, expired
    entries are purged; if none are, ``set`` raises CacheFullError and the
    caller decides whether that matters.
    """

    def __init__(self, ttl: float = 300.0, max_entries: int = 50,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.max_entries = max_entries
        self.clock = clock
        self._entries = {}

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def get(self, key: Hashable) -> Optional[dict]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self.clock() - stored_at >= self.ttl:
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: dict) -> None:
        if key not in self._entries and len(self._entries) >= self.max_entries:
            self.purge_expired()
            if len(self._entries) >= self.max_entries:
                raise CacheFullError(f'Cache holds {self.max_entries} entries')
        self._entries[key] = (self.clock(), value)

    def delete(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def purge_expired(self) -> int:
        now = self.clock()
        expired = [k for k, (stored_at, _) in self._entries.items() if now - stored_at >= self.ttl]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
