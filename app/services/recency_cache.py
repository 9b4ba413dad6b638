"""
In-memory recency cache: remembers which quote ids were recently shown per scope.

Entries expire after a TTL; expired entries are dropped lazily and in bulk
when the cache grows past its size limit.
"""
import time
from typing import Callable

_RECENT_MAX = 10_000


class RecencyCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic, max_entries: int = _RECENT_MAX):
        self._clock = clock
        self._max_entries = max_entries
        self._expires: dict[str, float] = {}

    @staticmethod
    def _key(scope: str, quote_id: int) -> str:
        return f"quote_recent_send_{scope}:{quote_id}"

    def was_recent(self, scope: str, quote_id: int) -> bool:
        key = self._key(scope, quote_id)
        expires_at = self._expires.get(key)
        if expires_at is None:
            return False
        if expires_at <= self._clock():
            del self._expires[key]
            return False
        return True

    def remember(self, scope: str, quote_id: int, ttl: float) -> None:
        self._expires[self._key(scope, quote_id)] = self._clock() + ttl
        if len(self._expires) > self._max_entries:
            self._cleanup()

    def _cleanup(self):
        now = self._clock()
        self._expires = {k: v for k, v in self._expires.items() if v > now}

    def __len__(self):
        return len(self._expires)
