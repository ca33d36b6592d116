"""
Response Cache

In-memory TTL cache for provider payloads:
- Per-entry expiry
- LRU eviction past max_entries
- Hit/miss statistics
"""

import json
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

from loguru import logger


class TTLCache:
    """
    LRU cache with time-to-live expiry.

    One instance per provider; only successful payloads are stored.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache.

        Args:
            ttl_seconds: Lifetime of an entry
            max_entries: Maximum number of entries to keep
            clock: Monotonic clock in seconds
        """
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._cache: "OrderedDict[str, tuple[Any, float]]" = OrderedDict()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Get a value if present and not expired."""
        entry = self._cache.get(key)
        if entry is not None:
            value, stored_at = entry
            if self._clock() - stored_at < self.ttl_seconds:
                self._cache.move_to_end(key)
                self._hits += 1
                return value
            del self._cache[key]

        self._misses += 1
        return None

    def set(self, key: str, value: Any) -> None:
        self._cache[key] = (value, self._clock())
        self._cache.move_to_end(key)

        while len(self._cache) > self.max_entries:
            evicted, _ = self._cache.popitem(last=False)
            logger.debug(f"Evicted cache entry {evicted}")

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def stats(self) -> dict:
        """Get cache statistics."""
        total = self._hits + self._misses
        return {
            "size": len(self._cache),
            "max_entries": self.max_entries,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / total if total > 0 else 0.0,
        }

    @staticmethod
    def make_key(provider: str, endpoint: str, params: Optional[dict] = None) -> str:
        """Build a stable key from provider, endpoint and query params."""
        encoded = json.dumps(params or {}, sort_keys=True, default=str)
        return f"{provider}:{endpoint}:{encoded}"
