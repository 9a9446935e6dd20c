"""Time-To-Live (TTL) Cache implementation with 5-minute default expiry."""
import re
import threading
import time
from typing import Any, Callable, Dict, Optional


class TTLCache:
    """
    In-memory cache with configurable time-to-live (TTL) expiry.

    Thread-safe cache that stores values with timestamps and automatically
    invalidates entries after TTL seconds. Individual entries may carry their
    own TTL. When ``max_entries`` is set, writes past the limit first drop
    expired entries, then the oldest ones.

    Attributes:
        ttl_seconds: Default time-to-live in seconds (default: 300 = 5 minutes)
        max_entries: Optional upper bound on the number of stored keys

    Example:
        >>> cache = TTLCache(ttl_seconds=300)
        >>> cache.set("products:42", {"name": "Pashmina Shawl"})
        >>> cache.get("products:42")
        {'name': 'Pashmina Shawl'}
    """

    def __init__(
        self,
        ttl_seconds: int = 300,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize TTL cache.

        Args:
            ttl_seconds: Time-to-live in seconds (default: 300 = 5 minutes)
            max_entries: Maximum number of entries kept (None = unbounded)
            clock: Monotonic time source, replaceable in tests
        """
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._cache: Dict[str, tuple] = {}  # {key: (value, stored_at, ttl)}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def _is_expired(self, stored_at: float, ttl: float, now: float) -> bool:
        return (now - stored_at) > ttl

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """
        Store a value in cache with current timestamp.

        Args:
            key: Cache key (e.g., "products:42")
            value: Value to cache (typically a serialized row or page)
            ttl_seconds: Override the default TTL for this entry

        Thread-safe.
        """
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            # Re-insert so overwritten keys move to the end of the eviction order
            self._cache.pop(key, None)
            self._cache[key] = (value, self._clock(), ttl)

            if self.max_entries is not None and len(self._cache) > self.max_entries:
                self._prune_locked()
                while len(self._cache) > self.max_entries:
                    oldest = next(iter(self._cache))
                    del self._cache[oldest]

    def get(self, key: str) -> Optional[Any]:
        """
        Retrieve a value from cache if it exists and hasn't expired.

        Args:
            key: Cache key

        Returns:
            Cached value if key exists and TTL not exceeded, None otherwise

        Thread-safe.
        """
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            value, stored_at, ttl = entry
            if self._is_expired(stored_at, ttl, self._clock()):
                # Expired, remove and return None
                del self._cache[key]
                self._misses += 1
                return None

            self._hits += 1
            return value

    def has(self, key: str) -> bool:
        """True when ``key`` is present and not expired. Does not touch hit counters."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return False
            _, stored_at, ttl = entry
            if self._is_expired(stored_at, ttl, self._clock()):
                del self._cache[key]
                return False
            return True

    def get_or_set(self, key: str, loader: Callable[[], Any], ttl_seconds: Optional[int] = None) -> Any:
        """
        Return the cached value for ``key``, calling ``loader`` on a miss.

        The loader runs outside the lock; ``None`` results are not cached.
        """
        value = self.get(key)
        if value is not None:
            return value

        value = loader()
        if value is not None:
            self.set(key, value, ttl_seconds=ttl_seconds)
        return value

    def clear(self, key: str) -> None:
        """
        Manually invalidate a cache entry.

        Used when upstream data changes (e.g., a product is edited).

        Thread-safe.
        """
        with self._lock:
            self._cache.pop(key, None)

    def invalidate_pattern(self, pattern: str) -> int:
        """
        Invalidate all keys matching ``pattern``.

        ``*`` matches any run of characters; everything else is literal and
        the pattern must match the whole key.

        Example:
            >>> cache.invalidate_pattern("products:list*")

        Returns:
            Number of entries removed
        """
        regex = re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$")
        with self._lock:
            keys_to_delete = [k for k in self._cache if regex.match(k)]
            for key in keys_to_delete:
                del self._cache[key]
            return len(keys_to_delete)

    def clear_all(self) -> None:
        """
        Clear all cache entries and reset hit/miss counters.

        Useful for testing or full reset.
        """
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def size(self) -> int:
        """Get current number of items in cache (expired ones included until pruned)."""
        with self._lock:
            return len(self._cache)

    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with size, ttl_seconds, max_entries, hits, misses and hit_rate

        Example:
            >>> stats = cache.stats()
            >>> print(f"Cache: {stats['size']} items, TTL: {stats['ttl_seconds']}s")
            Cache: 5 items, TTL: 300s
        """
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "size": len(self._cache),
                "ttl_seconds": self.ttl_seconds,
                "max_entries": self.max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / lookups, 4) if lookups else 0.0,
            }

    def _prune_locked(self) -> int:
        now = self._clock()
        expired_keys = [
            key for key, (_, stored_at, ttl) in self._cache.items()
            if self._is_expired(stored_at, ttl, now)
        ]
        for key in expired_keys:
            del self._cache[key]
        return len(expired_keys)

    def prune_expired(self) -> int:
        """
        Remove all expired entries from cache.

        Returns:
            Number of entries removed

        Thread-safe.
        """
        with self._lock:
            return self._prune_locked()
