"""
In-process TTL cache used by the in-memory job store.
"""

import time
from typing import Any


class Cache:
    """Key-value map whose entries expire after a TTL.

    Expiry uses the monotonic clock, so wall-clock adjustments never revive
    or prematurely drop entries. Expired entries are evicted lazily on access
    or in bulk by :meth:`cleanup_expired`.
    """

    def __init__(self, default_ttl: int = 3600) -> None:
        """
        Initialize an empty cache.

        Args:
            default_ttl: Lifetime in seconds for entries set without an explicit TTL
        """
        self.default_ttl = default_ttl
        self._entries: dict[str, tuple[Any, float]] = {}

    def _alive(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if time.monotonic() >= entry[1]:
            del self._entries[key]
            return False
        return True

    def get(self, key: str) -> Any | None:
        """
        Get value from cache by key.

        Args:
            key: Cache key

        Returns:
            Cached value if present and not expired, None otherwise
        """
        if not self._alive(key):
            return None
        return self._entries[key][0]

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """
        Set value in cache with TTL.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds (default: ``default_ttl``)
        """
        lifetime = self.default_ttl if ttl is None else ttl
        self._entries[key] = (value, time.monotonic() + lifetime)

    def expire(self, key: str, ttl: int) -> bool:
        """
        Restart an entry's lifetime.

        Args:
            key: Cache key
            ttl: New time to live in seconds, counted from now

        Returns:
            True if the entry existed, False otherwise
        """
        if not self._alive(key):
            return False
        value = self._entries[key][0]
        self._entries[key] = (value, time.monotonic() + ttl)
        return True

    def delete(self, key: str) -> None:
        """
        Delete value from cache.

        Args:
            key: Cache key to delete
        """
        self._entries.pop(key, None)

    def clear(self) -> None:
        """Clear all cached values."""
        self._entries.clear()

    def size(self) -> int:
        """
        Get number of stored entries.

        Returns:
            Number of entries, including expired ones not yet evicted
        """
        return len(self._entries)

    def cleanup_expired(self) -> int:
        """
        Evict every expired entry.

        Returns:
            Number of entries removed
        """
        now = time.monotonic()
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)
