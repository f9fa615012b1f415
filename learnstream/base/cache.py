# ==============================================================================
# Cache Abstract Base Class
# ==============================================================================
"""
Abstract interface for caching fetched event windows.

This is NOT a repository. Cached windows are transient copies of the
append-only logs, kept only to avoid re-reading closed windows.
"""

from abc import ABC, abstractmethod


class Cache(ABC):
    """
    Key-value cache with TTL support.

    Values are JSON-serializable dicts. Implementations handle
    serialization internally.
    """

    @abstractmethod
    def get(self, key: str) -> dict | None:
        """
        Get a cached value.

        Returns:
            Cached value as dict, or None if not found
        """
        ...

    @abstractmethod
    def set(self, key: str, value: dict, ttl_seconds: int | None = None) -> None:
        """
        Set a cached value with optional TTL.

        Args:
            key: Cache key
            value: JSON-serializable dict
            ttl_seconds: Optional time-to-live in seconds
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a key. Returns True if it existed."""
        ...

    @abstractmethod
    def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching a glob pattern (e.g. ``learnstream:views:*``).

        Returns:
            Count of keys deleted
        """
        ...

    @abstractmethod
    def ping(self) -> bool:
        """Return True if the cache is reachable."""
        ...
