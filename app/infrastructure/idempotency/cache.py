"""Idempotency cache abstract base class."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class IdempotencyCache(ABC):
    """Interface for caching responses keyed by an idempotency key.

    A key present in the cache means the operation already completed
    successfully; callers replay the cached response instead of repeating
    the work.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Cached response for ``key``, or None if absent or expired."""

    @abstractmethod
    def set(self, key: str, response: Dict[str, Any], ttl_seconds: int) -> None:
        """Cache ``response`` under ``key`` for ``ttl_seconds``."""

    @abstractmethod
    def cleanup_expired(self) -> int:
        """Drop expired entries and return how many were removed."""

    @abstractmethod
    def clear(self) -> None:
        """Clear all cached entries (for testing)."""

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Implementation-specific cache statistics."""
