"""In-memory idempotency cache for single-instance deployments and tests."""

import copy
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.logging import get_module_logger

logger = get_module_logger()


class InMemoryCache(IdempotencyCache):
    """Thread-safe dict-backed cache with per-entry expiry.

    Args:
        clock: Returns the current epoch time in seconds (injectable for tests)
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._entries: Dict[str, Tuple[float, Dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, response = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return copy.deepcopy(response)

    def set(self, key: str, response: Dict[str, Any], ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + ttl_seconds, copy.deepcopy(response))
        logger.debug("idempotency_cache_set", key=key, ttl_seconds=ttl_seconds)

    def cleanup_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info("idempotency_cache_cleanup", removed=len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {"backend": "memory", "entries": len(self._entries)}
