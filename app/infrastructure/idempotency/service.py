"""Idempotency service for dependency injection."""

from typing import Any, Dict, Optional

from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.idempotency.key_builder import IdempotencyKeyBuilder


class IdempotencyService:
    """Tenant-scoped idempotency checks over an IdempotencyCache.

    Usage:
        cached = idempotency.lookup(tenant_id, client_key, operation="manual_sync")
        if cached:
            return cached

        response = run_operation()
        idempotency.record(tenant_id, client_key, response, operation="manual_sync")
    """

    def __init__(
        self,
        cache: IdempotencyCache,
        ttl_seconds: int = 86400,
        namespace: str = "api",
    ) -> None:
        self._cache = cache
        self.ttl_seconds = ttl_seconds
        self._keys = IdempotencyKeyBuilder(namespace=namespace)

    def build_key(self, tenant_id: str, client_key: str, operation: str) -> str:
        return self._keys.build(operation, tenant_id=tenant_id, client_key=client_key)

    def lookup(
        self, tenant_id: str, client_key: str, operation: str
    ) -> Optional[Dict[str, Any]]:
        """Cached response for a key already recorded for this tenant."""
        return self._cache.get(self.build_key(tenant_id, client_key, operation))

    def record(
        self,
        tenant_id: str,
        client_key: str,
        response: Dict[str, Any],
        operation: str,
    ) -> None:
        """Remember a successful response. Call only after the work succeeded."""
        self._cache.set(
            self.build_key(tenant_id, client_key, operation),
            response,
            self.ttl_seconds,
        )

    def cleanup_expired(self) -> int:
        return self._cache.cleanup_expired()

    def get_stats(self) -> Dict[str, Any]:
        return self._cache.get_stats()

    @property
    def cache(self) -> IdempotencyCache:
        return self._cache
