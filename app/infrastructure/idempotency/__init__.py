"""Infrastructure idempotency cache.

Remembers successful responses per idempotency key so that retried
requests replay the first result instead of repeating the work.

Usage:

    from infrastructure.services import get_idempotency_service

    idempotency = get_idempotency_service()

    cached = idempotency.lookup(tenant_id, key, operation="manual_sync")
    if cached:
        return cached

    response = execute_operation(...)
    idempotency.record(tenant_id, key, response, operation="manual_sync")
"""

from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.idempotency.factory import create_idempotency_cache
from infrastructure.idempotency.key_builder import IdempotencyKeyBuilder
from infrastructure.idempotency.memory import InMemoryCache
from infrastructure.idempotency.service import IdempotencyService

__all__ = [
    "IdempotencyCache",
    "InMemoryCache",
    "IdempotencyKeyBuilder",
    "IdempotencyService",
    "create_idempotency_cache",
]
