"""Idempotency key builder for consistent key generation."""

import hashlib
from typing import Any


class IdempotencyKeyBuilder:
    """Build deterministic, namespaced idempotency keys.

    Example:
        >>> builder = IdempotencyKeyBuilder(namespace="erp_sync")
        >>> builder.build("manual_sync", tenant_id="t-1", client_key="abc")
        'erp_sync:manual_sync:5c1f...'
    """

    def __init__(self, namespace: str):
        self.namespace = namespace

    def build(self, operation: str, **components: Any) -> str:
        """Build a key from ``operation`` and sorted key components."""
        key_parts = [self.namespace, operation]
        key_parts.extend(f"{k}={v}" for k, v in sorted(components.items()))
        key_string = "|".join(str(part) for part in key_parts)

        key_hash = hashlib.sha256(key_string.encode()).hexdigest()[:32]

        return f"{self.namespace}:{operation}:{key_hash}"
