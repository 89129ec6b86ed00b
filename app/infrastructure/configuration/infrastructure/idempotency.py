"""Idempotency infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class IdempotencySettings(InfrastructureSettings):
    """Idempotency cache configuration for preventing duplicate operations.

    Environment Variables:
        IDEMPOTENCY_TTL_SECONDS: Time-to-live for cache entries (default: 86400s = 24h)
        IDEMPOTENCY_BACKEND: 'memory' or 'dynamodb' (default: memory)
        IDEMPOTENCY_DYNAMODB_TABLE_NAME: Table used by the DynamoDB backend

    Example:
        ```python
        from infrastructure.services import get_settings

        ttl = get_settings().idempotency.IDEMPOTENCY_TTL_SECONDS
        ```
    """

    IDEMPOTENCY_TTL_SECONDS: int = Field(
        default=86400, alias="IDEMPOTENCY_TTL_SECONDS"
    )
    IDEMPOTENCY_BACKEND: str = Field(default="memory", alias="IDEMPOTENCY_BACKEND")
    IDEMPOTENCY_DYNAMODB_TABLE_NAME: str = Field(
        default="idempotency-keys", alias="IDEMPOTENCY_DYNAMODB_TABLE_NAME"
    )
