"""Idempotency cache factory."""

from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.idempotency.memory import InMemoryCache
from infrastructure.logging import get_module_logger

logger = get_module_logger()


def create_idempotency_cache(backend: str | None = None) -> IdempotencyCache:
    """Create the cache selected by ``settings.idempotency.IDEMPOTENCY_BACKEND``.

    Raises:
        ValueError: If unknown backend specified
    """
    from infrastructure.services.providers import get_dynamodb_client, get_settings

    settings = get_settings()
    backend = backend or settings.idempotency.IDEMPOTENCY_BACKEND

    if backend == "memory":
        logger.info("initialized_idempotency_cache", backend="memory")
        return InMemoryCache()

    if backend == "dynamodb":
        from infrastructure.idempotency.dynamodb import DynamoDBCache

        logger.info("initialized_idempotency_cache", backend="dynamodb")
        return DynamoDBCache(
            client=get_dynamodb_client(),
            table_name=settings.idempotency.IDEMPOTENCY_DYNAMODB_TABLE_NAME,
        )

    raise ValueError(
        f"Unknown idempotency backend: {backend}. Supported: memory, dynamodb"
    )
