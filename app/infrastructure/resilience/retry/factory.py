"""Factory for creating retry queue stores based on configuration."""

from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry.store import InMemoryRetryQueueStore, RetryQueueStore

logger = get_module_logger()


def create_retry_store(backend: str | None = None) -> RetryQueueStore:
    """Create the retry queue store selected by ``settings.retry.backend``.

    Args:
        backend: Optional backend override (memory, file, dynamodb).

    Returns:
        RetryQueueStore implementation

    Raises:
        ValueError: If unknown backend specified

    Examples:
        >>> store = create_retry_store()  # Uses settings.retry.backend
        >>> store = create_retry_store(backend="memory")
    """
    from infrastructure.services.providers import get_dynamodb_client, get_settings

    settings = get_settings()
    backend = backend or settings.retry.backend

    if backend == "memory":
        logger.info("creating_in_memory_retry_store")
        return InMemoryRetryQueueStore()

    if backend == "file":
        from infrastructure.resilience.retry.file_store import FileRetryQueueStore

        logger.info("creating_file_retry_store", path=settings.retry.file_path)
        return FileRetryQueueStore(settings.retry.file_path)

    if backend == "dynamodb":
        from infrastructure.resilience.retry.dynamodb_store import (
            DynamoDBRetryQueueStore,
        )

        logger.info(
            "creating_dynamodb_retry_store",
            table_name=settings.retry.dynamodb_table_name,
        )
        return DynamoDBRetryQueueStore(
            client=get_dynamodb_client(),
            table_name=settings.retry.dynamodb_table_name,
            queue_key=settings.retry.queue_key,
        )

    raise ValueError(
        f"Unknown retry backend: {backend}. Supported: memory, file, dynamodb"
    )
