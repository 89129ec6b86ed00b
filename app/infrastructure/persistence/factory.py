"""Factory for the record store selected by configuration."""

from infrastructure.logging import get_module_logger
from infrastructure.persistence.store import InMemoryRecordStore, RecordStore

logger = get_module_logger()


def create_record_store(backend: str | None = None) -> RecordStore:
    """Create the store selected by ``settings.persistence.backend``.

    Raises:
        ValueError: If unknown backend specified
    """
    from infrastructure.services.providers import get_dynamodb_client, get_settings

    settings = get_settings()
    backend = backend or settings.persistence.backend

    if backend == "memory":
        logger.info("creating_in_memory_record_store")
        return InMemoryRecordStore()

    if backend == "dynamodb":
        from infrastructure.persistence.dynamodb import DynamoDBRecordStore

        logger.info(
            "creating_dynamodb_record_store",
            table_prefix=settings.persistence.table_prefix,
        )
        return DynamoDBRecordStore(
            client=get_dynamodb_client(),
            table_prefix=settings.persistence.table_prefix,
        )

    raise ValueError(
        f"Unknown persistence backend: {backend}. Supported: memory, dynamodb"
    )
