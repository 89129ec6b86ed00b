"""Retry queue infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class RetrySettings(InfrastructureSettings):
    """Retry queue configuration for failed background actions.

    Environment Variables:
        RETRY_ENABLED: Start the background retry scheduler (default: True)
        RETRY_BACKEND: Backend type - 'memory', 'file' or 'dynamodb'
        RETRY_FILE_PATH: JSON file used by the 'file' backend
        RETRY_DYNAMODB_TABLE_NAME: DynamoDB table name (if using DynamoDB backend)
        RETRY_QUEUE_KEY: Item key holding both queue lists in DynamoDB
        RETRY_MAX_RETRIES: Attempts allowed before dead-lettering (default: 3)
        RETRY_MAX_AGE_SECONDS: Age after which an item is dead-lettered (default: 24h)
        RETRY_BASE_DELAY_SECONDS: Base unit for exponential backoff (default: 1s)
        RETRY_MAX_DELAY_SECONDS: Optional cap on the backoff delay (default: none)
        RETRY_PROCESS_INTERVAL_SECONDS: Background sweep interval (default: 60s)
        RETRY_ATTEMPT_TIMEOUT_SECONDS: Optional per-attempt timeout (default: none)

    Exponential Backoff:
        Delay calculation: base_delay * (2 ^ retry_count)

        Example with defaults (base=1s):
            retry_count 0: 1s
            retry_count 1: 2s
            retry_count 2: 4s

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if settings.retry.enabled:
            backend = settings.retry.backend
        ```
    """

    enabled: bool = Field(
        default=True,
        alias="RETRY_ENABLED",
        description="Start the background retry scheduler",
    )
    backend: str = Field(
        default="memory",
        alias="RETRY_BACKEND",
        description="Retry backend: 'memory', 'file' or 'dynamodb'",
    )
    file_path: str = Field(
        default="retry_queue.json",
        alias="RETRY_FILE_PATH",
        description="JSON file holding the retry and dead-letter lists",
    )
    dynamodb_table_name: str = Field(
        default="erp-retry-queue",
        alias="RETRY_DYNAMODB_TABLE_NAME",
        description="DynamoDB table name for the retry queue",
    )
    queue_key: str = Field(
        default="default",
        alias="RETRY_QUEUE_KEY",
        description="Partition key of the item holding the queue lists",
    )
    max_retries: int = Field(
        default=3,
        alias="RETRY_MAX_RETRIES",
        description="Attempts allowed before an item is dead-lettered",
    )
    max_age_seconds: int = Field(
        default=24 * 60 * 60,
        alias="RETRY_MAX_AGE_SECONDS",
        description="Items older than this are dead-lettered without execution",
    )
    base_delay_seconds: float = Field(
        default=1.0,
        alias="RETRY_BASE_DELAY_SECONDS",
        description="Base unit for exponential backoff (seconds)",
    )
    max_delay_seconds: float | None = Field(
        default=None,
        alias="RETRY_MAX_DELAY_SECONDS",
        description="Optional cap on the backoff delay (seconds)",
    )
    process_interval_seconds: int = Field(
        default=60,
        alias="RETRY_PROCESS_INTERVAL_SECONDS",
        description="Interval between background sweeps (seconds)",
    )
    attempt_timeout_seconds: float | None = Field(
        default=None,
        alias="RETRY_ATTEMPT_TIMEOUT_SECONDS",
        description="Optional timeout for a single executor attempt (seconds)",
    )
