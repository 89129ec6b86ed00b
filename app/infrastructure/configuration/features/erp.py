"""ERP synchronisation feature settings."""

from pydantic import Field

from infrastructure.configuration.base import FeatureSettings


class ErpSyncSettings(FeatureSettings):
    """ERP sync orchestration configuration.

    Environment Variables:
        ERP_MAX_RETRIES: Default retry cap stamped on new sync logs (default: 3)
        ERP_RETRY_BASE_DELAY_SECONDS: Backoff unit for the cron sweeper (default: 1s)
        ERP_TOKEN_REFRESH_BUFFER_SECONDS: Refresh tokens expiring within this window (default: 300s)
        ERP_HTTP_TIMEOUT_SECONDS: Timeout for calls to the ERP (default: 15s)
        ERP_SWEEP_INTERVAL_MINUTES: In-process cron sweep interval (default: 5)
        ERP_SWEEP_ENABLED: Schedule the in-process cron sweep (default: True)
        ERP_SWEEP_ATTEMPT_TIMEOUT_SECONDS: Optional per-record timeout in a sweep
        ERP_SYNC_RATE_LIMITS: Per-tenant limits for user-triggered syncs

    Example:
        ```python
        from infrastructure.services import get_settings

        max_retries = get_settings().erp.max_retries
        ```
    """

    max_retries: int = Field(default=3, alias="ERP_MAX_RETRIES")
    retry_base_delay_seconds: float = Field(
        default=1.0, alias="ERP_RETRY_BASE_DELAY_SECONDS"
    )
    token_refresh_buffer_seconds: int = Field(
        default=300, alias="ERP_TOKEN_REFRESH_BUFFER_SECONDS"
    )
    http_timeout_seconds: float = Field(default=15.0, alias="ERP_HTTP_TIMEOUT_SECONDS")
    sweep_interval_minutes: int = Field(default=5, alias="ERP_SWEEP_INTERVAL_MINUTES")
    sweep_enabled: bool = Field(default=True, alias="ERP_SWEEP_ENABLED")
    sweep_attempt_timeout_seconds: float | None = Field(
        default=None, alias="ERP_SWEEP_ATTEMPT_TIMEOUT_SECONDS"
    )
    sync_rate_limits: list[str] = Field(
        default_factory=lambda: ["1/minute", "30/hour"],
        alias="ERP_SYNC_RATE_LIMITS",
        description="limits-style rate strings applied per tenant",
    )
