"""Service configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Integration settings
from infrastructure.configuration.integrations import (
    AwsSettings,
    PaymentGatewaySettings,
)

# Feature settings
from infrastructure.configuration.features import (
    ErpSyncSettings,
    PaymentSettings,
)

# Infrastructure settings
from infrastructure.configuration.infrastructure import (
    IdempotencySettings,
    PersistenceSettings,
    RetrySettings,
    ServerSettings,
)


class Settings(BaseSettings):
    """Service configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration object.
    Settings are organized by concern:

    - **Integrations**: External service configurations (AWS, payment gateways)
    - **Features**: Feature module configurations (ERP sync, payments)
    - **Infrastructure**: Core system configurations (retry, idempotency,
      persistence, server)

    Environment Variables:
        PREFIX: Environment prefix for non-production deployments
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if settings.retry.enabled:
            backend = settings.retry.backend

        secret = settings.gateways.PAYSTACK_SECRET_KEY
        ```
    """

    # Application-level settings
    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    # Integration settings
    aws: AwsSettings
    gateways: PaymentGatewaySettings

    # Feature settings
    erp: ErpSyncSettings
    payments: PaymentSettings

    # Infrastructure settings
    server: ServerSettings
    idempotency: IdempotencySettings
    persistence: PersistenceSettings
    retry: RetrySettings

    @property
    def is_production(self) -> bool:
        """True when PREFIX is empty (production)."""
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings, instantiating any section not passed explicitly.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            "aws": AwsSettings,
            "gateways": PaymentGatewaySettings,
            "erp": ErpSyncSettings,
            "payments": PaymentSettings,
            "server": ServerSettings,
            "idempotency": IdempotencySettings,
            "persistence": PersistenceSettings,
            "retry": RetrySettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
