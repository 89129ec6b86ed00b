"""Infrastructure configuration module - public API.

Centralized configuration management using Pydantic BaseSettings with
domain-based organization.

Exports:
    settings: Singleton Settings instance (main configuration object)
    Settings: Main settings class (for testing/overrides)
    RetrySettings: Retry queue settings class (for testing)

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    retry_backend = settings.retry.backend
    verify_limit = settings.payments.verify_rate_limit
    ```
"""

from infrastructure.configuration.settings import Settings, settings
from infrastructure.configuration.infrastructure.retry import RetrySettings

__all__ = ["Settings", "settings", "RetrySettings"]
