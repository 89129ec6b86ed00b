"""Shared base classes for settings modules."""

from pydantic_settings import BaseSettings, SettingsConfigDict

_SETTINGS_CONFIG = SettingsConfigDict(
    env_file=".env",
    case_sensitive=True,
    extra="ignore",
    populate_by_name=True,
)


class IntegrationSettings(BaseSettings):
    """Base class for external integration settings (AWS, payment gateways)."""

    model_config = _SETTINGS_CONFIG


class FeatureSettings(BaseSettings):
    """Base class for feature module settings (ERP sync, payments)."""

    model_config = _SETTINGS_CONFIG


class InfrastructureSettings(BaseSettings):
    """Base class for infrastructure-level settings.

    Infrastructure settings control core system behavior like the retry
    queue, idempotency, persistence and the HTTP server.
    """

    model_config = _SETTINGS_CONFIG
