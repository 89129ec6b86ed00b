"""Server and persistence infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class ServerSettings(InfrastructureSettings):
    """Server and caller authentication configuration.

    Environment Variables:
        BACKEND_URL: Backend API base URL (default: http://127.0.0.1:8000)
        SYSTEM_API_KEY: Shared key identifying trusted system callers (cron)
        JWT_SECRET: Secret used to verify user bearer tokens
        JWT_ALGORITHM: Algorithm used to verify user bearer tokens (default: HS256)
        JWT_AUDIENCE: Optional expected audience claim
        CORS_ALLOWED_ORIGINS: Origins allowed on browser-facing routes
        RATE_LIMIT_STORAGE_URI: Storage for rate-limit counters (memory://, redis://...)

    Example:
        ```python
        from infrastructure.services import get_settings

        system_key = get_settings().server.SYSTEM_API_KEY
        ```
    """

    BACKEND_URL: str = Field(default="http://127.0.0.1:8000", alias="BACKEND_URL")
    SYSTEM_API_KEY: str | None = Field(default=None, alias="SYSTEM_API_KEY")
    JWT_SECRET: str | None = Field(default=None, alias="JWT_SECRET")
    JWT_ALGORITHM: str = Field(default="HS256", alias="JWT_ALGORITHM")
    JWT_AUDIENCE: str | None = Field(default=None, alias="JWT_AUDIENCE")
    CORS_ALLOWED_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        alias="CORS_ALLOWED_ORIGINS",
    )
    RATE_LIMIT_STORAGE_URI: str = Field(
        default="memory://", alias="RATE_LIMIT_STORAGE_URI"
    )


class PersistenceSettings(InfrastructureSettings):
    """Record store configuration.

    Environment Variables:
        PERSISTENCE_BACKEND: 'memory' or 'dynamodb' (default: memory)
        PERSISTENCE_TABLE_PREFIX: Prefix applied to DynamoDB table names
    """

    backend: str = Field(default="memory", alias="PERSISTENCE_BACKEND")
    table_prefix: str = Field(default="", alias="PERSISTENCE_TABLE_PREFIX")
