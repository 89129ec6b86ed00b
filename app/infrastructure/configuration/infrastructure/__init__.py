"""Infrastructure settings __init__ - exports all infrastructure settings."""

from infrastructure.configuration.infrastructure.idempotency import IdempotencySettings
from infrastructure.configuration.infrastructure.retry import RetrySettings
from infrastructure.configuration.infrastructure.server import (
    PersistenceSettings,
    ServerSettings,
)

__all__ = [
    "IdempotencySettings",
    "RetrySettings",
    "ServerSettings",
    "PersistenceSettings",
]
