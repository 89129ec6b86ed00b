"""Infrastructure modules for the sync and payments service.

Centralized infrastructure components:
- configuration: Settings management (settings, RetrySettings)
- logging: Structured logging (get_module_logger, logger)
- operations: Operation results and error classification
- clients: AWS client layer (DynamoDB)
- persistence: Record store for feature tables
- idempotency: Idempotency cache
- resilience: Retry queue, scheduler and tenant rate limits
- security: Caller authentication and webhook signatures
- audit: Audit events
- services: Dependency injection providers (get_settings, SettingsDep, ...)

``services`` is not imported here: it wires the feature modules together
and is imported explicitly by the API and server layers.
"""

from infrastructure.configuration import settings
from infrastructure.logging import get_module_logger, logger
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "settings",
    "get_module_logger",
    "logger",
    "OperationResult",
    "OperationStatus",
]
