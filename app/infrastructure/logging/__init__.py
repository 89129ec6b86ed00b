"""Structured logging infrastructure.

Centralized logging configuration and utilities built on structlog.

Public API:
    - configure_logging(): Initialize logging for the application
    - get_module_logger(): Get a logger for the calling module
    - bind_request_context(): Context manager for request-scoped logging
    - get_correlation_id(): Current correlation ID from context
    - clear_request_context(): Clear all request context

Example:
    from infrastructure.logging import get_module_logger

    logger = get_module_logger()
    logger.info("retry_item_enqueued", item_id="...")
"""

from infrastructure.logging.setup import (
    configure_logging,
    get_module_logger,
    logger,
)
from infrastructure.logging.context import (
    bind_request_context,
    clear_request_context,
    get_correlation_id,
)
from infrastructure.logging.formatters import (
    SENSITIVE_PATTERNS,
    mask_sensitive_data,
    truncate_large_values,
)

__all__ = [
    "configure_logging",
    "get_module_logger",
    "logger",
    "bind_request_context",
    "clear_request_context",
    "get_correlation_id",
    "SENSITIVE_PATTERNS",
    "mask_sensitive_data",
    "truncate_large_values",
]
