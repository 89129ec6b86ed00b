"""ERP sync exceptions.

Every error carries the HTTP status the API layer reports. Only messages of
errors raised deliberately by this package are shown to callers; anything
else is replaced by a generic message so that credentials, URLs or storage
errors never leak.
"""

GENERIC_ERROR_MESSAGE = "Operation failed. Please try again or contact support."


class ErpSyncError(Exception):
    """Base class for ERP sync errors.

    Attributes:
        status_code: HTTP status reported to the caller
        public: Whether ``str(error)`` is safe to show to the caller
    """

    status_code = 400
    public = True

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(ErpSyncError):
    """Missing integration, entity or mapping. Never retried."""


class IntegrationNotFoundError(ConfigurationError):
    status_code = 404

    def __init__(self, integration_id: str) -> None:
        super().__init__("Integration not found")
        self.integration_id = integration_id


class EntityNotFoundError(ConfigurationError):
    status_code = 404

    def __init__(self, integration_id: str, entity_type: str) -> None:
        super().__init__("Entity not found for this integration")
        self.integration_id = integration_id
        self.entity_type = entity_type


class SyncLogNotFoundError(ErpSyncError):
    status_code = 404

    def __init__(self, sync_log_id: str) -> None:
        super().__init__("Sync log not found")
        self.sync_log_id = sync_log_id


class TokenRefreshError(ErpSyncError):
    """The ERP rejected or could not complete a token refresh."""

    def __init__(self, message: str = "Token validation failed") -> None:
        super().__init__(message)


class ForbiddenError(ErpSyncError):
    status_code = 403

    def __init__(self, message: str = "Forbidden: insufficient permissions") -> None:
        super().__init__(message)


class IdempotencyKeyMissingError(ErpSyncError):
    def __init__(self) -> None:
        super().__init__("Idempotency-Key header is required for manual syncs")


class InvalidSyncStateError(ErpSyncError):
    status_code = 409


class RateLimitedError(ErpSyncError):
    status_code = 429

    def __init__(self, retry_after: int) -> None:
        super().__init__(f"Rate limit exceeded. Retry after {retry_after} seconds")
        self.retry_after = retry_after


class ErpRequestError(ErpSyncError):
    """Transient failure talking to the ERP (network, timeout, 5xx)."""

    status_code = 502
    public = False

    def __init__(self, message: str, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


def sanitize_error(error: BaseException) -> str:
    """Message safe to return to an API caller."""
    if isinstance(error, ErpSyncError) and error.public:
        return str(error)
    return GENERIC_ERROR_MESSAGE


def error_status(error: BaseException) -> int:
    return getattr(error, "status_code", 400) if isinstance(error, ErpSyncError) else 400
