"""Operation status enumeration."""

from enum import Enum


class OperationStatus(Enum):
    """Outcome classes for calls to collaborators.

    Attributes:
        SUCCESS: Operation completed successfully
        TRANSIENT_ERROR: Retryable error (network, timeout, 5xx, throttling)
        PERMANENT_ERROR: Non-retryable error (validation, 4xx, bad config)
        UNAUTHORIZED: Credentials rejected by the remote side
        NOT_FOUND: Resource not found
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    PERMANENT_ERROR = "permanent_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
