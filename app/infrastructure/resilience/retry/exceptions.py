"""Exceptions raised by the retry queue."""


class RetryQueueError(Exception):
    """Base class for retry queue errors."""


class UnknownActionError(RetryQueueError):
    """Raised at enqueue time for an action kind with no registered schema."""

    def __init__(self, action: str) -> None:
        super().__init__(f"Unknown retry action: {action}")
        self.action = action


class InvalidPayloadError(RetryQueueError):
    """Raised at enqueue time when a payload fails its action's schema."""

    def __init__(self, action: str, detail: str) -> None:
        super().__init__(f"Invalid payload for {action}: {detail}")
        self.action = action
        self.detail = detail


class NonRetryableActionError(Exception):
    """Raised by an executor when retrying the action cannot succeed.

    The queue dead-letters the item immediately instead of scheduling
    another attempt.
    """


class RetryStoreError(RetryQueueError):
    """Raised when the backing store cannot be read or written."""
