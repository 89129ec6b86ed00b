"""Resilience patterns: the persistent retry queue and its scheduler."""

from infrastructure.resilience.retry import (
    BackgroundRetryScheduler,
    InMemoryRetryQueueStore,
    RetryConfig,
    RetryItem,
    RetryQueue,
    RetryQueueStore,
    backoff_delay,
)

__all__ = [
    "BackgroundRetryScheduler",
    "InMemoryRetryQueueStore",
    "RetryConfig",
    "RetryItem",
    "RetryQueue",
    "RetryQueueStore",
    "backoff_delay",
]
