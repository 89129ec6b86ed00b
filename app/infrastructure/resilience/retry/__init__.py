"""Persistent retry queue with exponential backoff and dead-lettering.

Architecture:
- RetryItem: A deferred action with its attempt history
- RetryQueueStore: Storage interface (in-memory, JSON file, DynamoDB)
- RetryQueue: Enqueue, sweep, dismiss and requeue operations
- BackgroundRetryScheduler: Sweeps the queue on an interval
- ActionRegistry: Payload schemas per action kind, checked at enqueue
- RetryConfig: Caps, age limit and backoff unit

Usage:
    from infrastructure.resilience.retry import (
        BackgroundRetryScheduler,
        RetryQueue,
        create_retry_store,
    )

    queue = RetryQueue(create_retry_store())
    queue.enqueue("erp.sync", {"id": "sync-log-1"}, error_message="timeout")

    async def executor(action: str, payload: dict) -> None:
        ...

    stop = BackgroundRetryScheduler(queue, executor).start()
    ...
    stop.set()
"""

from infrastructure.resilience.retry.actions import ActionRegistry, default_registry
from infrastructure.resilience.retry.backoff import backoff_delay
from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.exceptions import (
    InvalidPayloadError,
    NonRetryableActionError,
    RetryQueueError,
    RetryStoreError,
    UnknownActionError,
)
from infrastructure.resilience.retry.factory import create_retry_store
from infrastructure.resilience.retry.models import (
    QueueCounts,
    QueueSnapshot,
    RetryItem,
    RetryTransition,
    SweepSummary,
)
from infrastructure.resilience.retry.queue import RetryQueue
from infrastructure.resilience.retry.router import RetryActionRouter
from infrastructure.resilience.retry.scheduler import BackgroundRetryScheduler
from infrastructure.resilience.retry.store import InMemoryRetryQueueStore, RetryQueueStore

__all__ = [
    # Models
    "RetryItem",
    "QueueSnapshot",
    "QueueCounts",
    "SweepSummary",
    "RetryTransition",
    # Configuration
    "RetryConfig",
    "backoff_delay",
    # Actions
    "ActionRegistry",
    "default_registry",
    # Store
    "RetryQueueStore",
    "InMemoryRetryQueueStore",
    "create_retry_store",
    # Engine
    "RetryQueue",
    "BackgroundRetryScheduler",
    "RetryActionRouter",
    # Errors
    "RetryQueueError",
    "RetryStoreError",
    "UnknownActionError",
    "InvalidPayloadError",
    "NonRetryableActionError",
]
