"""Fixtures for retry queue tests."""

from typing import Any, Dict, List, Tuple

import pytest

from infrastructure.resilience.retry import (
    InMemoryRetryQueueStore,
    RetryConfig,
    RetryQueue,
)


class RecordingExecutor:
    """Async executor recording its calls and failing on demand."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.error: Exception | None = None

    async def __call__(self, action: str, payload: Dict[str, Any]) -> None:
        self.calls.append((action, payload))
        if self.error is not None:
            raise self.error


@pytest.fixture
def retry_store():
    return InMemoryRetryQueueStore()


@pytest.fixture
def retry_queue(retry_store, clock):
    return RetryQueue(retry_store, config=RetryConfig(), clock=clock)


@pytest.fixture
def executor():
    return RecordingExecutor()
