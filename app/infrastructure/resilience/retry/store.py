"""Retry queue storage.

The queue persists two named lists (pending and dead-letter). Stores expose
whole-snapshot reads plus an atomic read-modify-write so that a sweep's
final write never loses items enqueued while it was running.
"""

import copy
import threading
from typing import Any, Callable, Dict, List, Protocol, TypeVar

from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry.models import (
    DEAD_LETTER_KEY,
    PENDING_KEY,
    QueueSnapshot,
    RetryItem,
)

logger = get_module_logger()

T = TypeVar("T")


class RetryQueueStore(Protocol):
    """Storage interface for the retry queue.

    Methods:
        load: Return the current pending and dead-letter lists
        save: Replace both lists
        update: Atomically apply a mutator to the current snapshot and persist it
    """

    def load(self) -> QueueSnapshot:
        ...

    def save(self, snapshot: QueueSnapshot) -> None:
        ...

    def update(self, mutator: Callable[[QueueSnapshot], T]) -> T:
        """Apply ``mutator`` to a fresh snapshot and persist the result.

        The mutator edits the snapshot in place and may return a value,
        which ``update`` passes back. Implementations with optimistic
        concurrency may call the mutator more than once, each time on a
        freshly loaded snapshot.
        """
        ...


def parse_item_list(raw: Any, list_name: str) -> List[RetryItem]:
    """Decode one persisted list, treating corrupt content as empty.

    A value that is not a list yields an empty list. Individual malformed
    entries are dropped. Both cases are logged, never raised.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning(
            "retry_store_list_corrupt",
            list_name=list_name,
            value_type=type(raw).__name__,
        )
        return []

    items = []
    for entry in raw:
        try:
            items.append(RetryItem.from_dict(entry))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(
                "retry_store_entry_corrupt",
                list_name=list_name,
                error=str(e),
            )
    return items


def snapshot_from_dict(data: Dict[str, Any]) -> QueueSnapshot:
    return QueueSnapshot(
        pending=parse_item_list(data.get(PENDING_KEY), PENDING_KEY),
        dead_letter=parse_item_list(data.get(DEAD_LETTER_KEY), DEAD_LETTER_KEY),
    )


class InMemoryRetryQueueStore:
    """In-memory, thread-safe retry queue store.

    Suitable for tests and single-process development. Snapshots are
    copied in and out so callers never share mutable state with the store.
    """

    def __init__(self) -> None:
        self._data: Dict[str, List[Dict[str, Any]]] = {
            PENDING_KEY: [],
            DEAD_LETTER_KEY: [],
        }
        self._lock = threading.RLock()

    def load(self) -> QueueSnapshot:
        with self._lock:
            return snapshot_from_dict(copy.deepcopy(self._data))

    def save(self, snapshot: QueueSnapshot) -> None:
        with self._lock:
            self._data = copy.deepcopy(snapshot.to_dict())

    def update(self, mutator: Callable[[QueueSnapshot], T]) -> T:
        with self._lock:
            snapshot = self.load()
            result = mutator(snapshot)
            self.save(snapshot)
            return result

    def raw(self) -> Dict[str, List[Dict[str, Any]]]:
        """Copy of the persisted lists (for diagnostics and tests)."""
        with self._lock:
            return copy.deepcopy(self._data)
