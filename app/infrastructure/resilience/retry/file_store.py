"""Durable JSON-file retry queue store.

Both lists live in one JSON document::

    {"erp_retry_queue": [...], "erp_dead_letter": [...]}

Writes go to a temporary file that atomically replaces the original, so a
crash mid-write never leaves a truncated document behind. Unreadable or
corrupt content is treated as empty lists.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Dict, TypeVar

from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry.exceptions import RetryStoreError
from infrastructure.resilience.retry.models import QueueSnapshot
from infrastructure.resilience.retry.store import snapshot_from_dict

logger = get_module_logger()

T = TypeVar("T")


class FileRetryQueueStore:
    """Retry queue store backed by a local JSON file.

    Args:
        path: Location of the JSON document. Parent directories are created.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()

    def _read_raw(self) -> Dict[str, Any]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning("retry_file_unreadable", path=str(self.path), error=str(e))
            return {}

        if not text.strip():
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("retry_file_corrupt", path=str(self.path), error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.warning(
                "retry_file_corrupt",
                path=str(self.path),
                error=f"expected object, got {type(data).__name__}",
            )
            return {}
        return data

    def load(self) -> QueueSnapshot:
        with self._lock:
            return snapshot_from_dict(self._read_raw())

    def save(self, snapshot: QueueSnapshot) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(snapshot.to_dict(), handle)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self.path)
            except OSError as e:
                Path(tmp_name).unlink(missing_ok=True)
                raise RetryStoreError(f"Failed to write {self.path}: {e}") from e

    def update(self, mutator: Callable[[QueueSnapshot], T]) -> T:
        with self._lock:
            snapshot = self.load()
            result = mutator(snapshot)
            self.save(snapshot)
            return result
