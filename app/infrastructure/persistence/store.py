"""Generic record store used by the feature repositories.

A deliberately small query/command surface: keyed reads, equality
filters, inserts, conditional updates and deletes. Conditional updates are
the compare-and-swap primitive that makes terminal state transitions
(e.g. a payment moving to ``success``) happen exactly once.
"""

import copy
import threading
import uuid
from typing import Any, Dict, List, Mapping, Optional, Protocol

from infrastructure.logging import get_module_logger

logger = get_module_logger()

Record = Dict[str, Any]


class DuplicateRecordError(Exception):
    """Raised when inserting a record whose id already exists."""


class RecordStore(Protocol):
    """Storage interface for table-like records keyed by ``id``."""

    def get(self, table: str, record_id: str) -> Optional[Record]:
        ...

    def find(self, table: str, **filters: Any) -> List[Record]:
        """Records whose fields equal every filter value."""
        ...

    def find_one(self, table: str, **filters: Any) -> Optional[Record]:
        ...

    def insert(self, table: str, record: Record) -> Record:
        """Insert a record, assigning an ``id`` when missing.

        Raises:
            DuplicateRecordError: If a record with the same id exists
        """
        ...

    def update(
        self,
        table: str,
        record_id: str,
        changes: Mapping[str, Any],
        where: Optional[Mapping[str, Any]] = None,
        where_not: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """Atomically apply ``changes`` if the record matches the guards.

        Args:
            where: Fields that must currently equal the given values
            where_not: Fields that must currently differ from the given values

        Returns:
            True if the record existed and the guards held, False otherwise
        """
        ...

    def delete(self, table: str, record_id: str) -> bool:
        ...


def _matches(record: Record, filters: Mapping[str, Any]) -> bool:
    return all(record.get(field) == value for field, value in filters.items())


class InMemoryRecordStore:
    """Thread-safe in-memory RecordStore for tests and local development."""

    def __init__(self) -> None:
        self._tables: Dict[str, Dict[str, Record]] = {}
        self._lock = threading.RLock()

    def _table(self, table: str) -> Dict[str, Record]:
        return self._tables.setdefault(table, {})

    def get(self, table: str, record_id: str) -> Optional[Record]:
        with self._lock:
            record = self._table(table).get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def find(self, table: str, **filters: Any) -> List[Record]:
        with self._lock:
            return [
                copy.deepcopy(record)
                for record in self._table(table).values()
                if _matches(record, filters)
            ]

    def find_one(self, table: str, **filters: Any) -> Optional[Record]:
        matches = self.find(table, **filters)
        return matches[0] if matches else None

    def insert(self, table: str, record: Record) -> Record:
        stored = copy.deepcopy(record)
        stored.setdefault("id", str(uuid.uuid4()))
        with self._lock:
            rows = self._table(table)
            if stored["id"] in rows:
                raise DuplicateRecordError(f"{table}/{stored['id']} already exists")
            rows[stored["id"]] = stored
        return copy.deepcopy(stored)

    def update(
        self,
        table: str,
        record_id: str,
        changes: Mapping[str, Any],
        where: Optional[Mapping[str, Any]] = None,
        where_not: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        with self._lock:
            record = self._table(table).get(record_id)
            if record is None:
                return False
            if where and not _matches(record, where):
                return False
            if where_not and any(
                record.get(field) == value for field, value in where_not.items()
            ):
                return False
            record.update(copy.deepcopy(dict(changes)))
            return True

    def delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            return self._table(table).pop(record_id, None) is not None
