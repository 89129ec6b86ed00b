"""Persistence layer for feature records (sync logs, payments, subscriptions)."""

from infrastructure.persistence.factory import create_record_store
from infrastructure.persistence.store import (
    DuplicateRecordError,
    InMemoryRecordStore,
    Record,
    RecordStore,
)

__all__ = [
    "DuplicateRecordError",
    "InMemoryRecordStore",
    "Record",
    "RecordStore",
    "create_record_store",
]
