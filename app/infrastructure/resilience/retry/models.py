"""Retry queue data models."""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

PENDING_KEY = "erp_retry_queue"
DEAD_LETTER_KEY = "erp_dead_letter"


def generate_item_id(now: datetime) -> str:
    """Unique id that sorts by creation time (epoch millis + random suffix)."""
    millis = int(now.timestamp() * 1000)
    return f"{millis:013d}-{secrets.token_hex(4)}"


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        # epoch millis, as written by older clients
        parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class RetryTransition(Enum):
    """State changes reported to retry queue observers."""

    ENQUEUED = "enqueued"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    DEAD_LETTERED = "dead_lettered"
    DISMISSED = "dismissed"
    REQUEUED = "requeued"


@dataclass
class RetryItem:
    """A deferred action awaiting retry.

    Attributes:
        id: Unique identifier, sortable by creation time
        action: Action kind used to route the item to its handler
        payload: Opaque action arguments
        retry_count: Failed attempts so far
        created_at: Enqueue time, never modified
        last_attempt_at: Time of the last attempt (enqueue or requeue time initially)
        error_message: Last failure description
        requeued_at: Time of the last manual requeue; the age limit counts from
            here instead of ``created_at`` once set
    """

    id: str
    action: str
    payload: Dict[str, Any]
    created_at: datetime
    last_attempt_at: datetime
    retry_count: int = 0
    error_message: Optional[str] = None
    requeued_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.action:
            raise ValueError("action is required")
        if self.retry_count < 0:
            raise ValueError("retry_count must be >= 0")

    @property
    def age_started_at(self) -> datetime:
        return self.requeued_at or self.created_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action,
            "payload": self.payload,
            "retry_count": self.retry_count,
            "created_at": self.created_at.isoformat(),
            "last_attempt_at": self.last_attempt_at.isoformat(),
            "error_message": self.error_message,
            "requeued_at": self.requeued_at.isoformat() if self.requeued_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetryItem":
        """Build an item from its persisted form.

        Raises:
            KeyError, TypeError, ValueError: If the entry is malformed
        """
        payload = data.get("payload") or {}
        if not isinstance(payload, dict):
            raise TypeError("payload must be an object")
        return cls(
            id=str(data["id"]),
            action=str(data["action"]),
            payload=payload,
            retry_count=int(data.get("retry_count", 0)),
            created_at=_parse_time(data["created_at"]),
            last_attempt_at=_parse_time(data["last_attempt_at"]),
            error_message=data.get("error_message"),
            requeued_at=(
                _parse_time(data["requeued_at"]) if data.get("requeued_at") else None
            ),
        )


@dataclass
class QueueSnapshot:
    """The two persisted lists: pending items and dead letters, in order."""

    pending: List[RetryItem] = field(default_factory=list)
    dead_letter: List[RetryItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            PENDING_KEY: [item.to_dict() for item in self.pending],
            DEAD_LETTER_KEY: [item.to_dict() for item in self.dead_letter],
        }

    def find_dead_letter(self, item_id: str) -> Optional[RetryItem]:
        return next((i for i in self.dead_letter if i.id == item_id), None)


@dataclass
class QueueCounts:
    pending: int
    dead_letter: int

    def to_dict(self) -> Dict[str, int]:
        return {"pending": self.pending, "dead_letter": self.dead_letter}


@dataclass
class SweepSummary:
    """Outcome counts of one ``process_queue`` pass."""

    processed: int = 0
    failed: int = 0
    dead_lettered: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "processed": self.processed,
            "failed": self.failed,
            "dead_lettered": self.dead_lettered,
        }
