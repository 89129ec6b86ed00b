"""Retry queue engine.

Accepts failed actions, replays them with exponential backoff through an
executor, and moves items that run out of attempts or grow too old to the
dead-letter list. Every item lives in exactly one of the two lists.

Usage:
    queue = RetryQueue(InMemoryRetryQueueStore())
    queue.enqueue("erp.sync", {"id": "abc"}, error_message="timeout")

    async def executor(action: str, payload: dict) -> None:
        ...

    summary = await queue.process_queue(executor)
"""

import asyncio
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry.actions import ActionRegistry, default_registry
from infrastructure.resilience.retry.backoff import backoff_timedelta
from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.exceptions import NonRetryableActionError
from infrastructure.resilience.retry.models import (
    QueueCounts,
    QueueSnapshot,
    RetryItem,
    RetryTransition,
    SweepSummary,
    generate_item_id,
)
from infrastructure.resilience.retry.store import RetryQueueStore

logger = get_module_logger()

Executor = Callable[[str, Dict[str, Any]], Awaitable[None]]
Clock = Callable[[], datetime]
TransitionObserver = Callable[[RetryTransition, RetryItem], None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _Outcome:
    """Per-item decision taken during a sweep."""

    remove: bool = False
    dead_letter: bool = False
    item: Optional[RetryItem] = None


class RetryQueue:
    """Persistent retry queue with backoff and dead-lettering.

    Attributes:
        store: RetryQueueStore holding the pending and dead-letter lists
        config: RetryConfig controlling caps, age and backoff
        registry: ActionRegistry validating action kinds at enqueue
    """

    def __init__(
        self,
        store: RetryQueueStore,
        config: RetryConfig | None = None,
        registry: ActionRegistry | None = None,
        clock: Clock | None = None,
        on_transition: TransitionObserver | None = None,
    ) -> None:
        self.store = store
        self.config = config or RetryConfig()
        self.registry = registry or default_registry()
        self._clock = clock or utc_now
        self._observers: List[TransitionObserver] = []
        if on_transition:
            self._observers.append(on_transition)
        self._sweep_lock = threading.Lock()
        self.log = logger.bind(component="retry_queue")

    def add_observer(self, observer: TransitionObserver) -> None:
        self._observers.append(observer)

    def _notify(self, events: List[Tuple[RetryTransition, RetryItem]]) -> None:
        for transition, item in events:
            for observer in self._observers:
                try:
                    observer(transition, item)
                except Exception as e:  # pylint: disable=broad-except
                    self.log.error(
                        "retry_observer_failed",
                        transition=transition.value,
                        item_id=item.id,
                        error=str(e),
                    )

    def enqueue(
        self,
        action: str,
        payload: Dict[str, Any],
        error_message: str | None = None,
    ) -> RetryItem:
        """Add a failed action to the pending list.

        Raises:
            UnknownActionError: If ``action`` is not a registered kind
            InvalidPayloadError: If ``payload`` fails the kind's schema
        """
        validated = self.registry.validate(action, payload)
        now = self._clock()
        item = RetryItem(
            id=generate_item_id(now),
            action=action,
            payload=validated,
            created_at=now,
            last_attempt_at=now,
            retry_count=0,
            error_message=error_message,
        )
        self.store.update(lambda snapshot: snapshot.pending.append(item))

        self.log.info("retry_item_enqueued", item_id=item.id, action=action)
        self._notify([(RetryTransition.ENQUEUED, item)])
        return item

    def get_counts(self) -> QueueCounts:
        snapshot = self.store.load()
        return QueueCounts(
            pending=len(snapshot.pending), dead_letter=len(snapshot.dead_letter)
        )

    def list_pending(self) -> List[RetryItem]:
        return self.store.load().pending

    def list_dead_letter(self) -> List[RetryItem]:
        return self.store.load().dead_letter

    def dismiss(self, item_id: str) -> bool:
        """Permanently remove a dead-letter item. Returns False if absent."""

        def _dismiss(snapshot: QueueSnapshot) -> Optional[RetryItem]:
            item = snapshot.find_dead_letter(item_id)
            if item is not None:
                snapshot.dead_letter = [
                    i for i in snapshot.dead_letter if i.id != item_id
                ]
            return item

        item = self.store.update(_dismiss)
        if item is None:
            self.log.warning("retry_dismiss_not_found", item_id=item_id)
            return False

        self.log.info("retry_item_dismissed", item_id=item_id, action=item.action)
        self._notify([(RetryTransition.DISMISSED, item)])
        return True

    def requeue(self, item_id: str) -> bool:
        """Move a dead-letter item back to pending with its retry count reset.

        The item keeps its id, payload and ``created_at``; ``retry_count`` is
        reset, ``last_attempt_at`` set to now and ``requeued_at`` stamped so the
        age limit restarts. Returns False if absent.
        """
        now = self._clock()

        def _requeue(snapshot: QueueSnapshot) -> Optional[RetryItem]:
            item = snapshot.find_dead_letter(item_id)
            if item is None:
                return None
            snapshot.dead_letter = [i for i in snapshot.dead_letter if i.id != item_id]
            revived = replace(
                item, retry_count=0, last_attempt_at=now, requeued_at=now
            )
            snapshot.pending.append(revived)
            return revived

        item = self.store.update(_requeue)
        if item is None:
            self.log.warning("retry_requeue_not_found", item_id=item_id)
            return False

        self.log.info("retry_item_requeued", item_id=item_id, action=item.action)
        self._notify([(RetryTransition.REQUEUED, item)])
        return True

    async def _execute(self, executor: Executor, item: RetryItem) -> None:
        call = executor(item.action, dict(item.payload))
        timeout = self.config.attempt_timeout_seconds
        if timeout is None:
            await call
        else:
            await asyncio.wait_for(call, timeout=timeout)

    async def process_queue(self, executor: Executor) -> SweepSummary:
        """Run one sweep over the pending list, in enqueue order.

        For each item: too old or at the retry cap goes to dead-letter
        without calling the executor; still inside its backoff window stays
        untouched; otherwise the executor runs. Success removes the item,
        failure records the attempt and dead-letters it once the cap is hit.

        A sweep requested while another is running in this process is
        skipped and reports zero counts.

        Returns:
            SweepSummary with processed, failed and dead_lettered counts
        """
        if not self._sweep_lock.acquire(blocking=False):
            self.log.info("retry_sweep_skipped", reason="sweep_in_progress")
            return SweepSummary()

        try:
            return await self._sweep(executor)
        finally:
            self._sweep_lock.release()

    async def _sweep(self, executor: Executor) -> SweepSummary:
        snapshot = self.store.load()
        summary = SweepSummary()
        if not snapshot.pending:
            self.log.debug("retry_sweep_no_items")
            return summary

        self.log.info("retry_sweep_start", pending=len(snapshot.pending))

        outcomes: Dict[str, _Outcome] = {}
        events: List[Tuple[RetryTransition, RetryItem]] = []
        max_retries = self.config.max_retries

        for item in snapshot.pending:
            now = self._clock()

            if now - item.age_started_at > self.config.max_age:
                outcomes[item.id] = _Outcome(dead_letter=True, item=item)
                summary.dead_lettered += 1
                events.append((RetryTransition.DEAD_LETTERED, item))
                self.log.warning(
                    "retry_item_expired", item_id=item.id, action=item.action
                )
                continue

            if item.retry_count >= max_retries:
                outcomes[item.id] = _Outcome(dead_letter=True, item=item)
                summary.dead_lettered += 1
                events.append((RetryTransition.DEAD_LETTERED, item))
                self.log.warning(
                    "retry_item_exhausted",
                    item_id=item.id,
                    action=item.action,
                    retry_count=item.retry_count,
                )
                continue

            wait = backoff_timedelta(
                item.retry_count,
                self.config.base_delay_seconds,
                self.config.max_delay_seconds,
            )
            if now - item.last_attempt_at < wait:
                continue

            try:
                await self._execute(executor, item)
            except NonRetryableActionError as e:
                failed = replace(
                    item,
                    retry_count=item.retry_count + 1,
                    last_attempt_at=self._clock(),
                    error_message=str(e) or type(e).__name__,
                )
                outcomes[item.id] = _Outcome(dead_letter=True, item=failed)
                summary.dead_lettered += 1
                events.append((RetryTransition.DEAD_LETTERED, failed))
                self.log.warning(
                    "retry_item_non_retryable",
                    item_id=item.id,
                    action=item.action,
                    error=failed.error_message,
                )
                continue
            except asyncio.TimeoutError:
                error_message = (
                    f"Attempt timed out after {self.config.attempt_timeout_seconds}s"
                )
            except Exception as e:  # pylint: disable=broad-except
                error_message = str(e) or type(e).__name__
            else:
                outcomes[item.id] = _Outcome(remove=True, item=item)
                summary.processed += 1
                events.append((RetryTransition.SUCCEEDED, item))
                self.log.info(
                    "retry_item_succeeded",
                    item_id=item.id,
                    action=item.action,
                    retry_count=item.retry_count,
                )
                continue

            failed = replace(
                item,
                retry_count=item.retry_count + 1,
                last_attempt_at=self._clock(),
                error_message=error_message,
            )
            if failed.retry_count >= max_retries:
                outcomes[item.id] = _Outcome(dead_letter=True, item=failed)
                summary.dead_lettered += 1
                events.append((RetryTransition.DEAD_LETTERED, failed))
                self.log.warning(
                    "retry_item_dead_lettered",
                    item_id=item.id,
                    action=item.action,
                    retry_count=failed.retry_count,
                    error=error_message,
                )
            else:
                outcomes[item.id] = _Outcome(item=failed)
                summary.failed += 1
                events.append((RetryTransition.FAILED, failed))
                self.log.info(
                    "retry_item_failed",
                    item_id=item.id,
                    action=item.action,
                    retry_count=failed.retry_count,
                    max_retries=max_retries,
                    error=error_message,
                )

        if outcomes:
            self.store.update(lambda current: self._apply_outcomes(current, outcomes))
            self._notify(events)

        self.log.info("retry_sweep_complete", **summary.to_dict())
        return summary

    @staticmethod
    def _apply_outcomes(
        current: QueueSnapshot, outcomes: Dict[str, _Outcome]
    ) -> None:
        # Items without an outcome (gated, or enqueued mid-sweep) keep their slot
        pending: List[RetryItem] = []
        dead_letter = list(current.dead_letter)
        dead_ids = {i.id for i in dead_letter}

        for item in current.pending:
            outcome = outcomes.get(item.id)
            if outcome is None:
                pending.append(item)
            elif outcome.remove:
                continue
            elif outcome.dead_letter:
                if item.id not in dead_ids:
                    dead_letter.append(outcome.item or item)
                    dead_ids.add(item.id)
            else:
                pending.append(outcome.item or item)

        current.pending = pending
        current.dead_letter = dead_letter
