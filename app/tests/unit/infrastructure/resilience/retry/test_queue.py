"""Unit tests for RetryQueue."""

import asyncio

import pytest

from infrastructure.resilience.retry import (
    InvalidPayloadError,
    NonRetryableActionError,
    RetryConfig,
    RetryQueue,
    RetryTransition,
    UnknownActionError,
)
from infrastructure.resilience.retry.models import DEAD_LETTER_KEY, PENDING_KEY


def _ids(items):
    return [item.id for item in items]


class TestEnqueue:
    def test_enqueue_adds_pending_item(self, retry_queue, clock):
        item = retry_queue.enqueue("erp.sync", {"id": "log-1"}, error_message="boom")

        assert retry_queue.get_counts().to_dict() == {"pending": 1, "dead_letter": 0}
        pending = retry_queue.list_pending()[0]
        assert pending.id == item.id
        assert pending.retry_count == 0
        assert pending.created_at == clock.now
        assert pending.last_attempt_at == clock.now
        assert pending.error_message == "boom"

    def test_ids_are_unique_and_sortable(self, retry_queue, clock):
        first = retry_queue.enqueue("erp.sync", {"id": "a"})
        clock.advance(milliseconds=5)
        second = retry_queue.enqueue("erp.sync", {"id": "b"})

        assert first.id != second.id
        assert first.id < second.id

    def test_unknown_action_rejected(self, retry_queue):
        with pytest.raises(UnknownActionError):
            retry_queue.enqueue("order.create", {"id": "x"})
        assert retry_queue.get_counts().pending == 0

    def test_invalid_payload_rejected(self, retry_queue):
        with pytest.raises(InvalidPayloadError):
            retry_queue.enqueue("payment.verify", {"reference": "ref-1"})

    def test_extra_payload_keys_preserved(self, retry_queue):
        retry_queue.enqueue("erp.sync", {"id": "x", "note": "kept"})
        assert retry_queue.list_pending()[0].payload == {"id": "x", "note": "kept"}


class TestProcessQueue:
    @pytest.mark.asyncio
    async def test_success_removes_item(self, retry_queue, executor, clock):
        retry_queue.enqueue("erp.sync", {"id": "x"})
        clock.advance(seconds=1)

        summary = await retry_queue.process_queue(executor)

        assert summary.to_dict() == {"processed": 1, "failed": 0, "dead_lettered": 0}
        assert executor.calls == [("erp.sync", {"id": "x"})]
        assert retry_queue.get_counts().to_dict() == {"pending": 0, "dead_letter": 0}

    @pytest.mark.asyncio
    async def test_failure_increments_retry_count(self, retry_queue, executor, clock):
        retry_queue.enqueue("erp.sync", {"id": "x"})
        clock.advance(seconds=1)
        executor.error = RuntimeError("ERP down")

        summary = await retry_queue.process_queue(executor)

        assert summary.failed == 1
        item = retry_queue.list_pending()[0]
        assert item.retry_count == 1
        assert item.last_attempt_at == clock.now
        assert item.error_message == "ERP down"

    @pytest.mark.asyncio
    async def test_backoff_gates_execution(self, retry_queue, executor, clock):
        retry_queue.enqueue("erp.sync", {"id": "x"})
        executor.error = RuntimeError("fail")
        clock.advance(seconds=1)
        await retry_queue.process_queue(executor)
        assert len(executor.calls) == 1

        # retry_count is 1, so the next attempt waits 2 seconds
        clock.advance(seconds=1)
        summary = await retry_queue.process_queue(executor)
        assert len(executor.calls) == 1
        assert summary.to_dict() == {"processed": 0, "failed": 0, "dead_lettered": 0}
        assert retry_queue.list_pending()[0].retry_count == 1

        clock.advance(seconds=1)
        await retry_queue.process_queue(executor)
        assert len(executor.calls) == 2

    @pytest.mark.asyncio
    async def test_item_within_backoff_is_untouched(self, retry_queue, executor):
        original = retry_queue.enqueue("erp.sync", {"id": "x"})

        await retry_queue.process_queue(executor)

        assert executor.calls == []
        assert retry_queue.list_pending()[0] == original

    @pytest.mark.asyncio
    async def test_cap_moves_item_to_dead_letter(self, retry_queue, executor, clock):
        retry_queue.enqueue("erp.sync", {"id": "x"})
        executor.error = RuntimeError("still down")

        for wait in (1, 2, 4):
            clock.advance(seconds=wait)
            await retry_queue.process_queue(executor)

        assert len(executor.calls) == 3
        counts = retry_queue.get_counts()
        assert counts.pending == 0
        assert counts.dead_letter == 1
        dead = retry_queue.list_dead_letter()[0]
        assert dead.retry_count == 3
        assert dead.error_message == "still down"

    @pytest.mark.asyncio
    async def test_item_at_cap_dead_lettered_without_execution(
        self, retry_queue, retry_store, executor, clock
    ):
        retry_queue.enqueue("erp.sync", {"id": "x"})
        retry_store.update(lambda snap: setattr(snap.pending[0], "retry_count", 3))
        clock.advance(hours=1)

        summary = await retry_queue.process_queue(executor)

        assert executor.calls == []
        assert summary.dead_lettered == 1
        assert retry_queue.get_counts().dead_letter == 1

    @pytest.mark.asyncio
    async def test_expired_item_dead_lettered_without_execution(
        self, retry_queue, executor, clock
    ):
        item = retry_queue.enqueue("erp.sync", {"id": "old"})
        clock.advance(hours=24, seconds=1)

        summary = await retry_queue.process_queue(executor)

        assert executor.calls == []
        assert summary.dead_lettered == 1
        assert _ids(retry_queue.list_dead_letter()) == [item.id]
        assert retry_queue.list_pending() == []

    @pytest.mark.asyncio
    async def test_item_exactly_at_max_age_still_runs(self, retry_queue, executor, clock):
        retry_queue.enqueue("erp.sync", {"id": "x"})
        clock.advance(hours=24)

        summary = await retry_queue.process_queue(executor)

        assert summary.processed == 1

    @pytest.mark.asyncio
    async def test_non_retryable_error_dead_letters_immediately(
        self, retry_queue, executor, clock
    ):
        retry_queue.enqueue("erp.sync", {"id": "x"})
        clock.advance(seconds=1)
        executor.error = NonRetryableActionError("integration missing")

        summary = await retry_queue.process_queue(executor)

        assert summary.dead_lettered == 1
        dead = retry_queue.list_dead_letter()[0]
        assert dead.retry_count == 1
        assert dead.error_message == "integration missing"

    @pytest.mark.asyncio
    async def test_attempt_timeout_counts_as_failure(self, retry_store, clock):
        queue = RetryQueue(
            retry_store, config=RetryConfig(attempt_timeout_seconds=0.01), clock=clock
        )
        queue.enqueue("erp.sync", {"id": "slow"})
        clock.advance(seconds=1)

        async def slow_executor(action, payload):
            await asyncio.sleep(1)

        summary = await queue.process_queue(slow_executor)

        assert summary.failed == 1
        item = queue.list_pending()[0]
        assert item.retry_count == 1
        assert "timed out" in item.error_message

    @pytest.mark.asyncio
    async def test_items_processed_in_enqueue_order(self, retry_queue, executor, clock):
        for name in ("a", "b", "c"):
            retry_queue.enqueue("erp.sync", {"id": name})
        clock.advance(seconds=1)

        await retry_queue.process_queue(executor)

        assert [payload["id"] for _, payload in executor.calls] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_item_enqueued_during_sweep_is_kept(self, retry_queue, clock):
        retry_queue.enqueue("erp.sync", {"id": "first"})
        clock.advance(seconds=1)

        async def enqueueing_executor(action, payload):
            retry_queue.enqueue("erp.sync", {"id": "late"})

        await retry_queue.process_queue(enqueueing_executor)

        assert [i.payload["id"] for i in retry_queue.list_pending()] == ["late"]

    @pytest.mark.asyncio
    async def test_overlapping_sweep_is_skipped(self, retry_queue, clock):
        retry_queue.enqueue("erp.sync", {"id": "x"})
        clock.advance(seconds=1)
        nested = {}

        async def reentrant_executor(action, payload):
            nested["summary"] = await retry_queue.process_queue(reentrant_executor)

        summary = await retry_queue.process_queue(reentrant_executor)

        assert summary.processed == 1
        assert nested["summary"].to_dict() == {
            "processed": 0,
            "failed": 0,
            "dead_lettered": 0,
        }

    @pytest.mark.asyncio
    async def test_empty_queue_reports_zero(self, retry_queue, executor):
        summary = await retry_queue.process_queue(executor)
        assert summary.to_dict() == {"processed": 0, "failed": 0, "dead_lettered": 0}


class TestDeadLetterOperations:
    @pytest.mark.asyncio
    async def test_requeue_resets_attempts(self, retry_queue, executor, clock):
        item = retry_queue.enqueue("erp.sync", {"id": "x"})
        clock.advance(hours=25)
        await retry_queue.process_queue(executor)
        assert retry_queue.get_counts().dead_letter == 1

        clock.advance(minutes=3)
        assert retry_queue.requeue(item.id) is True

        assert retry_queue.list_dead_letter() == []
        revived = retry_queue.list_pending()[0]
        assert revived.id == item.id
        assert revived.retry_count == 0
        assert revived.last_attempt_at == clock.now
        assert revived.created_at == item.created_at
        assert revived.requeued_at == clock.now

        clock.advance(milliseconds=500)
        gated = await retry_queue.process_queue(executor)
        assert gated.processed == 0
        assert executor.calls == []
        assert retry_queue.get_counts().pending == 1

        clock.advance(milliseconds=500)
        summary = await retry_queue.process_queue(executor)
        assert summary.to_dict() == {"processed": 1, "failed": 0, "dead_lettered": 0}
        assert executor.calls == [("erp.sync", {"id": "x"})]
        assert retry_queue.get_counts().to_dict() == {"pending": 0, "dead_letter": 0}

    def test_requeue_unknown_item_returns_false(self, retry_queue):
        assert retry_queue.requeue("missing") is False

    @pytest.mark.asyncio
    async def test_dismiss_removes_dead_letter(self, retry_queue, executor, clock):
        item = retry_queue.enqueue("erp.sync", {"id": "x"})
        clock.advance(hours=25)
        await retry_queue.process_queue(executor)

        assert retry_queue.dismiss(item.id) is True
        assert retry_queue.get_counts().to_dict() == {"pending": 0, "dead_letter": 0}

    def test_dismiss_ignores_pending_items(self, retry_queue):
        item = retry_queue.enqueue("erp.sync", {"id": "x"})
        assert retry_queue.dismiss(item.id) is False
        assert retry_queue.get_counts().pending == 1

    @pytest.mark.asyncio
    async def test_item_lives_in_exactly_one_list(self, retry_queue, retry_store, clock):
        retry_queue.enqueue("erp.sync", {"id": "a"})
        retry_queue.enqueue("erp.sync", {"id": "b"})

        async def failing(action, payload):
            if payload["id"] == "a":
                raise NonRetryableActionError("bad")
            raise RuntimeError("flaky")

        clock.advance(seconds=1)
        await retry_queue.process_queue(failing)

        raw = retry_store.raw()
        pending_ids = {entry["id"] for entry in raw[PENDING_KEY]}
        dead_ids = {entry["id"] for entry in raw[DEAD_LETTER_KEY]}
        assert pending_ids.isdisjoint(dead_ids)
        assert len(pending_ids | dead_ids) == 2


class TestObservers:
    @pytest.mark.asyncio
    async def test_transitions_reported(self, retry_queue, executor, clock):
        events = []
        retry_queue.add_observer(lambda transition, item: events.append(transition))

        retry_queue.enqueue("erp.sync", {"id": "x"})
        clock.advance(seconds=1)
        await retry_queue.process_queue(executor)

        assert events == [RetryTransition.ENQUEUED, RetryTransition.SUCCEEDED]

    def test_failing_observer_does_not_break_queue(self, retry_queue):
        def broken(transition, item):
            raise RuntimeError("observer bug")

        retry_queue.add_observer(broken)
        retry_queue.enqueue("erp.sync", {"id": "x"})

        assert retry_queue.get_counts().pending == 1


class TestErpSyncScenario:
    @pytest.mark.asyncio
    async def test_always_failing_sync_ends_in_dead_letter(
        self, retry_queue, executor, clock
    ):
        """erp.sync {id: "x"} failing on every attempt, swept at each backoff."""
        retry_queue.enqueue("erp.sync", {"id": "x"})
        executor.error = RuntimeError("ERP unreachable")

        clock.advance(seconds=1)
        first = await retry_queue.process_queue(executor)
        assert first.to_dict() == {"processed": 0, "failed": 1, "dead_lettered": 0}
        assert retry_queue.list_pending()[0].retry_count == 1

        clock.advance(seconds=2)
        second = await retry_queue.process_queue(executor)
        assert second.failed == 1
        assert retry_queue.list_pending()[0].retry_count == 2

        clock.advance(seconds=4)
        third = await retry_queue.process_queue(executor)
        assert third.to_dict() == {"processed": 0, "failed": 0, "dead_lettered": 1}

        assert retry_queue.get_counts().to_dict() == {"pending": 0, "dead_letter": 1}
        dead = retry_queue.list_dead_letter()[0]
        assert dead.payload == {"id": "x"}
        assert dead.retry_count == 3
        assert len(executor.calls) == 3

    @pytest.mark.asyncio
    async def test_sync_recovering_after_one_failure_is_processed(
        self, retry_queue, executor, clock
    ):
        """erp.sync {id: "x"} fails once, then succeeds after its 2 s backoff."""
        retry_queue.enqueue("erp.sync", {"id": "x"})
        executor.error = RuntimeError("ERP unreachable")

        clock.advance(seconds=1)
        first = await retry_queue.process_queue(executor)
        assert first.to_dict() == {"processed": 0, "failed": 1, "dead_lettered": 0}

        executor.error = None
        clock.advance(seconds=1)
        gated = await retry_queue.process_queue(executor)
        assert gated.to_dict() == {"processed": 0, "failed": 0, "dead_lettered": 0}
        assert len(executor.calls) == 1

        clock.advance(seconds=1, milliseconds=1)
        second = await retry_queue.process_queue(executor)

        assert second.to_dict() == {"processed": 1, "failed": 0, "dead_lettered": 0}
        assert retry_queue.get_counts().to_dict() == {"pending": 0, "dead_letter": 0}
        assert executor.calls == [("erp.sync", {"id": "x"}), ("erp.sync", {"id": "x"})]
