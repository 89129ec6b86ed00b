"""Unit tests for PaymentReconciler."""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import httpx
import pytest

from modules.payments.gateways import GatewayRegistry, PaystackGateway
from modules.payments.models import (
    INVOICES_TABLE,
    SUBSCRIPTIONS_TABLE,
    TRANSACTIONS_TABLE,
    BillingCycle,
)
from modules.payments.reconciliation import PaymentReconciler, ReconciliationResult
from modules.payments.repository import PaymentRepository
from modules.payments.verification import VerificationHandler
from modules.payments.webhook import WebhookReceiver


class BarrierRepository(PaymentRepository):
    """Makes concurrent callers read the transaction before any of them writes."""

    def __init__(self, store, parties: int) -> None:
        super().__init__(store)
        self.barrier = threading.Barrier(parties, timeout=5)

    def get_transaction(self, reference):
        transaction = super().get_transaction(reference)
        self.barrier.wait()
        return transaction


class TestApplySuccess:
    def test_marks_paid_and_activates_subscription(self, reconciler, record_store, clock):
        result = reconciler.apply_success("ref-1", {"reference": "ref-1"}, source="test")

        assert result == ReconciliationResult.APPLIED
        transaction = record_store.get(TRANSACTIONS_TABLE, "txn-1")
        assert transaction["status"] == "success"
        assert transaction["paid_at"] == clock().isoformat()
        invoice = record_store.get(INVOICES_TABLE, "inv-1")
        assert invoice["status"] == "paid"
        [subscription] = record_store.find(SUBSCRIPTIONS_TABLE)
        assert subscription["tenant_id"] == "tenant-a"
        assert subscription["plan_id"] == "plan-pro"
        assert subscription["status"] == "active"
        assert subscription["current_period_end"] == "2024-02-01T12:00:00+00:00"
        assert transaction["subscription_id"] == subscription["id"]

    def test_replay_changes_nothing(self, reconciler, record_store, clock):
        reconciler.apply_success("ref-1", {"reference": "ref-1"})
        invoice_before = record_store.get(INVOICES_TABLE, "inv-1")
        [subscription_before] = record_store.find(SUBSCRIPTIONS_TABLE)
        transaction_before = record_store.get(TRANSACTIONS_TABLE, "txn-1")
        writes_before = record_store.writes
        clock.advance(hours=1)

        result = reconciler.apply_success("ref-1", {"reference": "ref-1", "replay": True})

        assert result == ReconciliationResult.ALREADY_PROCESSED
        assert record_store.writes == writes_before
        assert record_store.get(INVOICES_TABLE, "inv-1") == invoice_before
        assert record_store.find(SUBSCRIPTIONS_TABLE) == [subscription_before]
        assert record_store.get(TRANSACTIONS_TABLE, "txn-1") == transaction_before

    def test_unknown_reference(self, reconciler, record_store):
        assert reconciler.apply_success("nope", {}) == ReconciliationResult.NOT_FOUND
        assert record_store.writes == 0

    def test_existing_subscription_is_extended(self, reconciler, record_store):
        record_store.insert(
            SUBSCRIPTIONS_TABLE,
            {"id": "sub-1", "tenant_id": "tenant-a", "plan_id": "plan-basic", "status": "expired"},
        )

        reconciler.apply_success("ref-1", {})

        [subscription] = record_store.find(SUBSCRIPTIONS_TABLE)
        assert subscription["id"] == "sub-1"
        assert subscription["plan_id"] == "plan-pro"
        assert subscription["status"] == "active"

    def test_annual_cycle(self, reconciler, record_store):
        record_store.update(
            TRANSACTIONS_TABLE,
            "txn-1",
            {
                "gateway_response": {
                    "subscription_metadata": {"plan_id": "plan-pro", "billing_cycle": "annual"}
                }
            },
        )

        reconciler.apply_success("ref-1", {})

        [subscription] = record_store.find(SUBSCRIPTIONS_TABLE)
        assert subscription["billing_cycle"] == "annual"
        assert subscription["current_period_end"] == "2025-01-01T12:00:00+00:00"
        # tenant falls back to the transaction's own tenant
        assert subscription["tenant_id"] == "tenant-a"

    def test_without_metadata_only_marks_paid(self, reconciler, record_store):
        record_store.update(TRANSACTIONS_TABLE, "txn-1", {"gateway_response": {}})

        assert reconciler.apply_success("ref-1", {}) == ReconciliationResult.APPLIED
        assert record_store.find(SUBSCRIPTIONS_TABLE) == []
        assert record_store.get(INVOICES_TABLE, "inv-1")["status"] == "pending"


class TestApplyFailure:
    def test_pending_becomes_failed(self, reconciler, record_store):
        assert reconciler.apply_failure("ref-1", {"status": "failed"})
        assert record_store.get(TRANSACTIONS_TABLE, "txn-1")["status"] == "failed"

    def test_success_is_never_overwritten(self, reconciler, record_store):
        reconciler.apply_success("ref-1", {})

        assert not reconciler.apply_failure("ref-1", {"status": "failed"})
        assert record_store.get(TRANSACTIONS_TABLE, "txn-1")["status"] == "success"

    def test_unknown_reference(self, reconciler):
        assert not reconciler.apply_failure("nope", {})

    def test_failure_keeps_subscription_and_invoice_links(self, reconciler, record_store):
        reconciler.apply_failure("ref-1", {"status": "abandoned", "gateway_response": "timeout"})

        stored = record_store.get(TRANSACTIONS_TABLE, "txn-1")["gateway_response"]
        assert stored["status"] == "abandoned"
        assert stored["invoice_id"] == "inv-1"
        assert stored["subscription_metadata"]["plan_id"] == "plan-pro"

    def test_success_after_failure_is_a_conflict(self, reconciler, record_store):
        reconciler.apply_failure("ref-1", {"status": "failed"})
        writes_before = record_store.writes

        result = reconciler.apply_success("ref-1", {"status": "success"}, source="webhook")

        assert result == ReconciliationResult.CONFLICT
        assert record_store.writes == writes_before
        assert record_store.get(TRANSACTIONS_TABLE, "txn-1")["status"] == "failed"
        assert record_store.get(INVOICES_TABLE, "inv-1")["status"] == "pending"
        assert record_store.find(SUBSCRIPTIONS_TABLE) == []


@pytest.mark.parametrize(
    "start,cycle,expected",
    [
        (datetime(2024, 1, 31, tzinfo=timezone.utc), BillingCycle.MONTHLY, datetime(2024, 2, 29, tzinfo=timezone.utc)),
        (datetime(2024, 2, 29, tzinfo=timezone.utc), BillingCycle.ANNUAL, datetime(2025, 2, 28, tzinfo=timezone.utc)),
    ],
)
def test_period_end_clamps_to_month_end(start, cycle, expected):
    assert cycle.period_end(start) == expected


@pytest.mark.parametrize("value", [None, "monthly", "weekly", "annual", "yearly"])
def test_billing_cycle_parse(value):
    expected = BillingCycle.ANNUAL if value in ("annual", "yearly") else BillingCycle.MONTHLY
    assert BillingCycle.parse(value) == expected


def test_concurrent_success_applies_once(record_store, clock):
    reconciler = PaymentReconciler(BarrierRepository(record_store, parties=2), clock=clock)

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(
            pool.map(lambda _: reconciler.apply_success("ref-1", {}), range(2))
        )

    assert sorted(r.value for r in results) == ["already_processed", "applied"]
    assert len(record_store.find(SUBSCRIPTIONS_TABLE)) == 1


def test_webhook_and_verification_race_activates_once(
    record_store, clock, sign, gateway, verification_limiter
):
    # both paths share one reconciler whose reads are held until both have read
    reconciler = PaymentReconciler(BarrierRepository(record_store, parties=2), clock=clock)
    receiver = WebhookReceiver(secret="race-secret", reconciler=reconciler)
    handler = VerificationHandler(
        repository=PaymentRepository(record_store),
        reconciler=reconciler,
        gateways=GatewayRegistry({"paystack": gateway}),
        rate_limiter=verification_limiter,
    )
    body = b'{"event":"charge.success","data":{"reference":"ref-1","status":"success"}}'

    with ThreadPoolExecutor(max_workers=2) as pool:
        webhook = pool.submit(receiver.handle, body, sign(body, "race-secret"))
        verification = pool.submit(asyncio.run, handler.verify("ref-1", "paystack"))
        assert webhook.result(timeout=10) == {"received": True}
        assert verification.result(timeout=10)["status"] == "success"

    subscriptions = record_store.find(SUBSCRIPTIONS_TABLE)
    assert len(subscriptions) == 1
    assert record_store.get(INVOICES_TABLE, "inv-1")["status"] == "paid"


@pytest.mark.asyncio
async def test_in_flight_verification_then_webhook_settles_payment(
    payment_repository, reconciler, receiver, record_store, sign, verification_limiter
):
    # the client polls while Paystack still reports the charge as ongoing
    paystack = PaystackGateway(
        "sk",
        "https://api.paystack.co",
        transport=httpx.MockTransport(
            lambda r: httpx.Response(200, json={"data": {"status": "ongoing"}})
        ),
    )
    handler = VerificationHandler(
        repository=payment_repository,
        reconciler=reconciler,
        gateways=GatewayRegistry({"paystack": paystack}),
        rate_limiter=verification_limiter,
    )

    result = await handler.verify("ref-1", "paystack")

    assert result["status"] == "pending"
    transaction = record_store.get(TRANSACTIONS_TABLE, "txn-1")
    assert transaction["status"] == "pending"
    assert transaction["gateway_response"]["invoice_id"] == "inv-1"

    body = b'{"event":"charge.success","data":{"reference":"ref-1","status":"success"}}'
    assert receiver.handle(body, sign(body)) == {"received": True}

    assert record_store.get(TRANSACTIONS_TABLE, "txn-1")["status"] == "success"
    assert record_store.get(INVOICES_TABLE, "inv-1")["status"] == "paid"
    [subscription] = record_store.find(SUBSCRIPTIONS_TABLE)
    assert subscription["plan_id"] == "plan-pro"
    assert subscription["status"] == "active"
