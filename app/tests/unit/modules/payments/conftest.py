"""Fixtures for payment tests: seeded transaction, invoice and a write-counting store."""

import pytest

from infrastructure.persistence import InMemoryRecordStore
from infrastructure.resilience.rate_limit import TenantRateLimiter
from infrastructure.security import compute_signature
from modules.payments.gateways import GatewayRegistry
from modules.payments.initiation import PaymentInitiationService
from modules.payments.models import (
    INVOICES_TABLE,
    TRANSACTIONS_TABLE,
    GatewayVerification,
    TransactionStatus,
)
from modules.payments.reconciliation import PaymentReconciler
from modules.payments.repository import PaymentRepository
from modules.payments.verification import VerificationHandler
from modules.payments.webhook import WebhookReceiver

WEBHOOK_SECRET = "sk_test_webhook"


class CountingRecordStore(InMemoryRecordStore):
    """In-memory store that counts every write."""

    def __init__(self) -> None:
        super().__init__()
        self.writes = 0

    def insert(self, table, record):
        self.writes += 1
        return super().insert(table, record)

    def update(self, table, record_id, changes, where=None, where_not=None):
        self.writes += 1
        return super().update(table, record_id, changes, where=where, where_not=where_not)

    def delete(self, table, record_id):
        self.writes += 1
        return super().delete(table, record_id)


class StubGateway:
    def __init__(self, status: TransactionStatus = TransactionStatus.SUCCESS) -> None:
        self.status = status
        self.calls = []
        self.checkouts = []
        self.error = None

    async def initialize(self, request):
        if self.error is not None:
            raise self.error
        self.checkouts.append(request)
        return {"data": {"authorization_url": f"https://checkout.test/{request.reference}"}}

    async def verify(self, reference: str) -> GatewayVerification:
        self.calls.append(reference)
        return GatewayVerification(
            status=self.status,
            data={"reference": reference, "status": self.status.value},
        )


@pytest.fixture
def record_store():
    store = CountingRecordStore()
    store.insert(
        INVOICES_TABLE,
        {"id": "inv-1", "tenant_id": "tenant-a", "status": "pending", "updated_at": None},
    )
    store.insert(
        TRANSACTIONS_TABLE,
        {
            "id": "txn-1",
            "transaction_reference": "ref-1",
            "status": "pending",
            "tenant_id": "tenant-a",
            "gateway_type": "paystack",
            "amount": 5000,
            "currency": "NGN",
            "gateway_response": {
                "invoice_id": "inv-1",
                "subscription_metadata": {
                    "tenant_id": "tenant-a",
                    "plan_id": "plan-pro",
                    "billing_cycle": "monthly",
                },
            },
        },
    )
    store.writes = 0
    return store


@pytest.fixture
def payment_repository(record_store):
    return PaymentRepository(record_store)


@pytest.fixture
def reconciler(payment_repository, clock):
    return PaymentReconciler(payment_repository, clock=clock)


@pytest.fixture
def receiver(reconciler):
    return WebhookReceiver(secret=WEBHOOK_SECRET, reconciler=reconciler)


@pytest.fixture
def gateway():
    return StubGateway()


@pytest.fixture
def verification_limiter():
    return TenantRateLimiter(["2/minute"], namespace="payment_verify_test")


@pytest.fixture
def verification_handler(payment_repository, reconciler, gateway, verification_limiter):
    return VerificationHandler(
        repository=payment_repository,
        reconciler=reconciler,
        gateways=GatewayRegistry({"paystack": gateway}),
        rate_limiter=verification_limiter,
    )


@pytest.fixture
def initiation_limiter():
    return TenantRateLimiter(["5/minute"], namespace="payment_initiate_test")


@pytest.fixture
def initiation_service(payment_repository, gateway, initiation_limiter):
    return PaymentInitiationService(
        repository=payment_repository,
        gateways=GatewayRegistry({"paystack": gateway}),
        rate_limiter=initiation_limiter,
    )


@pytest.fixture
def sign():
    def _sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
        return compute_signature(secret, body)

    return _sign
