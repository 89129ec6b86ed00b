"""Fixtures wiring the FastAPI app to in-memory services."""

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient

from api.dependencies.rate_limits import get_limiter
from infrastructure.idempotency import IdempotencyService, InMemoryCache
from infrastructure.resilience.rate_limit import TenantRateLimiter
from infrastructure.resilience.retry import (
    InMemoryRetryQueueStore,
    RetryActionRouter,
    RetryConfig,
    RetryQueue,
)
from infrastructure.security import CallerAuthenticator, compute_signature
from infrastructure.services import (
    get_caller_authenticator,
    get_cron_sweeper,
    get_erp_sync_service,
    get_payment_initiation_service,
    get_retry_executor,
    get_retry_queue,
    get_verification_handler,
    get_webhook_receiver,
)
from modules.erp.connectors import ErpConnector
from modules.erp.models import ENTITIES_TABLE, FIELD_MAPPINGS_TABLE, INTEGRATIONS_TABLE
from modules.erp.orchestrator import SyncOrchestrator
from modules.erp.repository import ErpRepository
from modules.erp.service import ErpSyncService
from modules.erp.sweeper import CronRetrySweeper
from modules.erp.tokens import TokenManager
from modules.payments.gateways import GatewayRegistry, PaystackGateway
from modules.payments.initiation import PaymentInitiationService
from modules.payments.models import TRANSACTIONS_TABLE
from modules.payments.reconciliation import PaymentReconciler
from modules.payments.repository import PaymentRepository
from modules.payments.verification import VerificationHandler
from modules.payments.webhook import WebhookReceiver
from server.server import create_app

SYSTEM_KEY = "test-system-key"
JWT_SECRET = "test-jwt-secret"
WEBHOOK_SECRET = "sk_test_webhook"


class FakeErp:
    """Scripted ERP and gateway backend behind httpx.MockTransport."""

    def __init__(self) -> None:
        self.status_code = 200
        self.payment_status = "success"
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code)
        if request.url.path == "/transaction/initialize":
            return httpx.Response(
                200,
                json={"status": True, "data": {"authorization_url": "https://checkout.paystack.test/abc"}},
            )
        if request.url.host == "api.paystack.test":
            return httpx.Response(200, json={"data": {"status": self.payment_status}})
        return httpx.Response(200, json={"data": [{"id": "c1", "name": "Ada"}]})


def make_token(tenant_id="tenant-a", role="tenant_admin", sub="user-1") -> str:
    return jwt.encode(
        {"sub": sub, "tenant_id": tenant_id, "role": role}, JWT_SECRET, algorithm="HS256"
    )


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def no_sleep(_seconds: float) -> None:
    return None


def _provide(instance):
    return lambda: instance


@pytest.fixture
def fake_erp():
    return FakeErp()


@pytest.fixture
def seeded_store(record_store):
    record_store.insert(
        INTEGRATIONS_TABLE,
        {
            "id": "int-1",
            "tenant_id": "tenant-a",
            "api_base_url": "https://erp.example.com",
            "access_token": "token-1",
        },
    )
    record_store.insert(
        ENTITIES_TABLE,
        {
            "id": "ent-1",
            "integration_id": "int-1",
            "entity_type": "customers",
            "erp_endpoint": "customers",
            "local_table": "customers",
        },
    )
    record_store.insert(
        FIELD_MAPPINGS_TABLE,
        {"id": "map-1", "entity_id": "ent-1", "erp_field": "id", "local_field": "erp_id"},
    )
    record_store.insert(
        TRANSACTIONS_TABLE,
        {
            "id": "txn-1",
            "transaction_reference": "ref-1",
            "status": "pending",
            "tenant_id": "tenant-a",
            "gateway_response": {
                "subscription_metadata": {"plan_id": "plan-pro", "billing_cycle": "monthly"}
            },
        },
    )
    return record_store


@pytest.fixture
def retry_queue(clock):
    return RetryQueue(InMemoryRetryQueueStore(), config=RetryConfig(), clock=clock)


@pytest.fixture
def retry_executor():
    return RetryActionRouter()


@pytest.fixture
def app(seeded_store, fake_erp, retry_queue, retry_executor):
    transport = httpx.MockTransport(fake_erp)
    erp_repository = ErpRepository(seeded_store)
    orchestrator = SyncOrchestrator(
        repository=erp_repository,
        tokens=TokenManager(erp_repository),
        connector=ErpConnector(erp_repository, transport=transport),
    )
    payment_repository = PaymentRepository(seeded_store)
    reconciler = PaymentReconciler(payment_repository)
    gateways = GatewayRegistry(
        {"paystack": PaystackGateway("sk", "https://api.paystack.test", transport=transport)}
    )

    services = {
        get_caller_authenticator: CallerAuthenticator(
            system_key=SYSTEM_KEY, jwt_secret=JWT_SECRET
        ),
        get_erp_sync_service: ErpSyncService(
            orchestrator=orchestrator,
            repository=erp_repository,
            idempotency=IdempotencyService(InMemoryCache()),
            rate_limiter=TenantRateLimiter(["1/minute"], namespace="erp_sync_api"),
        ),
        get_cron_sweeper: CronRetrySweeper(erp_repository, orchestrator, sleep=no_sleep),
        get_webhook_receiver: WebhookReceiver(WEBHOOK_SECRET, reconciler),
        get_verification_handler: VerificationHandler(
            repository=payment_repository,
            reconciler=reconciler,
            gateways=gateways,
            rate_limiter=TenantRateLimiter(["2/minute"], namespace="payment_verify_api"),
        ),
        get_payment_initiation_service: PaymentInitiationService(
            repository=payment_repository,
            gateways=gateways,
            rate_limiter=TenantRateLimiter(["5/minute"], namespace="payment_initiate_api"),
        ),
        get_retry_queue: retry_queue,
        get_retry_executor: retry_executor,
    }

    application = create_app(with_lifespan=False)
    for provider, instance in services.items():
        application.dependency_overrides[provider] = _provide(instance)
    get_limiter().reset()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def system_headers():
    return bearer(SYSTEM_KEY)


@pytest.fixture
def user_headers():
    return bearer(make_token())


@pytest.fixture
def other_tenant_headers():
    return bearer(make_token(tenant_id="tenant-b", sub="user-2"))


@pytest.fixture
def member_headers():
    return bearer(make_token(role="member", sub="user-3"))


@pytest.fixture
def sign_webhook():
    def _sign(body: bytes) -> dict:
        return {"x-paystack-signature": compute_signature(WEBHOOK_SECRET, body)}

    return _sign
