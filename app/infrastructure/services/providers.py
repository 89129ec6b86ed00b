"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for infrastructure services
and the feature services built on them.
"""

from functools import lru_cache

from infrastructure.audit import AuditRecorder
from infrastructure.clients.aws import DynamoDBClient, SessionProvider
from infrastructure.configuration import Settings
from infrastructure.idempotency import IdempotencyService, create_idempotency_cache
from infrastructure.persistence import RecordStore, create_record_store
from infrastructure.resilience.rate_limit import TenantRateLimiter
from infrastructure.resilience.retry import (
    RetryActionRouter,
    RetryConfig,
    RetryQueue,
    create_retry_store,
)
from infrastructure.security import CallerAuthenticator
from modules.erp.connectors import ErpConnector
from modules.erp.orchestrator import SyncOrchestrator
from modules.erp.repository import ErpRepository
from modules.erp.retry_actions import make_erp_sync_handler
from modules.erp.service import ErpSyncService
from modules.erp.sweeper import CronRetrySweeper
from modules.erp.tokens import TokenManager
from modules.payments.gateways import GatewayRegistry, build_gateway_registry
from modules.payments.initiation import PaymentInitiationService
from modules.payments.reconciliation import PaymentReconciler
from modules.payments.repository import PaymentRepository
from modules.payments.retry_actions import make_payment_verify_handler
from modules.payments.verification import VerificationHandler
from modules.payments.webhook import WebhookReceiver


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    This is the single source of truth for settings across the entire application.
    The @lru_cache decorator ensures only ONE instance is created per process,
    even if called from multiple packages.

    Infrastructure packages should use this directly to ensure singleton consistency:
        from infrastructure.services.providers import get_settings
        settings = get_settings()

    Application code should use the DI type alias for testability:
        from infrastructure.services import SettingsDep
        @router.get("/config")
        def get_config(settings: SettingsDep):
            return settings.retry.backend

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_dynamodb_client() -> DynamoDBClient:
    """Provider for the DynamoDB client shared by every DynamoDB-backed store.

    Boto3 clients are created per call by the executor, so caching this
    wrapper does not pin stale credentials.
    """
    settings = get_settings()
    session_provider = SessionProvider(
        region=settings.aws.AWS_REGION,
        endpoint_url=settings.aws.ENDPOINT_URL,
    )
    return DynamoDBClient(session_provider)


@lru_cache
def get_record_store() -> RecordStore:
    return create_record_store()


@lru_cache
def get_audit_recorder() -> AuditRecorder:
    return AuditRecorder(get_record_store())


@lru_cache
def get_idempotency_service() -> IdempotencyService:
    """
    Get application-scoped idempotency service singleton.

    Returns:
        IdempotencyService: Cache-backed service with the configured TTL.

    Usage:
        @router.post("/erp/sync")
        def sync(idempotency: IdempotencyServiceDep):
            cached = idempotency.lookup(tenant_id, key, operation="erp_sync")
    """
    settings = get_settings()
    return IdempotencyService(
        create_idempotency_cache(),
        ttl_seconds=settings.idempotency.IDEMPOTENCY_TTL_SECONDS,
    )


@lru_cache
def get_caller_authenticator() -> CallerAuthenticator:
    server = get_settings().server
    return CallerAuthenticator(
        system_key=server.SYSTEM_API_KEY,
        jwt_secret=server.JWT_SECRET,
        jwt_algorithm=server.JWT_ALGORITHM,
        jwt_audience=server.JWT_AUDIENCE,
    )


# ERP sync


@lru_cache
def get_erp_repository() -> ErpRepository:
    return ErpRepository(get_record_store())


@lru_cache
def get_sync_orchestrator() -> SyncOrchestrator:
    """
    Get application-scoped sync orchestrator singleton.

    Token refresh and ERP calls share ``settings.erp.http_timeout_seconds``.
    """
    erp = get_settings().erp
    repository = get_erp_repository()
    return SyncOrchestrator(
        repository=repository,
        tokens=TokenManager(
            repository,
            buffer_seconds=erp.token_refresh_buffer_seconds,
            timeout_seconds=erp.http_timeout_seconds,
        ),
        connector=ErpConnector(repository, timeout_seconds=erp.http_timeout_seconds),
        max_retries=erp.max_retries,
        audit=get_audit_recorder(),
    )


@lru_cache
def get_erp_sync_service() -> ErpSyncService:
    settings = get_settings()
    return ErpSyncService(
        orchestrator=get_sync_orchestrator(),
        repository=get_erp_repository(),
        idempotency=get_idempotency_service(),
        rate_limiter=TenantRateLimiter(
            settings.erp.sync_rate_limits,
            namespace="erp_sync",
            storage_uri=settings.server.RATE_LIMIT_STORAGE_URI,
        ),
    )


@lru_cache
def get_cron_sweeper() -> CronRetrySweeper:
    erp = get_settings().erp
    return CronRetrySweeper(
        repository=get_erp_repository(),
        orchestrator=get_sync_orchestrator(),
        base_delay_seconds=erp.retry_base_delay_seconds,
        attempt_timeout_seconds=erp.sweep_attempt_timeout_seconds,
    )


# Payments


@lru_cache
def get_payment_repository() -> PaymentRepository:
    return PaymentRepository(get_record_store())


@lru_cache
def get_payment_reconciler() -> PaymentReconciler:
    return PaymentReconciler(get_payment_repository())


@lru_cache
def get_gateway_registry() -> GatewayRegistry:
    return build_gateway_registry(get_settings().gateways)


@lru_cache
def get_webhook_receiver() -> WebhookReceiver:
    return WebhookReceiver(
        secret=get_settings().gateways.PAYSTACK_SECRET_KEY,
        reconciler=get_payment_reconciler(),
    )


@lru_cache
def get_verification_handler() -> VerificationHandler:
    settings = get_settings()
    return VerificationHandler(
        repository=get_payment_repository(),
        reconciler=get_payment_reconciler(),
        gateways=get_gateway_registry(),
        rate_limiter=TenantRateLimiter(
            [settings.payments.verify_rate_limit],
            namespace="payment_verify",
            storage_uri=settings.server.RATE_LIMIT_STORAGE_URI,
            fail_open=settings.payments.rate_limit_fail_open,
        ),
    )


@lru_cache
def get_payment_initiation_service() -> PaymentInitiationService:
    settings = get_settings()
    return PaymentInitiationService(
        repository=get_payment_repository(),
        gateways=get_gateway_registry(),
        rate_limiter=TenantRateLimiter(
            [settings.payments.initiate_rate_limit],
            namespace="payment_initiate",
            storage_uri=settings.server.RATE_LIMIT_STORAGE_URI,
            fail_open=settings.payments.rate_limit_fail_open,
        ),
    )


# Retry queue


@lru_cache
def get_retry_queue() -> RetryQueue:
    """
    Get application-scoped retry queue singleton.

    Returns:
        RetryQueue: Queue over the store selected by ``settings.retry.backend``.
    """
    return RetryQueue(
        create_retry_store(),
        config=RetryConfig.from_settings(get_settings().retry),
    )


@lru_cache
def get_retry_executor() -> RetryActionRouter:
    """Executor replaying queued actions through the feature services."""
    router = RetryActionRouter()
    router.register("erp.sync", make_erp_sync_handler(get_sync_orchestrator()))
    router.register(
        "payment.verify", make_payment_verify_handler(get_verification_handler())
    )
    return router
