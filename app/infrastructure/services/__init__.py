"""
Dependency injection services.

Provides type aliases and provider functions for FastAPI dependency injection.
"""

from infrastructure.services.dependencies import (
    SettingsDep,
    RecordStoreDep,
    IdempotencyServiceDep,
    CallerAuthenticatorDep,
    ErpSyncServiceDep,
    CronSweeperDep,
    WebhookReceiverDep,
    VerificationHandlerDep,
    PaymentInitiationServiceDep,
    RetryQueueDep,
    RetryExecutorDep,
)
from infrastructure.services.providers import (
    get_settings,
    get_record_store,
    get_idempotency_service,
    get_caller_authenticator,
    get_erp_sync_service,
    get_cron_sweeper,
    get_webhook_receiver,
    get_verification_handler,
    get_payment_initiation_service,
    get_retry_queue,
    get_retry_executor,
)

__all__ = [
    "SettingsDep",
    "RecordStoreDep",
    "IdempotencyServiceDep",
    "CallerAuthenticatorDep",
    "ErpSyncServiceDep",
    "CronSweeperDep",
    "WebhookReceiverDep",
    "VerificationHandlerDep",
    "PaymentInitiationServiceDep",
    "RetryQueueDep",
    "RetryExecutorDep",
    "get_settings",
    "get_record_store",
    "get_idempotency_service",
    "get_caller_authenticator",
    "get_erp_sync_service",
    "get_cron_sweeper",
    "get_webhook_receiver",
    "get_verification_handler",
    "get_payment_initiation_service",
    "get_retry_queue",
    "get_retry_executor",
]
