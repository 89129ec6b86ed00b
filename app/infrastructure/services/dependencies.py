"""
Type aliases for FastAPI dependency injection.

Provides annotated type hints for common infrastructure and feature dependencies.
"""

from typing import Annotated
from fastapi import Depends
from infrastructure.configuration import Settings
from infrastructure.idempotency import IdempotencyService
from infrastructure.persistence import RecordStore
from infrastructure.resilience.retry import RetryActionRouter, RetryQueue
from infrastructure.security import CallerAuthenticator
from modules.erp.service import ErpSyncService
from modules.erp.sweeper import CronRetrySweeper
from modules.payments.initiation import PaymentInitiationService
from modules.payments.verification import VerificationHandler
from modules.payments.webhook import WebhookReceiver
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

# Settings dependency
SettingsDep = Annotated[Settings, Depends(get_settings)]

# Record store backing the feature tables
RecordStoreDep = Annotated[RecordStore, Depends(get_record_store)]

IdempotencyServiceDep = Annotated[IdempotencyService, Depends(get_idempotency_service)]

CallerAuthenticatorDep = Annotated[
    CallerAuthenticator, Depends(get_caller_authenticator)
]

# ERP sync
ErpSyncServiceDep = Annotated[ErpSyncService, Depends(get_erp_sync_service)]
CronSweeperDep = Annotated[CronRetrySweeper, Depends(get_cron_sweeper)]

# Payments
WebhookReceiverDep = Annotated[WebhookReceiver, Depends(get_webhook_receiver)]
VerificationHandlerDep = Annotated[
    VerificationHandler, Depends(get_verification_handler)
]
PaymentInitiationServiceDep = Annotated[
    PaymentInitiationService, Depends(get_payment_initiation_service)
]

# Retry queue and the executor replaying its items
RetryQueueDep = Annotated[RetryQueue, Depends(get_retry_queue)]
RetryExecutorDep = Annotated[RetryActionRouter, Depends(get_retry_executor)]

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
]
