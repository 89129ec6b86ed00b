"""Payment reconciliation: gateway webhooks and client-triggered verification."""

from modules.payments.reconciliation import PaymentReconciler, ReconciliationResult
from modules.payments.verification import VerificationHandler
from modules.payments.webhook import WebhookReceiver

__all__ = [
    "PaymentReconciler",
    "ReconciliationResult",
    "VerificationHandler",
    "WebhookReceiver",
]
