"""Idempotent payment reconciliation.

Both the webhook receiver and the verification handler settle payments
through PaymentReconciler, and may do so concurrently for the same
reference. A transaction leaves ``pending`` exactly once: both terminal
transitions are conditional updates guarded by ``status == pending``, so
only the caller whose update lands applies the side effects (invoice paid,
subscription activated). Everyone else sees the transaction as already
processed and does nothing. A success reported for a transaction already
``failed`` is not applied; it is logged for manual reconciliation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from infrastructure.logging import get_module_logger
from modules.payments.models import (
    BillingCycle,
    PaymentTransaction,
    SubscriptionMetadata,
    TransactionStatus,
)
from modules.payments.repository import PaymentRepository

logger = get_module_logger()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReconciliationResult(str, Enum):
    APPLIED = "applied"
    ALREADY_PROCESSED = "already_processed"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


class PaymentReconciler:
    """Applies terminal payment outcomes exactly once."""

    def __init__(
        self,
        repository: PaymentRepository,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.repository = repository
        self._clock = clock

    def apply_success(
        self,
        reference: str,
        gateway_payload: Dict[str, Any],
        source: str = "unknown",
    ) -> ReconciliationResult:
        """Settle ``reference`` as paid.

        Args:
            reference: Transaction reference (the idempotency key)
            gateway_payload: Raw gateway data stored on the transaction
            source: Caller name for logs (webhook, verification)
        """
        log = logger.bind(reference=reference, source=source)

        transaction = self.repository.get_transaction(reference)
        if transaction is None:
            log.warning("payment_transaction_not_found")
            return ReconciliationResult.NOT_FOUND

        if transaction.status == TransactionStatus.SUCCESS:
            log.info("payment_already_processed", transaction_id=transaction.id)
            return ReconciliationResult.ALREADY_PROCESSED

        if transaction.status == TransactionStatus.FAILED:
            log.error("payment_success_after_failure", transaction_id=transaction.id)
            return ReconciliationResult.CONFLICT

        now = self._clock()
        stored_payload = transaction.merge_gateway_response(gateway_payload)
        if not self.repository.mark_success(transaction.id, stored_payload, now):
            log.info("payment_success_race_lost", transaction_id=transaction.id)
            return ReconciliationResult.ALREADY_PROCESSED

        # Side effects read the metadata stored before this update
        invoice_id = transaction.linked_invoice_id
        if invoice_id:
            if self.repository.mark_invoice_paid(invoice_id, now):
                log.info("invoice_marked_paid", invoice_id=invoice_id)
            else:
                log.warning("invoice_not_found", invoice_id=invoice_id)

        metadata = transaction.subscription_metadata
        if metadata is not None and metadata.plan_id:
            self._activate_subscription(transaction, metadata, now)

        log.info("payment_reconciled", transaction_id=transaction.id)
        return ReconciliationResult.APPLIED

    def apply_failure(self, reference: str, gateway_payload: Dict[str, Any]) -> bool:
        """Mark a pending transaction failed. Terminal states are never overwritten."""
        transaction = self.repository.get_transaction(reference)
        if transaction is None:
            logger.warning("payment_transaction_not_found", reference=reference)
            return False

        updated = self.repository.mark_failed(
            transaction.id, transaction.merge_gateway_response(gateway_payload)
        )
        logger.info(
            "payment_marked_failed" if updated else "payment_failure_ignored",
            reference=reference,
            status=transaction.status.value,
        )
        return updated

    def _activate_subscription(
        self,
        transaction: PaymentTransaction,
        metadata: SubscriptionMetadata,
        now: datetime,
    ) -> Optional[str]:
        tenant_id = metadata.tenant_id or transaction.tenant_id
        if not tenant_id:
            logger.warning(
                "subscription_activation_skipped",
                reason="missing_tenant",
                transaction_id=transaction.id,
            )
            return None

        cycle = BillingCycle.parse(metadata.billing_cycle)
        values = {
            "plan_id": metadata.plan_id,
            "status": "active",
            "billing_cycle": cycle.value,
            "current_period_start": now.isoformat(),
            "current_period_end": cycle.period_end(now).isoformat(),
            "updated_at": now.isoformat(),
        }

        existing = self.repository.find_subscription(tenant_id)
        if existing:
            subscription_id = existing["id"]
            self.repository.update_subscription(subscription_id, values)
            logger.info(
                "subscription_extended",
                tenant_id=tenant_id,
                subscription_id=subscription_id,
                billing_cycle=cycle.value,
            )
        else:
            created = self.repository.insert_subscription({"tenant_id": tenant_id, **values})
            subscription_id = created["id"]
            logger.info(
                "subscription_created",
                tenant_id=tenant_id,
                subscription_id=subscription_id,
                billing_cycle=cycle.value,
            )

        self.repository.link_subscription(transaction.id, subscription_id)
        return subscription_id
