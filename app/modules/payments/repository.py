"""Record store access for transactions, invoices and subscriptions."""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from infrastructure.persistence import DuplicateRecordError, Record, RecordStore
from modules.payments.models import (
    INVOICES_TABLE,
    SUBSCRIPTIONS_TABLE,
    TRANSACTIONS_TABLE,
    PaymentTransaction,
    TransactionStatus,
)


TRANSACTION_ID_NAMESPACE = uuid.UUID("6f1c2b8e-3d4a-4c1e-9b7f-2a5d8e0c4f13")


def transaction_id_for(reference: str) -> str:
    return str(uuid.uuid5(TRANSACTION_ID_NAMESPACE, reference))


class PaymentRepository:
    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def get_transaction(self, reference: str) -> Optional[PaymentTransaction]:
        record = self.store.find_one(TRANSACTIONS_TABLE, transaction_reference=reference)
        return PaymentTransaction.model_validate(record) if record else None

    def insert_transaction(self, values: Dict[str, Any]) -> PaymentTransaction:
        """Insert a pending transaction.

        Raises:
            DuplicateRecordError: The reference is already recorded
        """
        reference = values["transaction_reference"]
        if self.get_transaction(reference) is not None:
            raise DuplicateRecordError(f"{TRANSACTIONS_TABLE}/{reference} already exists")
        # Id derived from the reference: concurrent inserts collide in the store
        values = {"id": transaction_id_for(reference), **values}
        return PaymentTransaction.model_validate(
            self.store.insert(TRANSACTIONS_TABLE, values)
        )

    def update_gateway_response(
        self, transaction_id: str, gateway_payload: Dict[str, Any]
    ) -> bool:
        """Store the checkout response while the transaction is still pending."""
        return self.store.update(
            TRANSACTIONS_TABLE,
            transaction_id,
            {"gateway_response": gateway_payload},
            where={"status": TransactionStatus.PENDING.value},
        )

    def mark_success(
        self, transaction_id: str, gateway_payload: Dict[str, Any], paid_at: datetime
    ) -> bool:
        """Compare-and-swap ``pending -> success``; False if already terminal."""
        return self.store.update(
            TRANSACTIONS_TABLE,
            transaction_id,
            {
                "status": TransactionStatus.SUCCESS.value,
                "paid_at": paid_at.isoformat(),
                "gateway_response": gateway_payload,
            },
            where={"status": TransactionStatus.PENDING.value},
        )

    def mark_failed(self, transaction_id: str, gateway_payload: Dict[str, Any]) -> bool:
        """Compare-and-swap ``pending -> failed``; False if already terminal."""
        return self.store.update(
            TRANSACTIONS_TABLE,
            transaction_id,
            {
                "status": TransactionStatus.FAILED.value,
                "gateway_response": gateway_payload,
            },
            where={"status": TransactionStatus.PENDING.value},
        )

    def link_subscription(self, transaction_id: str, subscription_id: str) -> None:
        self.store.update(
            TRANSACTIONS_TABLE, transaction_id, {"subscription_id": subscription_id}
        )

    def mark_invoice_paid(self, invoice_id: str, paid_at: datetime) -> bool:
        return self.store.update(
            INVOICES_TABLE,
            invoice_id,
            {
                "status": "paid",
                "paid_date": paid_at.isoformat(),
                "updated_at": paid_at.isoformat(),
            },
        )

    def find_subscription(self, tenant_id: str) -> Optional[Record]:
        return self.store.find_one(SUBSCRIPTIONS_TABLE, tenant_id=tenant_id)

    def insert_subscription(self, values: Dict[str, Any]) -> Record:
        return self.store.insert(SUBSCRIPTIONS_TABLE, values)

    def update_subscription(self, subscription_id: str, changes: Dict[str, Any]) -> bool:
        return self.store.update(SUBSCRIPTIONS_TABLE, subscription_id, changes)
