"""Payment domain models."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, Optional

import arrow
from pydantic import BaseModel, ConfigDict, Field

TRANSACTIONS_TABLE = "payment_transactions"
INVOICES_TABLE = "invoices"
SUBSCRIPTIONS_TABLE = "tenant_subscriptions"

# Stored at initiation and kept when gateway bodies are written back
PRESERVED_RESPONSE_KEYS = ("subscription_metadata", "invoice_id")


class TransactionStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class GatewayType(str, Enum):
    PAYSTACK = "paystack"
    FLUTTERWAVE = "flutterwave"
    INTERSWITCH = "interswitch"


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"

    @classmethod
    def parse(cls, value: Optional[str]) -> "BillingCycle":
        """Anything other than an annual cycle bills monthly."""
        if value in ("annual", "yearly"):
            return cls.ANNUAL
        return cls.MONTHLY

    def period_end(self, start: datetime) -> datetime:
        shifted = arrow.get(start)
        if self is BillingCycle.ANNUAL:
            return shifted.shift(years=1).datetime
        return shifted.shift(months=1).datetime


class SubscriptionMetadata(BaseModel):
    """Subscription activation details stored with a pending transaction."""

    model_config = ConfigDict(extra="allow")

    tenant_id: Optional[str] = None
    plan_id: Optional[str] = None
    billing_cycle: Optional[str] = None
    subscription_type: Optional[str] = None


class PaymentTransaction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    transaction_reference: str
    status: TransactionStatus = TransactionStatus.PENDING
    tenant_id: Optional[str] = None
    invoice_id: Optional[str] = None
    gateway_type: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    paid_at: Optional[datetime] = None
    subscription_id: Optional[str] = None
    gateway_response: Dict[str, Any] = Field(default_factory=dict)

    @property
    def linked_invoice_id(self) -> Optional[str]:
        return self.invoice_id or self.gateway_response.get("invoice_id")

    @property
    def subscription_metadata(self) -> Optional[SubscriptionMetadata]:
        metadata = self.gateway_response.get("subscription_metadata")
        if not isinstance(metadata, dict):
            return None
        return SubscriptionMetadata.model_validate(metadata)

    def merge_gateway_response(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """``payload`` plus the initiation keys already stored on this transaction."""
        merged = dict(payload)
        for key in PRESERVED_RESPONSE_KEYS:
            if key in self.gateway_response:
                merged[key] = self.gateway_response[key]
        return merged


class VerifyPaymentRequest(BaseModel):
    """Schema for re-confirming a payment with its gateway."""

    reference: Annotated[
        str,
        Field(
            ...,
            min_length=1,
            description="Transaction reference",
            json_schema_extra={"example": "PF-1700000000-abc"},
        ),
    ]
    gateway_type: Annotated[
        str,
        Field(
            ...,
            description="Gateway that processed the payment",
            json_schema_extra={"example": "paystack"},
        ),
    ]


class GatewayVerification(BaseModel):
    """Normalized gateway answer for a transaction reference."""

    status: TransactionStatus
    data: Dict[str, Any] = Field(default_factory=dict)


class InitiatePaymentRequest(BaseModel):
    """Schema for starting a checkout with a gateway.

    ``metadata`` is forwarded to the gateway. A ``plan_id`` in it marks a
    subscription payment and an ``invoice_id`` links the invoice it settles.
    """

    amount: Annotated[float, Field(..., gt=0, json_schema_extra={"example": 5000})]
    currency: Annotated[str, Field(default="NGN", min_length=3, max_length=3)]
    email: Annotated[str, Field(..., min_length=3, json_schema_extra={"example": "ops@example.com"})]
    reference: Annotated[
        str,
        Field(
            ...,
            min_length=1,
            max_length=128,
            description="Client-generated reference; the idempotency key of the payment",
            json_schema_extra={"example": "PF-1700000000-abc"},
        ),
    ]
    gateway_type: GatewayType
    metadata: Dict[str, Any] = Field(default_factory=dict)
