"""Payment initiation: record a pending transaction and open a gateway checkout.

The transaction is inserted before the gateway is called, so a webhook for
the reference can never arrive ahead of the row it settles. The reference
is the idempotency key: a second checkout with the same reference is
rejected instead of charging twice.
"""

from typing import Any, Dict, Optional

from infrastructure.logging import get_module_logger
from infrastructure.persistence import DuplicateRecordError
from infrastructure.resilience.rate_limit import TenantRateLimiter
from infrastructure.security import Principal
from modules.payments.errors import (
    DuplicateTransactionError,
    GatewayError,
    PaymentError,
    PaymentRateLimitedError,
)
from modules.payments.gateways import GatewayRegistry
from modules.payments.models import (
    InitiatePaymentRequest,
    TransactionStatus,
)
from modules.payments.repository import PaymentRepository

logger = get_module_logger()

SUBSCRIPTION_MARKERS = ("plan_id", "subscription_type")


class PaymentInitiationService:
    """Starts checkouts for a tenant.

    Attributes:
        repository: PaymentRepository storing the pending transaction
        gateways: GatewayRegistry resolving ``gateway_type``
        rate_limiter: Per-tenant limiter checked before anything is written
    """

    def __init__(
        self,
        repository: PaymentRepository,
        gateways: GatewayRegistry,
        rate_limiter: TenantRateLimiter,
    ) -> None:
        self.repository = repository
        self.gateways = gateways
        self.rate_limiter = rate_limiter

    async def initiate(
        self,
        request: InitiatePaymentRequest,
        principal: Optional[Principal] = None,
    ) -> Dict[str, Any]:
        """Open a checkout and return ``{"reference", "status", "data"}``.

        ``data`` is the gateway's checkout response (authorization URL or
        payment link). System callers are not rate limited and name the
        tenant in ``metadata.tenant_id``.

        Raises:
            PaymentRateLimitedError: Tenant exceeded its initiation limit
            PaymentError: No tenant could be resolved
            UnsupportedGatewayError: Unknown gateway type
            DuplicateTransactionError: The reference was already used
            GatewayError: The gateway refused or could not be reached
        """
        principal = principal or Principal.system()
        log = logger.bind(
            reference=request.reference, gateway_type=request.gateway_type.value
        )

        tenant_id = (
            request.metadata.get("tenant_id") if principal.is_system else principal.tenant_id
        )
        if not tenant_id:
            log.warning("payment_initiation_without_tenant")
            raise PaymentError("No tenant found")

        if not principal.is_system:
            decision = self.rate_limiter.hit(tenant_id)
            if not decision.allowed:
                log.warning("payment_initiation_rate_limited", tenant_id=tenant_id)
                raise PaymentRateLimitedError(decision.retry_after)

        gateway = self.gateways.get(request.gateway_type.value)

        try:
            transaction = self.repository.insert_transaction(
                self._transaction_values(request, tenant_id)
            )
        except DuplicateRecordError as e:
            log.warning("payment_initiation_duplicate_reference")
            raise DuplicateTransactionError(request.reference) from e

        try:
            body = await gateway.initialize(request)
        except GatewayError as e:
            self.repository.mark_failed(
                transaction.id,
                transaction.merge_gateway_response({"error": str(e)}),
            )
            log.error("payment_initiation_gateway_failed", error=str(e))
            raise

        self.repository.update_gateway_response(
            transaction.id, transaction.merge_gateway_response(body)
        )
        log.info("payment_initiated", tenant_id=tenant_id, transaction_id=transaction.id)
        return {
            "reference": request.reference,
            "status": TransactionStatus.PENDING.value,
            "data": body,
        }

    def _transaction_values(
        self, request: InitiatePaymentRequest, tenant_id: str
    ) -> Dict[str, Any]:
        metadata = request.metadata
        gateway_response: Dict[str, Any] = {}
        if any(metadata.get(key) for key in SUBSCRIPTION_MARKERS):
            # Activation always targets the paying tenant
            gateway_response["subscription_metadata"] = {**metadata, "tenant_id": tenant_id}
        invoice_id = metadata.get("invoice_id")
        if invoice_id:
            gateway_response["invoice_id"] = invoice_id

        return {
            "transaction_reference": request.reference,
            "status": TransactionStatus.PENDING.value,
            "tenant_id": tenant_id,
            "invoice_id": invoice_id,
            "gateway_type": request.gateway_type.value,
            "amount": request.amount,
            "currency": request.currency,
            "gateway_response": gateway_response,
        }
