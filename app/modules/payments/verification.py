"""Payment verification after a redirect-based checkout.

The client calls this after returning from the gateway. The tenant's
rolling-window limit is checked before the gateway is contacted. A paid
answer settles the payment through the same reconciler as the webhook; an
unpaid answer marks the transaction failed only if it is still pending.
"""

from typing import Any, Dict, Optional

from infrastructure.logging import get_module_logger
from infrastructure.resilience.rate_limit import TenantRateLimiter
from infrastructure.security import Principal
from modules.payments.errors import PaymentRateLimitedError, TransactionNotFoundError
from modules.payments.gateways import GatewayRegistry
from modules.payments.models import TransactionStatus
from modules.payments.reconciliation import PaymentReconciler
from modules.payments.repository import PaymentRepository

logger = get_module_logger()


class VerificationHandler:
    """Re-confirms a transaction with its gateway.

    Attributes:
        repository: PaymentRepository to find the transaction
        reconciler: PaymentReconciler applying the outcome
        gateways: GatewayRegistry resolving ``gateway_type``
        rate_limiter: Per-tenant limiter checked before each gateway call
    """

    def __init__(
        self,
        repository: PaymentRepository,
        reconciler: PaymentReconciler,
        gateways: GatewayRegistry,
        rate_limiter: TenantRateLimiter,
    ) -> None:
        self.repository = repository
        self.reconciler = reconciler
        self.gateways = gateways
        self.rate_limiter = rate_limiter

    async def verify(
        self,
        reference: str,
        gateway_type: str,
        principal: Optional[Principal] = None,
    ) -> Dict[str, Any]:
        """Verify ``reference`` and return ``{"status": ..., "data": ...}``.

        System callers are not rate limited.

        Raises:
            PaymentRateLimitedError: Tenant exceeded its verification limit
            TransactionNotFoundError: Unknown reference, or another tenant's
            UnsupportedGatewayError: Unknown gateway type
            GatewayError: The gateway could not be reached
        """
        principal = principal or Principal.system()
        log = logger.bind(reference=reference, gateway_type=gateway_type)

        if not principal.is_system:
            rate_key = principal.tenant_id or f"user:{principal.user_id}"
            decision = self.rate_limiter.hit(rate_key)
            if not decision.allowed:
                log.warning("payment_verification_rate_limited", tenant_id=rate_key)
                raise PaymentRateLimitedError(decision.retry_after)

        transaction = self.repository.get_transaction(reference)
        if transaction is None or not principal.can_access_tenant(transaction.tenant_id):
            log.warning("payment_verification_transaction_not_found")
            raise TransactionNotFoundError(reference)

        gateway = self.gateways.get(gateway_type)
        verification = await gateway.verify(reference)
        log.info("payment_gateway_verified", status=verification.status.value)

        if verification.status == TransactionStatus.SUCCESS:
            result = self.reconciler.apply_success(
                reference, verification.data, source="verification"
            )
            log.info("payment_verification_reconciled", result=result.value)
        elif verification.status == TransactionStatus.FAILED:
            self.reconciler.apply_failure(reference, verification.data)

        return {"status": verification.status.value, "data": verification.data}
