"""Retry queue handler for the ``payment.verify`` action."""

from typing import Any, Dict

from infrastructure.resilience.retry.exceptions import NonRetryableActionError
from infrastructure.resilience.retry.router import ActionHandler
from modules.payments.errors import (
    GatewayError,
    TransactionNotFoundError,
    UnsupportedGatewayError,
)
from modules.payments.models import TransactionStatus
from modules.payments.verification import VerificationHandler


class PaymentStillPendingError(Exception):
    """The gateway has not settled the payment yet."""


def make_payment_verify_handler(handler: VerificationHandler) -> ActionHandler:
    """Build the handler re-verifying a payment as the system principal.

    A gateway still reporting ``pending`` counts as a failed attempt so the
    item is retried with backoff.
    """

    async def handle(payload: Dict[str, Any]) -> None:
        try:
            result = await handler.verify(payload["reference"], payload["gateway_type"])
        except (TransactionNotFoundError, UnsupportedGatewayError) as e:
            raise NonRetryableActionError(str(e)) from e
        except GatewayError as e:
            if not e.retryable:
                raise NonRetryableActionError(str(e)) from e
            raise

        if result["status"] == TransactionStatus.PENDING.value:
            raise PaymentStillPendingError(
                f"Payment {payload['reference']} is still pending"
            )

    return handle
