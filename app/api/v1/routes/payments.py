from typing import Optional

from fastapi import APIRouter, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from api.dependencies.auth import PrincipalDep
from infrastructure.logging import bind_request_context, get_module_logger
from infrastructure.services import (
    PaymentInitiationServiceDep,
    VerificationHandlerDep,
    WebhookReceiverDep,
)
from modules.payments.errors import (
    GatewayError,
    PaymentError,
    PaymentRateLimitedError,
)
from modules.payments.models import InitiatePaymentRequest, VerifyPaymentRequest

logger = get_module_logger()
router = APIRouter(prefix="/payments", tags=["Payments"])

# Served without CORS headers; see server.middleware.
WEBHOOK_PATH = "/payments/webhook"


def payment_error_response(error: PaymentError) -> JSONResponse:
    headers = None
    if isinstance(error, PaymentRateLimitedError):
        headers = {"Retry-After": str(error.retry_after)}
    message = "Payment gateway unavailable" if isinstance(error, GatewayError) else str(error)
    return JSONResponse(
        status_code=error.status_code,
        content={"error": message},
        headers=headers,
    )


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    receiver: WebhookReceiverDep,
    signature: Optional[str] = Header(default=None, alias="x-paystack-signature"),
):
    """Receive a signed gateway event.

    The signature is verified over the exact bytes received, so the body is
    read raw and never re-serialized before the check.
    """
    raw_body = await request.body()
    with bind_request_context(request_path=request.url.path, request_method="POST"):
        try:
            return await run_in_threadpool(receiver.handle, raw_body, signature)
        except PaymentError as e:
            return JSONResponse(status_code=e.status_code, content={"error": str(e)})


@router.post("/initiate")
async def initiate_payment(
    payload: InitiatePaymentRequest,
    principal: PrincipalDep,
    service: PaymentInitiationServiceDep,
):
    """Record a pending transaction and open a checkout with its gateway."""
    with bind_request_context(tenant_id=principal.tenant_id, user_id=principal.user_id):
        try:
            return await service.initiate(payload, principal=principal)
        except PaymentError as e:
            logger.warning(
                "payment_initiation_rejected",
                reference=payload.reference,
                status_code=e.status_code,
                error=str(e),
            )
            return payment_error_response(e)
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "payment_initiation_failed",
                reference=payload.reference,
                error=str(e),
                exc_info=True,
            )
            return JSONResponse(status_code=500, content={"error": "Payment initiation failed"})


@router.post("/verify")
async def verify_payment(
    payload: VerifyPaymentRequest,
    principal: PrincipalDep,
    handler: VerificationHandlerDep,
):
    """Re-confirm a payment with its gateway after checkout redirect."""
    with bind_request_context(tenant_id=principal.tenant_id, user_id=principal.user_id):
        try:
            return await handler.verify(
                payload.reference, payload.gateway_type, principal=principal
            )
        except PaymentError as e:
            logger.warning(
                "payment_verification_rejected",
                reference=payload.reference,
                status_code=e.status_code,
                error=str(e),
            )
            return payment_error_response(e)
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "payment_verification_failed",
                reference=payload.reference,
                error=str(e),
                exc_info=True,
            )
            return JSONResponse(status_code=500, content={"error": "Verification failed"})
