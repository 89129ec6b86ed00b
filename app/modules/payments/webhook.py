"""Paystack webhook receiver.

The signature is checked over the raw body before it is parsed or any
state is read. Once a sender is authenticated it always gets a 200: a
processing failure is logged and reported with ``processing_error`` so the
gateway does not redeliver the event in a loop.
"""

import json
from typing import Any, Dict, Optional

from infrastructure.logging import get_module_logger
from infrastructure.security import verify_signature
from modules.payments.errors import InvalidSignatureError, InvalidWebhookPayloadError
from modules.payments.reconciliation import PaymentReconciler

logger = get_module_logger()

SIGNATURE_HEADER = "x-paystack-signature"


class WebhookReceiver:
    """Authenticates and dispatches gateway webhook events.

    Args:
        secret: Shared secret the gateway signs with. None rejects everything.
        reconciler: PaymentReconciler applying ``charge.success``
    """

    def __init__(self, secret: Optional[str], reconciler: PaymentReconciler) -> None:
        self.secret = secret
        self.reconciler = reconciler

    def handle(self, raw_body: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Process one delivery and return the acknowledgment body.

        Raises:
            InvalidSignatureError: Missing or invalid signature (401)
            InvalidWebhookPayloadError: Body is not a JSON object (400)
        """
        if not signature:
            logger.warning("webhook_signature_missing")
            raise InvalidSignatureError("Missing signature")

        if not self.secret:
            logger.error("webhook_secret_not_configured")
            raise InvalidSignatureError("Invalid signature")

        if not verify_signature(self.secret, raw_body, signature):
            logger.warning("webhook_signature_invalid")
            raise InvalidSignatureError("Invalid signature")

        try:
            event = json.loads(raw_body)
        except ValueError as e:
            raise InvalidWebhookPayloadError("Invalid JSON") from e
        if not isinstance(event, dict):
            raise InvalidWebhookPayloadError("Invalid JSON")

        event_type = event.get("event")
        data = event.get("data") or {}
        logger.info("webhook_event_received", event_type=event_type)

        try:
            self._dispatch(event_type, data)
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "webhook_processing_failed",
                event_type=event_type,
                error=str(e),
                exc_info=True,
            )
            return {"received": True, "processing_error": True}

        return {"received": True}

    def _dispatch(self, event_type: Optional[str], data: Dict[str, Any]) -> None:
        if event_type == "charge.success":
            self._charge_success(data)
        elif event_type == "subscription.create":
            plan = data.get("plan") if isinstance(data.get("plan"), dict) else {}
            logger.info(
                "webhook_subscription_created",
                plan_code=plan.get("plan_code") or data.get("plan_code"),
            )
        else:
            logger.info("webhook_event_ignored", event_type=event_type)

    def _charge_success(self, data: Dict[str, Any]) -> None:
        reference = data.get("reference")
        if not reference:
            logger.error("webhook_charge_missing_reference")
            return
        result = self.reconciler.apply_success(reference, data, source="webhook")
        logger.info(
            "webhook_charge_processed", reference=reference, result=result.value
        )
