"""Payment gateway clients.

Each client starts checkouts and asks its gateway whether a reference was
paid, normalizing the answer to a GatewayVerification. Gateway payloads are
kept opaque apart from the status field.

Only statuses a gateway documents as final map to ``failed``. Anything else
(``ongoing``, ``queued``, ``processing``...) is still in flight and maps to
``pending`` so a client polling right after the redirect cannot fail a
payment the customer is about to complete.
"""

from typing import Any, Dict, Mapping, Optional, Protocol
from urllib.parse import quote

import httpx

from infrastructure.logging import get_module_logger
from infrastructure.operations.classifiers import classify_http_error
from modules.payments.errors import GatewayError, UnsupportedGatewayError
from modules.payments.models import (
    GatewayType,
    GatewayVerification,
    InitiatePaymentRequest,
    TransactionStatus,
)

logger = get_module_logger()

PAYSTACK_FAILED_STATUSES = frozenset({"failed", "abandoned", "reversed"})
FLUTTERWAVE_FAILED_STATUSES = frozenset({"failed", "cancelled"})


def normalize_status(
    status: Any, succeeded: frozenset, failed: frozenset
) -> TransactionStatus:
    status = str(status or "").lower()
    if status in succeeded:
        return TransactionStatus.SUCCESS
    if status in failed:
        return TransactionStatus.FAILED
    return TransactionStatus.PENDING


class GatewayClient(Protocol):
    async def initialize(self, request: InitiatePaymentRequest) -> Dict[str, Any]:
        ...

    async def verify(self, reference: str) -> GatewayVerification:
        ...


class _HttpGateway:
    name = "gateway"

    def __init__(
        self,
        secret_key: Optional[str],
        base_url: str,
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        if not self.secret_key:
            raise GatewayError(f"{self.name} is not configured", retryable=False)
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method,
                    path,
                    headers={"Authorization": f"Bearer {self.secret_key}"},
                    **kwargs,
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as e:
            result = classify_http_error(e)
            logger.warning(
                "gateway_request_failed",
                gateway=self.name,
                method=method,
                error_code=result.error_code,
                error=result.message,
            )
            raise GatewayError(
                f"{self.name} request failed", retryable=result.is_retryable
            ) from e
        except ValueError as e:
            raise GatewayError(f"{self.name} returned invalid JSON") from e


class PaystackGateway(_HttpGateway):
    """Paystack: ``POST /transaction/initialize`` and
    ``GET /transaction/verify/{reference}``."""

    name = "paystack"

    async def initialize(self, request: InitiatePaymentRequest) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/transaction/initialize",
            json={
                "email": request.email,
                # Amounts are sent in the currency's minor unit (kobo)
                "amount": int(round(request.amount * 100)),
                "reference": request.reference,
                "currency": request.currency,
                "metadata": request.metadata,
            },
        )

    async def verify(self, reference: str) -> GatewayVerification:
        body = await self._request("GET", f"/transaction/verify/{quote(reference, safe='')}")
        data = body.get("data") or {}
        status = normalize_status(
            data.get("status"), frozenset({"success"}), PAYSTACK_FAILED_STATUSES
        )
        return GatewayVerification(status=status, data=body)


class FlutterwaveGateway(_HttpGateway):
    """Flutterwave: ``POST /v3/payments`` and
    ``GET /v3/transactions/verify_by_reference?tx_ref=...``."""

    name = "flutterwave"

    async def initialize(self, request: InitiatePaymentRequest) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/v3/payments",
            json={
                "tx_ref": request.reference,
                "amount": request.amount,
                "currency": request.currency,
                "redirect_url": request.metadata.get("redirect_url"),
                "customer": {"email": request.email},
                "meta": request.metadata,
            },
        )

    async def verify(self, reference: str) -> GatewayVerification:
        body = await self._request(
            "GET", "/v3/transactions/verify_by_reference", params={"tx_ref": reference}
        )
        data = body.get("data") or {}
        status = normalize_status(
            data.get("status"),
            frozenset({"successful", "success"}),
            FLUTTERWAVE_FAILED_STATUSES,
        )
        return GatewayVerification(status=status, data=body)


class InterswitchGateway:
    """Not automated yet: checkouts stay pending and verification reports pending."""

    name = "interswitch"

    async def initialize(self, request: InitiatePaymentRequest) -> Dict[str, Any]:
        return {
            "status": "pending",
            "message": "Interswitch integration in progress",
            "reference": request.reference,
        }

    async def verify(self, reference: str) -> GatewayVerification:
        return GatewayVerification(
            status=TransactionStatus.PENDING,
            data={
                "status": "pending",
                "message": "Interswitch verification in progress",
            },
        )


class GatewayRegistry:
    def __init__(self, gateways: Mapping[str, GatewayClient]) -> None:
        self._gateways = dict(gateways)

    def get(self, gateway_type: str) -> GatewayClient:
        """Raises UnsupportedGatewayError for an unknown gateway type."""
        gateway = self._gateways.get(gateway_type)
        if gateway is None:
            raise UnsupportedGatewayError(gateway_type)
        return gateway


def build_gateway_registry(
    gateway_settings, transport: Optional[httpx.AsyncBaseTransport] = None
) -> GatewayRegistry:
    timeout = gateway_settings.GATEWAY_TIMEOUT_SECONDS
    return GatewayRegistry(
        {
            GatewayType.PAYSTACK.value: PaystackGateway(
                gateway_settings.PAYSTACK_SECRET_KEY,
                gateway_settings.PAYSTACK_BASE_URL,
                timeout,
                transport,
            ),
            GatewayType.FLUTTERWAVE.value: FlutterwaveGateway(
                gateway_settings.FLUTTERWAVE_SECRET_KEY,
                gateway_settings.FLUTTERWAVE_BASE_URL,
                timeout,
                transport,
            ),
            GatewayType.INTERSWITCH.value: InterswitchGateway(),
        }
    )
