"""ERP OAuth token refresh."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx

from infrastructure.logging import get_module_logger
from infrastructure.operations.classifiers import classify_http_error
from modules.erp.errors import TokenRefreshError
from modules.erp.models import Integration
from modules.erp.repository import ErpRepository

logger = get_module_logger()

DEFAULT_EXPIRES_IN = 3600


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenManager:
    """Keeps an integration's access token valid.

    A token expiring within ``buffer_seconds`` is refreshed with an OAuth
    ``refresh_token`` grant against the integration's ``token_url`` (default
    ``{api_base_url}/oauth/token``) and the new tokens are persisted.
    Integrations without an expiry are treated as holding a valid token.
    """

    def __init__(
        self,
        repository: ErpRepository,
        buffer_seconds: int = 300,
        timeout_seconds: float = 15.0,
        clock: Callable[[], datetime] = utc_now,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.repository = repository
        self.buffer = timedelta(seconds=buffer_seconds)
        self.timeout_seconds = timeout_seconds
        self._clock = clock
        self._transport = transport

    def needs_refresh(self, integration: Integration) -> bool:
        expires_at = integration.token_expires_at
        if expires_at is None:
            return False
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return self._clock() + self.buffer >= expires_at

    async def ensure_valid(self, integration: Integration) -> Integration:
        """Return ``integration`` with a usable access token.

        Raises:
            TokenRefreshError: If the refresh is impossible or rejected
        """
        if not self.needs_refresh(integration):
            return integration

        logger.info(
            "erp_token_refresh_started",
            integration_id=integration.id,
            erp_type=integration.erp_type,
        )
        return await self.refresh(integration)

    async def refresh(self, integration: Integration) -> Integration:
        if not integration.refresh_token:
            raise TokenRefreshError("Token validation failed: no refresh token available")

        token_url = integration.token_url or (
            f"{integration.api_base_url.rstrip('/')}/oauth/token"
        )
        form = {
            "grant_type": "refresh_token",
            "refresh_token": integration.refresh_token,
        }
        if integration.client_id:
            form["client_id"] = integration.client_id
        if integration.client_secret:
            form["client_secret"] = integration.client_secret

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    token_url,
                    data=form,
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            result = classify_http_error(e)
            logger.error(
                "erp_token_refresh_failed",
                integration_id=integration.id,
                error_code=result.error_code,
                error=result.message,
            )
            raise TokenRefreshError("Token validation failed: token refresh failed") from e
        except ValueError as e:
            logger.error(
                "erp_token_refresh_invalid_response",
                integration_id=integration.id,
                error=str(e),
            )
            raise TokenRefreshError("Token validation failed: token refresh failed") from e

        access_token = data.get("access_token")
        if not access_token:
            raise TokenRefreshError("Token validation failed: token refresh failed")

        refresh_token = data.get("refresh_token") or integration.refresh_token
        expires_in = int(data.get("expires_in") or DEFAULT_EXPIRES_IN)
        expires_at = self._clock() + timedelta(seconds=expires_in)

        self.repository.save_tokens(integration.id, access_token, refresh_token, expires_at)
        logger.info(
            "erp_token_refreshed",
            integration_id=integration.id,
            expires_at=expires_at.isoformat(),
        )
        return integration.model_copy(
            update={
                "access_token": access_token,
                "refresh_token": refresh_token,
                "token_expires_at": expires_at,
            }
        )
