"""Caller authentication for API routes.

Two kinds of callers exist: trusted system callers (cron jobs, other
services) presenting the shared system key as their bearer token, and
users presenting a signed JWT carrying ``sub``, ``tenant_id`` and ``role``
claims.
"""

import hmac
from dataclasses import dataclass
from typing import Any, Dict, Optional

from jwt import PyJWTError, decode

from infrastructure.logging import get_module_logger

logger = get_module_logger()

ADMIN_ROLES = frozenset({"tenant_admin", "super_admin"})


class AuthenticationError(Exception):
    """Raised when a bearer credential is missing or invalid."""


@dataclass(frozen=True)
class Principal:
    """Authenticated caller.

    Attributes:
        is_system: True for the trusted system principal
        user_id: JWT subject, None for the system principal
        tenant_id: Tenant the user belongs to, None for the system principal
        role: Role claim of the user
    """

    is_system: bool
    user_id: Optional[str] = None
    tenant_id: Optional[str] = None
    role: Optional[str] = None

    @classmethod
    def system(cls) -> "Principal":
        return cls(is_system=True)

    @property
    def is_admin(self) -> bool:
        return self.is_system or self.role in ADMIN_ROLES

    def can_access_tenant(self, tenant_id: Optional[str]) -> bool:
        if self.is_system or self.role == "super_admin":
            return True
        return tenant_id is not None and tenant_id == self.tenant_id


class CallerAuthenticator:
    """Resolve a bearer token to a Principal.

    Args:
        system_key: Shared key of the system principal. None disables system access.
        jwt_secret: Secret used to verify user tokens. None disables user access.
        jwt_algorithm: Accepted JWT algorithm
        jwt_audience: Optional expected audience
    """

    def __init__(
        self,
        system_key: Optional[str],
        jwt_secret: Optional[str],
        jwt_algorithm: str = "HS256",
        jwt_audience: Optional[str] = None,
    ) -> None:
        self.system_key = system_key
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm
        self.jwt_audience = jwt_audience

    def is_system_token(self, token: Optional[str]) -> bool:
        if not token or not self.system_key:
            return False
        return hmac.compare_digest(token.encode(), self.system_key.encode())

    def authenticate(self, token: Optional[str]) -> Principal:
        """Resolve ``token`` to a Principal.

        Raises:
            AuthenticationError: If the token is missing, invalid or incomplete
        """
        if not token:
            raise AuthenticationError("Missing authorization")

        if self.is_system_token(token):
            return Principal.system()

        if not self.jwt_secret:
            raise AuthenticationError("Invalid or expired token")

        try:
            claims: Dict[str, Any] = decode(
                token,
                self.jwt_secret,
                algorithms=[self.jwt_algorithm],
                audience=self.jwt_audience,
                options={
                    "verify_exp": True,
                    "verify_aud": self.jwt_audience is not None,
                },
            )
        except PyJWTError as e:
            logger.warning("jwt_validation_failed", error=str(e))
            raise AuthenticationError("Invalid or expired token") from e

        user_id = claims.get("sub")
        if not user_id:
            raise AuthenticationError("Token has no subject")

        return Principal(
            is_system=False,
            user_id=str(user_id),
            tenant_id=claims.get("tenant_id"),
            role=claims.get("role"),
        )
