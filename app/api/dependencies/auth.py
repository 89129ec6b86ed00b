"""Bearer authentication dependencies.

``get_principal`` resolves the ``Authorization: Bearer`` credential to a
Principal: the system key maps to the trusted system principal, anything
else must be a valid user JWT. ``require_system`` additionally rejects
user callers.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from infrastructure.logging import get_module_logger
from infrastructure.security import AuthenticationError, Principal
from infrastructure.services import CallerAuthenticatorDep

logger = get_module_logger()
bearer_scheme = HTTPBearer(auto_error=False)


def get_principal(
    authenticator: CallerAuthenticatorDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    token = credentials.credentials if credentials else None
    try:
        return authenticator.authenticate(token)
    except AuthenticationError as e:
        logger.warning("caller_authentication_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def require_system(
    authenticator: CallerAuthenticatorDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    token = credentials.credentials if credentials else None
    if not authenticator.is_system_token(token):
        logger.warning("system_authentication_failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Principal.system()


PrincipalDep = Annotated[Principal, Depends(get_principal)]
SystemPrincipalDep = Annotated[Principal, Depends(require_system)]
