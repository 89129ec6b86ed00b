"""Infrastructure security: caller authentication and webhook signatures.

Exports:
    CallerAuthenticator: Resolves bearer tokens to principals
    Principal: Authenticated caller (system or tenant user)
    AuthenticationError: Raised for missing or invalid credentials
    compute_signature / verify_signature: HMAC-SHA512 helpers
"""

from infrastructure.security.principals import (
    AuthenticationError,
    CallerAuthenticator,
    Principal,
)
from infrastructure.security.signatures import compute_signature, verify_signature

__all__ = [
    "AuthenticationError",
    "CallerAuthenticator",
    "Principal",
    "compute_signature",
    "verify_signature",
]
