"""HMAC-SHA512 request signatures for inbound webhooks."""

import hashlib
import hmac
from typing import Optional


def compute_signature(secret: str, raw_body: bytes) -> str:
    """Lower-case hex HMAC-SHA512 of ``raw_body`` keyed with ``secret``."""
    return hmac.new(secret.encode(), raw_body, hashlib.sha512).hexdigest()


def verify_signature(
    secret: Optional[str], raw_body: bytes, signature: Optional[str]
) -> bool:
    """Check ``signature`` against the body's HMAC in constant time.

    Comparison is case-insensitive on the hex digest. A missing secret or
    signature never verifies.
    """
    if not secret or not signature:
        return False
    expected = compute_signature(secret, raw_body)
    return hmac.compare_digest(expected.encode(), signature.strip().lower().encode())
