"""Payment reconciliation feature settings."""

from pydantic import Field

from infrastructure.configuration.base import FeatureSettings


class PaymentSettings(FeatureSettings):
    """Payment initiation and verification configuration.

    Environment Variables:
        PAYMENT_INITIATE_RATE_LIMIT: Per-tenant checkout limit (default: 5/minute)
        PAYMENT_VERIFY_RATE_LIMIT: Per-tenant verification limit (default: 5/minute)
        PAYMENT_RATE_LIMIT_FAIL_OPEN: Allow requests when the limiter errors (default: False)
    """

    initiate_rate_limit: str = Field(default="5/minute", alias="PAYMENT_INITIATE_RATE_LIMIT")
    verify_rate_limit: str = Field(default="5/minute", alias="PAYMENT_VERIFY_RATE_LIMIT")
    rate_limit_fail_open: bool = Field(
        default=False, alias="PAYMENT_RATE_LIMIT_FAIL_OPEN"
    )
