"""Payment gateway integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class PaymentGatewaySettings(IntegrationSettings):
    """Credentials and endpoints for the supported payment gateways.

    Environment Variables:
        PAYSTACK_SECRET_KEY: Paystack secret, also used to sign webhooks
        PAYSTACK_BASE_URL: Paystack API base URL
        FLUTTERWAVE_SECRET_KEY: Flutterwave secret key
        FLUTTERWAVE_BASE_URL: Flutterwave API base URL
        GATEWAY_TIMEOUT_SECONDS: Timeout for gateway calls (default: 15s)
    """

    PAYSTACK_SECRET_KEY: str | None = Field(default=None, alias="PAYSTACK_SECRET_KEY")
    PAYSTACK_BASE_URL: str = Field(
        default="https://api.paystack.co", alias="PAYSTACK_BASE_URL"
    )
    FLUTTERWAVE_SECRET_KEY: str | None = Field(
        default=None, alias="FLUTTERWAVE_SECRET_KEY"
    )
    FLUTTERWAVE_BASE_URL: str = Field(
        default="https://api.flutterwave.com", alias="FLUTTERWAVE_BASE_URL"
    )
    GATEWAY_TIMEOUT_SECONDS: float = Field(default=15.0, alias="GATEWAY_TIMEOUT_SECONDS")
