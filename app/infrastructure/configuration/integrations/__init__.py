"""Integration settings __init__ - exports all integration settings."""

from infrastructure.configuration.integrations.aws import AwsSettings
from infrastructure.configuration.integrations.gateways import PaymentGatewaySettings

__all__ = ["AwsSettings", "PaymentGatewaySettings"]
