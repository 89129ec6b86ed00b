"""Feature settings __init__ - exports all feature settings."""

from infrastructure.configuration.features.erp import ErpSyncSettings
from infrastructure.configuration.features.payments import PaymentSettings

__all__ = ["ErpSyncSettings", "PaymentSettings"]
