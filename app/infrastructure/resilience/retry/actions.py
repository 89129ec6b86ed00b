"""Registry of retryable action kinds and their payload schemas.

Every action enqueued on the retry queue must name a registered kind; its
payload is validated against the kind's pydantic model before the item is
persisted, so malformed work never reaches the dead-letter list.
"""

from typing import Any, Dict, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, ValidationError

from infrastructure.resilience.retry.exceptions import (
    InvalidPayloadError,
    UnknownActionError,
)


class ActionPayload(BaseModel):
    """Base for action payload schemas. Unknown keys are preserved."""

    model_config = ConfigDict(extra="allow")


class ErpSyncPayload(ActionPayload):
    id: str
    integration_id: Optional[str] = None
    entity_type: Optional[str] = None
    direction: Optional[Literal["import", "export", "bidirectional"]] = None


class PaymentVerifyPayload(ActionPayload):
    reference: str
    gateway_type: Literal["paystack", "flutterwave", "interswitch"]


class ActionRegistry:
    def __init__(self) -> None:
        self._schemas: Dict[str, Type[ActionPayload]] = {}

    def register(self, action: str, schema: Type[ActionPayload]) -> None:
        self._schemas[action] = schema

    def is_registered(self, action: str) -> bool:
        return action in self._schemas

    @property
    def actions(self) -> list[str]:
        return sorted(self._schemas)

    def validate(self, action: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Validate ``payload`` for ``action`` and return it unchanged.

        Raises:
            UnknownActionError: If the action kind is not registered
            InvalidPayloadError: If the payload does not match the schema
        """
        schema = self._schemas.get(action)
        if schema is None:
            raise UnknownActionError(action)
        try:
            schema.model_validate(payload)
        except ValidationError as exc:
            raise InvalidPayloadError(action, str(exc)) from exc
        return dict(payload)


def default_registry() -> ActionRegistry:
    """Registry with the action kinds the service produces."""
    registry = ActionRegistry()
    registry.register("erp.sync", ErpSyncPayload)
    registry.register("payment.verify", PaymentVerifyPayload)
    return registry
