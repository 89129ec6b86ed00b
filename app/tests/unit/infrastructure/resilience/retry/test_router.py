"""Unit tests for RetryActionRouter and the action registry."""

import pytest

from infrastructure.resilience.retry import (
    InvalidPayloadError,
    NonRetryableActionError,
    RetryActionRouter,
    UnknownActionError,
    default_registry,
)


@pytest.mark.asyncio
async def test_routes_to_registered_handler():
    received = []

    async def handler(payload):
        received.append(payload)

    router = RetryActionRouter()
    router.register("erp.sync", handler)

    await router("erp.sync", {"id": "x"})

    assert received == [{"id": "x"}]
    assert router.actions == ["erp.sync"]


@pytest.mark.asyncio
async def test_unhandled_action_is_non_retryable():
    router = RetryActionRouter()
    with pytest.raises(NonRetryableActionError):
        await router("payment.verify", {"reference": "r", "gateway_type": "paystack"})


def test_registry_accepts_known_payloads():
    registry = default_registry()
    assert registry.validate("erp.sync", {"id": "x", "direction": "import"}) == {
        "id": "x",
        "direction": "import",
    }
    registry.validate("payment.verify", {"reference": "r", "gateway_type": "paystack"})


def test_registry_rejects_unknown_action():
    with pytest.raises(UnknownActionError):
        default_registry().validate("order.create", {})


@pytest.mark.parametrize(
    "action,payload",
    [
        ("erp.sync", {}),
        ("erp.sync", {"id": "x", "direction": "sideways"}),
        ("payment.verify", {"reference": "r", "gateway_type": "cash"}),
    ],
)
def test_registry_rejects_invalid_payloads(action, payload):
    with pytest.raises(InvalidPayloadError):
        default_registry().validate(action, payload)
