from unittest.mock import Mock

import pytest
from fastapi import FastAPI, Request
from slowapi.errors import RateLimitExceeded

from api.dependencies import rate_limits


@pytest.mark.asyncio
async def test_rate_limit_handler_returns_429():
    exc = RateLimitExceeded(Mock(error_message="50 per 1 minute"))

    response = await rate_limits.rate_limit_handler(Mock(spec=Request), exc)

    assert response.status_code == 429
    assert response.body == b'{"message":"Rate limit exceeded"}'


def test_setup_rate_limiter_registers_limiter():
    app = FastAPI()

    rate_limits.setup_rate_limiter(app)

    assert app.state.limiter is rate_limits.get_limiter()
    assert RateLimitExceeded in app.exception_handlers


def test_route_limit_enforced(client):
    for _ in range(50):
        assert client.get("/health").status_code == 200

    response = client.get("/health")

    assert response.status_code == 429
    assert response.json() == {"message": "Rate limit exceeded"}
