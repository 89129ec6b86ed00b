"""Unit tests for PathExemptCORSMiddleware."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from server.middleware import PathExemptCORSMiddleware

ORIGIN = "https://app.example.com"


def build_client() -> TestClient:
    app = FastAPI()
    app.add_middleware(
        PathExemptCORSMiddleware,
        exempt_paths=["/hooks/gateway"],
        allow_origins=[ORIGIN],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.post("/hooks/gateway")
    def hook():
        return {"ok": True}

    @app.post("/browser")
    def browser():
        return {"ok": True}

    return TestClient(app)


def test_regular_path_gets_cors_headers():
    response = build_client().post("/browser", headers={"Origin": ORIGIN})
    assert response.headers["access-control-allow-origin"] == ORIGIN


def test_exempt_path_has_no_cors_headers():
    response = build_client().post("/hooks/gateway", headers={"Origin": ORIGIN})
    assert response.status_code == 200
    assert "access-control-allow-origin" not in response.headers


def test_exempt_path_preflight_is_not_answered():
    response = build_client().options(
        "/hooks/gateway",
        headers={"Origin": ORIGIN, "Access-Control-Request-Method": "POST"},
    )
    assert response.status_code == 405
