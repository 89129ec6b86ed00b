"""API tests for the ERP sync routes."""

from modules.erp.errors import GENERIC_ERROR_MESSAGE
from modules.erp.models import SYNC_LOGS_TABLE, SyncStatus
from modules.erp.service import DUPLICATE_MESSAGE

SYNC_URL = "/api/v1/erp/sync"
SYNC_BODY = {"integration_id": "int-1", "entity_type": "customers", "direction": "import"}


def seed_log(store, log_id="log-1", **overrides):
    record = {
        "id": log_id,
        "integration_id": "int-1",
        "tenant_id": "tenant-a",
        "entity_type": "customers",
        "sync_direction": "import",
        "sync_status": SyncStatus.RETRYING.value,
        "retry_count": 1,
        "max_retries": 3,
        "created_at": "2024-01-01T00:00:00+00:00",
    }
    record.update(overrides)
    store.insert(SYNC_LOGS_TABLE, record)


class TestTriggerSync:
    def test_requires_authentication(self, client):
        response = client.post(SYNC_URL, json=SYNC_BODY)
        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.post(
            SYNC_URL, json=SYNC_BODY, headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_requires_idempotency_key(self, client, user_headers):
        response = client.post(SYNC_URL, json=SYNC_BODY, headers=user_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "Idempotency-Key" in body["message"]

    def test_sync_then_duplicate_then_rate_limited(self, client, user_headers):
        headers = {**user_headers, "Idempotency-Key": "key-1"}

        first = client.post(SYNC_URL, json=SYNC_BODY, headers=headers)
        assert first.status_code == 200
        assert first.json()["success"] is True
        assert first.json()["result"]["processed"] == 1

        replay = client.post(SYNC_URL, json=SYNC_BODY, headers=headers)
        assert replay.status_code == 200
        assert replay.json()["message"] == DUPLICATE_MESSAGE

        limited = client.post(
            SYNC_URL, json=SYNC_BODY, headers={**user_headers, "Idempotency-Key": "key-2"}
        )
        assert limited.status_code == 429
        assert limited.headers["retry-after"] == "60"
        assert limited.json()["rateLimited"] is True

    def test_system_caller_needs_no_key(self, client, system_headers):
        for _ in range(2):
            response = client.post(SYNC_URL, json=SYNC_BODY, headers=system_headers)
            assert response.status_code == 200

    def test_member_forbidden(self, client, member_headers):
        response = client.post(
            SYNC_URL, json=SYNC_BODY, headers={**member_headers, "Idempotency-Key": "k"}
        )
        assert response.status_code == 403

    def test_other_tenant_forbidden(self, client, other_tenant_headers):
        response = client.post(
            SYNC_URL,
            json=SYNC_BODY,
            headers={**other_tenant_headers, "Idempotency-Key": "k"},
        )
        assert response.status_code == 403

    def test_unknown_integration(self, client, system_headers):
        response = client.post(
            SYNC_URL, json={**SYNC_BODY, "integration_id": "nope"}, headers=system_headers
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Integration not found"

    def test_invalid_direction_rejected(self, client, system_headers):
        response = client.post(
            SYNC_URL, json={**SYNC_BODY, "direction": "sideways"}, headers=system_headers
        )
        assert response.status_code == 422

    def test_erp_failure_is_sanitized(self, client, system_headers, fake_erp, seeded_store):
        fake_erp.status_code = 503

        response = client.post(SYNC_URL, json=SYNC_BODY, headers=system_headers)

        assert response.status_code == 502
        assert response.json()["message"] == GENERIC_ERROR_MESSAGE
        [log] = seeded_store.find(SYNC_LOGS_TABLE)
        assert log["sync_status"] == SyncStatus.RETRYING.value


class TestSyncLogs:
    def test_list_own_tenant(self, client, user_headers, seeded_store):
        seed_log(seeded_store, "mine")
        seed_log(seeded_store, "theirs", tenant_id="tenant-b")

        response = client.get("/api/v1/erp/sync-logs", headers=user_headers)

        assert response.status_code == 200
        assert [log["id"] for log in response.json()["logs"]] == ["mine"]

    def test_list_by_status(self, client, user_headers, seeded_store):
        seed_log(seeded_store, "a")
        seed_log(seeded_store, "b", sync_status="dead_letter")

        response = client.get(
            "/api/v1/erp/sync-logs", params={"status": "dead_letter"}, headers=user_headers
        )

        assert [log["id"] for log in response.json()["logs"]] == ["b"]

    def test_manual_retry(self, client, user_headers, seeded_store):
        seed_log(seeded_store)

        response = client.post("/api/v1/erp/sync-logs/log-1/retry", headers=user_headers)

        assert response.status_code == 200
        assert response.json()["sync_log_id"] == "log-1"
        assert seeded_store.get(SYNC_LOGS_TABLE, "log-1")["sync_status"] == "completed"

    def test_retry_unknown_log(self, client, user_headers):
        response = client.post("/api/v1/erp/sync-logs/nope/retry", headers=user_headers)
        assert response.status_code == 404

    def test_dismiss_requires_confirm(self, client, user_headers, seeded_store):
        seed_log(seeded_store, sync_status="dead_letter")

        response = client.delete("/api/v1/erp/sync-logs/log-1", headers=user_headers)

        assert response.status_code == 400
        assert seeded_store.get(SYNC_LOGS_TABLE, "log-1") is not None

    def test_dismiss_dead_letter(self, client, user_headers, seeded_store):
        seed_log(seeded_store, sync_status="dead_letter")

        response = client.delete(
            "/api/v1/erp/sync-logs/log-1", params={"confirm": "true"}, headers=user_headers
        )

        assert response.status_code == 200
        assert response.json()["sync_log_id"] == "log-1"
        assert seeded_store.get(SYNC_LOGS_TABLE, "log-1") is None

    def test_dismiss_retrying_log_conflicts(self, client, user_headers, seeded_store):
        seed_log(seeded_store)

        response = client.delete(
            "/api/v1/erp/sync-logs/log-1", params={"confirm": "true"}, headers=user_headers
        )

        assert response.status_code == 409


class TestSweepRetries:
    def test_requires_system_key(self, client, user_headers):
        response = client.post("/api/v1/erp/sync-retry", headers=user_headers)
        assert response.status_code == 401

    def test_sweeps_retrying_logs(self, client, system_headers, seeded_store):
        seed_log(seeded_store, "log-1", retry_count=0)
        seed_log(seeded_store, "log-2", retry_count=3)

        response = client.post("/api/v1/erp/sync-retry", headers=system_headers)

        assert response.status_code == 200
        assert response.json() == {"retried": 1, "succeeded": 1, "failed": 0}
        assert seeded_store.get(SYNC_LOGS_TABLE, "log-2")["sync_status"] == "dead_letter"

    def test_failed_attempts_reported(self, client, system_headers, seeded_store, fake_erp):
        seed_log(seeded_store, "log-1", retry_count=0)
        fake_erp.status_code = 500

        response = client.post("/api/v1/erp/sync-retry", headers=system_headers)

        assert response.json() == {"retried": 1, "succeeded": 0, "failed": 1}
