"""Fixtures for ERP sync tests: seeded tables and a scripted connector."""

import asyncio
from typing import List, Optional

import pytest

from infrastructure.audit import AuditRecorder
from modules.erp.models import (
    ENTITIES_TABLE,
    FIELD_MAPPINGS_TABLE,
    INTEGRATIONS_TABLE,
    SYNC_LOGS_TABLE,
    SyncResult,
    SyncStatus,
)
from modules.erp.orchestrator import SyncOrchestrator
from modules.erp.repository import ErpRepository
from modules.erp.tokens import TokenManager


class ScriptedConnector:
    """Connector returning queued results or raising queued errors."""

    def __init__(self) -> None:
        self.outcomes: List[object] = []
        self.calls: List[str] = []
        self.delay: Optional[float] = None

    async def _next(self, kind: str) -> SyncResult:
        self.calls.append(kind)
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.outcomes.pop(0) if self.outcomes else SyncResult(
            processed=2, succeeded=2, message=f"{kind} ok"
        )
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def import_records(self, integration, entity, mappings) -> SyncResult:
        return await self._next("import")

    async def export_records(self, integration, entity, mappings) -> SyncResult:
        return await self._next("export")


@pytest.fixture
def erp_repository(record_store):
    record_store.insert(
        INTEGRATIONS_TABLE,
        {
            "id": "int-1",
            "tenant_id": "tenant-a",
            "erp_type": "generic",
            "api_base_url": "https://erp.example.com/api",
            "access_token": "token-1",
        },
    )
    record_store.insert(
        ENTITIES_TABLE,
        {
            "id": "ent-1",
            "integration_id": "int-1",
            "entity_type": "customers",
            "erp_endpoint": "customers",
            "local_table": "customers",
        },
    )
    record_store.insert(
        FIELD_MAPPINGS_TABLE,
        {"id": "map-1", "entity_id": "ent-1", "erp_field": "id", "local_field": "erp_id"},
    )
    record_store.insert(
        FIELD_MAPPINGS_TABLE,
        {"id": "map-2", "entity_id": "ent-1", "erp_field": "name", "local_field": "name"},
    )
    return ErpRepository(record_store)


@pytest.fixture
def connector():
    return ScriptedConnector()


@pytest.fixture
def orchestrator(erp_repository, connector, record_store, clock):
    return SyncOrchestrator(
        repository=erp_repository,
        tokens=TokenManager(erp_repository, clock=clock),
        connector=connector,
        audit=AuditRecorder(record_store),
        clock=clock,
    )


@pytest.fixture
def make_sync_log(record_store, clock):
    """Insert a sync log directly, defaulting to a ``retrying`` import."""

    def _make(log_id: str = "log-1", **overrides):
        record = {
            "id": log_id,
            "integration_id": "int-1",
            "tenant_id": "tenant-a",
            "entity_type": "customers",
            "sync_direction": "import",
            "sync_status": SyncStatus.RETRYING.value,
            "retry_count": 1,
            "max_retries": 3,
            "error_message": "ERP unavailable",
            "created_at": clock().isoformat(),
        }
        record.update(overrides)
        return record_store.insert(SYNC_LOGS_TABLE, record)

    return _make
