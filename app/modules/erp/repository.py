"""Record store access for ERP integrations and sync logs."""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from infrastructure.logging import get_module_logger
from infrastructure.persistence import Record, RecordStore
from modules.erp.models import (
    ENTITIES_TABLE,
    FIELD_MAPPINGS_TABLE,
    INTEGRATIONS_TABLE,
    SYNC_LOGS_TABLE,
    EntityConfig,
    FieldMapping,
    Integration,
    SyncLogRecord,
    SyncStatus,
)

logger = get_module_logger()


def isoformat(value: datetime) -> str:
    return value.isoformat()


class ErpRepository:
    """Typed reads and writes over the ERP tables of a RecordStore."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    # Integrations

    def get_integration(self, integration_id: str) -> Optional[Integration]:
        record = self.store.get(INTEGRATIONS_TABLE, integration_id)
        return Integration.model_validate(record) if record else None

    def save_tokens(
        self,
        integration_id: str,
        access_token: str,
        refresh_token: Optional[str],
        expires_at: datetime,
    ) -> None:
        self.store.update(
            INTEGRATIONS_TABLE,
            integration_id,
            {
                "access_token": access_token,
                "refresh_token": refresh_token,
                "token_expires_at": isoformat(expires_at),
            },
        )

    def touch_last_sync(self, integration_id: str, when: datetime) -> None:
        self.store.update(
            INTEGRATIONS_TABLE, integration_id, {"last_sync_at": isoformat(when)}
        )

    # Entities and mappings

    def get_entity(self, integration_id: str, entity_type: str) -> Optional[EntityConfig]:
        record = self.store.find_one(
            ENTITIES_TABLE, integration_id=integration_id, entity_type=entity_type
        )
        return EntityConfig.model_validate(record) if record else None

    def get_field_mappings(self, entity_id: str) -> List[FieldMapping]:
        return [
            FieldMapping.model_validate(record)
            for record in self.store.find(FIELD_MAPPINGS_TABLE, entity_id=entity_id)
        ]

    # Sync logs

    def create_sync_log(self, values: Mapping[str, Any]) -> SyncLogRecord:
        record = self.store.insert(SYNC_LOGS_TABLE, dict(values))
        return SyncLogRecord.model_validate(record)

    def get_sync_log(self, sync_log_id: str) -> Optional[SyncLogRecord]:
        record = self.store.get(SYNC_LOGS_TABLE, sync_log_id)
        return SyncLogRecord.model_validate(record) if record else None

    def update_sync_log(
        self,
        sync_log_id: str,
        changes: Mapping[str, Any],
        expected_status: Optional[SyncStatus] = None,
    ) -> bool:
        """Apply ``changes``; with ``expected_status`` only from that status."""
        where = {"sync_status": expected_status.value} if expected_status else None
        updated = self.store.update(SYNC_LOGS_TABLE, sync_log_id, changes, where=where)
        if not updated:
            logger.warning(
                "sync_log_update_skipped",
                sync_log_id=sync_log_id,
                expected_status=expected_status.value if expected_status else None,
            )
        return updated

    def list_sync_logs(
        self,
        tenant_id: Optional[str] = None,
        status: Optional[SyncStatus] = None,
    ) -> List[SyncLogRecord]:
        filters: Dict[str, Any] = {}
        if tenant_id is not None:
            filters["tenant_id"] = tenant_id
        if status is not None:
            filters["sync_status"] = status.value
        records = self.store.find(SYNC_LOGS_TABLE, **filters)
        logs = [SyncLogRecord.model_validate(record) for record in records]
        return sorted(logs, key=lambda log: str(log.created_at or ""), reverse=True)

    def delete_sync_log(self, sync_log_id: str) -> bool:
        return self.store.delete(SYNC_LOGS_TABLE, sync_log_id)

    # Connector tables

    def list_rows(self, table: str) -> List[Record]:
        return self.store.find(table)

    def upsert_row(self, table: str, key_field: str, row: Record) -> None:
        """Insert ``row`` or update the row whose ``key_field`` matches."""
        key = row.get(key_field)
        existing = self.store.find_one(table, **{key_field: key}) if key is not None else None
        if existing is None:
            self.store.insert(table, row)
        else:
            changes = {k: v for k, v in row.items() if k != "id"}
            self.store.update(table, existing["id"], changes)
