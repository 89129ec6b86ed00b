"""ERP sync domain models and request/response schemas."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

INTEGRATIONS_TABLE = "erp_integrations"
ENTITIES_TABLE = "erp_entities"
FIELD_MAPPINGS_TABLE = "erp_field_mappings"
SYNC_LOGS_TABLE = "erp_sync_logs"

DEFAULT_MAX_RETRIES = 3


class SyncDirection(str, Enum):
    """Direction of an ERP sync run."""

    IMPORT = "import"
    EXPORT = "export"
    BIDIRECTIONAL = "bidirectional"

    @property
    def imports(self) -> bool:
        return self in (SyncDirection.IMPORT, SyncDirection.BIDIRECTIONAL)

    @property
    def exports(self) -> bool:
        return self in (SyncDirection.EXPORT, SyncDirection.BIDIRECTIONAL)


class SyncStatus(str, Enum):
    """Lifecycle of a sync log record.

    in_progress -> completed | retrying | dead_letter
    retrying -> in_progress (resumed by the sweeper or a manual retry)
    """

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    RETRYING = "retrying"
    DEAD_LETTER = "dead_letter"


class SyncLogRecord(BaseModel):
    """One attempt history of syncing an entity type for an integration."""

    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    id: str
    integration_id: str
    tenant_id: Optional[str] = None
    entity_type: str
    sync_direction: SyncDirection
    sync_status: SyncStatus
    retry_count: int = 0
    max_retries: int = DEFAULT_MAX_RETRIES
    error_message: Optional[str] = None
    records_processed: int = 0
    records_succeeded: int = 0
    records_failed: int = 0
    triggered_by: Optional[str] = None
    is_manual: bool = False
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class Integration(BaseModel):
    """A tenant's connection to an ERP system."""

    model_config = ConfigDict(extra="ignore")

    id: str
    tenant_id: Optional[str] = None
    erp_type: str = "generic"
    api_base_url: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    token_url: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    last_sync_at: Optional[datetime] = None


class EntityConfig(BaseModel):
    """Where an entity type lives on the ERP side and locally."""

    model_config = ConfigDict(extra="ignore")

    id: str
    integration_id: str
    entity_type: str
    erp_endpoint: str
    local_table: str


class FieldMapping(BaseModel):
    model_config = ConfigDict(extra="ignore")

    entity_id: str
    erp_field: str
    local_field: str


class SyncResult(BaseModel):
    """Accumulated counts of one sync run."""

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    message: str = ""

    def merge(self, other: "SyncResult") -> "SyncResult":
        messages = [m for m in (self.message, other.message) if m]
        return SyncResult(
            processed=self.processed + other.processed,
            succeeded=self.succeeded + other.succeeded,
            failed=self.failed + other.failed,
            message="; ".join(messages),
        )


class SyncOutcome(BaseModel):
    """Successful orchestrator run."""

    sync_log_id: str
    result: SyncResult


class SyncRequest(BaseModel):
    """Schema for triggering an ERP sync."""

    integration_id: Annotated[
        str,
        Field(
            ...,
            min_length=1,
            description="ERP integration ID",
            json_schema_extra={"example": "integration-123"},
        ),
    ]
    entity_type: Annotated[
        str,
        Field(
            ...,
            min_length=1,
            description="Entity type to sync",
            json_schema_extra={"example": "customers"},
        ),
    ]
    direction: Annotated[
        SyncDirection,
        Field(
            ...,
            description="Sync direction",
            json_schema_extra={"example": "import"},
        ),
    ]


class SweepResult(BaseModel):
    """Summary of one cron retry sweep."""

    retried: int = 0
    succeeded: int = 0
    failed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()
