"""ERP import and export connectors.

Import pulls records from ``GET {api_base_url}/{erp_endpoint}`` and upserts
them into the entity's local table through the field mappings. Export reads
the local table and ``POST``s each mapped row to the same endpoint.

A failure reaching the ERP (network, timeout, 5xx, rate limit) aborts the
run with ErpRequestError. An export row rejected with a 4xx is counted as a
failed record and the run continues.
"""

from typing import Any, Dict, List, Optional

import httpx

from infrastructure.logging import get_module_logger
from infrastructure.operations.classifiers import classify_http_error
from modules.erp.errors import ErpRequestError
from modules.erp.models import EntityConfig, FieldMapping, Integration, SyncResult
from modules.erp.repository import ErpRepository

logger = get_module_logger()

ERP_KEY_FIELD = "erp_id"
RECORD_LIST_KEYS = ("data", "items", "records", "results", "value")


def map_record(
    record: Dict[str, Any], mappings: List[FieldMapping], to_local: bool
) -> Dict[str, Any]:
    mapped: Dict[str, Any] = {}
    for mapping in mappings:
        source, target = (
            (mapping.erp_field, mapping.local_field)
            if to_local
            else (mapping.local_field, mapping.erp_field)
        )
        if source in record:
            mapped[target] = record[source]
    return mapped


def extract_records(body: Any) -> List[Dict[str, Any]]:
    """Find the list of records in an ERP list response."""
    if isinstance(body, list):
        return [r for r in body if isinstance(r, dict)]
    if isinstance(body, dict):
        for key in RECORD_LIST_KEYS:
            value = body.get(key)
            if isinstance(value, list):
                return [r for r in value if isinstance(r, dict)]
    return []


class ErpConnector:
    """HTTP connector for one ERP integration at a time."""

    def __init__(
        self,
        repository: ErpRepository,
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.repository = repository
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _client(self, integration: Integration) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if integration.access_token:
            headers["Authorization"] = f"Bearer {integration.access_token}"
        return httpx.AsyncClient(
            base_url=integration.api_base_url,
            headers=headers,
            timeout=self.timeout_seconds,
            transport=self._transport,
        )

    @staticmethod
    def _request_failed(
        integration: Integration, entity: EntityConfig, exc: httpx.HTTPError
    ) -> ErpRequestError:
        result = classify_http_error(exc)
        logger.warning(
            "erp_request_failed",
            integration_id=integration.id,
            entity_type=entity.entity_type,
            error_code=result.error_code,
            retryable=result.is_retryable,
            error=result.message,
        )
        return ErpRequestError(result.message, retryable=result.is_retryable)

    async def import_records(
        self,
        integration: Integration,
        entity: EntityConfig,
        mappings: List[FieldMapping],
    ) -> SyncResult:
        if not mappings:
            return SyncResult(message="Import ready — configure field mappings first")

        try:
            async with self._client(integration) as client:
                response = await client.get(f"/{entity.erp_endpoint.lstrip('/')}")
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            raise self._request_failed(integration, entity, e) from e
        except ValueError as e:
            raise ErpRequestError(f"Invalid JSON from ERP: {e}") from e

        key_field = next(
            (m.local_field for m in mappings if m.erp_field == "id"), ERP_KEY_FIELD
        )
        result = SyncResult()
        for record in extract_records(body):
            result.processed += 1
            row = map_record(record, mappings, to_local=True)
            if key_field == ERP_KEY_FIELD and "id" in record:
                row[ERP_KEY_FIELD] = record["id"]
            if not row:
                result.failed += 1
                continue
            try:
                self.repository.upsert_row(entity.local_table, key_field, row)
            except Exception as e:  # pylint: disable=broad-except
                result.failed += 1
                logger.warning(
                    "erp_import_record_failed",
                    entity_type=entity.entity_type,
                    local_table=entity.local_table,
                    error=str(e),
                )
            else:
                result.succeeded += 1

        result.message = f"Imported {result.succeeded} of {result.processed} records"
        logger.info(
            "erp_import_completed",
            integration_id=integration.id,
            entity_type=entity.entity_type,
            **result.model_dump(exclude={"message"}),
        )
        return result

    async def export_records(
        self,
        integration: Integration,
        entity: EntityConfig,
        mappings: List[FieldMapping],
    ) -> SyncResult:
        if not mappings:
            return SyncResult(message="Export ready — configure field mappings first")

        rows = self.repository.list_rows(entity.local_table)
        result = SyncResult()
        path = f"/{entity.erp_endpoint.lstrip('/')}"

        async with self._client(integration) as client:
            for row in rows:
                result.processed += 1
                payload = map_record(row, mappings, to_local=False)
                try:
                    response = await client.post(path, json=payload)
                    response.raise_for_status()
                except httpx.HTTPStatusError as e:
                    if e.response.status_code >= 500 or e.response.status_code == 429:
                        raise self._request_failed(integration, entity, e) from e
                    result.failed += 1
                    logger.warning(
                        "erp_export_record_rejected",
                        entity_type=entity.entity_type,
                        status_code=e.response.status_code,
                        row_id=row.get("id"),
                    )
                except httpx.HTTPError as e:
                    raise self._request_failed(integration, entity, e) from e
                else:
                    result.succeeded += 1

        result.message = f"Exported {result.succeeded} of {result.processed} records"
        logger.info(
            "erp_export_completed",
            integration_id=integration.id,
            entity_type=entity.entity_type,
            **result.model_dump(exclude={"message"}),
        )
        return result
