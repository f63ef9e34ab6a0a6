"""
Main Orchestrator for the Tracker API

This module ties the store, identity and audit components together and
defines the per-request flow for every resource operation:

    resolve scope -> call store -> audit -> return record

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every mutation is audited with the user scope and a correlation ID
- Store failures are logged with full detail here; callers only ever see
  the exception message
- The store is picked once, from settings, at startup
"""

from typing import Any, Optional
from uuid import UUID

from tracker.audit import AuditLogger, create_correlation_id
from tracker.config import Settings, StoreBackend, get_settings
from tracker.models.resources import Record, ResourceKind, model_for
from tracker.services.storage import (
    DocumentResourceStore,
    DuplicateError,
    GoogleSheetsClient,
    GoogleSheetsResourceStore,
    InMemoryResourceStore,
    NotFoundError,
    ResourceStore,
    StorageError,
    ValidationError,
)
from tracker.services.storage.records import changed_fields


class ResourceFlow:
    """
    Orchestrates CRUD on one store for all resource kinds.

    Expected failures (validation, not found, duplicate) are audited as
    rejected requests; other store failures are audited as store failures.
    All of them are re-raised for the caller to map.
    """

    def __init__(
        self,
        store: ResourceStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def store(self) -> ResourceStore:
        return self._store

    def _rejected(
        self,
        error: Exception,
        status_code: int,
        kind: ResourceKind,
        user_key: str,
        record_id: Optional[str],
        correlation_id: UUID,
    ) -> None:
        self._audit_logger.log_request_rejected(
            reason=str(error),
            status_code=status_code,
            kind=kind.value,
            entity_id=record_id,
            user_id=user_key,
            correlation_id=correlation_id,
        )

    def _failed(
        self,
        operation: str,
        error: Exception,
        kind: ResourceKind,
        user_key: str,
        correlation_id: UUID,
    ) -> None:
        self._audit_logger.log_store_failed(
            operation=operation,
            error_message=str(error),
            kind=kind.value,
            user_id=user_key,
            correlation_id=correlation_id,
        )

    async def list_records(
        self,
        kind: ResourceKind,
        user_key: str,
        correlation_id: Optional[UUID] = None,
    ) -> list[Record]:
        kind = ResourceKind(kind)
        correlation_id = correlation_id or create_correlation_id()
        try:
            return await self._store.list(kind, user_key)
        except StorageError as e:
            self._failed("list", e, kind, user_key, correlation_id)
            raise

    async def create_record(
        self,
        kind: ResourceKind,
        user_key: str,
        fields: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> Record:
        kind = ResourceKind(kind)
        correlation_id = correlation_id or create_correlation_id()
        record_id = fields.get("id") if isinstance(fields, dict) else None
        try:
            record = await self._store.create(kind, user_key, fields)
        except ValidationError as e:
            self._rejected(e, 400, kind, user_key, record_id, correlation_id)
            raise
        except DuplicateError as e:
            self._rejected(e, 409, kind, user_key, record_id, correlation_id)
            raise
        except StorageError as e:
            self._failed("create", e, kind, user_key, correlation_id)
            raise

        self._audit_logger.log_record_created(
            kind=kind.value,
            record_id=record.id,
            user_id=user_key,
            correlation_id=correlation_id,
        )
        return record

    async def update_record(
        self,
        kind: ResourceKind,
        user_key: str,
        record_id: str,
        fields: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> Record:
        kind = ResourceKind(kind)
        correlation_id = correlation_id or create_correlation_id()
        try:
            record = await self._store.update(kind, user_key, record_id, fields)
        except ValidationError as e:
            self._rejected(e, 400, kind, user_key, record_id, correlation_id)
            raise
        except NotFoundError as e:
            self._rejected(e, 404, kind, user_key, record_id, correlation_id)
            raise
        except StorageError as e:
            self._failed("update", e, kind, user_key, correlation_id)
            raise

        self._audit_logger.log_record_updated(
            kind=kind.value,
            record_id=record.id,
            user_id=user_key,
            fields=changed_fields(model_for(kind), fields),
            correlation_id=correlation_id,
        )
        return record

    async def delete_record(
        self,
        kind: ResourceKind,
        user_key: str,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        kind = ResourceKind(kind)
        correlation_id = correlation_id or create_correlation_id()
        try:
            await self._store.delete(kind, user_key, record_id)
        except NotFoundError as e:
            self._rejected(e, 404, kind, user_key, record_id, correlation_id)
            raise
        except StorageError as e:
            self._failed("delete", e, kind, user_key, correlation_id)
            raise

        self._audit_logger.log_record_deleted(
            kind=kind.value,
            record_id=record_id,
            user_id=user_key,
            correlation_id=correlation_id,
        )


def create_store(settings: Optional[Settings] = None) -> ResourceStore:
    """
    Build the configured store backend.

    Raises:
        ConnectionError: If the Google Sheets backend cannot connect
    """
    settings = settings or get_settings()
    backend = settings.store.backend

    if backend == StoreBackend.DOCUMENT:
        return DocumentResourceStore(settings.store.database_url)
    if backend == StoreBackend.SHEETS:
        client = GoogleSheetsClient()
        client.connect()
        return GoogleSheetsResourceStore(client)
    return InMemoryResourceStore()


def create_app_components(
    store: Optional[ResourceStore] = None,
) -> tuple[ResourceFlow, AuditLogger]:
    """
    Factory function to create all server components.

    Args:
        store: Store to use. Built from settings when omitted.

    Returns:
        (resource_flow, audit_logger)
    """
    audit_logger = AuditLogger()
    flow = ResourceFlow(store or create_store(), audit_logger=audit_logger)
    return flow, audit_logger
