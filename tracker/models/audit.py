"""
Audit Models for the Tracker

Every record mutation, rejected request and client rollback is logged.
This provides:
1. Traceability of who changed which record
2. Debugging information when sync rollbacks happen
3. Visibility into store failures without exposing them to clients

DESIGN DECISION: Audit events are emitted, never edited.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Store mutations
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"

    # Request handling
    REQUEST_REJECTED = "request_rejected"
    STORE_FAILED = "store_failed"

    # Client side
    SYNC_ROLLED_BACK = "sync_rolled_back"
    LOCAL_STORAGE_FAILED = "local_storage_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    entity_id is a plain string because record ids are chosen by clients.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what record and whose scope?
    kind: Optional[str] = Field(
        default=None,
        description="Resource kind (tasks, habits, finance, planner)"
    )
    entity_id: Optional[str] = None
    user_id: Optional[str] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g. one HTTP request)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "kind": self.kind,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created("tasks", task_id, user_id)
        event = AuditEventBuilder.sync_rolled_back("habits", "update", habit_id, msg)
    """

    @staticmethod
    def record_created(
        kind: str,
        record_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            kind=kind,
            entity_id=record_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Created {kind} record {record_id}",
        )

    @staticmethod
    def record_updated(
        kind: str,
        record_id: str,
        user_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            kind=kind,
            entity_id=record_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Updated {kind} record {record_id}",
            details={"fields": sorted(fields)},
        )

    @staticmethod
    def record_deleted(
        kind: str,
        record_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            kind=kind,
            entity_id=record_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Deleted {kind} record {record_id}",
        )

    @staticmethod
    def request_rejected(
        reason: str,
        status_code: int,
        kind: Optional[str] = None,
        entity_id: Optional[str] = None,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REQUEST_REJECTED,
            severity=AuditSeverity.WARNING,
            kind=kind,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Request rejected with {status_code}",
            error_message=reason,
            details={"status_code": status_code},
        )

    @staticmethod
    def store_failed(
        operation: str,
        error_message: str,
        kind: Optional[str] = None,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_FAILED,
            severity=AuditSeverity.ERROR,
            kind=kind,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Store {operation} failed",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def sync_rolled_back(
        kind: str,
        operation: str,
        record_id: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_ROLLED_BACK,
            severity=AuditSeverity.WARNING,
            kind=kind,
            entity_id=record_id,
            description=f"Rolled back optimistic {operation} of {kind} record {record_id}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def local_storage_failed(
        key: str,
        operation: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOCAL_STORAGE_FAILED,
            severity=AuditSeverity.ERROR,
            description=f"Local storage {operation} failed for {key}",
            error_message=error_message,
            details={"key": key, "operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
