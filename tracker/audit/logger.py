"""
Audit Logger

DESIGN DECISION: Every record mutation and every failure on the way to the
store is logged. This provides:
1. Traceability of changes per user scope
2. Debugging capability for sync rollbacks
3. Store failure details that are never sent to clients

The audit logger gracefully handles failures (a broken log sink must not
crash a request) and supports correlation IDs to trace one request.
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog for JSON output at the given level."""
    logging.basicConfig(format="%(message)s", level=level.upper())
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """Central audit logging service writing structured local logs."""

    def __init__(self, name: str = "tracker.audit"):
        self._logger = structlog.get_logger(name)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the log sink failed; never raises.
        """
        log_dict = event.to_log_dict()
        try:
            if event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False
        return True

    def log_record_created(
        self,
        kind: str,
        record_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.record_created(kind, record_id, user_id, correlation_id))

    def log_record_updated(
        self,
        kind: str,
        record_id: str,
        user_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.record_updated(kind, record_id, user_id, fields, correlation_id))

    def log_record_deleted(
        self,
        kind: str,
        record_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.record_deleted(kind, record_id, user_id, correlation_id))

    def log_request_rejected(
        self,
        reason: str,
        status_code: int,
        kind: Optional[str] = None,
        entity_id: Optional[str] = None,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.request_rejected(
            reason=reason,
            status_code=status_code,
            kind=kind,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    def log_store_failed(
        self,
        operation: str,
        error_message: str,
        kind: Optional[str] = None,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.store_failed(
            operation=operation,
            error_message=error_message,
            kind=kind,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    def log_sync_rolled_back(
        self,
        kind: str,
        operation: str,
        record_id: str,
        error_message: str,
    ) -> None:
        self.log(AuditEventBuilder.sync_rolled_back(kind, operation, record_id, error_message))

    def log_local_storage_failed(self, key: str, operation: str, error_message: str) -> None:
        self.log(AuditEventBuilder.local_storage_failed(key, operation, error_message))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request and pass it through.
    """
    return uuid4()
