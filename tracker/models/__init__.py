"""
Data Models Package

This package contains all Pydantic models used by the tracker.
All data flowing between clients, the API and the stores conforms to these schemas.
"""

from tracker.models.resources import (
    DAILY,
    MODEL_BY_KIND,
    WEEKDAY_TAGS,
    BlockCategory,
    Habit,
    Priority,
    Record,
    ResourceKind,
    Task,
    TimeBlock,
    Transaction,
    TransactionType,
    Weekday,
    compute_streak,
    model_for,
)
from tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Resource models
    "DAILY",
    "MODEL_BY_KIND",
    "WEEKDAY_TAGS",
    "BlockCategory",
    "Habit",
    "Priority",
    "Record",
    "ResourceKind",
    "Task",
    "TimeBlock",
    "Transaction",
    "TransactionType",
    "Weekday",
    "compute_streak",
    "model_for",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
