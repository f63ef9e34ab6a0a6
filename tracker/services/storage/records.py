"""
Record construction shared by every backend and the sync client.

Stores only decide where bytes go; what a valid record looks like is
decided here, so the in-memory, document and spreadsheet backends cannot
drift apart.
"""

from datetime import date, datetime
from typing import Any, Optional, TypeVar
from uuid import uuid4

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from tracker.models.resources import Habit, Record, ResourceKind, model_for
from tracker.services.storage.interface import ValidationError


M = TypeVar("M", bound=BaseModel)

# Fields a client may never overwrite on update
PROTECTED_FIELDS = frozenset({"id", "user_id", "created_at"})


def new_record_id() -> str:
    return str(uuid4())


def _issues(error: PydanticValidationError) -> list[dict]:
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "__root__",
            "message": err["msg"],
        }
        for err in error.errors()
    ]


def validate_model(model: type[M], data: dict[str, Any]) -> M:
    """Validate data against any model, turning pydantic errors into ValidationError."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        issues = _issues(e)
        summary = "; ".join(f"{i['field']}: {i['message']}" for i in issues)
        raise ValidationError(f"Invalid {model.__name__}: {summary}", issues)


def field_name(model: type[Record], key: str) -> Optional[str]:
    """Resolve a wire (camelCase) or attribute (snake_case) key to a field name."""
    if key in model.model_fields:
        return key
    for name, info in model.model_fields.items():
        if info.alias == key:
            return name
    return None


def finalize(record: Record, today: Optional[date] = None) -> Record:
    """Apply derived fields that must be refreshed on every write."""
    if isinstance(record, Habit):
        return record.with_streak(today)
    return record


def build_record(
    kind: ResourceKind,
    user_key: str,
    fields: dict[str, Any],
    now: Optional[datetime] = None,
    today: Optional[date] = None,
) -> Record:
    """
    Build a validated record for create.

    userId always comes from the scope, never from the payload.
    """
    if not isinstance(fields, dict):
        raise ValidationError("Record body must be a JSON object")

    model = model_for(kind)
    data: dict[str, Any] = {}
    for key, value in fields.items():
        name = field_name(model, key)
        if name is None or name == "user_id":
            continue
        data[name] = value

    if not data.get("id"):
        data["id"] = new_record_id()
    if data.get("created_at") is None:
        data["created_at"] = now or datetime.utcnow()
    data["user_id"] = user_key

    return finalize(validate_model(model, data), today)


def merge_record(
    existing: Record,
    fields: dict[str, Any],
    today: Optional[date] = None,
) -> Record:
    """Merge update fields into a copy of an existing record and re-validate."""
    if not isinstance(fields, dict):
        raise ValidationError("Update body must be a JSON object")

    model = type(existing)
    data = existing.model_dump()
    for key, value in fields.items():
        name = field_name(model, key)
        if name is None or name in PROTECTED_FIELDS:
            continue
        data[name] = value

    return finalize(validate_model(model, data), today)


def changed_fields(model: type[Record], fields: dict[str, Any]) -> list[str]:
    """Names of the writable fields an update payload touches."""
    names = (field_name(model, key) for key in fields)
    return [name for name in names if name and name not in PROTECTED_FIELDS]
