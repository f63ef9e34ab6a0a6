"""
In-Memory Storage Implementation

Used for tests and local development. Records live in insertion-ordered
dicts keyed by (user_key, record_id), one dict per resource kind.
Nothing survives a restart.
"""

from typing import Any

from tracker.models.resources import Record, ResourceKind
from tracker.services.storage.interface import (
    DuplicateError,
    NotFoundError,
    ResourceStore,
)
from tracker.services.storage.records import build_record, merge_record


class InMemoryResourceStore(ResourceStore):
    """Per-record in-memory store."""

    name = "memory"

    def __init__(self):
        self._collections: dict[ResourceKind, dict[tuple[str, str], Record]] = {
            kind: {} for kind in ResourceKind
        }

    def _collection(self, kind: ResourceKind) -> dict[tuple[str, str], Record]:
        return self._collections[ResourceKind(kind)]

    async def list(self, kind: ResourceKind, user_key: str) -> list[Record]:
        return [
            record
            for (owner, _), record in self._collection(kind).items()
            if owner == user_key
        ]

    async def create(
        self,
        kind: ResourceKind,
        user_key: str,
        fields: dict[str, Any],
    ) -> Record:
        kind = ResourceKind(kind)
        record = build_record(kind, user_key, fields)
        collection = self._collection(kind)
        key = (user_key, record.id)
        if key in collection:
            raise DuplicateError(f"{kind.value} record already exists: {record.id}")
        collection[key] = record
        return record

    async def update(
        self,
        kind: ResourceKind,
        user_key: str,
        record_id: str,
        fields: dict[str, Any],
    ) -> Record:
        kind = ResourceKind(kind)
        collection = self._collection(kind)
        key = (user_key, record_id)
        if key not in collection:
            raise NotFoundError(f"{kind.value} record not found: {record_id}")
        record = merge_record(collection[key], fields)
        collection[key] = record
        return record

    async def delete(self, kind: ResourceKind, user_key: str, record_id: str) -> None:
        kind = ResourceKind(kind)
        collection = self._collection(kind)
        try:
            del collection[(user_key, record_id)]
        except KeyError:
            raise NotFoundError(f"{kind.value} record not found: {record_id}")
