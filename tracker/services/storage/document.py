"""
Document Storage Implementation

Each record is one JSON document in a single SQL table, keyed by
(kind, user_id, id). This gives per-record writes, so concurrent clients
only clobber each other when they touch the same record.

TRADEOFFS:
- Filtering beyond the user scope happens in Python
- The payload is opaque to SQL; schema changes need no migration
- The engine is synchronous; every statement runs on a worker thread
"""

import asyncio
from typing import Any, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from tracker.models.resources import Record, ResourceKind, model_for
from tracker.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    NotFoundError,
    ResourceStore,
    StorageError,
)
from tracker.services.storage.records import build_record, merge_record


SCHEMA = """
create table if not exists tracker_records (
    kind varchar(20) not null,
    user_id varchar(200) not null,
    id varchar(100) not null,
    created_at varchar(40) not null,
    payload text not null,
    primary key (kind, user_id, id)
)
"""


def _make_engine(database_url: str) -> Engine:
    # In-memory SQLite is per connection, so every session must share one
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    # Statements run on worker threads
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(
        database_url,
        future=True,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


class DocumentResourceStore(ResourceStore):
    """SQL-backed store holding one JSON document per record."""

    name = "document"

    def __init__(self, database_url: Optional[str] = None, engine: Optional[Engine] = None):
        if engine is None:
            if database_url is None:
                from tracker.config import get_settings
                database_url = get_settings().store.database_url
            engine = _make_engine(database_url)
        self.engine = engine
        self._ready = False

    def _run(self, sql: str, params: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        try:
            if not self._ready:
                with self.engine.begin() as conn:
                    conn.execute(text(SCHEMA))
                self._ready = True
            with self.engine.begin() as conn:
                result = conn.execute(text(sql), params or {})
                if result.returns_rows:
                    return [dict(row._mapping) for row in result.fetchall()]
                return [{"rowcount": result.rowcount}]
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            if not self._ready:
                raise ConnectionError(f"Failed to initialize document store: {e}")
            raise StorageError(f"Document store error: {e.__class__.__name__}")

    async def _execute(self, sql: str, params: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        """Run one statement on a worker thread, off the event loop."""
        return await asyncio.to_thread(self._run, sql, params)

    def _load(self, kind: ResourceKind, payload: str) -> Record:
        return model_for(kind).model_validate_json(payload)

    async def _get(self, kind: ResourceKind, user_key: str, record_id: str) -> Record:
        rows = await self._execute(
            "select payload from tracker_records "
            "where kind = :kind and user_id = :user_id and id = :id",
            {"kind": kind.value, "user_id": user_key, "id": record_id},
        )
        if not rows:
            raise NotFoundError(f"{kind.value} record not found: {record_id}")
        return self._load(kind, rows[0]["payload"])

    async def list(self, kind: ResourceKind, user_key: str) -> list[Record]:
        kind = ResourceKind(kind)
        rows = await self._execute(
            "select payload from tracker_records "
            "where kind = :kind and user_id = :user_id order by created_at",
            {"kind": kind.value, "user_id": user_key},
        )
        records = []
        for row in rows:
            try:
                records.append(self._load(kind, row["payload"]))
            except ValueError as e:
                raise StorageError(f"Corrupt {kind.value} document: {e}")
        return records

    async def create(
        self,
        kind: ResourceKind,
        user_key: str,
        fields: dict[str, Any],
    ) -> Record:
        kind = ResourceKind(kind)
        record = build_record(kind, user_key, fields)
        try:
            await self._execute(
                "insert into tracker_records (kind, user_id, id, created_at, payload) "
                "values (:kind, :user_id, :id, :created_at, :payload)",
                {
                    "kind": kind.value,
                    "user_id": user_key,
                    "id": record.id,
                    "created_at": record.created_at.isoformat(),
                    "payload": record.to_storage_json(),
                },
            )
        except IntegrityError:
            raise DuplicateError(f"{kind.value} record already exists: {record.id}")
        return record

    async def update(
        self,
        kind: ResourceKind,
        user_key: str,
        record_id: str,
        fields: dict[str, Any],
    ) -> Record:
        kind = ResourceKind(kind)
        record = merge_record(await self._get(kind, user_key, record_id), fields)
        rows = await self._execute(
            "update tracker_records set payload = :payload "
            "where kind = :kind and user_id = :user_id and id = :id",
            {
                "kind": kind.value,
                "user_id": user_key,
                "id": record_id,
                "payload": record.to_storage_json(),
            },
        )
        # Deleted between the read and the write
        if rows[0]["rowcount"] == 0:
            raise NotFoundError(f"{kind.value} record not found: {record_id}")
        return record

    async def delete(self, kind: ResourceKind, user_key: str, record_id: str) -> None:
        kind = ResourceKind(kind)
        rows = await self._execute(
            "delete from tracker_records "
            "where kind = :kind and user_id = :user_id and id = :id",
            {"kind": kind.value, "user_id": user_key, "id": record_id},
        )
        if rows[0]["rowcount"] == 0:
            raise NotFoundError(f"{kind.value} record not found: {record_id}")

    def dispose(self) -> None:
        self.engine.dispose()
