"""
Remote Collections

A RemoteCollection is the far side of one SyncCollection: one resource kind
for one user. Three transports are available:

- HttpRemoteCollection: the REST API over httpx
- StoreRemoteCollection: a ResourceStore in the same process
- LocalRemoteCollection: the local fallback namespace (degraded mode)

Every failure surfaces as RemoteError, StorageError or ValidationError so
the sync layer knows exactly what to roll back on.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from tracker.audit import AuditLogger
from tracker.local.storage import LocalNamespace
from tracker.models.resources import Record, ResourceKind, model_for
from tracker.services.storage import (
    DuplicateError,
    NotFoundError,
    ResourceStore,
    StorageError,
)
from tracker.services.storage.records import merge_record


class RemoteError(Exception):
    """The remote side refused or failed an operation."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RemoteCollection(ABC):
    """One user's records of one kind, wherever they are kept."""

    def __init__(self, kind: ResourceKind):
        self.kind = ResourceKind(kind)
        self.model = model_for(self.kind)

    @abstractmethod
    async def list(self) -> list[Record]:
        pass

    @abstractmethod
    async def create(self, record: Record) -> None:
        """Persist a client-built record, keeping its id."""
        pass

    @abstractmethod
    async def update(self, record_id: str, fields: dict[str, Any]) -> None:
        """Merge JSON-ready wire fields into a stored record."""
        pass

    @abstractmethod
    async def delete(self, record_id: str) -> None:
        pass


class HttpRemoteCollection(RemoteCollection):
    """
    REST transport.

    The user id travels in a header on every request. Exactly one attempt
    is made per call; timeouts are whatever the httpx client carries.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        kind: ResourceKind,
        user_key: str,
        header_name: str = "x-user-id",
    ):
        super().__init__(kind)
        self._client = client
        self._headers = {header_name: user_key}

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(
                method, path, headers=self._headers, **kwargs
            )
        except httpx.HTTPError as e:
            raise RemoteError(f"API request failed: {e}")

        if response.is_error:
            try:
                message = response.json().get("error") or response.reason_phrase
            except (ValueError, AttributeError):
                message = response.reason_phrase
            raise RemoteError(f"API Error: {message}", response.status_code)

        try:
            return response.json()
        except ValueError:
            raise RemoteError("API returned a non-JSON body", response.status_code)

    async def list(self) -> list[Record]:
        payload = await self._request("GET", f"/{self.kind.value}")
        try:
            return [self.model.model_validate(item) for item in payload]
        except (TypeError, ValueError) as e:
            raise RemoteError(f"API returned malformed {self.kind.value}: {e}")

    async def create(self, record: Record) -> None:
        await self._request("POST", f"/{self.kind.value}", json=record.to_wire())

    async def update(self, record_id: str, fields: dict[str, Any]) -> None:
        await self._request("PUT", f"/{self.kind.value}/{record_id}", json=fields)

    async def delete(self, record_id: str) -> None:
        await self._request("DELETE", f"/{self.kind.value}/{record_id}")


class StoreRemoteCollection(RemoteCollection):
    """Binds a sync collection straight to a ResourceStore."""

    def __init__(self, store: ResourceStore, kind: ResourceKind, user_key: str):
        super().__init__(kind)
        self._store = store
        self._user_key = user_key

    async def list(self) -> list[Record]:
        return await self._store.list(self.kind, self._user_key)

    async def create(self, record: Record) -> None:
        await self._store.create(self.kind, self._user_key, record.to_wire())

    async def update(self, record_id: str, fields: dict[str, Any]) -> None:
        await self._store.update(self.kind, self._user_key, record_id, fields)

    async def delete(self, record_id: str) -> None:
        await self._store.delete(self.kind, self._user_key, record_id)


class LocalRemoteCollection(RemoteCollection):
    """
    Degraded mode: the whole collection lives under one local storage key.

    Every operation reads the full list, changes it, and writes the full
    list back. A write that fails is logged by the namespace and the
    operation still counts as done.
    """

    def __init__(
        self,
        namespace: LocalNamespace,
        kind: ResourceKind,
        prepend: bool = True,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(kind)
        self._namespace = namespace
        self._prepend = prepend
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def storage_key(self) -> str:
        return self._namespace.key(self.kind.value)

    def _read(self) -> list[dict]:
        raw = self._namespace.read(self.kind.value, default=[])
        return raw if isinstance(raw, list) else []

    def _write(self, items: list[dict]) -> None:
        self._namespace.write(self.kind.value, items)

    @staticmethod
    def _index(items: list[dict], record_id: str) -> Optional[int]:
        for index, item in enumerate(items):
            if isinstance(item, dict) and item.get("id") == record_id:
                return index
        return None

    async def list(self) -> list[Record]:
        records = []
        for item in self._read():
            try:
                records.append(self.model.model_validate(item))
            except (TypeError, ValueError) as e:
                self._audit_logger.log_local_storage_failed(self.storage_key, "parse", str(e))
        return records

    async def create(self, record: Record) -> None:
        items = self._read()
        if self._index(items, record.id) is not None:
            raise DuplicateError(f"{self.kind.value} record already exists: {record.id}")
        if self._prepend:
            items.insert(0, record.to_storage())
        else:
            items.append(record.to_storage())
        self._write(items)

    async def update(self, record_id: str, fields: dict[str, Any]) -> None:
        items = self._read()
        index = self._index(items, record_id)
        if index is None:
            raise NotFoundError(f"{self.kind.value} record not found: {record_id}")
        try:
            current = self.model.model_validate(items[index])
        except ValueError as e:
            raise StorageError(f"Corrupt local {self.kind.value} record {record_id}: {e}")
        items[index] = merge_record(current, fields).to_storage()
        self._write(items)

    async def delete(self, record_id: str) -> None:
        items = self._read()
        index = self._index(items, record_id)
        if index is None:
            raise NotFoundError(f"{self.kind.value} record not found: {record_id}")
        del items[index]
        self._write(items)
