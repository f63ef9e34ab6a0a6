"""
Local Fallback Storage

A string key/value store standing in for browser local storage when no
remote API is configured. The whole map is persisted as one JSON file
(or kept in memory only when no path is given).

Collections are namespaced per local user: "{prefix}_{username}_{key}".
Reads deserialize a whole collection; writes serialize and overwrite it.
A failed write is logged and otherwise ignored, so the data lives on in
memory for the rest of the session.
"""

import json
from pathlib import Path
from typing import Any, Optional, Union

from tracker.audit import AuditLogger


class LocalStorageError(Exception):
    """The backing file could not be written."""
    pass


class LocalStorage:
    """Persistent string key/value map."""

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._path = Path(path) if path else None
        self._audit_logger = audit_logger or AuditLogger()
        self._data: dict[str, str] = {}
        if self._path and self._path.exists():
            try:
                loaded = json.loads(self._path.read_text(encoding="utf-8"))
                self._data = {str(k): str(v) for k, v in loaded.items()}
            except (OSError, ValueError, AttributeError) as e:
                self._audit_logger.log_local_storage_failed(str(self._path), "load", str(e))

    def _flush(self) -> None:
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(self._data), encoding="utf-8")
        except OSError as e:
            raise LocalStorageError(f"Failed to write {self._path}: {e}")

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)
        self._flush()

    def keys(self) -> list[str]:
        return list(self._data)


def storage_key(key: str, username: Optional[str] = None, prefix: str = "tracker") -> str:
    """Namespaced key; the bare key when nobody is logged in."""
    if not username:
        return key
    return f"{prefix}_{username}_{key}"


class LocalNamespace:
    """JSON values stored under one local user's namespace."""

    def __init__(
        self,
        storage: LocalStorage,
        username: Optional[str] = None,
        prefix: str = "tracker",
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.storage = storage
        self.username = username
        self.prefix = prefix
        self._audit_logger = audit_logger or AuditLogger()

    def key(self, key: str) -> str:
        return storage_key(key, self.username, self.prefix)

    def read(self, key: str, default: Any = None) -> Any:
        """Deserialize a stored value; unreadable data yields the default."""
        raw = self.storage.get_item(self.key(key))
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            self._audit_logger.log_local_storage_failed(self.key(key), "read", str(e))
            return default

    def write(self, key: str, value: Any) -> bool:
        """Serialize and overwrite a value. Returns False if it was not persisted."""
        try:
            self.storage.set_item(self.key(key), json.dumps(value))
        except (TypeError, ValueError, LocalStorageError) as e:
            self._audit_logger.log_local_storage_failed(self.key(key), "write", str(e))
            return False
        return True

    def remove(self, key: str) -> None:
        try:
            self.storage.remove_item(self.key(key))
        except LocalStorageError as e:
            self._audit_logger.log_local_storage_failed(self.key(key), "remove", str(e))
