"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the document store for Google Sheets without touching the API
2. Use in-memory storage for testing
3. Bind the sync client directly to a store in-process

Every operation is scoped by a user key. A record that belongs to another
user is indistinguishable from a record that does not exist.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from tracker.models.resources import Record, ResourceKind


class ResourceStore(ABC):
    """
    Abstract interface for per-user record storage.

    Any storage implementation (memory, SQL documents, Google Sheets)
    must implement these methods for every ResourceKind.
    """

    name: str = "abstract"

    @abstractmethod
    async def list(self, kind: ResourceKind, user_key: str) -> list[Record]:
        """
        List all records owned by a user.

        Args:
            kind: Resource collection to read
            user_key: Owning user scope

        Returns:
            Records in implementation-defined order

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def create(
        self,
        kind: ResourceKind,
        user_key: str,
        fields: dict[str, Any],
    ) -> Record:
        """
        Validate, stamp and persist a new record.

        A caller-supplied id and createdAt are kept; otherwise they are
        assigned here.

        Raises:
            ValidationError: If required fields are missing or malformed
            DuplicateError: If the id already exists in this user scope
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def update(
        self,
        kind: ResourceKind,
        user_key: str,
        record_id: str,
        fields: dict[str, Any],
    ) -> Record:
        """
        Merge fields into an existing record.

        Raises:
            NotFoundError: If (record_id, user_key) does not exist
            ValidationError: If the merged record is invalid
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete(
        self,
        kind: ResourceKind,
        user_key: str,
        record_id: str,
    ) -> None:
        """
        Remove a record.

        Raises:
            NotFoundError: If (record_id, user_key) does not exist
            StorageError: If delete fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in the caller's scope."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class ValidationError(Exception):
    """
    Record fields are missing or malformed.

    Kept apart from StorageError so the API can answer 400 instead of 500.
    """

    def __init__(self, message: str, issues: Optional[list[dict]] = None):
        self.issues = issues or []
        super().__init__(message)
