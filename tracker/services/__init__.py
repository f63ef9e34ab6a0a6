"""Services package."""

from tracker.services.identity import (
    USER_ID_STORAGE_KEY,
    MissingIdentityError,
    get_user_id,
    resolve_user_key,
)
from tracker.services.storage import (
    ConnectionError,
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

__all__ = [
    # Identity
    "USER_ID_STORAGE_KEY",
    "MissingIdentityError",
    "get_user_id",
    "resolve_user_key",
    # Storage services
    "ConnectionError",
    "DocumentResourceStore",
    "DuplicateError",
    "GoogleSheetsClient",
    "GoogleSheetsResourceStore",
    "InMemoryResourceStore",
    "NotFoundError",
    "ResourceStore",
    "StorageError",
    "ValidationError",
]
