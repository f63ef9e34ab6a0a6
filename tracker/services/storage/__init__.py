"""
Storage Services Package

Provides the abstract store interface and three interchangeable backends:
in-memory, SQL document store and Google Sheets.
"""

from tracker.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    NotFoundError,
    ResourceStore,
    StorageError,
    ValidationError,
)
from tracker.services.storage.memory import InMemoryResourceStore
from tracker.services.storage.document import DocumentResourceStore
from tracker.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsResourceStore,
)

__all__ = [
    # Interface
    "ResourceStore",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
    # Implementations
    "DocumentResourceStore",
    "GoogleSheetsClient",
    "GoogleSheetsResourceStore",
    "InMemoryResourceStore",
]
