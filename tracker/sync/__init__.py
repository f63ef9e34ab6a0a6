"""Client-side sync: optimistic collections over a remote."""

from tracker.sync.collection import (
    FinanceCollection,
    HabitCollection,
    PlannerCollection,
    SyncCollection,
    TaskCollection,
)
from tracker.sync.commands import (
    CreateCommand,
    DeleteCommand,
    MutationState,
    SyncFailure,
    UpdateCommand,
)
from tracker.sync.remote import (
    HttpRemoteCollection,
    LocalRemoteCollection,
    RemoteCollection,
    RemoteError,
    StoreRemoteCollection,
)
from tracker.sync.session import TrackerSession

__all__ = [
    # Collections
    "FinanceCollection",
    "HabitCollection",
    "PlannerCollection",
    "SyncCollection",
    "TaskCollection",
    "TrackerSession",
    # Commands
    "CreateCommand",
    "DeleteCommand",
    "MutationState",
    "SyncFailure",
    "UpdateCommand",
    # Remotes
    "HttpRemoteCollection",
    "LocalRemoteCollection",
    "RemoteCollection",
    "RemoteError",
    "StoreRemoteCollection",
]
