"""
Optimistic Mutation Commands

Each command captures enough state to undo itself:

    apply(items)  -> local change, synchronous, before any network I/O
    send(remote)  -> exactly one remote attempt
    invert(items) -> undo the local change if send failed

Lifecycle: IDLE -> OPTIMISTIC_APPLIED -> CONFIRMED | ROLLED_BACK.
There is no retry state.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from tracker.models.resources import Record
from tracker.sync.remote import RemoteCollection


class MutationState(str, Enum):
    IDLE = "idle"
    OPTIMISTIC_APPLIED = "optimistic_applied"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


@dataclass
class SyncFailure:
    """Why the last optimistic change (or load) was undone."""
    operation: str
    record_id: Optional[str]
    message: str
    occurred_at: datetime = field(default_factory=datetime.utcnow)


def _index_of(items: list[Record], record_id: str) -> Optional[int]:
    for index, item in enumerate(items):
        if item.id == record_id:
            return index
    return None


class Command(ABC):
    """One optimistic mutation of a SyncCollection."""

    operation = "mutation"

    def __init__(self):
        self.state = MutationState.IDLE
        self.error: Optional[str] = None

    @property
    @abstractmethod
    def record_id(self) -> str:
        pass

    @abstractmethod
    def apply(self, items: list[Record]) -> None:
        pass

    @abstractmethod
    def invert(self, items: list[Record]) -> None:
        pass

    @abstractmethod
    async def send(self, remote: RemoteCollection) -> None:
        pass

    @property
    def confirmed(self) -> bool:
        return self.state == MutationState.CONFIRMED

    @property
    def rolled_back(self) -> bool:
        return self.state == MutationState.ROLLED_BACK


class CreateCommand(Command):
    operation = "create"

    def __init__(self, record: Record, prepend: bool = True):
        super().__init__()
        self.record = record
        self.prepend = prepend

    @property
    def record_id(self) -> str:
        return self.record.id

    def apply(self, items):
        if self.prepend:
            items.insert(0, self.record)
        else:
            items.append(self.record)

    def invert(self, items):
        # By identity: another record may carry the same id
        for index, item in enumerate(items):
            if item is self.record:
                del items[index]
                return

    async def send(self, remote):
        await remote.create(self.record)


class UpdateCommand(Command):
    operation = "update"

    def __init__(self, previous: Record, updated: Record, fields: dict[str, Any]):
        super().__init__()
        self.previous = previous
        self.updated = updated
        self.fields = fields

    @property
    def record_id(self) -> str:
        return self.updated.id

    def apply(self, items):
        index = _index_of(items, self.record_id)
        if index is not None:
            items[index] = self.updated

    def invert(self, items):
        # A record deleted meanwhile stays deleted
        index = _index_of(items, self.record_id)
        if index is not None:
            items[index] = self.previous

    async def send(self, remote):
        await remote.update(self.record_id, self.fields)


class DeleteCommand(Command):
    operation = "delete"

    def __init__(self, record: Record, index: int):
        super().__init__()
        self.record = record
        self.index = index

    @property
    def record_id(self) -> str:
        return self.record.id

    def apply(self, items):
        index = _index_of(items, self.record.id)
        if index is not None:
            del items[index]

    def invert(self, items):
        if _index_of(items, self.record.id) is None:
            items.insert(min(self.index, len(items)), self.record)

    async def send(self, remote):
        await remote.delete(self.record.id)
