"""
Sync Collections

One SyncCollection per resource kind holds the session's in-memory copy of
the user's records and keeps it consistent with a RemoteCollection:

1. load() replaces the whole collection from the remote
2. create/update/delete change memory first (optimistic), then make exactly
   one remote call
3. a failed remote call undoes the local change and sets `error`

GUARANTEES:
- The local change is applied before the first await, so no reader ever sees
  half of it
- Mutations hit memory in call order; remote confirmations may land in any
  order, and two racing mutations on one record may overwrite each other
- Derived views are computed from current items on every call, including
  writes the remote has not confirmed yet
"""

from datetime import date
from decimal import Decimal
from typing import Any, Generic, Optional, TypeVar, Union

from tracker import aggregates
from tracker.audit import AuditLogger
from tracker.models.resources import (
    Habit,
    Priority,
    Record,
    ResourceKind,
    Task,
    TimeBlock,
    Transaction,
    TransactionType,
    Weekday,
)
from tracker.services.storage import DuplicateError, StorageError, ValidationError
from tracker.services.storage.records import build_record, changed_fields, merge_record
from tracker.sync.commands import (
    Command,
    CreateCommand,
    DeleteCommand,
    MutationState,
    SyncFailure,
    UpdateCommand,
)
from tracker.sync.remote import RemoteCollection, RemoteError


R = TypeVar("R", bound=Record)

# What a failed remote call may raise; anything else is a bug and propagates
REMOTE_FAILURES = (RemoteError, StorageError, ValidationError)


class SyncCollection(Generic[R]):
    """In-memory state container for one resource kind."""

    kind: ResourceKind
    # Recency-ordered kinds show new records first
    prepend = True

    def __init__(
        self,
        remote: RemoteCollection,
        user_key: str,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._remote = remote
        self.user_key = user_key
        self._audit_logger = audit_logger or AuditLogger()
        self._items: list[R] = []
        self.loading = False
        self.error: Optional[SyncFailure] = None

    @property
    def items(self) -> list[R]:
        """Snapshot of the current records, in display order."""
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, record_id: str) -> Optional[R]:
        for item in self._items:
            if item.id == record_id:
                return item
        return None

    def _require(self, record_id: str) -> R:
        record = self.get(record_id)
        if record is None:
            raise KeyError(f"No {self.kind.value} record {record_id} in this session")
        return record

    async def load(self) -> None:
        """Replace the collection with the remote one. Failures keep what we had."""
        self.loading = True
        try:
            records = await self._remote.list()
        except REMOTE_FAILURES as e:
            self.error = SyncFailure(operation="load", record_id=None, message=str(e))
        else:
            self._items = list(records)
            self.error = None
        finally:
            self.loading = False

    async def _execute(self, command: Command) -> Command:
        command.apply(self._items)
        command.state = MutationState.OPTIMISTIC_APPLIED
        try:
            await command.send(self._remote)
        except REMOTE_FAILURES as e:
            command.invert(self._items)
            command.state = MutationState.ROLLED_BACK
            command.error = str(e)
            self.error = SyncFailure(
                operation=command.operation,
                record_id=command.record_id,
                message=str(e),
            )
            self._audit_logger.log_sync_rolled_back(
                kind=self.kind.value,
                operation=command.operation,
                record_id=command.record_id,
                error_message=str(e),
            )
        else:
            command.state = MutationState.CONFIRMED
        return command

    async def create(self, fields: dict[str, Any]) -> CreateCommand:
        """
        Add a record built locally, with a client-generated id.

        Raises:
            ValidationError: If the fields do not make a valid record
            DuplicateError: If the session already holds a record with that id

        Nothing is applied when either is raised.
        """
        record = build_record(self.kind, self.user_key, fields)
        if self.get(record.id) is not None:
            raise DuplicateError(f"{self.kind.value} record already exists: {record.id}")
        return await self._execute(CreateCommand(record, prepend=self.prepend))

    async def update(self, record_id: str, fields: dict[str, Any]) -> UpdateCommand:
        """
        Merge fields into a held record.

        Raises:
            KeyError: If the record is not in this session
            ValidationError: If the merged record is invalid
        """
        previous = self._require(record_id)
        updated = merge_record(previous, fields)
        wire = updated.to_wire()
        model = type(previous)
        aliases = [
            model.model_fields[name].alias or name
            for name in changed_fields(model, fields)
        ]
        payload = {alias: wire[alias] for alias in aliases}
        return await self._execute(UpdateCommand(previous, updated, payload))

    async def delete(self, record_id: str) -> DeleteCommand:
        """
        Remove a held record.

        Raises:
            KeyError: If the record is not in this session
        """
        record = self._require(record_id)
        return await self._execute(DeleteCommand(record, self._items.index(record)))


class TaskCollection(SyncCollection[Task]):
    kind = ResourceKind.TASKS

    async def add_task(
        self,
        title: str,
        due_date: Optional[date] = None,
        priority: Union[Priority, str] = Priority.MEDIUM,
    ) -> CreateCommand:
        return await self.create({
            "title": title,
            "completed": False,
            "dueDate": due_date,
            "priority": priority,
        })

    async def toggle_task(self, record_id: str) -> UpdateCommand:
        task = self._require(record_id)
        return await self.update(record_id, {"completed": not task.completed})

    def completion_rate(self) -> float:
        return aggregates.completion_rate(self._items)

    def pending(self) -> list[Task]:
        return aggregates.pending_tasks(self._items)

    def due_on(self, day: Optional[date] = None) -> list[Task]:
        return aggregates.tasks_due_on(self._items, day)


class HabitCollection(SyncCollection[Habit]):
    kind = ResourceKind.HABITS

    async def add_habit(
        self,
        title: str,
        frequency: Optional[list[str]] = None,
    ) -> CreateCommand:
        fields: dict[str, Any] = {"title": title, "completedDates": []}
        if frequency:
            fields["frequency"] = frequency
        return await self.create(fields)

    async def toggle_completion(
        self,
        record_id: str,
        day: Optional[date] = None,
    ) -> UpdateCommand:
        """Mark or unmark a day; dates and streak go out in one update."""
        habit = self._require(record_id)
        toggled = habit.with_completion_toggled(day or date.today())
        return await self.update(record_id, {
            "completedDates": toggled.completed_dates,
            "streak": toggled.streak,
        })

    def total_streak(self) -> int:
        return aggregates.total_streak(self._items)

    def average_streak(self) -> float:
        return aggregates.average_streak(self._items)

    def completed_on(self, day: Optional[date] = None) -> list[Habit]:
        return aggregates.habits_completed_on(self._items, day)


class FinanceCollection(SyncCollection[Transaction]):
    kind = ResourceKind.FINANCE

    async def add_transaction(
        self,
        amount: Union[Decimal, int, float, str],
        category: str,
        type: Union[TransactionType, str],
        on: Optional[date] = None,
        description: Optional[str] = None,
    ) -> CreateCommand:
        return await self.create({
            "amount": Decimal(str(amount)),
            "category": category,
            "type": type,
            "date": on or date.today(),
            "description": description,
        })

    def balance(self) -> Decimal:
        return aggregates.balance(self._items)

    def income(self) -> Decimal:
        return aggregates.total_income(self._items)

    def expenses(self) -> Decimal:
        return aggregates.total_expenses(self._items)

    def category_totals(self) -> dict[str, Decimal]:
        return aggregates.category_totals(self._items)

    def recent(self, days: int = 7, today: Optional[date] = None) -> list[Transaction]:
        return aggregates.transactions_in_last_days(self._items, days, today)

    def expenses_this_month(self, today: Optional[date] = None) -> Decimal:
        return aggregates.expenses_this_month(self._items, today)

    def expense_trend(self, days: int = 7, today: Optional[date] = None) -> list[tuple[date, Decimal]]:
        return aggregates.daily_expense_trend(self._items, days, today)


class PlannerCollection(SyncCollection[TimeBlock]):
    kind = ResourceKind.PLANNER
    prepend = False

    async def add_block(
        self,
        title: str,
        day: Union[Weekday, str],
        start_hour: int,
        duration: int,
        category: str,
    ) -> CreateCommand:
        return await self.create({
            "title": title,
            "day": day,
            "startHour": start_hour,
            "duration": duration,
            "category": category,
        })

    def blocks_for_day(self, day: Union[Weekday, str]) -> list[TimeBlock]:
        return aggregates.blocks_for_day(self._items, day)

    def blocks_for_slot(self, day: Union[Weekday, str], hour: int) -> list[TimeBlock]:
        return aggregates.blocks_for_slot(self._items, day, hour)

    def overlaps(self) -> list[tuple[TimeBlock, TimeBlock]]:
        return aggregates.find_overlaps(self._items)

    def hours_by_category(self) -> dict[str, int]:
        return aggregates.planned_hours_by_category(self._items)


COLLECTION_BY_KIND: dict[ResourceKind, type[SyncCollection]] = {
    ResourceKind.TASKS: TaskCollection,
    ResourceKind.HABITS: HabitCollection,
    ResourceKind.FINANCE: FinanceCollection,
    ResourceKind.PLANNER: PlannerCollection,
}
