"""
Tests for the resource stores

The contract tests run against every backend through the `store` fixture;
backend-specific behavior is tested at the bottom.
"""

import asyncio
import threading
from datetime import date
from decimal import Decimal

import pytest

from conftest import FakeSheetsClient, days_ago, run
from tracker.models.resources import Habit, ResourceKind, Task, Transaction
from tracker.services.storage import (
    DocumentResourceStore,
    DuplicateError,
    GoogleSheetsResourceStore,
    NotFoundError,
    StorageError,
    ValidationError,
)
from tracker.services.storage.google_sheets import columns_for


VALID_FIELDS = {
    ResourceKind.TASKS: {"title": "Write report", "priority": "high"},
    ResourceKind.HABITS: {"title": "Read", "frequency": ["Mon", "Wed"]},
    ResourceKind.FINANCE: {
        "amount": 42.5, "category": "Food", "date": "2024-05-15", "type": "expense",
    },
    ResourceKind.PLANNER: {
        "title": "Gym", "day": "Monday", "startHour": 7, "duration": 1, "category": "Fitness",
    },
}


class TestStoreContract:
    """Per-user CRUD semantics shared by every backend."""

    @pytest.mark.parametrize("kind", list(ResourceKind))
    def test_create_then_list_returns_record(self, store, kind):
        """Test a created record is listed exactly once and unchanged."""
        async def scenario():
            created = await store.create(kind, "alice", VALID_FIELDS[kind])
            listed = await store.list(kind, "alice")
            return created, listed

        created, listed = run(scenario())
        assert created.user_id == "alice"
        assert created.id
        assert [r for r in listed if r.id == created.id] == [created]

    def test_create_keeps_client_id_and_timestamp(self, store):
        """Test client-synthesized ids and createdAt survive create."""
        fields = {
            "id": "client-1",
            "createdAt": "2024-05-01T10:00:00",
            "title": "Offline task",
        }
        record = run(store.create("tasks", "alice", fields))
        assert record.id == "client-1"
        assert record.created_at.isoformat() == "2024-05-01T10:00:00"

    def test_create_ignores_user_id_in_body(self, store):
        """Test the scope always comes from the caller, never the body."""
        record = run(store.create("tasks", "alice", {"title": "Mine", "userId": "bob"}))
        assert record.user_id == "alice"
        assert run(store.list("tasks", "bob")) == []

    def test_create_rejects_invalid_fields(self, store):
        """Test validation failures carry field issues."""
        with pytest.raises(ValidationError) as exc_info:
            run(store.create("tasks", "alice", {"priority": "urgent"}))
        fields = {issue["field"] for issue in exc_info.value.issues}
        assert {"title", "priority"} <= fields

    def test_create_rejects_non_object_body(self, store):
        """Test a JSON array is not a record."""
        with pytest.raises(ValidationError):
            run(store.create("tasks", "alice", ["title"]))

    def test_duplicate_id_in_same_scope(self, store):
        """Test a reused id within one user scope is refused."""
        async def scenario():
            await store.create("tasks", "alice", {"id": "t1", "title": "First"})
            await store.create("tasks", "alice", {"id": "t1", "title": "Second"})

        with pytest.raises(DuplicateError):
            run(scenario())

    def test_same_id_in_different_scopes(self, store):
        """Test ids are only unique within a user scope."""
        async def scenario():
            await store.create("tasks", "alice", {"id": "t1", "title": "Alice's"})
            await store.create("tasks", "bob", {"id": "t1", "title": "Bob's"})
            return await store.list("tasks", "alice"), await store.list("tasks", "bob")

        alice, bob = run(scenario())
        assert [t.title for t in alice] == ["Alice's"]
        assert [t.title for t in bob] == ["Bob's"]

    def test_scope_isolation(self, store):
        """Test another user can neither see, update nor delete a record."""
        async def scenario():
            record = await store.create("habits", "alice", {"title": "Read"})
            listed = await store.list("habits", "bob")
            with pytest.raises(NotFoundError):
                await store.update("habits", "bob", record.id, {"title": "Hacked"})
            with pytest.raises(NotFoundError):
                await store.delete("habits", "bob", record.id)
            return record, listed, await store.list("habits", "alice")

        record, bob_view, alice_view = run(scenario())
        assert bob_view == []
        assert alice_view == [record]

    def test_update_merges_and_protects_identity(self, store):
        """Test update changes fields but never id, owner or createdAt."""
        async def scenario():
            record = await store.create("tasks", "alice", {"title": "Draft"})
            updated = await store.update("tasks", "alice", record.id, {
                "completed": True,
                "id": "other",
                "userId": "bob",
                "createdAt": "2000-01-01T00:00:00",
            })
            return record, updated

        record, updated = run(scenario())
        assert updated.completed is True
        assert updated.title == "Draft"
        assert updated.id == record.id
        assert updated.user_id == "alice"
        assert updated.created_at == record.created_at

    def test_update_is_idempotent(self, store):
        """Test repeating an update stores the same record."""
        async def scenario():
            record = await store.create("finance", "alice", VALID_FIELDS[ResourceKind.FINANCE])
            first = await store.update("finance", "alice", record.id, {"amount": 10})
            second = await store.update("finance", "alice", record.id, {"amount": 10})
            return first, second, await store.list("finance", "alice")

        first, second, listed = run(scenario())
        assert first == second
        assert listed == [second]
        assert second.amount == Decimal("10")

    def test_update_revalidates(self, store):
        """Test a merged record that breaks the schema is refused."""
        async def scenario():
            record = await store.create("planner", "alice", VALID_FIELDS[ResourceKind.PLANNER])
            await store.update("planner", "alice", record.id, {"startHour": 30})

        with pytest.raises(ValidationError):
            run(scenario())

    def test_update_missing_record(self, store):
        """Test updating an unknown id is NotFound."""
        with pytest.raises(NotFoundError):
            run(store.update("tasks", "alice", "nope", {"title": "x"}))

    def test_delete(self, store):
        """Test delete removes the record and a second delete is NotFound."""
        async def scenario():
            record = await store.create("tasks", "alice", {"title": "Temp"})
            await store.delete("tasks", "alice", record.id)
            remaining = await store.list("tasks", "alice")
            with pytest.raises(NotFoundError):
                await store.delete("tasks", "alice", record.id)
            return remaining

        assert run(scenario()) == []

    def test_habit_streak_is_recomputed(self, store):
        """Test a caller-supplied streak is replaced by the computed one."""
        async def scenario():
            habit = await store.create("habits", "alice", {
                "title": "Read",
                "completedDates": [days_ago(0), days_ago(1), days_ago(2)],
                "streak": 99,
            })
            updated = await store.update("habits", "alice", habit.id, {
                "completedDates": [days_ago(0), days_ago(3)],
            })
            return habit, updated

        habit, updated = run(scenario())
        assert habit.streak == 3
        assert updated.streak == 1


class TestDocumentStore:
    """Tests specific to the SQL document store."""

    def test_records_survive_a_new_store_instance(self, tmp_path):
        """Test documents persist in the database file."""
        url = f"sqlite:///{tmp_path / 'tracker.db'}"
        first = DocumentResourceStore(url)
        record = run(first.create("tasks", "alice", {"title": "Persist me"}))
        first.dispose()

        second = DocumentResourceStore(url)
        assert run(second.list("tasks", "alice")) == [record]
        second.dispose()

    def test_kinds_do_not_mix(self):
        """Test one id can exist once per kind."""
        store = DocumentResourceStore("sqlite://")
        run(store.create("tasks", "alice", {"id": "x", "title": "Task"}))
        run(store.create("habits", "alice", {"id": "x", "title": "Habit"}))
        assert [t.title for t in run(store.list("tasks", "alice"))] == ["Task"]
        assert [h.title for h in run(store.list("habits", "alice"))] == ["Habit"]

    def test_statements_run_off_the_event_loop(self):
        """Test SQL work happens on worker threads, not the loop's thread."""
        class ThreadRecordingStore(DocumentResourceStore):
            def __init__(self, *args, **kwargs):
                super().__init__(*args, **kwargs)
                self.threads = set()

            def _run(self, sql, params=None):
                self.threads.add(threading.get_ident())
                return super()._run(sql, params)

        store = ThreadRecordingStore("sqlite://")

        async def scenario():
            record = await store.create("tasks", "alice", {"title": "Task"})
            await store.update("tasks", "alice", record.id, {"completed": True})
            await store.delete("tasks", "alice", record.id)
            return threading.get_ident()

        loop_thread = run(scenario())
        assert store.threads
        assert loop_thread not in store.threads
        store.dispose()

    def test_amounts_keep_every_digit(self):
        """Test stored documents hold the exact decimal amount."""
        store = DocumentResourceStore("sqlite://")
        amount = Decimal("12345678901234567.89")
        run(store.create("finance", "alice", {
            "amount": str(amount), "category": "Savings", "date": "2024-05-15", "type": "income",
        }))
        assert run(store.list("finance", "alice"))[0].amount == amount
        store.dispose()


class TestGoogleSheetsStore:
    """Tests specific to the spreadsheet store."""

    def test_rows_use_wire_columns_and_json_lists(self):
        """Test the sheet holds a header row and JSON-encoded list cells."""
        client = FakeSheetsClient()
        store = GoogleSheetsResourceStore(client)
        run(store.create("habits", "alice", {
            "id": "h1", "title": "Read", "completedDates": ["2024-05-14"],
        }))

        header, row = client.sheets[ResourceKind.HABITS].values
        assert header == columns_for(ResourceKind.HABITS)
        cells = dict(zip(header, row))
        assert cells["userId"] == "alice"
        assert cells["completedDates"] == '["2024-05-14"]'
        assert cells["frequency"] == '["Daily"]'

    def test_round_trip_through_cells(self):
        """Test records read back from string cells equal what was written."""
        store = GoogleSheetsResourceStore(FakeSheetsClient())

        async def scenario():
            task = await store.create("tasks", "alice", {
                "title": "Pay rent", "completed": True, "dueDate": "2024-06-01",
            })
            txn = await store.create("finance", "alice", {
                "amount": 12.5, "category": "Food", "date": "2024-05-15", "type": "expense",
            })
            return task, txn, await store.list("tasks", "alice"), await store.list("finance", "alice")

        task, txn, tasks, finance = run(scenario())
        assert tasks == [task]
        assert tasks[0].due_date == date(2024, 6, 1)
        assert finance == [txn]

    def test_every_write_overwrites_whole_sheet(self):
        """Test each mutation rewrites the sheet, keeping other users' rows."""
        client = FakeSheetsClient()
        store = GoogleSheetsResourceStore(client)

        async def scenario():
            await store.create("tasks", "alice", {"id": "a", "title": "A"})
            await store.create("tasks", "bob", {"id": "b", "title": "B"})
            await store.delete("tasks", "alice", "a")

        run(scenario())
        sheet = client.sheets[ResourceKind.TASKS]
        assert sheet.writes == 3
        assert [row[0] for row in sheet.values[1:]] == ["b"]

    def test_malformed_rows_are_skipped(self):
        """Test a row that fails validation does not hide the others."""
        client = FakeSheetsClient()
        store = GoogleSheetsResourceStore(client)
        run(store.create("tasks", "alice", {"id": "good", "title": "Good"}))
        header = client.sheets[ResourceKind.TASKS].values[0]
        bad = ["bad" if column == "id" else "" for column in header]
        client.sheets[ResourceKind.TASKS].values.append(bad)

        assert [t.id for t in run(store.list("tasks", "alice"))] == ["good"]

    def test_unparsed_rows_survive_other_writes(self):
        """Test a hand-edited invalid row is written back by another user's create."""
        client = FakeSheetsClient()
        store = GoogleSheetsResourceStore(client)
        sheet = client.sheets[ResourceKind.TASKS]
        cells = {"id": "hand-edited", "userId": "bob", "title": "Fix me", "priority": "urgent"}
        bad = [cells.get(column, "") for column in sheet.values[0]]
        sheet.values.append(bad)

        async def scenario():
            created = await store.create("tasks", "alice", {"title": "New"})
            await store.update("tasks", "alice", created.id, {"completed": True})
            return created, await store.list("tasks", "bob")

        created, bobs = run(scenario())
        assert bobs == []
        assert sheet.values[1] == bad
        assert [row[0] for row in sheet.values[1:]] == ["hand-edited", created.id]

        # Once fixed by hand, the row reads normally
        sheet.values[1][sheet.values[0].index("priority")] = "high"
        assert [t.id for t in run(store.list("tasks", "bob"))] == ["hand-edited"]

    def test_amounts_keep_every_digit(self):
        """Test amounts are stored as exact decimal text, not floats."""
        client = FakeSheetsClient()
        store = GoogleSheetsResourceStore(client)
        amount = "12345678901234567.89"
        run(store.create("finance", "alice", {
            "amount": amount, "category": "Savings", "date": "2024-05-15", "type": "income",
        }))

        sheet = client.sheets[ResourceKind.FINANCE]
        assert sheet.values[1][sheet.values[0].index("amount")] == amount
        assert run(store.list("finance", "alice"))[0].amount == Decimal(amount)

    def test_concurrent_creates_are_serialized(self):
        """Test parallel creates on one kind all land in the sheet."""
        store = GoogleSheetsResourceStore(FakeSheetsClient())

        async def scenario():
            await asyncio.gather(*(
                store.create("tasks", "alice", {"title": f"Task {i}"}) for i in range(5)
            ))
            return await store.list("tasks", "alice")

        assert len(run(scenario())) == 5

    def test_read_failure_is_storage_error(self):
        """Test worksheet errors surface as StorageError."""
        class BrokenClient:
            def get_worksheet(self, kind):
                raise StorageError("Spreadsheet not found: sheet-1")

        store = GoogleSheetsResourceStore(BrokenClient())
        with pytest.raises(StorageError):
            run(store.list("tasks", "alice"))
