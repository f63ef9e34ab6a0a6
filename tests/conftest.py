"""
Shared fixtures for the tracker tests.

No real network or Google API calls: the spreadsheet backend runs against
an in-memory fake worksheet client, and HTTP goes through the ASGI app.
"""

import asyncio
from datetime import date, timedelta

import pytest

from tracker.models.resources import ResourceKind
from tracker.services.storage import (
    DocumentResourceStore,
    GoogleSheetsResourceStore,
    InMemoryResourceStore,
)
from tracker.services.storage.google_sheets import columns_for


def run(coro):
    """Drive one coroutine to completion."""
    return asyncio.run(coro)


def days_ago(n: int) -> str:
    return (date.today() - timedelta(days=n)).isoformat()


class FakeWorksheet:
    """Just enough of gspread.Worksheet for whole-sheet reads and writes."""

    def __init__(self, header: list[str]):
        self.values: list[list[str]] = [list(header)]
        self.writes = 0

    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.values]

    def clear(self) -> None:
        self.values = []

    def update(self, values=None, range_name=None, value_input_option=None) -> None:
        self.values = [list(row) for row in values]
        self.writes += 1

    def append_row(self, row: list[str]) -> None:
        self.values.append(list(row))


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient; one FakeWorksheet per kind."""

    def __init__(self):
        self.sheets = {kind: FakeWorksheet(columns_for(kind)) for kind in ResourceKind}

    def get_worksheet(self, kind: ResourceKind) -> FakeWorksheet:
        return self.sheets[ResourceKind(kind)]


@pytest.fixture
def sheets_client():
    return FakeSheetsClient()


@pytest.fixture(params=["memory", "document", "sheets"])
def store(request):
    """Every store backend, so the contract tests run against each."""
    if request.param == "memory":
        yield InMemoryResourceStore()
    elif request.param == "document":
        document = DocumentResourceStore("sqlite://")
        yield document
        document.dispose()
    else:
        yield GoogleSheetsResourceStore(FakeSheetsClient())
