"""
In-Memory Storage Implementation

Used by the test suite and when the dashboard runs with
APP storage_backend=memory (no spreadsheet credentials needed).
"""

from typing import Sequence

from expense_dashboard.models.audit import AuditEvent
from expense_dashboard.models.expense import ExpenseRecord
from expense_dashboard.services.storage.interface import (
    AuditStorageInterface,
    ExpenseStorageInterface,
)


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Keeps expense records in a list, in insertion order."""

    def __init__(self, records: Sequence[ExpenseRecord] = ()):
        self._records: list[ExpenseRecord] = list(records)
        self.insert_calls = 0

    async def fetch_all(self) -> list[ExpenseRecord]:
        # sorted() is stable, so same-day rows keep insertion order
        return sorted(self._records, key=lambda r: r.date)

    async def insert(self, records: Sequence[ExpenseRecord]) -> int:
        self.insert_calls += 1
        self._records.extend(records)
        return len(records)

    def __len__(self) -> int:
        return len(self._records)


class InMemoryAuditStorage(AuditStorageInterface):
    """Keeps audit events in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True
