"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the expense backend.
This allows us to:
1. Swap Google Sheets for a hosted database later
2. Use in-memory storage for tests and offline demos
3. Keep the fetcher and the dashboard decoupled from the backend

The interface is intentionally tiny - the dashboard only ever reads
everything and appends seed rows.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from expense_dashboard.models.expense import ExpenseRecord
from expense_dashboard.models.audit import AuditEvent


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Any backend (Google Sheets, PostgreSQL, etc.) must implement these.
    """

    @abstractmethod
    async def fetch_all(self) -> list[ExpenseRecord]:
        """
        Retrieve every expense record, ascending by date.

        Returns:
            All stored records, oldest first

        Raises:
            BackendError: If the query fails
            MalformedRecordError: If a stored row cannot be parsed
        """
        pass

    @abstractmethod
    async def insert(self, records: Sequence[ExpenseRecord]) -> int:
        """
        Insert one batch of records in a single backend call.

        There is no upsert: inserting the same records twice stores
        them twice.

        Args:
            records: The records to append

        Returns:
            Number of rows written

        Raises:
            BackendError: If the insert fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass


class BackendError(Exception):
    """Base exception for backend operations (query, insert, connection)."""
    pass


class BackendConnectionError(BackendError):
    """Could not connect to the backend."""
    pass
