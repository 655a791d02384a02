"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the
expense backend. Google Sheets is the hosted backend; the in-memory
implementation backs the tests and offline demos.
"""

from expense_dashboard.services.storage.interface import (
    AuditStorageInterface,
    BackendConnectionError,
    BackendError,
    ExpenseStorageInterface,
)
from expense_dashboard.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    EXPENSE_COLUMNS,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
)
from expense_dashboard.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExpenseStorageInterface",
    # Exceptions
    "BackendConnectionError",
    "BackendError",
    # Google Sheets implementation
    "AUDIT_COLUMNS",
    "EXPENSE_COLUMNS",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
]
