"""Services package."""

from expense_dashboard.services.storage import (
    AuditStorageInterface,
    BackendConnectionError,
    BackendError,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "BackendConnectionError",
    "BackendError",
    "ExpenseStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
]
