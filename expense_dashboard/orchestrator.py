"""
Application Wiring for the Expense Dashboard

Builds the storage backend, audit logger, fetcher and dashboard
controller from settings.

DESIGN DECISION: The Streamlit page never constructs services itself.
It asks this module for a controller, which keeps the page free of
backend details and lets tests wire the same pieces with in-memory
storage.
"""

import asyncio
from typing import Optional

from expense_dashboard.audit import AuditLogger
from expense_dashboard.config import get_settings
from expense_dashboard.dashboard import DashboardController
from expense_dashboard.models.expense import ProjectCatalog
from expense_dashboard.services.fetcher import ExpenseFetcher
from expense_dashboard.services.storage import (
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    InMemoryExpenseStorage,
)


def create_app_components(
    use_storage: Optional[bool] = None,
) -> tuple[DashboardController, ExpenseStorageInterface, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to connect to Google Sheets. Defaults to the
                    configured storage backend. False gives in-memory storage.

    Returns:
        (dashboard_controller, expense_storage, sheets_client)
    """
    settings = get_settings()
    app_settings = settings.app
    dashboard_settings = settings.dashboard

    if use_storage is None:
        use_storage = app_settings.storage_backend == "google_sheets"

    sheets_client = None
    storage: ExpenseStorageInterface
    audit_logger = AuditLogger()  # Local-only logging

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            storage = GoogleSheetsExpenseStorage(sheets_client)
            if app_settings.persist_audit_log:
                audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue with an empty in-memory backend
            audit_logger = AuditLogger()
            asyncio.run(audit_logger.log_external_service_error(
                service="google_sheets",
                error_message=str(e),
            ))
            sheets_client = None
            storage = InMemoryExpenseStorage()
    else:
        storage = InMemoryExpenseStorage()

    fetcher = ExpenseFetcher.from_settings(
        storage=storage,
        settings=dashboard_settings,
        audit_logger=audit_logger,
    )
    controller = DashboardController(
        fetcher=fetcher,
        catalog=ProjectCatalog.from_settings(dashboard_settings),
        audit_logger=audit_logger,
    )

    return controller, storage, sheets_client
