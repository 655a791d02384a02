"""
Data Models Package

This package contains all Pydantic models used by the Expense Dashboard.
All data flowing from the backend to the chart must conform to these schemas.
"""

from expense_dashboard.models.expense import (
    MONTH_LABELS,
    ExpenseRecord,
    MalformedRecordError,
    MonthlyPivotRow,
    PivotResult,
    ProjectCatalog,
    UnknownProjectError,
    UnknownProjectPolicy,
)
from expense_dashboard.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "MONTH_LABELS",
    "ExpenseRecord",
    "MalformedRecordError",
    "MonthlyPivotRow",
    "PivotResult",
    "ProjectCatalog",
    "UnknownProjectError",
    "UnknownProjectPolicy",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
