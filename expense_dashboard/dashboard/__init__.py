"""Dashboard view-model and chart helpers (UI-agnostic)."""

from expense_dashboard.dashboard.charts import (
    build_expense_chart,
    format_currency,
    pivot_to_frame,
    to_vega_spec,
)
from expense_dashboard.dashboard.state import DashboardController, DashboardState

__all__ = [
    "DashboardController",
    "DashboardState",
    "build_expense_chart",
    "format_currency",
    "pivot_to_frame",
    "to_vega_spec",
]
