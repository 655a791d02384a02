"""Expense aggregation package."""

from expense_dashboard.aggregation.pivot import (
    coerce_record,
    grand_total,
    month_label_for,
    pivot_expenses,
)

__all__ = [
    "coerce_record",
    "grand_total",
    "month_label_for",
    "pivot_expenses",
]
