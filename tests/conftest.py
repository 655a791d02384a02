"""Shared fixtures for the Expense Dashboard tests."""

from datetime import date
from decimal import Decimal

import pytest

from expense_dashboard.models.expense import ExpenseRecord, ProjectCatalog


PROJECTS = ("jalapeño1", "tomate", "berries", "berries2")


def make_record(day: date, amount, project: str, description: str = "Agua") -> ExpenseRecord:
    return ExpenseRecord(
        date=day,
        description=description,
        amount=Decimal(str(amount)),
        project=project,
    )


@pytest.fixture
def catalog() -> ProjectCatalog:
    return ProjectCatalog(
        projects=PROJECTS,
        colors={
            "jalapeño1": "#22c55e",
            "tomate": "#ef4444",
            "berries": "#3b82f6",
            "berries2": "#a855f7",
        },
    )
