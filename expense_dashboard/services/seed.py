"""
Synthetic Expense Generator

Populates an empty backend for demos. Only the shape of the data
matters: several categories per project-month, a distinct base amount
per project, and amounts that grow month over month.
"""

from datetime import date
from decimal import Decimal

from expense_dashboard.models.expense import ExpenseRecord, ProjectCatalog


SEED_CATEGORIES = (
    "Fertilizante",
    "Agua",
    "Semillas",
    "Mano de obra",
    "Transporte",
    "Electricidad",
)

# (base amount, increase per month) for the demo projects
PROJECT_PROFILES = {
    "jalapeño1": (1500, 120),
    "tomate": (2000, 80),
    "berries": (1200, 150),
    "berries2": (1800, 100),
}

CENT = Decimal("0.01")


def project_profile(project: str, position: int) -> tuple[int, int]:
    """Base amount and monthly slope for a catalog project."""
    if project in PROJECT_PROFILES:
        return PROJECT_PROFILES[project]
    return 1000 + 200 * position, 60 + 20 * (position % 5)


def entries_per_month(month: int) -> int:
    """Two entries in even months, three in odd ones."""
    return 2 + month % 2


def generate_synthetic_batch(
    catalog: ProjectCatalog,
    year: int = 2025,
) -> list[ExpenseRecord]:
    """
    Build a year of demo expenses for every catalog project.

    Deterministic: the same catalog and year always give the same records.
    """
    records = []
    for month in range(1, 13):
        for position, project in enumerate(catalog.projects):
            base, slope = project_profile(project, position)
            month_base = Decimal(base + slope * month)

            for i in range(entries_per_month(month)):
                variation = Decimal("0.8") + Decimal("0.1") * i
                records.append(ExpenseRecord(
                    date=date(year, month, 10 + i * 5),
                    description=SEED_CATEGORIES[i % len(SEED_CATEGORIES)],
                    amount=(month_base * variation).quantize(CENT),
                    project=project,
                ))
    return records
