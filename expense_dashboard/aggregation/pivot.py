"""
Expense Pivot

Turns the flat list of expense records into one chart row per
calendar month, with an amount per catalog project and a month total.

GUARANTEES:
- Pure function of its input (no caching, no hidden state)
- Months are unique and ascending
- Each row's project amounts add up to its total: a record is added
  to its resolved project and to the month total in the same step
- Amounts are summed as-is, never rounded or transformed
"""

from decimal import Decimal
from typing import Any, Iterable, Mapping, Union

from expense_dashboard.models.expense import (
    MONTH_LABELS,
    ExpenseRecord,
    MalformedRecordError,
    MonthlyPivotRow,
    PivotResult,
    ProjectCatalog,
    UnknownProjectError,
)


RecordLike = Union[ExpenseRecord, Mapping[str, Any]]

ZERO = Decimal("0")


def month_label_for(month_key: str) -> str:
    """'2025-03' -> 'Mar'."""
    _, month = month_key.split("-")
    return MONTH_LABELS[int(month) - 1]


def coerce_record(item: RecordLike) -> ExpenseRecord:
    """
    Accept a parsed record or a raw backend row.

    Raises:
        MalformedRecordError: If the row cannot be parsed
    """
    if isinstance(item, ExpenseRecord):
        return item
    if isinstance(item, Mapping):
        return ExpenseRecord.from_row(item)
    raise MalformedRecordError(
        f"Unsupported expense record type: {type(item).__name__}"
    )


def pivot_expenses(
    records: Iterable[RecordLike],
    catalog: ProjectCatalog,
) -> PivotResult:
    """
    Pivot records into monthly rows split by project.

    Records whose project is not in the catalog are handled by the
    catalog's unknown-project policy: attributed to the fallback
    project, or rejected.

    Args:
        records: Expense records or raw backend rows, in any order
        catalog: Known projects and the unknown-project policy

    Returns:
        PivotResult with rows ascending by month

    Raises:
        MalformedRecordError: On an unparseable row
        UnknownProjectError: On an unknown project under the reject policy
    """
    by_project: dict[str, dict[str, Decimal]] = {
        project: {} for project in catalog.projects
    }
    totals: dict[str, Decimal] = {}
    remapped = 0

    for item in records:
        record = coerce_record(item)
        month_key = record.month_key

        try:
            project, was_remapped = catalog.resolve(record.project)
        except UnknownProjectError:
            raise UnknownProjectError(record.project, row=record.to_row()) from None
        if was_remapped:
            remapped += 1

        bucket = by_project[project]
        bucket[month_key] = bucket.get(month_key, ZERO) + record.amount
        totals[month_key] = totals.get(month_key, ZERO) + record.amount

    has_data = any(by_project[project] for project in catalog.projects)

    months = set()
    for project in catalog.projects:
        months.update(by_project[project])

    # Zero-padded YYYY-MM keys sort chronologically
    rows = [
        MonthlyPivotRow(
            month_label=month_label_for(month_key),
            month_key=month_key,
            amount_by_project={
                project: by_project[project].get(month_key, ZERO)
                for project in catalog.projects
            },
            total=totals.get(month_key, ZERO),
        )
        for month_key in sorted(months)
    ]

    return PivotResult(rows=rows, has_data=has_data, remapped_count=remapped)


def grand_total(records: Iterable[RecordLike]) -> Decimal:
    """Sum of every record's amount, regardless of project."""
    return sum((coerce_record(item).amount for item in records), ZERO)
