"""
Core Data Models for the Expense Dashboard

These models define the schemas for data flowing from the backend
to the chart. They are designed to:
1. Reject malformed rows loudly instead of corrupting the month grouping
2. Accept both backend column names and Python field names
3. Be serializable for storage and logging

DESIGN DECISION: The backend speaks Spanish column names
(fecha, descripcion, monto, proyecto). They are kept as aliases
so rows round-trip to the backend unchanged.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)


# Short month names used on the chart's X axis
MONTH_LABELS = (
    "Ene", "Feb", "Mar", "Abr", "May", "Jun",
    "Jul", "Ago", "Sep", "Oct", "Nov", "Dic",
)

# Used for catalog projects without a configured color
FALLBACK_PALETTE = (
    "#f97316", "#14b8a6", "#eab308", "#ec4899",
    "#6366f1", "#84cc16", "#06b6d4", "#78716c",
)


# =============================================================================
# ERRORS
# =============================================================================

class MalformedRecordError(Exception):
    """An expense row cannot be turned into a valid record."""

    def __init__(self, message: str, row: Optional[Mapping[str, Any]] = None):
        super().__init__(message)
        self.row = dict(row) if row is not None else None


class UnknownProjectError(MalformedRecordError):
    """A record names a project outside the catalog under the reject policy."""

    def __init__(self, project: str, row: Optional[Mapping[str, Any]] = None):
        super().__init__(f"Unknown project: {project!r}", row=row)
        self.project = project


# =============================================================================
# ENUMS
# =============================================================================

class UnknownProjectPolicy(str, Enum):
    """
    How records with a project outside the catalog are handled.

    FALLBACK remaps them onto the catalog's fallback project so month
    totals still include them. REJECT refuses to chart the batch.
    """
    FALLBACK = "fallback"
    REJECT = "reject"


# =============================================================================
# EXPENSE RECORD
# =============================================================================

class ExpenseRecord(BaseModel):
    """
    One expense entry as stored in the backend.

    Dates arrive as ISO timestamps (often with a trailing 'Z');
    only the calendar date is kept.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        frozen=True,
    )

    date: dt.date = Field(
        ...,
        alias="fecha",
        description="Date the expense was incurred"
    )
    description: str = Field(
        default="",
        alias="descripcion",
        description="Expense category label (e.g. Agua, Semillas)"
    )
    amount: Decimal = Field(
        ...,
        alias="monto",
        ge=0,
        description="Amount in currency units"
    )
    project: str = Field(
        ...,
        alias="proyecto",
        min_length=1,
        description="Project the expense belongs to (may be outside the catalog)"
    )

    @field_validator('date', mode='before')
    @classmethod
    def parse_timestamp(cls, v: Any) -> dt.date:
        """Accept dates, datetimes and ISO-8601 strings."""
        if isinstance(v, dt.datetime):
            return v.date()
        if isinstance(v, dt.date):
            return v
        if isinstance(v, str):
            text = v.strip()
            if not text:
                raise ValueError("Date is empty")
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            try:
                return dt.datetime.fromisoformat(text).date()
            except ValueError:
                raise ValueError(f"Unparseable date: {v!r}")
        raise ValueError(f"Unsupported date value: {v!r}")

    @property
    def month_key(self) -> str:
        """Sortable year-month key, e.g. '2025-03'."""
        return f"{self.date.year:04d}-{self.date.month:02d}"

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ExpenseRecord":
        """
        Build a record from a backend row.

        Raises:
            MalformedRecordError: If a field is missing or invalid
        """
        try:
            return cls.model_validate(dict(row))
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'row'}: {err['msg']}"
                for err in e.errors()
            )
            raise MalformedRecordError(f"Malformed expense row ({problems})", row=row) from e

    def to_row(self) -> dict[str, str]:
        """Convert to a backend row keyed by column name."""
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# PROJECT CATALOG
# =============================================================================

class ProjectCatalog(BaseModel):
    """
    The fixed, ordered set of tracked projects.

    Drives the chart legend, the line colors and the handling of
    records whose project is not tracked.
    """
    model_config = ConfigDict(frozen=True)

    projects: tuple[str, ...] = Field(
        ...,
        min_length=1,
        description="Known project identifiers, in legend order"
    )
    colors: dict[str, str] = Field(
        default_factory=dict,
        description="Line color per project"
    )
    total_color: str = "#000000"
    unknown_project_policy: UnknownProjectPolicy = UnknownProjectPolicy.FALLBACK
    fallback_project: Optional[str] = Field(
        default=None,
        description="Project receiving unknown records (default: first entry)"
    )

    @model_validator(mode='after')
    def validate_projects(self) -> 'ProjectCatalog':
        if len(set(self.projects)) != len(self.projects):
            raise ValueError("Project catalog contains duplicate entries")
        if self.fallback_project is not None and self.fallback_project not in self.projects:
            raise ValueError(
                f"Fallback project '{self.fallback_project}' is not in the catalog"
            )
        return self

    def __contains__(self, project: object) -> bool:
        return project in self.projects

    @property
    def fallback(self) -> str:
        """Project that unknown records are attributed to."""
        return self.fallback_project or self.projects[0]

    def resolve(self, project: str) -> tuple[str, bool]:
        """
        Map a record's project onto the catalog.

        Returns:
            (catalog_project, was_remapped)

        Raises:
            UnknownProjectError: Under the reject policy
        """
        if project in self.projects:
            return project, False
        if self.unknown_project_policy == UnknownProjectPolicy.REJECT:
            raise UnknownProjectError(project)
        return self.fallback, True

    def color_for(self, project: str) -> str:
        if project in self.colors:
            return self.colors[project]
        idx = self.projects.index(project) if project in self.projects else 0
        return FALLBACK_PALETTE[idx % len(FALLBACK_PALETTE)]

    @classmethod
    def from_settings(cls, settings) -> "ProjectCatalog":
        """Build the catalog from DashboardSettings."""
        projects = settings.projects_list
        return cls(
            projects=tuple(projects),
            colors=dict(zip(projects, settings.colors_list)),
            total_color=settings.total_color,
            unknown_project_policy=UnknownProjectPolicy(settings.unknown_project_policy),
            fallback_project=settings.fallback_project,
        )


# =============================================================================
# PIVOT OUTPUT
# =============================================================================

class MonthlyPivotRow(BaseModel):
    """One chart point: a calendar month split by project."""
    model_config = ConfigDict(frozen=True)

    month_label: str = Field(
        ...,
        description="Short month name shown on the X axis"
    )
    month_key: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="Sortable year-month key"
    )
    amount_by_project: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Summed amount per catalog project"
    )
    total: Decimal = Field(
        default=Decimal("0"),
        description="Sum of every record in the month"
    )

    def to_chart_dict(self) -> dict[str, Any]:
        """Flatten to {name, month_key, <project>..., total} with float values."""
        point: dict[str, Any] = {"name": self.month_label, "month_key": self.month_key}
        for project, amount in self.amount_by_project.items():
            point[project] = float(amount)
        point["total"] = float(self.total)
        return point


class PivotResult(BaseModel):
    """Result of pivoting a batch of records."""
    model_config = ConfigDict(frozen=True)

    rows: list[MonthlyPivotRow] = Field(default_factory=list)
    has_data: bool = False
    remapped_count: int = Field(
        default=0,
        ge=0,
        description="Records attributed to the fallback project"
    )

    @property
    def month_keys(self) -> list[str]:
        return [row.month_key for row in self.rows]
