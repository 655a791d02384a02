"""
Dashboard View-Model

All UI state lives in DashboardState and is changed only through
DashboardController. The Streamlit page keeps one state object in
st.session_state and renders from it on every rerun.

Error handling boundary: BackendError and MalformedRecordError stop
here. They become a message on the state; the last good expenses and
pivot are left untouched.
"""

from decimal import Decimal
from typing import Awaitable, Callable, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from expense_dashboard.aggregation import grand_total, pivot_expenses
from expense_dashboard.audit import AuditLogger, create_correlation_id
from expense_dashboard.models.expense import (
    ExpenseRecord,
    MalformedRecordError,
    PivotResult,
    ProjectCatalog,
)
from expense_dashboard.services.fetcher import ExpenseFetcher
from expense_dashboard.services.storage import BackendError


Operation = Literal["refresh", "seed"]


class DashboardState(BaseModel):
    """Everything the page needs to render."""

    expenses: list[ExpenseRecord] = Field(default_factory=list)
    pivot: PivotResult = Field(default_factory=PivotResult)

    selected_projects: list[str] = Field(default_factory=list)
    show_total: bool = True

    is_loading: bool = False
    pending_operation: Optional[Operation] = None
    error: Optional[str] = None
    loaded_once: bool = False

    @property
    def is_busy(self) -> bool:
        """Refresh and seed buttons are disabled while this is True."""
        return self.is_loading or self.pending_operation is not None

    @property
    def has_chart(self) -> bool:
        return bool(self.pivot.rows)

    @property
    def total_amount(self) -> Decimal:
        return grand_total(self.expenses)


class DashboardController:
    """
    Drives DashboardState.

    Only one backend operation runs at a time. A request made while
    another is pending or running is ignored (and audited).
    """

    def __init__(
        self,
        fetcher: ExpenseFetcher,
        catalog: ProjectCatalog,
        audit_logger: Optional[AuditLogger] = None,
        state: Optional[DashboardState] = None,
    ):
        self._fetcher = fetcher
        self._catalog = catalog
        self._audit_logger = audit_logger or AuditLogger()
        self.state = state if state is not None else self.new_state()

    @property
    def catalog(self) -> ProjectCatalog:
        return self._catalog

    def with_state(self, state: DashboardState) -> "DashboardController":
        """Same services, different state (one per browser session)."""
        return DashboardController(
            fetcher=self._fetcher,
            catalog=self._catalog,
            audit_logger=self._audit_logger,
            state=state,
        )

    def new_state(self) -> DashboardState:
        return DashboardState(selected_projects=list(self._catalog.projects))

    # -------------------------------------------------------------------------
    # Backend operations
    # -------------------------------------------------------------------------

    async def request(self, operation: Operation) -> bool:
        """
        Queue an operation to run on the next render pass.

        Returns False if another operation is already queued or running.
        """
        if self.state.is_busy:
            await self._audit_logger.log_operation_blocked(operation)
            return False
        self.state.pending_operation = operation
        return True

    async def run_pending(self) -> bool:
        """Run the queued operation, if any. Returns True on success."""
        operation = self.state.pending_operation
        if operation is None:
            return False
        self.state.pending_operation = None
        if operation == "seed":
            return await self.seed()
        return await self.refresh()

    async def refresh(self) -> bool:
        """Re-fetch every record and recompute the pivot."""
        return await self._run(
            "refresh",
            lambda cid: self._fetcher.fetch_all(correlation_id=cid, is_user_action=True),
        )

    async def seed(self) -> bool:
        """Insert demo records, then reload."""
        return await self._run(
            "seed",
            lambda cid: self._fetcher.seed_demo_data(correlation_id=cid),
        )

    async def _run(
        self,
        operation: str,
        action: Callable[[UUID], Awaitable[list[ExpenseRecord]]],
    ) -> bool:
        if self.state.is_loading:
            await self._audit_logger.log_operation_blocked(operation)
            return False

        correlation_id = create_correlation_id()
        self.state.is_loading = True
        try:
            try:
                records = await action(correlation_id)
            except (BackendError, MalformedRecordError) as e:
                # Already audited by the fetcher
                self.state.error = str(e)
                return False

            try:
                pivot = pivot_expenses(records, self._catalog)
            except MalformedRecordError as e:
                await self._audit_logger.log_malformed_record(
                    error_message=str(e),
                    row=e.row,
                    correlation_id=correlation_id,
                )
                self.state.error = str(e)
                return False
        finally:
            self.state.is_loading = False
            self.state.loaded_once = True

        await self._audit_logger.log_pivot_computed(
            record_count=len(records),
            month_count=len(pivot.rows),
            has_data=pivot.has_data,
            correlation_id=correlation_id,
        )
        if pivot.remapped_count:
            await self._audit_logger.log_unknown_project_remapped(
                remapped_count=pivot.remapped_count,
                fallback_project=self._catalog.fallback,
                correlation_id=correlation_id,
            )

        self.state.expenses = records
        self.state.pivot = pivot
        self.state.error = None
        return True

    # -------------------------------------------------------------------------
    # Chart toggles
    # -------------------------------------------------------------------------

    def toggle_project(self, project: str) -> None:
        """Show or hide one project's line."""
        if project not in self._catalog:
            raise ValueError(f"Unknown project: {project}")
        selected = set(self.state.selected_projects)
        selected ^= {project}
        # Keep legend order stable
        self.state.selected_projects = [
            p for p in self._catalog.projects if p in selected
        ]

    def set_selected_projects(self, projects: list[str]) -> None:
        unknown = [p for p in projects if p not in self._catalog]
        if unknown:
            raise ValueError(f"Unknown projects: {', '.join(unknown)}")
        self.state.selected_projects = [
            p for p in self._catalog.projects if p in projects
        ]

    def toggle_total(self) -> None:
        self.state.show_total = not self.state.show_total

    def dismiss_error(self) -> None:
        self.state.error = None
