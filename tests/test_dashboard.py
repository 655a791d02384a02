"""Tests for the dashboard view-model and controller."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest
from structlog.testing import capture_logs

from expense_dashboard.audit import AuditLogger
from expense_dashboard.dashboard import DashboardController, DashboardState
from expense_dashboard.models.audit import AuditEventType
from expense_dashboard.models.expense import (
    MalformedRecordError,
    ProjectCatalog,
    UnknownProjectPolicy,
)
from expense_dashboard.services.fetcher import ExpenseFetcher
from expense_dashboard.services.storage import (
    BackendError,
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
)
from tests.conftest import make_record


class FlakyStorage(InMemoryExpenseStorage):
    """Fails every call while `failing` is set."""

    failing = False

    async def fetch_all(self):
        if self.failing:
            raise BackendError("connection reset")
        return await super().fetch_all()

    async def insert(self, records):
        if self.failing:
            raise BackendError("insert refused")
        return await super().insert(records)


class MalformedStorage(InMemoryExpenseStorage):
    """Returns a raw row with a bad date, as a misbehaving backend would."""

    async def fetch_all(self):
        return [{"fecha": "sometime", "monto": "1", "proyecto": "tomate"}]


class UnreadableStorage(InMemoryExpenseStorage):
    """Fails to parse a stored row while fetching."""

    async def fetch_all(self):
        raise MalformedRecordError("Malformed expense row (fecha: bad)", row={"fecha": "bad"})


@pytest.fixture
def audit():
    return InMemoryAuditStorage()


def make_controller(storage, catalog, audit=None):
    logger = AuditLogger(audit)
    fetcher = ExpenseFetcher(
        storage=storage,
        catalog=catalog,
        audit_logger=logger,
        batch_size=50,
        batch_delay_seconds=0,
    )
    return DashboardController(fetcher=fetcher, catalog=catalog, audit_logger=logger)


class TestInitialState:

    def test_defaults(self, catalog):
        controller = make_controller(InMemoryExpenseStorage(), catalog)
        state = controller.state
        assert state.selected_projects == list(catalog.projects)
        assert state.show_total is True
        assert state.is_busy is False
        assert state.has_chart is False
        assert state.total_amount == Decimal("0")

    def test_with_state_shares_services(self, catalog):
        controller = make_controller(InMemoryExpenseStorage(), catalog)
        other = controller.with_state(DashboardState(selected_projects=["tomate"]))
        assert other.catalog is controller.catalog
        assert other.state is not controller.state
        assert other.state.selected_projects == ["tomate"]


class TestRefreshAndSeed:

    def test_refresh_loads_and_pivots(self, catalog, audit):
        storage = InMemoryExpenseStorage([
            make_record(date(2025, 1, 10), 100, "tomate"),
            make_record(date(2025, 2, 10), 50, "berries"),
        ])
        controller = make_controller(storage, catalog, audit)

        assert asyncio.run(controller.refresh()) is True

        state = controller.state
        assert len(state.expenses) == 2
        assert state.pivot.month_keys == ["2025-01", "2025-02"]
        assert state.total_amount == Decimal("150")
        assert state.loaded_once is True
        assert state.is_loading is False
        assert state.error is None
        assert AuditEventType.PIVOT_COMPUTED in [e.event_type for e in audit.events]

    def test_refresh_empty_backend(self, catalog):
        controller = make_controller(InMemoryExpenseStorage(), catalog)
        assert asyncio.run(controller.refresh()) is True
        assert controller.state.has_chart is False
        assert controller.state.pivot.has_data is False

    def test_seed_populates_chart(self, catalog):
        controller = make_controller(InMemoryExpenseStorage(), catalog)
        assert asyncio.run(controller.seed()) is True
        assert len(controller.state.expenses) == 120
        assert len(controller.state.pivot.rows) == 12

    def test_remapped_records_are_audited(self, catalog, audit):
        storage = InMemoryExpenseStorage([make_record(date(2025, 1, 10), 5, "pepino")])
        controller = make_controller(storage, catalog, audit)
        asyncio.run(controller.refresh())
        assert controller.state.pivot.remapped_count == 1
        remapped = [
            e for e in audit.events
            if e.event_type == AuditEventType.UNKNOWN_PROJECT_REMAPPED
        ]
        assert remapped[0].details["fallback_project"] == "jalapeño1"


class TestErrorBoundary:

    def test_failed_refresh_keeps_previous_data(self, catalog):
        storage = FlakyStorage([make_record(date(2025, 1, 10), 100, "tomate")])
        controller = make_controller(storage, catalog)
        asyncio.run(controller.refresh())
        previous_pivot = controller.state.pivot

        storage.failing = True
        assert asyncio.run(controller.refresh()) is False

        state = controller.state
        assert state.error == "connection reset"
        assert state.pivot == previous_pivot
        assert len(state.expenses) == 1
        assert state.is_loading is False

    def test_failed_initial_load_shows_empty_state(self, catalog):
        storage = FlakyStorage()
        storage.failing = True
        controller = make_controller(storage, catalog)
        assert asyncio.run(controller.refresh()) is False
        assert controller.state.expenses == []
        assert controller.state.loaded_once is True
        assert controller.state.error == "connection reset"

    def test_failed_seed_reports_error(self, catalog):
        storage = FlakyStorage()
        storage.failing = True
        controller = make_controller(storage, catalog)
        assert asyncio.run(controller.seed()) is False
        assert controller.state.error == "insert refused"

    def test_malformed_record_reports_error(self, catalog, audit):
        controller = make_controller(MalformedStorage(), catalog, audit)
        assert asyncio.run(controller.refresh()) is False
        assert "Malformed expense row" in controller.state.error
        assert audit.events[-1].event_type == AuditEventType.MALFORMED_RECORD

    def test_malformed_row_from_fetch_audited_once(self, catalog, audit):
        controller = make_controller(UnreadableStorage(), catalog, audit)
        assert asyncio.run(controller.refresh()) is False
        malformed = [
            e for e in audit.events if e.event_type == AuditEventType.MALFORMED_RECORD
        ]
        assert len(malformed) == 1
        assert controller.state.error.startswith("Malformed expense row")

    def test_malformed_row_from_pivot_audited_once(self, catalog, audit):
        controller = make_controller(MalformedStorage(), catalog, audit)
        asyncio.run(controller.refresh())
        malformed = [
            e for e in audit.events if e.event_type == AuditEventType.MALFORMED_RECORD
        ]
        assert len(malformed) == 1

    def test_unknown_project_rejected(self, audit):
        strict = ProjectCatalog(
            projects=("tomate", "berries"),
            unknown_project_policy=UnknownProjectPolicy.REJECT,
        )
        storage = InMemoryExpenseStorage([make_record(date(2025, 1, 10), 5, "pepino")])
        controller = make_controller(storage, strict, audit)

        assert asyncio.run(controller.refresh()) is False
        assert "pepino" in controller.state.error
        assert controller.state.expenses == []
        malformed = [
            e for e in audit.events if e.event_type == AuditEventType.MALFORMED_RECORD
        ]
        assert len(malformed) == 1

    def test_success_clears_error(self, catalog):
        storage = FlakyStorage()
        storage.failing = True
        controller = make_controller(storage, catalog)
        asyncio.run(controller.refresh())
        storage.failing = False
        assert asyncio.run(controller.refresh()) is True
        assert controller.state.error is None


class TestOverlappingOperations:

    def test_request_then_run_pending(self, catalog):
        controller = make_controller(InMemoryExpenseStorage(), catalog)
        assert asyncio.run(controller.request("seed")) is True
        assert controller.state.is_busy is True

        assert asyncio.run(controller.run_pending()) is True
        assert controller.state.pending_operation is None
        assert len(controller.state.expenses) == 120

    def test_second_request_is_ignored(self, catalog, audit):
        controller = make_controller(InMemoryExpenseStorage(), catalog, audit)
        asyncio.run(controller.request("refresh"))
        assert asyncio.run(controller.request("seed")) is False
        assert controller.state.pending_operation == "refresh"
        assert audit.events[-1].event_type == AuditEventType.OPERATION_BLOCKED

    def test_run_while_loading_is_refused(self, catalog):
        storage = InMemoryExpenseStorage()
        controller = make_controller(storage, catalog)
        controller.state.is_loading = True
        assert asyncio.run(controller.seed()) is False
        assert len(storage) == 0

    def test_run_pending_without_request(self, catalog):
        controller = make_controller(InMemoryExpenseStorage(), catalog)
        assert asyncio.run(controller.run_pending()) is False


class TestToggles:

    def test_toggle_project_keeps_catalog_order(self, catalog):
        controller = make_controller(InMemoryExpenseStorage(), catalog)
        controller.toggle_project("jalapeño1")
        assert controller.state.selected_projects == ["tomate", "berries", "berries2"]
        controller.toggle_project("jalapeño1")
        assert controller.state.selected_projects == list(catalog.projects)

    def test_toggle_unknown_project(self, catalog):
        controller = make_controller(InMemoryExpenseStorage(), catalog)
        with pytest.raises(ValueError):
            controller.toggle_project("pepino")

    def test_set_selected_projects(self, catalog):
        controller = make_controller(InMemoryExpenseStorage(), catalog)
        controller.set_selected_projects(["berries2", "tomate"])
        assert controller.state.selected_projects == ["tomate", "berries2"]

    def test_toggle_total(self, catalog):
        controller = make_controller(InMemoryExpenseStorage(), catalog)
        controller.toggle_total()
        assert controller.state.show_total is False

    def test_dismiss_error(self, catalog):
        controller = make_controller(InMemoryExpenseStorage(), catalog)
        controller.state.error = "boom"
        controller.dismiss_error()
        assert controller.state.error is None


class TestAppComponents:

    @pytest.fixture(autouse=True)
    def fresh_settings(self, monkeypatch):
        from expense_dashboard.config import get_settings

        monkeypatch.setenv("DASHBOARD_SEED_BATCH_DELAY_SECONDS", "0")
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_memory_backend(self):
        from expense_dashboard.orchestrator import create_app_components

        controller, storage, sheets_client = create_app_components(use_storage=False)
        assert isinstance(storage, InMemoryExpenseStorage)
        assert sheets_client is None
        assert asyncio.run(controller.seed()) is True
        assert len(storage) == 120

    def test_unconfigured_sheets_falls_back_to_memory(self, monkeypatch):
        from expense_dashboard.config import get_settings
        from expense_dashboard.orchestrator import create_app_components

        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        get_settings.cache_clear()

        with capture_logs() as logs:
            _, storage, sheets_client = create_app_components(use_storage=True)

        assert isinstance(storage, InMemoryExpenseStorage)
        assert sheets_client is None
        errors = [
            entry for entry in logs
            if entry.get("event_type") == AuditEventType.EXTERNAL_SERVICE_ERROR.value
        ]
        assert len(errors) == 1
        assert errors[0]["details"] == {"service": "google_sheets"}
