"""Tests for fetching and seeding expenses."""

import asyncio
from collections import Counter
from datetime import date
from decimal import Decimal

import pytest

from expense_dashboard.audit import AuditLogger
from expense_dashboard.models.audit import AuditEventType
from expense_dashboard.models.expense import MalformedRecordError
from expense_dashboard.services.fetcher import ExpenseFetcher
from expense_dashboard.services.seed import generate_synthetic_batch
from expense_dashboard.services.storage import (
    BackendError,
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
)
from tests.conftest import make_record


class FailingStorage(InMemoryExpenseStorage):
    """In-memory storage whose Nth insert call (1-based) fails."""

    def __init__(self, fail_on_call: int, error: Exception):
        super().__init__()
        self._fail_on_call = fail_on_call
        self._error = error

    async def insert(self, records):
        if self.insert_calls + 1 == self._fail_on_call:
            self.insert_calls += 1
            raise self._error
        return await super().insert(records)


class BrokenFetchStorage(InMemoryExpenseStorage):

    def __init__(self, error: Exception):
        super().__init__()
        self._error = error

    async def fetch_all(self):
        raise self._error


def make_fetcher(storage, catalog, sleeps=None, audit_storage=None, batch_size=5):
    async def fake_sleep(seconds):
        if sleeps is not None:
            sleeps.append(seconds)

    return ExpenseFetcher(
        storage=storage,
        catalog=catalog,
        audit_logger=AuditLogger(audit_storage),
        batch_size=batch_size,
        batch_delay_seconds=0.3,
        seed_year=2025,
        sleep=fake_sleep,
    )


class TestSyntheticBatch:
    """Tests for the demo data generator."""

    def test_record_count(self, catalog):
        # 6 odd months x 3 entries + 6 even months x 2 entries, per project
        records = generate_synthetic_batch(catalog, year=2025)
        assert len(records) == 30 * len(catalog.projects)

    def test_deterministic(self, catalog):
        assert generate_synthetic_batch(catalog) == generate_synthetic_batch(catalog)

    def test_shape(self, catalog):
        records = generate_synthetic_batch(catalog, year=2025)
        assert {r.date.year for r in records} == {2025}
        assert {r.date.month for r in records} == set(range(1, 13))
        assert {r.project for r in records} == set(catalog.projects)
        assert len({r.description for r in records}) >= 2
        assert all(r.amount > 0 for r in records)

    def test_known_project_formula(self, catalog):
        records = generate_synthetic_batch(catalog, year=2025)
        first = next(r for r in records if r.project == "jalapeño1")
        assert first.date == date(2025, 1, 10)
        assert first.description == "Fertilizante"
        assert first.amount == Decimal("1296.00")  # (1500 + 120) * 0.8

    def test_amounts_grow_with_month(self, catalog):
        records = generate_synthetic_batch(catalog, year=2025)
        for project in catalog.projects:
            firsts = [
                r.amount for r in records
                if r.project == project and r.date.day == 10
            ]
            assert firsts == sorted(firsts)
            assert len(set(firsts)) == 12

    def test_projects_have_distinct_bases(self, catalog):
        records = generate_synthetic_batch(catalog, year=2025)
        january = {
            r.project: r.amount for r in records
            if r.date == date(2025, 1, 10)
        }
        assert len(set(january.values())) == len(catalog.projects)


class TestFetchAll:

    def test_fetch_returns_records_sorted(self, catalog):
        storage = InMemoryExpenseStorage([
            make_record(date(2025, 3, 1), 1, "tomate"),
            make_record(date(2025, 1, 1), 2, "tomate"),
        ])
        records = asyncio.run(make_fetcher(storage, catalog).fetch_all())
        assert [r.date for r in records] == [date(2025, 1, 1), date(2025, 3, 1)]

    def test_fetch_failure_is_audited_and_raised(self, catalog):
        audit = InMemoryAuditStorage()
        fetcher = make_fetcher(
            BrokenFetchStorage(BackendError("network down")),
            catalog,
            audit_storage=audit,
        )
        with pytest.raises(BackendError, match="network down"):
            asyncio.run(fetcher.fetch_all())
        assert [e.event_type for e in audit.events] == [AuditEventType.FETCH_FAILED]

    def test_malformed_row_is_audited_and_raised(self, catalog):
        audit = InMemoryAuditStorage()
        error = MalformedRecordError("bad date", row={"fecha": "x"})
        fetcher = make_fetcher(BrokenFetchStorage(error), catalog, audit_storage=audit)
        with pytest.raises(MalformedRecordError):
            asyncio.run(fetcher.fetch_all())
        assert audit.events[0].event_type == AuditEventType.MALFORMED_RECORD
        assert audit.events[0].details == {"row": {"fecha": "x"}}


class TestInsertBatch:

    def test_inserts_in_chunks_with_pauses(self, catalog):
        storage = InMemoryExpenseStorage()
        sleeps = []
        fetcher = make_fetcher(storage, catalog, sleeps=sleeps)
        records = generate_synthetic_batch(catalog)

        written = asyncio.run(fetcher.insert_batch(records))

        assert written == 120
        assert len(storage) == 120
        assert storage.insert_calls == 24
        # A pause between chunks, none before the first
        assert sleeps == [0.3] * 23

    def test_last_chunk_may_be_short(self, catalog):
        storage = InMemoryExpenseStorage()
        fetcher = make_fetcher(storage, catalog, batch_size=4)
        records = [make_record(date(2025, 1, d), 1, "tomate") for d in range(1, 11)]
        assert asyncio.run(fetcher.insert_batch(records)) == 10
        assert storage.insert_calls == 3

    def test_empty_batch_is_noop(self, catalog):
        storage = InMemoryExpenseStorage()
        assert asyncio.run(make_fetcher(storage, catalog).insert_batch([])) == 0
        assert storage.insert_calls == 0

    def test_chunk_failure_aborts_remaining_chunks(self, catalog):
        storage = FailingStorage(fail_on_call=3, error=BackendError("rate limited"))
        audit = InMemoryAuditStorage()
        fetcher = make_fetcher(storage, catalog, audit_storage=audit)

        with pytest.raises(BackendError, match="rate limited"):
            asyncio.run(fetcher.insert_batch(generate_synthetic_batch(catalog)))

        assert len(storage) == 10
        assert storage.insert_calls == 3
        failed = [e for e in audit.events if e.event_type == AuditEventType.SEED_FAILED]
        assert failed[0].details == {"chunk_index": 2, "inserted_rows": 10}

    def test_unexpected_error_becomes_backend_error(self, catalog):
        storage = FailingStorage(fail_on_call=1, error=RuntimeError("boom"))
        fetcher = make_fetcher(storage, catalog)
        with pytest.raises(BackendError, match="chunk 0: boom"):
            asyncio.run(fetcher.insert_batch(generate_synthetic_batch(catalog)))
        assert len(storage) == 0

    def test_batch_size_must_be_positive(self, catalog):
        with pytest.raises(ValueError):
            make_fetcher(InMemoryExpenseStorage(), catalog, batch_size=0)


class TestSeedDemoData:

    def test_seed_then_reload(self, catalog):
        storage = InMemoryExpenseStorage()
        audit = InMemoryAuditStorage()
        fetcher = make_fetcher(storage, catalog, audit_storage=audit)

        records = asyncio.run(fetcher.seed_demo_data())

        assert len(records) == 120
        assert records == sorted(records, key=lambda r: r.date)
        counts = Counter(e.event_type for e in audit.events)
        assert counts[AuditEventType.SEED_GENERATED] == 1
        assert counts[AuditEventType.SEED_CHUNK_INSERTED] == 24
        assert counts[AuditEventType.DATA_FETCHED] == 1

    def test_seeding_twice_duplicates_rows(self, catalog):
        storage = InMemoryExpenseStorage()
        fetcher = make_fetcher(storage, catalog)
        asyncio.run(fetcher.seed_demo_data())
        records = asyncio.run(fetcher.seed_demo_data())
        assert len(records) == 240

    def test_events_share_correlation_id(self, catalog):
        audit = InMemoryAuditStorage()
        fetcher = make_fetcher(InMemoryExpenseStorage(), catalog, audit_storage=audit)
        asyncio.run(fetcher.seed_demo_data())
        assert len({e.correlation_id for e in audit.events}) == 1
