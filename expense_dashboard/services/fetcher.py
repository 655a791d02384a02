"""
Expense Fetcher

Reads expenses from the backend and seeds it with demo data.

DESIGN DECISION: Nothing here retries. A failed fetch or insert is
audited and re-raised so the dashboard can show the message and keep
its previous chart.
"""

import asyncio
from typing import Awaitable, Callable, Optional, Sequence
from uuid import UUID

from expense_dashboard.audit import AuditLogger, create_correlation_id
from expense_dashboard.models.expense import (
    ExpenseRecord,
    MalformedRecordError,
    ProjectCatalog,
)
from expense_dashboard.services.seed import generate_synthetic_batch
from expense_dashboard.services.storage import BackendError, ExpenseStorageInterface


DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY_SECONDS = 0.3


class ExpenseFetcher:
    """
    Fetches and seeds expense records.

    Seeding inserts in fixed-size chunks with a pause between chunks
    to stay under the backend's rate limits.
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        catalog: ProjectCatalog,
        audit_logger: Optional[AuditLogger] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay_seconds: float = DEFAULT_BATCH_DELAY_SECONDS,
        seed_year: int = 2025,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._storage = storage
        self._catalog = catalog
        self._audit_logger = audit_logger or AuditLogger()
        self._batch_size = batch_size
        self._batch_delay = batch_delay_seconds
        self._seed_year = seed_year
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        storage: ExpenseStorageInterface,
        settings,
        audit_logger: Optional[AuditLogger] = None,
    ) -> "ExpenseFetcher":
        """Build a fetcher from DashboardSettings."""
        return cls(
            storage=storage,
            catalog=ProjectCatalog.from_settings(settings),
            audit_logger=audit_logger,
            batch_size=settings.seed_batch_size,
            batch_delay_seconds=settings.seed_batch_delay_seconds,
            seed_year=settings.seed_year,
        )

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def fetch_all(
        self,
        correlation_id: Optional[UUID] = None,
        is_user_action: bool = False,
    ) -> list[ExpenseRecord]:
        """
        Retrieve every record, ascending by date.

        Raises:
            BackendError: If the query fails
            MalformedRecordError: If a stored row is malformed
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            records = await self._storage.fetch_all()
        except BackendError as e:
            await self._audit_logger.log_fetch_failed(
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise
        except MalformedRecordError as e:
            await self._audit_logger.log_malformed_record(
                error_message=str(e),
                row=e.row,
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_data_fetched(
            record_count=len(records),
            correlation_id=correlation_id,
            is_user_action=is_user_action,
        )
        return records

    def generate_synthetic_batch(self) -> list[ExpenseRecord]:
        """Demo records for every catalog project, for the seed year."""
        return generate_synthetic_batch(self._catalog, year=self._seed_year)

    async def insert_batch(
        self,
        records: Sequence[ExpenseRecord],
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Insert records chunk by chunk.

        The first failing chunk aborts the rest. Chunks already written
        stay in the backend.

        Returns:
            Number of rows written

        Raises:
            BackendError: If any chunk fails
        """
        correlation_id = correlation_id or create_correlation_id()
        written = 0

        for chunk_index, start in enumerate(range(0, len(records), self._batch_size)):
            if chunk_index > 0 and self._batch_delay > 0:
                await self._sleep(self._batch_delay)

            chunk = records[start:start + self._batch_size]
            try:
                written += await self._storage.insert(chunk)
            except Exception as e:
                await self._audit_logger.log_seed_failed(
                    chunk_index=chunk_index,
                    inserted_rows=written,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
                if isinstance(e, BackendError):
                    raise
                raise BackendError(f"Insert failed at chunk {chunk_index}: {e}") from e

            await self._audit_logger.log_seed_chunk_inserted(
                chunk_index=chunk_index,
                chunk_size=len(chunk),
                correlation_id=correlation_id,
            )

        return written

    async def seed_demo_data(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> list[ExpenseRecord]:
        """
        Generate demo records, insert them, then reload everything.

        Returns:
            The full record set after seeding
        """
        correlation_id = correlation_id or create_correlation_id()

        records = self.generate_synthetic_batch()
        await self._audit_logger.log_seed_generated(
            record_count=len(records),
            year=self._seed_year,
            correlation_id=correlation_id,
        )

        await self.insert_batch(records, correlation_id=correlation_id)
        return await self.fetch_all(correlation_id=correlation_id, is_user_action=True)
