"""
Audit Logger

Every backend round-trip, seed run and rejected record is logged.
The audit logger:
- Is async so it composes with the storage calls
- Gracefully handles failures (a broken audit sheet never breaks the chart)
- Supports correlation IDs to trace the events of one button press
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_dashboard.models.audit import AuditEvent, AuditEventBuilder
from expense_dashboard.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit worksheet, when a storage backend is given
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("expense_dashboard.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        severity = event.severity.value
        if severity in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif severity == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif severity == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_data_fetched(
        self,
        record_count: int,
        correlation_id: UUID,
        is_user_action: bool = False,
    ) -> None:
        await self.log(AuditEventBuilder.data_fetched(
            record_count=record_count,
            correlation_id=correlation_id,
            is_user_action=is_user_action,
        ))

    async def log_fetch_failed(
        self,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.fetch_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_seed_generated(
        self,
        record_count: int,
        year: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.seed_generated(
            record_count=record_count,
            year=year,
            correlation_id=correlation_id,
        ))

    async def log_seed_chunk_inserted(
        self,
        chunk_index: int,
        chunk_size: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.seed_chunk_inserted(
            chunk_index=chunk_index,
            chunk_size=chunk_size,
            correlation_id=correlation_id,
        ))

    async def log_seed_failed(
        self,
        chunk_index: int,
        inserted_rows: int,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.seed_failed(
            chunk_index=chunk_index,
            inserted_rows=inserted_rows,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_pivot_computed(
        self,
        record_count: int,
        month_count: int,
        has_data: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.pivot_computed(
            record_count=record_count,
            month_count=month_count,
            has_data=has_data,
            correlation_id=correlation_id,
        ))

    async def log_unknown_project_remapped(
        self,
        remapped_count: int,
        fallback_project: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.unknown_project_remapped(
            remapped_count=remapped_count,
            fallback_project=fallback_project,
            correlation_id=correlation_id,
        ))

    async def log_malformed_record(
        self,
        error_message: str,
        row: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.malformed_record(
            error_message=error_message,
            row=row,
            correlation_id=correlation_id,
        ))

    async def log_operation_blocked(
        self,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.operation_blocked(
            operation=operation,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (refresh, seed).
    Pass it through all subsequent operations.
    """
    return uuid4()
