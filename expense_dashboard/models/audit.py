"""
Audit Models for the Expense Dashboard

Every backend round-trip and every rejected record is logged.
This provides:
1. Traceability of what was fetched and seeded
2. Debugging information when the backend misbehaves
3. A record of which expenses were attributed to the fallback project

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Fetching
    DATA_FETCHED = "data_fetched"
    FETCH_FAILED = "fetch_failed"

    # Seeding
    SEED_GENERATED = "seed_generated"
    SEED_CHUNK_INSERTED = "seed_chunk_inserted"
    SEED_FAILED = "seed_failed"

    # Aggregation
    PIVOT_COMPUTED = "pivot_computed"
    UNKNOWN_PROJECT_REMAPPED = "unknown_project_remapped"
    MALFORMED_RECORD = "malformed_record"

    # UI
    OPERATION_BLOCKED = "operation_blocked"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Correlation - all events of one user action share an ID
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a button press?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row for the audit worksheet.

        Columns: [event_id, timestamp, event_type, severity, correlation_id,
                  description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.data_fetched(record_count, correlation_id)
    """

    @staticmethod
    def data_fetched(
        record_count: int,
        correlation_id: UUID,
        is_user_action: bool = False,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_FETCHED,
            correlation_id=correlation_id,
            description=f"Fetched {record_count} expense records",
            details={"record_count": record_count},
            is_user_action=is_user_action,
        )

    @staticmethod
    def fetch_failed(
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FETCH_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description="Fetching expenses failed",
            error_message=error_message,
        )

    @staticmethod
    def seed_generated(
        record_count: int,
        year: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEED_GENERATED,
            correlation_id=correlation_id,
            description=f"Generated {record_count} synthetic records for {year}",
            details={"record_count": record_count, "year": year},
            is_user_action=True,
        )

    @staticmethod
    def seed_chunk_inserted(
        chunk_index: int,
        chunk_size: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEED_CHUNK_INSERTED,
            severity=AuditSeverity.DEBUG,
            correlation_id=correlation_id,
            description=f"Inserted chunk {chunk_index} ({chunk_size} rows)",
            details={"chunk_index": chunk_index, "chunk_size": chunk_size},
        )

    @staticmethod
    def seed_failed(
        chunk_index: int,
        inserted_rows: int,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEED_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Seeding aborted at chunk {chunk_index}",
            details={"chunk_index": chunk_index, "inserted_rows": inserted_rows},
            error_message=error_message,
        )

    @staticmethod
    def pivot_computed(
        record_count: int,
        month_count: int,
        has_data: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PIVOT_COMPUTED,
            severity=AuditSeverity.DEBUG,
            correlation_id=correlation_id,
            description=f"Pivoted {record_count} records into {month_count} months",
            details={
                "record_count": record_count,
                "month_count": month_count,
                "has_data": has_data,
            },
        )

    @staticmethod
    def unknown_project_remapped(
        remapped_count: int,
        fallback_project: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UNKNOWN_PROJECT_REMAPPED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=(
                f"{remapped_count} records with unknown projects "
                f"attributed to '{fallback_project}'"
            ),
            details={
                "remapped_count": remapped_count,
                "fallback_project": fallback_project,
            },
        )

    @staticmethod
    def malformed_record(
        error_message: str,
        row: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MALFORMED_RECORD,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description="Expense record rejected",
            details={"row": row} if row else {},
            error_message=error_message,
        )

    @staticmethod
    def operation_blocked(
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_BLOCKED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"'{operation}' ignored while another operation is running",
            details={"operation": operation},
            is_user_action=True,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
