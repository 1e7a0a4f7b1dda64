"""
Audit Models for FinanceFlow

Every execution and every change to a planned transaction is logged.
This provides:
1. Traceability from a ledger posting back to the rule that created it
2. A record of at-least-once outcomes an operator has to review
3. Debugging information when a sweep partially fails

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Planned transaction lifecycle
    PLANNED_CREATED = "planned_created"
    PLANNED_UPDATED = "planned_updated"
    PLANNED_DELETED = "planned_deleted"
    PLANNED_ACTIVATED = "planned_activated"
    PLANNED_DEACTIVATED = "planned_deactivated"

    # Execution
    EXECUTION_STARTED = "execution_started"
    EXECUTION_COMPLETED = "execution_completed"
    EXECUTION_REJECTED = "execution_rejected"
    LEDGER_WRITE_FAILED = "ledger_write_failed"
    SCHEDULE_UPDATE_FAILED = "schedule_update_failed"

    # Batch sweeps
    BATCH_STARTED = "batch_started"
    BATCH_COMPLETED = "batch_completed"

    # System events
    SYSTEM_ERROR = "system_error"


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

    This is the core unit of our audit trail.
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

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'planned_transaction', 'batch')"
    )
    entity_id: Optional[int] = None
    user_id: Optional[int] = None

    # Correlation - ties together every event of one sweep
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.planned_created(planned_id, user_id, title)
        event = AuditEventBuilder.batch_completed(user_id, 3, 1, correlation_id)
    """

    @staticmethod
    def planned_created(
        planned_id: int,
        user_id: int,
        title: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLANNED_CREATED,
            entity_type="planned_transaction",
            entity_id=planned_id,
            user_id=user_id,
            description=f"Planned transaction created: {title}",
            details={"title": title},
            is_user_action=True,
        )

    @staticmethod
    def planned_updated(
        planned_id: int,
        user_id: int,
        fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLANNED_UPDATED,
            entity_type="planned_transaction",
            entity_id=planned_id,
            user_id=user_id,
            description=f"Planned transaction updated ({len(fields)} fields)",
            details={"fields": sorted(fields)},
            is_user_action=True,
        )

    @staticmethod
    def planned_deleted(planned_id: int, user_id: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLANNED_DELETED,
            entity_type="planned_transaction",
            entity_id=planned_id,
            user_id=user_id,
            description="Planned transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def planned_active_changed(
        planned_id: int,
        user_id: int,
        active: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.PLANNED_ACTIVATED
                if active
                else AuditEventType.PLANNED_DEACTIVATED
            ),
            entity_type="planned_transaction",
            entity_id=planned_id,
            user_id=user_id,
            description=f"Planned transaction {'activated' if active else 'deactivated'}",
            details={"active": active},
            is_user_action=True,
        )

    @staticmethod
    def execution_started(
        planned_id: int,
        user_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXECUTION_STARTED,
            severity=AuditSeverity.DEBUG,
            entity_type="planned_transaction",
            entity_id=planned_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Execution started",
        )

    @staticmethod
    def execution_completed(
        planned_id: int,
        user_id: int,
        transaction_id: int,
        amount: str,
        next_date: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXECUTION_COMPLETED,
            entity_type="planned_transaction",
            entity_id=planned_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Posted {amount}, next occurrence {next_date}",
            details={
                "transaction_id": transaction_id,
                "amount": amount,
                "next_date": next_date,
            },
        )

    @staticmethod
    def execution_rejected(
        planned_id: int,
        user_id: int,
        reason: str,
        error_code: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXECUTION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="planned_transaction",
            entity_id=planned_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Execution rejected: {reason}",
            error_code=error_code,
            error_message=reason,
        )

    @staticmethod
    def ledger_write_failed(
        planned_id: int,
        user_id: int,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="planned_transaction",
            entity_id=planned_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Ledger rejected the posting; schedule left unchanged",
            error_code="ledger_write_failed",
            error_message=error_message,
        )

    @staticmethod
    def schedule_update_failed(
        planned_id: int,
        user_id: int,
        transaction_id: int,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SCHEDULE_UPDATE_FAILED,
            severity=AuditSeverity.CRITICAL,
            entity_type="planned_transaction",
            entity_id=planned_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=(
                f"Ledger transaction {transaction_id} posted but next date was not "
                "saved; the rule will be due again and may post twice"
            ),
            details={"transaction_id": transaction_id},
            error_code="schedule_update_failed",
            error_message=error_message,
        )

    @staticmethod
    def batch_started(
        user_id: int,
        candidate_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BATCH_STARTED,
            entity_type="batch",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Executing {candidate_count} due planned transactions",
            details={"candidate_count": candidate_count},
        )

    @staticmethod
    def batch_completed(
        user_id: int,
        total_executed: int,
        total_failed: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BATCH_COMPLETED,
            severity=AuditSeverity.WARNING if total_failed else AuditSeverity.INFO,
            entity_type="batch",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Batch finished: {total_executed} executed, {total_failed} failed",
            details={
                "total_executed": total_executed,
                "total_failed": total_failed,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
