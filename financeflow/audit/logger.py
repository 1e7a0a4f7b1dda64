"""
Audit Logger

DESIGN DECISION: Every execution and every change to a planned transaction
is logged. This provides:
1. Traceability from a ledger posting back to its planned transaction
2. Visibility of at-least-once outcomes that need a human
3. Debugging capability for partially failed sweeps

The audit logger:
- Always logs locally through structlog
- Gracefully handles storage failures (a broken audit store never stops
  money from being posted)
- Supports correlation IDs to trace the events of one sweep
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from financeflow.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from financeflow.services.storage import AuditStorageInterface


def configure_logging(level: str = "INFO") -> None:
    """Configure stdlib logging and structlog for JSON output."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))
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


_LOG_METHODS = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store (for persistence and operator review), if given
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
        self._logger = structlog.get_logger("financeflow.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        method = getattr(self._logger, _LOG_METHODS[event.severity])
        method("audit_event", **event.to_log_dict())

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_planned_created(self, planned_id: int, user_id: int, title: str) -> None:
        self.log(AuditEventBuilder.planned_created(planned_id, user_id, title))

    def log_planned_updated(self, planned_id: int, user_id: int, fields: list[str]) -> None:
        self.log(AuditEventBuilder.planned_updated(planned_id, user_id, fields))

    def log_planned_deleted(self, planned_id: int, user_id: int) -> None:
        self.log(AuditEventBuilder.planned_deleted(planned_id, user_id))

    def log_planned_active_changed(self, planned_id: int, user_id: int, active: bool) -> None:
        self.log(AuditEventBuilder.planned_active_changed(planned_id, user_id, active))

    def log_execution_started(
        self,
        planned_id: int,
        user_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.execution_started(planned_id, user_id, correlation_id))

    def log_execution_completed(
        self,
        planned_id: int,
        user_id: int,
        transaction_id: int,
        amount: str,
        next_date: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a posting whose schedule was advanced."""
        event = AuditEventBuilder.execution_completed(
            planned_id=planned_id,
            user_id=user_id,
            transaction_id=transaction_id,
            amount=amount,
            next_date=next_date,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_execution_rejected(
        self,
        planned_id: int,
        user_id: int,
        reason: str,
        error_code: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a planned transaction that was not found or is inactive."""
        event = AuditEventBuilder.execution_rejected(
            planned_id=planned_id,
            user_id=user_id,
            reason=reason,
            error_code=error_code,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_ledger_write_failed(
        self,
        planned_id: int,
        user_id: int,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.ledger_write_failed(
            planned_id=planned_id,
            user_id=user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_schedule_update_failed(
        self,
        planned_id: int,
        user_id: int,
        transaction_id: int,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a posting whose next date was lost. Needs operator review."""
        event = AuditEventBuilder.schedule_update_failed(
            planned_id=planned_id,
            user_id=user_id,
            transaction_id=transaction_id,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_batch_started(self, user_id: int, candidate_count: int, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.batch_started(user_id, candidate_count, correlation_id))

    def log_batch_completed(
        self,
        user_id: int,
        total_executed: int,
        total_failed: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.batch_completed(
            user_id=user_id,
            total_executed=total_executed,
            total_failed=total_failed,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a sweep and pass it to every item.
    """
    return uuid4()
