"""
Data Models Package

This package contains all Pydantic models used by the planned-transactions
engine. All data flowing between the engine, its store and its ledger must
conform to these schemas.
"""

from financeflow.models.planned import (
    UPDATABLE_FIELDS,
    DurationUnit,
    Frequency,
    OperationType,
    PlannedTransaction,
    PlannedTransactionCreate,
    PlannedTransactionUpdate,
)
from financeflow.models.ledger import LedgerEntry, LedgerTransaction
from financeflow.models.execution import (
    AggregateCounts,
    BatchResult,
    ExecutedItem,
    ExecutionErrorKind,
    ExecutionResult,
    FailedItem,
    FrequencyTotal,
    ItemOutcome,
    MonthlyProjection,
    PlannedTransactionStats,
    UpcomingOccurrence,
)
from financeflow.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from financeflow.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Planned transaction models
    "UPDATABLE_FIELDS",
    "DurationUnit",
    "Frequency",
    "OperationType",
    "PlannedTransaction",
    "PlannedTransactionCreate",
    "PlannedTransactionUpdate",
    # Ledger models
    "LedgerEntry",
    "LedgerTransaction",
    # Execution, projection and stats models
    "AggregateCounts",
    "BatchResult",
    "ExecutedItem",
    "ExecutionErrorKind",
    "ExecutionResult",
    "FailedItem",
    "FrequencyTotal",
    "ItemOutcome",
    "MonthlyProjection",
    "PlannedTransactionStats",
    "UpcomingOccurrence",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
]
