"""
Engine Exceptions

Execution errors carry a kind so that the batch sweep can record them per
item without flattening everything into a message string.
"""

from typing import Optional

from financeflow.models.execution import ExecutionErrorKind
from financeflow.models.ledger import LedgerTransaction
from financeflow.models.validation import ValidationIssue


class ExecutionError(Exception):
    """Base exception for executing a planned transaction."""

    kind: ExecutionErrorKind = ExecutionErrorKind.UNEXPECTED

    def __init__(self, message: str, planned_id: Optional[int] = None):
        super().__init__(message)
        self.planned_id = planned_id


class PlannedTransactionNotFoundError(ExecutionError):
    """The planned transaction does not exist or belongs to another user."""

    kind = ExecutionErrorKind.NOT_FOUND

    def __init__(self, planned_id: int):
        super().__init__(f"Planned transaction {planned_id} not found", planned_id)


class InactiveRecordError(ExecutionError):
    """Execution was attempted on a deactivated planned transaction."""

    kind = ExecutionErrorKind.INACTIVE_RECORD

    def __init__(self, planned_id: int):
        super().__init__(f"Planned transaction {planned_id} is inactive", planned_id)


class LedgerWriteFailedError(ExecutionError):
    """The ledger refused or failed the posting. The schedule was not touched."""

    kind = ExecutionErrorKind.LEDGER_WRITE_FAILED


class ScheduleUpdateFailedError(ExecutionError):
    """
    The posting succeeded but the advanced next date could not be saved.

    The planned transaction stays due and the next run will post it again.
    transaction is the posting that already exists in the ledger.
    """

    kind = ExecutionErrorKind.SCHEDULE_UPDATE_FAILED

    def __init__(
        self,
        message: str,
        planned_id: int,
        transaction: LedgerTransaction,
    ):
        super().__init__(message, planned_id)
        self.transaction = transaction


class UnknownFrequencyError(ValueError):
    """A frequency outside daily/weekly/monthly/yearly reached the engine."""
    pass


class InvalidPlannedTransactionError(ValueError):
    """A create or update request failed validation."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        messages = [f"{i.field}: {i.message}" for i in issues if i.severity == "error"]
        super().__init__("Invalid planned transaction: " + "; ".join(messages))


class NoUpdatesError(ValueError):
    """An update request did not set any field."""
    pass
