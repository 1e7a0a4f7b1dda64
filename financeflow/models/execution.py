"""
Execution, Projection and Stats Models

Typed results for everything the engine hands back to its caller:
- single executions and batch sweeps (with per-item outcomes)
- grouped totals and the monthly projection computed from them
- the stats payload

DESIGN DECISION: Batch failures keep their error KIND, not just a message,
so a caller can tell a rejected ledger post from a posting whose schedule
update was lost (the latter needs a human to check for duplicates).
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from financeflow.models.ledger import LedgerTransaction
from financeflow.models.planned import OperationType, PlannedTransaction


# =============================================================================
# EXECUTION RESULTS
# =============================================================================

class ExecutionErrorKind(str, Enum):
    """Why executing a single planned transaction failed."""
    NOT_FOUND = "not_found"
    INACTIVE_RECORD = "inactive_record"
    LEDGER_WRITE_FAILED = "ledger_write_failed"
    SCHEDULE_UPDATE_FAILED = "schedule_update_failed"
    UNEXPECTED = "unexpected"


class ExecutionResult(BaseModel):
    """
    Outcome of a successful single execution.

    Only built once both the posting and the next date are saved; a lost
    schedule update raises ScheduleUpdateFailedError instead.
    """

    transaction: LedgerTransaction
    planned_transaction: PlannedTransaction = Field(
        ...,
        description="The planned transaction as re-read after its date moved"
    )
    next_execution_date: date

    def to_response_dict(self) -> dict[str, Any]:
        return {
            "transaction": self.transaction.to_response_dict(),
            "planned_transaction": self.planned_transaction.to_response_dict(),
            "next_execution_date": self.next_execution_date.isoformat(),
        }


class ExecutedItem(BaseModel):
    """One planned transaction that a batch sweep posted successfully."""

    planned_id: int
    title: str
    transaction_id: int
    next_execution_date: date

    @property
    def succeeded(self) -> bool:
        return True


class FailedItem(BaseModel):
    """
    One planned transaction that a batch sweep could not fully execute.

    transaction_id is only set for SCHEDULE_UPDATE_FAILED: the money was
    posted, the schedule was not moved, and the record will be due again.
    """

    planned_id: int
    title: str
    error_kind: ExecutionErrorKind
    error_message: str
    transaction_id: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return False


ItemOutcome = Union[ExecutedItem, FailedItem]


class BatchResult(BaseModel):
    """
    Aggregate of a sweep over all due planned transactions.

    Lists keep the order of the due query (earliest next_date first).
    """

    executed: list[ExecutedItem] = Field(default_factory=list)
    failed: list[FailedItem] = Field(default_factory=list)
    results: list[ItemOutcome] = Field(
        default_factory=list,
        description="Every outcome in candidate order"
    )

    @property
    def total_executed(self) -> int:
        return len(self.executed)

    @property
    def total_failed(self) -> int:
        return len(self.failed)

    def record(self, outcome: ItemOutcome) -> None:
        self.results.append(outcome)
        if outcome.succeeded:
            self.executed.append(outcome)
        else:
            self.failed.append(outcome)

    def to_response_dict(self) -> dict[str, Any]:
        return {
            "executed": [item.model_dump(mode="json") for item in self.executed],
            "failed": [item.model_dump(mode="json") for item in self.failed],
            "total_executed": self.total_executed,
            "total_failed": self.total_failed,
        }


# =============================================================================
# PROJECTION & STATS
# =============================================================================

class FrequencyTotal(BaseModel):
    """
    Sum of active amounts for one (operation type, frequency) group.

    frequency stays a raw string: it comes straight from an aggregate query
    and may hold legacy values the closed enum would reject.
    """

    operation_type: OperationType
    frequency: str
    total_amount: Decimal


class MonthlyProjection(BaseModel):
    """Monthly-equivalent income, expense and balance, rounded to cents."""

    monthly_income: Decimal = Decimal("0.00")
    monthly_expense: Decimal = Decimal("0.00")
    monthly_balance: Decimal = Decimal("0.00")


class AggregateCounts(BaseModel):
    """Single-query summary of a user's planned transactions."""

    total: int = Field(default=0, ge=0)
    active: int = Field(default=0, ge=0)
    inactive: int = Field(default=0, ge=0)
    due: int = Field(default=0, ge=0)
    income_active: int = Field(default=0, ge=0)
    expense_active: int = Field(default=0, ge=0)


class PlannedTransactionStats(BaseModel):
    """Reporting payload: counts plus the monthly projection."""

    total_count: int
    active_count: int
    inactive_count: int
    due_count: int
    income_count: int
    expense_count: int
    monthly_projection: MonthlyProjection

    def to_response_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class UpcomingOccurrence(BaseModel):
    """One future firing of a planned transaction inside a lookahead window."""

    planned_id: int
    title: str
    occurs_on: date
    signed_amount: Decimal
    operation_type: OperationType
