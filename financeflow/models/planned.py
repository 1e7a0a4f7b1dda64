"""
Core Data Models for Planned Transactions

These models define the strict schemas for recurring income and expense
rules. They are designed to:
1. Enforce the record invariants at runtime (positive amount, bounded text)
2. Carry the derived predicates the engine relies on (signed amount, due)
3. Be serializable at the few true boundaries (store rows, API payloads)

DESIGN DECISION: The amount is ALWAYS stored as a positive magnitude.
The sign is derived from the operation type at read time, never persisted.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class OperationType(str, Enum):
    """Whether a planned transaction brings money in or takes it out."""
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def label(self) -> str:
        return _OPERATION_TYPE_LABELS[self]


class Frequency(str, Enum):
    """
    How often a planned transaction fires.

    DESIGN DECISION: This is a closed set. Values outside it are rejected
    at the model boundary; the recurrence and projection helpers only see
    raw strings when they come straight from aggregate storage queries.
    """
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def label(self) -> str:
        return _FREQUENCY_LABELS[self]


class DurationUnit(str, Enum):
    """Unit for the optional bounded lifetime of a planned transaction."""
    DAY = "day"
    MONTH = "month"
    YEAR = "year"


_OPERATION_TYPE_LABELS = {
    OperationType.INCOME: "Income",
    OperationType.EXPENSE: "Expense",
}

_FREQUENCY_LABELS = {
    Frequency.DAILY: "Daily",
    Frequency.WEEKLY: "Weekly",
    Frequency.MONTHLY: "Monthly",
    Frequency.YEARLY: "Yearly",
}


# =============================================================================
# PLANNED TRANSACTION RECORD
# =============================================================================

class PlannedTransaction(BaseModel):
    """
    A persisted recurring income/expense rule.

    CRITICAL: This is NOT a ledger entry. It only becomes money in the
    ledger when it is executed, and executing it only moves next_date.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity (assigned by the store)
    id: Optional[int] = Field(
        default=None,
        description="Store-assigned identifier"
    )
    user_id: int = Field(
        ...,
        description="Owning user; every query is scoped by it"
    )

    # Descriptive fields
    title: str = Field(
        ...,
        min_length=1,
        max_length=150,
        description="Short title shown in lists and copied to the ledger"
    )
    description: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="Free text copied to the ledger posting"
    )

    # Money
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Positive magnitude; sign comes from operation_type"
    )
    operation_type: OperationType

    # Schedule
    frequency: Frequency
    next_date: date = Field(
        ...,
        description="Next calendar date this rule is due to fire"
    )

    # Informational only
    interest_rate: Optional[Decimal] = Field(
        default=None,
        ge=0,
        le=100,
        description="Interest rate in percent, carried but unused by the engine"
    )
    duration: Optional[int] = Field(
        default=None,
        ge=1,
        description="Bounded lifetime, expressed in duration_unit"
    )
    duration_unit: Optional[DurationUnit] = None

    # Opaque references passed through to the ledger
    category_id: Optional[int] = None
    sub_category_id: Optional[int] = None
    account_id: Optional[int] = None

    active: bool = True

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def signed_amount(self) -> Decimal:
        """Amount with the sign applied: negative for expenses."""
        if self.operation_type == OperationType.EXPENSE:
            return -abs(self.amount)
        return abs(self.amount)

    def is_due_today(self, today: date) -> bool:
        return self.active and self.next_date == today

    def is_overdue(self, today: date) -> bool:
        return self.active and self.next_date < today

    def is_due(self, today: date) -> bool:
        """Due means overdue or due today; this is what the batch sweep picks up."""
        return self.active and self.next_date <= today

    def to_response_dict(self) -> dict[str, Any]:
        """Convert to the JSON-ready payload returned by the API layer."""
        data = self.model_dump(mode="json")
        data["signed_amount"] = str(self.signed_amount())
        data["frequency_label"] = self.frequency.label
        data["operation_type_label"] = self.operation_type.label
        return data


# =============================================================================
# REQUEST MODELS
# =============================================================================

class PlannedTransactionCreate(BaseModel):
    """
    Data needed to create a planned transaction.

    next_date may be omitted; the service then schedules it for today.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=150)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    operation_type: OperationType
    frequency: Frequency
    next_date: Optional[date] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    interest_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    duration: Optional[int] = Field(default=None, ge=1)
    duration_unit: Optional[DurationUnit] = None
    category_id: Optional[int] = None
    sub_category_id: Optional[int] = None
    account_id: Optional[int] = None
    active: bool = True

    def to_record(self, user_id: int, next_date: date) -> PlannedTransaction:
        data = self.model_dump(exclude={"next_date"})
        return PlannedTransaction(user_id=user_id, next_date=next_date, **data)


class PlannedTransactionUpdate(BaseModel):
    """
    Partial update of a planned transaction.

    Only fields the caller explicitly set are applied, so an explicit None
    clears an optional field while an omitted field is left alone.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=150)
    amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    operation_type: Optional[OperationType] = None
    frequency: Optional[Frequency] = None
    next_date: Optional[date] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    interest_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    duration: Optional[int] = Field(default=None, ge=1)
    duration_unit: Optional[DurationUnit] = None
    category_id: Optional[int] = None
    sub_category_id: Optional[int] = None
    account_id: Optional[int] = None
    active: Optional[bool] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)

    @property
    def has_updates(self) -> bool:
        return bool(self.changes())


# Fields a store is allowed to write through update()
UPDATABLE_FIELDS = frozenset(PlannedTransactionUpdate.model_fields)
