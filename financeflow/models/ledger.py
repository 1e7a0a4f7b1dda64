"""
Ledger Models

The ledger is an external collaborator: it owns real, already-posted
transactions. These models are the contract between the engine and
whatever ledger implementation is plugged in.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field


class LedgerEntry(BaseModel):
    """
    A posting request built from one occurrence of a planned transaction.

    The amount is SIGNED here (negative for expenses), unlike on the
    planned transaction itself.
    """

    title: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    amount: Decimal = Field(
        ...,
        decimal_places=2,
        description="Signed amount to post"
    )
    posting_date: date = Field(
        ...,
        description="Day the posting is made (execution day, not the scheduled day)"
    )
    user_id: int
    category_id: Optional[int] = None
    sub_category_id: Optional[int] = None
    account_id: Optional[int] = None
    planned_transaction_id: Optional[int] = Field(
        default=None,
        description="Planned transaction this posting was materialized from"
    )


class LedgerTransaction(LedgerEntry):
    """A transaction the ledger has accepted and assigned an id to."""

    id: int
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def to_response_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
