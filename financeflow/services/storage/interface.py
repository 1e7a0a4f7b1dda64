"""
Abstract Storage Interfaces

DESIGN DECISION: The engine talks to persistence and to the ledger only
through these interfaces. This allows us to:
1. Run the engine against SQLite, a real RDBMS, or an HTTP ledger
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

Every query and every mutation takes the owning user_id. Implementations
MUST apply it in the query itself, not filter results afterwards.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Optional
from uuid import UUID

from financeflow.models.audit import AuditEvent
from financeflow.models.execution import AggregateCounts, FrequencyTotal
from financeflow.models.ledger import LedgerEntry, LedgerTransaction
from financeflow.models.planned import OperationType, PlannedTransaction


class PlannedTransactionStoreInterface(ABC):
    """
    Abstract interface for planned transaction storage.

    List queries return records ordered by next_date ascending.
    """

    @abstractmethod
    def create(self, record: PlannedTransaction) -> PlannedTransaction:
        """
        Persist a new planned transaction.

        Returns:
            The stored record with id and timestamps assigned

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    def find_by_id(self, planned_id: int, user_id: int) -> Optional[PlannedTransaction]:
        """
        Retrieve a planned transaction owned by user_id.

        Returns:
            The record, or None when it is absent OR owned by someone else
            (the two cases are indistinguishable to the caller)
        """
        pass

    @abstractmethod
    def find_all(self, user_id: int, active_only: bool = False) -> list[PlannedTransaction]:
        pass

    @abstractmethod
    def find_all_due(self, user_id: int, as_of: date) -> list[PlannedTransaction]:
        """
        Active records with next_date <= as_of.

        as_of is inclusive: a record due exactly today is returned.
        """
        pass

    @abstractmethod
    def find_upcoming(
        self,
        user_id: int,
        as_of: date,
        horizon_days: int,
    ) -> list[PlannedTransaction]:
        """Active records with as_of <= next_date <= as_of + horizon_days."""
        pass

    @abstractmethod
    def find_by_operation_type(
        self,
        user_id: int,
        operation_type: OperationType,
        active_only: bool = True,
    ) -> list[PlannedTransaction]:
        pass

    @abstractmethod
    def find_by_category(
        self,
        user_id: int,
        category_id: int,
        active_only: bool = True,
    ) -> list[PlannedTransaction]:
        pass

    @abstractmethod
    def update(self, planned_id: int, user_id: int, changes: dict[str, Any]) -> bool:
        """
        Apply changes to the whitelisted fields of a planned transaction.

        Unknown keys are ignored.

        Returns:
            True if a record was updated
        """
        pass

    @abstractmethod
    def delete(self, planned_id: int, user_id: int) -> bool:
        pass

    @abstractmethod
    def persist_next_date(self, planned_id: int, user_id: int, new_date: date) -> bool:
        """
        Save the advanced next occurrence date.

        Returns:
            True if the date was written, False if nothing was updated
        """
        pass

    @abstractmethod
    def set_active(self, planned_id: int, user_id: int, active: bool) -> bool:
        pass

    @abstractmethod
    def aggregate_counts(self, user_id: int, as_of: date) -> AggregateCounts:
        """
        Count total / active / inactive / due / active income / active expense
        records in a single round trip.
        """
        pass

    @abstractmethod
    def sum_amounts_by_type_and_frequency(self, user_id: int) -> list[FrequencyTotal]:
        """Sum active amounts grouped by (operation_type, frequency)."""
        pass


class LedgerInterface(ABC):
    """
    Abstract interface for the ledger that receives real postings.

    A posting is immutable once created. Implementations raise on any
    rejection (validation, storage); the engine treats every exception as a
    failed write.
    """

    @abstractmethod
    def create_transaction(self, entry: LedgerEntry) -> LedgerTransaction:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        pass

    @abstractmethod
    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        """Events of one sweep in chronological order."""
        pass

    @abstractmethod
    def get_events_by_entity(self, entity_type: str, entity_id: int) -> list[AuditEvent]:
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
