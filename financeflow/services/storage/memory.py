"""
In-Memory Storage Implementation

Dictionary-backed implementations of the store, ledger and audit
interfaces. Used by the test-suite and for quick local experiments; nothing
survives the process.

Records are copied on the way in and on the way out, so callers can never
mutate stored state by holding on to a returned model.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from itertools import count
from typing import Any, Callable, Optional
from uuid import UUID

from financeflow.models.audit import AuditEvent
from financeflow.models.execution import AggregateCounts, FrequencyTotal
from financeflow.models.ledger import LedgerEntry, LedgerTransaction
from financeflow.models.planned import (
    UPDATABLE_FIELDS,
    OperationType,
    PlannedTransaction,
)
from financeflow.services.storage.interface import (
    AuditStorageInterface,
    LedgerInterface,
    PlannedTransactionStoreInterface,
)


class InMemoryPlannedTransactionStore(PlannedTransactionStoreInterface):
    """Planned transaction store kept in a dict keyed by id."""

    def __init__(self):
        self._records: dict[int, PlannedTransaction] = {}
        self._ids = count(1)

    def _select(
        self,
        user_id: int,
        predicate: Optional[Callable[[PlannedTransaction], bool]] = None,
    ) -> list[PlannedTransaction]:
        rows = [
            r for r in self._records.values()
            if r.user_id == user_id and (predicate is None or predicate(r))
        ]
        rows.sort(key=lambda r: (r.next_date, r.id))
        return [r.model_copy() for r in rows]

    def _owned(self, planned_id: int, user_id: int) -> Optional[PlannedTransaction]:
        record = self._records.get(planned_id)
        if record is None or record.user_id != user_id:
            return None
        return record

    def create(self, record: PlannedTransaction) -> PlannedTransaction:
        now = datetime.utcnow()
        stored = record.model_copy(
            update={"id": next(self._ids), "created_at": now, "updated_at": now}
        )
        self._records[stored.id] = stored
        return stored.model_copy()

    def find_by_id(self, planned_id: int, user_id: int) -> Optional[PlannedTransaction]:
        record = self._owned(planned_id, user_id)
        return record.model_copy() if record else None

    def find_all(self, user_id: int, active_only: bool = False) -> list[PlannedTransaction]:
        return self._select(user_id, lambda r: r.active or not active_only)

    def find_all_due(self, user_id: int, as_of: date) -> list[PlannedTransaction]:
        return self._select(user_id, lambda r: r.is_due(as_of))

    def find_upcoming(
        self,
        user_id: int,
        as_of: date,
        horizon_days: int,
    ) -> list[PlannedTransaction]:
        end = as_of + timedelta(days=horizon_days)
        return self._select(user_id, lambda r: r.active and as_of <= r.next_date <= end)

    def find_by_operation_type(
        self,
        user_id: int,
        operation_type: OperationType,
        active_only: bool = True,
    ) -> list[PlannedTransaction]:
        return self._select(
            user_id,
            lambda r: r.operation_type == operation_type and (r.active or not active_only),
        )

    def find_by_category(
        self,
        user_id: int,
        category_id: int,
        active_only: bool = True,
    ) -> list[PlannedTransaction]:
        return self._select(
            user_id,
            lambda r: r.category_id == category_id and (r.active or not active_only),
        )

    def update(self, planned_id: int, user_id: int, changes: dict[str, Any]) -> bool:
        record = self._owned(planned_id, user_id)
        allowed = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
        if record is None or not allowed:
            return False
        data = record.model_dump()
        data.update(allowed)
        data["updated_at"] = datetime.utcnow()
        self._records[planned_id] = PlannedTransaction.model_validate(data)
        return True

    def delete(self, planned_id: int, user_id: int) -> bool:
        if self._owned(planned_id, user_id) is None:
            return False
        del self._records[planned_id]
        return True

    def persist_next_date(self, planned_id: int, user_id: int, new_date: date) -> bool:
        return self.update(planned_id, user_id, {"next_date": new_date})

    def set_active(self, planned_id: int, user_id: int, active: bool) -> bool:
        return self.update(planned_id, user_id, {"active": active})

    def aggregate_counts(self, user_id: int, as_of: date) -> AggregateCounts:
        rows = [r for r in self._records.values() if r.user_id == user_id]
        active = [r for r in rows if r.active]
        return AggregateCounts(
            total=len(rows),
            active=len(active),
            inactive=len(rows) - len(active),
            due=sum(1 for r in active if r.next_date <= as_of),
            income_active=sum(1 for r in active if r.operation_type == OperationType.INCOME),
            expense_active=sum(1 for r in active if r.operation_type == OperationType.EXPENSE),
        )

    def sum_amounts_by_type_and_frequency(self, user_id: int) -> list[FrequencyTotal]:
        groups: dict[tuple[OperationType, str], Decimal] = {}
        for r in self._records.values():
            if r.user_id != user_id or not r.active:
                continue
            key = (r.operation_type, r.frequency.value)
            groups[key] = groups.get(key, Decimal("0")) + r.amount
        return [
            FrequencyTotal(operation_type=op, frequency=freq, total_amount=total)
            for (op, freq), total in groups.items()
        ]


class InMemoryLedger(LedgerInterface):
    """Ledger that appends postings to a list."""

    def __init__(self):
        self.transactions: list[LedgerTransaction] = []
        self._ids = count(1)

    def create_transaction(self, entry: LedgerEntry) -> LedgerTransaction:
        transaction = LedgerTransaction(id=next(self._ids), **entry.model_dump())
        self.transactions.append(transaction)
        return transaction

    def for_planned(self, planned_id: int) -> list[LedgerTransaction]:
        return [t for t in self.transactions if t.planned_transaction_id == planned_id]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    def get_events_by_entity(self, entity_type: str, entity_id: int) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
