"""
Shared fixtures for FinanceFlow tests.

Everything runs against the in-memory backend with a pinned clock, except
test_sqlite_store which opens a throwaway database under tmp_path.
"""

import pytest
from datetime import date
from decimal import Decimal

from financeflow.audit import AuditLogger
from financeflow.config import AppSettings
from financeflow.models.ledger import LedgerEntry, LedgerTransaction
from financeflow.models.planned import Frequency, OperationType, PlannedTransaction
from financeflow.orchestrator import ExecutionCoordinator, PlannedTransactionService
from financeflow.scheduling import FixedClock
from financeflow.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedger,
    InMemoryPlannedTransactionStore,
    StorageError,
)


TODAY = date(2024, 3, 1)
USER_ID = 1
OTHER_USER_ID = 2


class FailingLedger(InMemoryLedger):
    """Ledger that rejects postings for selected planned transaction ids."""

    def __init__(self, fail_for_ids=()):
        super().__init__()
        self.fail_for_ids = set(fail_for_ids)
        self.attempts: list[LedgerEntry] = []

    def create_transaction(self, entry: LedgerEntry) -> LedgerTransaction:
        self.attempts.append(entry)
        if entry.planned_transaction_id in self.fail_for_ids:
            raise StorageError(f"ledger unavailable for {entry.planned_transaction_id}")
        return super().create_transaction(entry)


class ScheduleLosingStore(InMemoryPlannedTransactionStore):
    """Store whose next-date writes fail for selected ids (by raising or returning False)."""

    def __init__(self, fail_for_ids=(), raise_error=False):
        super().__init__()
        self.fail_for_ids = set(fail_for_ids)
        self.raise_error = raise_error

    def persist_next_date(self, planned_id, user_id, new_date):
        if planned_id in self.fail_for_ids:
            if self.raise_error:
                raise StorageError("disk full")
            return False
        return super().persist_next_date(planned_id, user_id, new_date)


class UnreadableAfterSaveStore(InMemoryPlannedTransactionStore):
    """Store that can no longer read a record once its next date was saved."""

    def __init__(self):
        super().__init__()
        self.saved_ids: set[int] = set()

    def persist_next_date(self, planned_id, user_id, new_date):
        saved = super().persist_next_date(planned_id, user_id, new_date)
        if saved:
            self.saved_ids.add(planned_id)
        return saved

    def find_by_id(self, planned_id, user_id):
        if planned_id in self.saved_ids:
            raise StorageError("read replica lagging")
        return super().find_by_id(planned_id, user_id)


def make_record(**overrides) -> PlannedTransaction:
    data = {
        "user_id": USER_ID,
        "title": "Rent",
        "amount": Decimal("1200.00"),
        "operation_type": OperationType.EXPENSE,
        "frequency": Frequency.MONTHLY,
        "next_date": TODAY,
    }
    data.update(overrides)
    return PlannedTransaction(**data)


@pytest.fixture
def app_settings():
    return AppSettings(_env_file=None)


@pytest.fixture
def clock():
    return FixedClock(TODAY)


@pytest.fixture
def store():
    return InMemoryPlannedTransactionStore()


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(storage=audit_storage)


@pytest.fixture
def coordinator(store, ledger, clock, audit_logger, app_settings):
    return ExecutionCoordinator(
        store=store,
        ledger=ledger,
        clock=clock,
        audit_logger=audit_logger,
        settings=app_settings,
    )


@pytest.fixture
def service(store, clock, audit_logger, app_settings):
    return PlannedTransactionService(
        store=store,
        clock=clock,
        audit_logger=audit_logger,
        settings=app_settings,
    )
