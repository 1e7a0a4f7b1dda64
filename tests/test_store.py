"""
Tests for the planned transaction store and the ledger.

Store behaviour is checked against both backends; SQLite-specific checks
(cent storage, retries, persistence across connections) are at the end.
"""

import sqlite3

import pytest
from datetime import date
from decimal import Decimal

from financeflow.models import Frequency, LedgerEntry, OperationType
from financeflow.services.storage import (
    ConnectionError,
    InMemoryLedger,
    InMemoryPlannedTransactionStore,
    SQLiteDatabase,
    SQLiteLedger,
    SQLitePlannedTransactionStore,
    StorageError,
)

from conftest import OTHER_USER_ID, TODAY, USER_ID, make_record


@pytest.fixture
def database(tmp_path):
    db = SQLiteDatabase(path=str(tmp_path / "planned.db")).initialize()
    yield db
    db.close()


@pytest.fixture(params=["memory", "sqlite"])
def backend(request, tmp_path):
    if request.param == "memory":
        yield InMemoryPlannedTransactionStore()
    else:
        db = SQLiteDatabase(path=str(tmp_path / "backend.db")).initialize()
        yield SQLitePlannedTransactionStore(db)
        db.close()


class TestStoreReads:
    """Lookup and filtering, scoped by user."""

    def test_create_assigns_id_and_timestamps(self, backend):
        created = backend.create(make_record())
        assert created.id is not None
        assert created.created_at is not None
        assert created.amount == Decimal("1200.00")

    def test_find_by_id_is_user_scoped(self, backend):
        created = backend.create(make_record())
        assert backend.find_by_id(created.id, USER_ID).title == "Rent"
        assert backend.find_by_id(created.id, OTHER_USER_ID) is None

    def test_find_by_id_missing(self, backend):
        assert backend.find_by_id(12345, USER_ID) is None

    def test_round_trips_optional_fields(self, backend):
        created = backend.create(make_record(
            description="Loan",
            interest_rate=Decimal("3.5"),
            duration=24,
            duration_unit="month",
            category_id=1,
            sub_category_id=2,
            account_id=3,
        ))
        stored = backend.find_by_id(created.id, USER_ID)
        assert stored.description == "Loan"
        assert stored.interest_rate == Decimal("3.5")
        assert stored.duration == 24
        assert stored.duration_unit.value == "month"
        assert (stored.category_id, stored.sub_category_id, stored.account_id) == (1, 2, 3)

    def test_find_all_orders_by_next_date(self, backend):
        later = backend.create(make_record(title="Later", next_date=date(2024, 5, 1)))
        sooner = backend.create(make_record(title="Sooner", next_date=date(2024, 2, 1)))
        paused = backend.create(make_record(title="Paused", active=False))
        backend.create(make_record(user_id=OTHER_USER_ID))

        assert [r.id for r in backend.find_all(USER_ID)] == [sooner.id, paused.id, later.id]
        assert [r.id for r in backend.find_all(USER_ID, active_only=True)] == [sooner.id, later.id]

    def test_find_all_due(self, backend):
        overdue = backend.create(make_record(next_date=date(2024, 2, 1)))
        today = backend.create(make_record(next_date=TODAY))
        backend.create(make_record(next_date=date(2024, 3, 2)))
        backend.create(make_record(next_date=date(2024, 1, 1), active=False))
        backend.create(make_record(next_date=TODAY, user_id=OTHER_USER_ID))

        assert [r.id for r in backend.find_all_due(USER_ID, TODAY)] == [overdue.id, today.id]

    def test_find_upcoming_window_is_inclusive(self, backend):
        backend.create(make_record(next_date=date(2024, 2, 29)))
        start = backend.create(make_record(next_date=TODAY))
        end = backend.create(make_record(next_date=date(2024, 3, 31)))
        backend.create(make_record(next_date=date(2024, 4, 1)))
        backend.create(make_record(next_date=date(2024, 3, 10), active=False))

        upcoming = backend.find_upcoming(USER_ID, TODAY, 30)
        assert [r.id for r in upcoming] == [start.id, end.id]

    def test_find_by_operation_type(self, backend):
        income = backend.create(make_record(operation_type=OperationType.INCOME))
        backend.create(make_record(operation_type=OperationType.EXPENSE))
        paused = backend.create(make_record(operation_type=OperationType.INCOME, active=False))

        assert [r.id for r in backend.find_by_operation_type(USER_ID, OperationType.INCOME)] == [
            income.id
        ]
        assert len(backend.find_by_operation_type(
            USER_ID, OperationType.INCOME, active_only=False
        )) == 2
        assert paused.id not in [
            r.id for r in backend.find_by_operation_type(USER_ID, OperationType.INCOME)
        ]

    def test_find_by_category(self, backend):
        food = backend.create(make_record(category_id=7))
        backend.create(make_record(category_id=8))
        assert [r.id for r in backend.find_by_category(USER_ID, 7)] == [food.id]


class TestStoreWrites:
    """Mutations, scoped by user."""

    def test_update_fields(self, backend):
        created = backend.create(make_record())
        assert backend.update(created.id, USER_ID, {
            "title": "New rent",
            "amount": Decimal("1250.00"),
            "frequency": Frequency.WEEKLY,
        }) is True
        stored = backend.find_by_id(created.id, USER_ID)
        assert stored.title == "New rent"
        assert stored.amount == Decimal("1250.00")
        assert stored.frequency == Frequency.WEEKLY

    def test_update_can_clear_optional_field(self, backend):
        created = backend.create(make_record(description="old"))
        backend.update(created.id, USER_ID, {"description": None})
        assert backend.find_by_id(created.id, USER_ID).description is None

    def test_update_ignores_unknown_fields(self, backend):
        created = backend.create(make_record())
        assert backend.update(created.id, USER_ID, {"user_id": OTHER_USER_ID}) is False
        assert backend.find_by_id(created.id, USER_ID) is not None

    def test_update_other_user(self, backend):
        created = backend.create(make_record())
        assert backend.update(created.id, OTHER_USER_ID, {"title": "Hijacked"}) is False
        assert backend.find_by_id(created.id, USER_ID).title == "Rent"

    def test_persist_next_date(self, backend):
        created = backend.create(make_record())
        assert backend.persist_next_date(created.id, USER_ID, date(2024, 4, 1)) is True
        assert backend.find_by_id(created.id, USER_ID).next_date == date(2024, 4, 1)

    def test_persist_next_date_missing_row(self, backend):
        assert backend.persist_next_date(999, USER_ID, date(2024, 4, 1)) is False

    def test_set_active(self, backend):
        created = backend.create(make_record())
        backend.set_active(created.id, USER_ID, False)
        assert backend.find_by_id(created.id, USER_ID).active is False
        assert backend.find_all_due(USER_ID, TODAY) == []

    def test_delete(self, backend):
        created = backend.create(make_record())
        assert backend.delete(created.id, OTHER_USER_ID) is False
        assert backend.delete(created.id, USER_ID) is True
        assert backend.find_by_id(created.id, USER_ID) is None
        assert backend.delete(created.id, USER_ID) is False


class TestStoreAggregates:
    """Counting and grouped sums done by the store."""

    def test_aggregate_counts(self, backend):
        backend.create(make_record(operation_type=OperationType.INCOME))
        backend.create(make_record(next_date=date(2024, 6, 1)))
        backend.create(make_record(next_date=date(2024, 2, 1)))
        backend.create(make_record(active=False))
        backend.create(make_record(user_id=OTHER_USER_ID))

        counts = backend.aggregate_counts(USER_ID, TODAY)

        assert counts.total == 4
        assert counts.active == 3
        assert counts.inactive == 1
        assert counts.due == 2
        assert counts.income_active == 1
        assert counts.expense_active == 2

    def test_aggregate_counts_empty(self, backend):
        counts = backend.aggregate_counts(USER_ID, TODAY)
        assert counts.total == 0
        assert counts.due == 0

    def test_sum_by_type_and_frequency(self, backend):
        backend.create(make_record(amount=Decimal("100.10")))
        backend.create(make_record(amount=Decimal("200.20")))
        backend.create(make_record(amount=Decimal("50.00"), frequency=Frequency.WEEKLY))
        backend.create(make_record(amount=Decimal("999.00"), active=False))
        backend.create(make_record(
            amount=Decimal("3000.00"), operation_type=OperationType.INCOME
        ))

        totals = {
            (t.operation_type, t.frequency): t.total_amount
            for t in backend.sum_amounts_by_type_and_frequency(USER_ID)
        }

        assert totals == {
            (OperationType.EXPENSE, "monthly"): Decimal("300.30"),
            (OperationType.EXPENSE, "weekly"): Decimal("50.00"),
            (OperationType.INCOME, "monthly"): Decimal("3000.00"),
        }


class TestLedgers:
    """Tests for the bundled ledgers."""

    def _entry(self, **overrides):
        data = {
            "title": "Rent",
            "amount": Decimal("-1200.00"),
            "posting_date": TODAY,
            "user_id": USER_ID,
            "planned_transaction_id": 1,
        }
        data.update(overrides)
        return LedgerEntry(**data)

    def test_in_memory_ledger(self):
        ledger = InMemoryLedger()
        first = ledger.create_transaction(self._entry())
        second = ledger.create_transaction(self._entry(planned_transaction_id=2))
        assert (first.id, second.id) == (1, 2)
        assert ledger.for_planned(1) == [first]

    def test_sqlite_ledger_keeps_sign(self, database):
        ledger = SQLiteLedger(database)
        posted = ledger.create_transaction(self._entry())
        assert posted.id is not None
        assert posted.amount == Decimal("-1200.00")
        assert posted.posting_date == TODAY
        assert ledger.list_for_user(USER_ID) == [posted]
        assert ledger.list_for_user(OTHER_USER_ID) == []


class TestSQLiteSpecifics:
    """Behaviour only the SQLite backend has."""

    def test_amount_stored_as_cents(self, database):
        store = SQLitePlannedTransactionStore(database)
        created = store.create(make_record(amount=Decimal("19.99")))
        row = database.get_connection().execute(
            "SELECT amount_cents FROM planned_transaction WHERE id = ?", (created.id,)
        ).fetchone()
        assert row["amount_cents"] == 1999

    def test_data_survives_reopen(self, tmp_path):
        path = str(tmp_path / "reopen.db")
        db = SQLiteDatabase(path=path).initialize()
        created = SQLitePlannedTransactionStore(db).create(make_record())
        db.close()

        reopened = SQLiteDatabase(path=path).initialize()
        try:
            assert SQLitePlannedTransactionStore(reopened).find_by_id(
                created.id, USER_ID
            ).title == "Rent"
        finally:
            reopened.close()

    def test_schema_rejects_bad_rows(self, database):
        store = SQLitePlannedTransactionStore(database)
        created = store.create(make_record())
        with pytest.raises(StorageError):
            store._write(
                "UPDATE planned_transaction SET amount_cents = 0 WHERE id = ?",
                (created.id,),
            )

    def test_unopenable_database_raises_connection_error(self, tmp_path):
        db = SQLiteDatabase(path=str(tmp_path / "missing" / "dir" / "x.db"))
        with pytest.raises(ConnectionError):
            db.get_connection()

    def test_open_is_retried(self, tmp_path, monkeypatch):
        attempts = []
        real_connect = sqlite3.connect

        def flaky_connect(*args, **kwargs):
            attempts.append(1)
            if len(attempts) < 2:
                raise sqlite3.OperationalError("database is locked")
            return real_connect(*args, **kwargs)

        monkeypatch.setattr(sqlite3, "connect", flaky_connect)
        monkeypatch.setattr(SQLiteDatabase._open.retry, "sleep", lambda _: None)

        db = SQLiteDatabase(path=str(tmp_path / "retry.db")).initialize()
        try:
            assert len(attempts) == 2
        finally:
            db.close()
