"""
SQLite Storage Implementation

DESIGN DECISION: SQLite is the bundled persistent backend because:
1. No server to run for a single-user or small household deployment
2. The due / upcoming / stats queries map directly onto SQL filters and
   aggregates, so no record is loaded just to be counted
3. It is easy to swap for a server database behind the same interface

Amounts are stored as integer cents so that SUM() in the grouped projection
query stays exact. Dates are ISO strings, which compare correctly as text.
"""

import sqlite3
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from financeflow.config import get_settings
from financeflow.models.execution import AggregateCounts, FrequencyTotal
from financeflow.models.ledger import LedgerEntry, LedgerTransaction
from financeflow.models.planned import (
    UPDATABLE_FIELDS,
    DurationUnit,
    Frequency,
    OperationType,
    PlannedTransaction,
)
from financeflow.services.storage.interface import (
    ConnectionError,
    LedgerInterface,
    PlannedTransactionStoreInterface,
    StorageError,
)


SCHEMA = """
    CREATE TABLE IF NOT EXISTS planned_transaction (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id         INTEGER NOT NULL,
        title           TEXT    NOT NULL,
        description     TEXT,
        amount_cents    INTEGER NOT NULL CHECK(amount_cents > 0),
        operation_type  TEXT    NOT NULL CHECK(operation_type IN ('income','expense')),
        frequency       TEXT    NOT NULL CHECK(frequency IN ('daily','weekly','monthly','yearly')),
        next_date       TEXT    NOT NULL,
        interest_rate   TEXT,
        duration        INTEGER,
        duration_unit   TEXT CHECK(duration_unit IN ('day','month','year')),
        category_id     INTEGER,
        sub_category_id INTEGER,
        account_id      INTEGER,
        active          INTEGER NOT NULL DEFAULT 1,
        created_at      TEXT    NOT NULL,
        updated_at      TEXT    NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_planned_user_due
        ON planned_transaction (user_id, active, next_date);

    CREATE TABLE IF NOT EXISTS ledger_transaction (
        id                     INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id                INTEGER NOT NULL,
        title                  TEXT    NOT NULL,
        description            TEXT,
        amount_cents           INTEGER NOT NULL,
        posting_date           TEXT    NOT NULL,
        category_id            INTEGER,
        sub_category_id        INTEGER,
        account_id             INTEGER,
        planned_transaction_id INTEGER,
        created_at             TEXT    NOT NULL
    );
"""


def _to_cents(amount: Decimal) -> int:
    return int((amount * 100).to_integral_value())


def _from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(Decimal("0.01"))


def _to_column(field: str, value: Any) -> tuple[str, Any]:
    """Map a model field/value pair to its column name and SQLite value."""
    if field == "amount":
        return "amount_cents", _to_cents(value) if value is not None else None
    if value is None:
        return field, None
    if field == "active":
        return field, 1 if value else 0
    if isinstance(value, Enum):
        return field, value.value
    if isinstance(value, (date, datetime)):
        return field, value.isoformat()
    if isinstance(value, Decimal):
        return field, str(value)
    return field, value


class SQLiteDatabase:
    """
    Owns the SQLite connection and the schema.

    Opening the file is retried a few times: a database on a network mount
    or held by a backup job can be briefly unavailable.
    """

    def __init__(self, path: Optional[str] = None, timeout: Optional[float] = None):
        settings = get_settings().database
        self.path = path or settings.path
        self._timeout = timeout if timeout is not None else settings.timeout_seconds
        self._conn: Optional[sqlite3.Connection] = None

    @retry(
        retry=retry_if_exception_type(sqlite3.OperationalError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path, timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                self._conn = self._open()
            except sqlite3.Error as e:
                raise ConnectionError(f"Failed to open SQLite database {self.path}: {e}")
        return self._conn

    def initialize(self) -> "SQLiteDatabase":
        """Create tables and indexes if they don't exist yet."""
        conn = self.get_connection()
        conn.executescript(SCHEMA)
        conn.commit()
        return self

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


class SQLitePlannedTransactionStore(PlannedTransactionStoreInterface):
    """
    SQLite implementation of the planned transaction store.

    Every statement carries user_id in its WHERE clause.
    """

    def __init__(self, db: SQLiteDatabase):
        self._db = db

    def _row_to_model(self, row: sqlite3.Row) -> PlannedTransaction:
        return PlannedTransaction(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            description=row["description"],
            amount=_from_cents(row["amount_cents"]),
            operation_type=OperationType(row["operation_type"]),
            frequency=Frequency(row["frequency"]),
            next_date=date.fromisoformat(row["next_date"]),
            interest_rate=Decimal(row["interest_rate"]) if row["interest_rate"] is not None else None,
            duration=row["duration"],
            duration_unit=DurationUnit(row["duration_unit"]) if row["duration_unit"] else None,
            category_id=row["category_id"],
            sub_category_id=row["sub_category_id"],
            account_id=row["account_id"],
            active=bool(row["active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _query(self, where: str, params: tuple) -> list[PlannedTransaction]:
        try:
            rows = self._db.get_connection().execute(
                f"SELECT * FROM planned_transaction WHERE {where} "
                "ORDER BY next_date ASC, id ASC",
                params,
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to query planned transactions: {e}")
        return [self._row_to_model(r) for r in rows]

    def _write(self, sql: str, params: tuple) -> int:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"Failed to write planned transaction: {e}")
        return cursor.rowcount

    def create(self, record: PlannedTransaction) -> PlannedTransaction:
        now = datetime.utcnow().isoformat()
        fields = dict(_to_column(k, v) for k, v in record.model_dump(
            exclude={"id", "created_at", "updated_at"}
        ).items())
        fields["created_at"] = now
        fields["updated_at"] = now
        columns = ", ".join(fields)
        placeholders = ", ".join("?" for _ in fields)

        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                f"INSERT INTO planned_transaction ({columns}) VALUES ({placeholders})",
                tuple(fields.values()),
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"Failed to create planned transaction: {e}")

        return self.find_by_id(cursor.lastrowid, record.user_id)

    def find_by_id(self, planned_id: int, user_id: int) -> Optional[PlannedTransaction]:
        rows = self._query("id = ? AND user_id = ?", (planned_id, user_id))
        return rows[0] if rows else None

    def find_all(self, user_id: int, active_only: bool = False) -> list[PlannedTransaction]:
        if active_only:
            return self._query("user_id = ? AND active = 1", (user_id,))
        return self._query("user_id = ?", (user_id,))

    def find_all_due(self, user_id: int, as_of: date) -> list[PlannedTransaction]:
        return self._query(
            "user_id = ? AND active = 1 AND next_date <= ?",
            (user_id, as_of.isoformat()),
        )

    def find_upcoming(
        self,
        user_id: int,
        as_of: date,
        horizon_days: int,
    ) -> list[PlannedTransaction]:
        end = as_of + timedelta(days=horizon_days)
        return self._query(
            "user_id = ? AND active = 1 AND next_date BETWEEN ? AND ?",
            (user_id, as_of.isoformat(), end.isoformat()),
        )

    def find_by_operation_type(
        self,
        user_id: int,
        operation_type: OperationType,
        active_only: bool = True,
    ) -> list[PlannedTransaction]:
        where = "user_id = ? AND operation_type = ?"
        if active_only:
            where += " AND active = 1"
        return self._query(where, (user_id, operation_type.value))

    def find_by_category(
        self,
        user_id: int,
        category_id: int,
        active_only: bool = True,
    ) -> list[PlannedTransaction]:
        where = "user_id = ? AND category_id = ?"
        if active_only:
            where += " AND active = 1"
        return self._query(where, (user_id, category_id))

    def update(self, planned_id: int, user_id: int, changes: dict[str, Any]) -> bool:
        columns = dict(
            _to_column(k, v) for k, v in changes.items() if k in UPDATABLE_FIELDS
        )
        if not columns:
            return False
        columns["updated_at"] = datetime.utcnow().isoformat()
        assignments = ", ".join(f"{c} = ?" for c in columns)
        return self._write(
            f"UPDATE planned_transaction SET {assignments} WHERE id = ? AND user_id = ?",
            (*columns.values(), planned_id, user_id),
        ) > 0

    def delete(self, planned_id: int, user_id: int) -> bool:
        return self._write(
            "DELETE FROM planned_transaction WHERE id = ? AND user_id = ?",
            (planned_id, user_id),
        ) > 0

    def persist_next_date(self, planned_id: int, user_id: int, new_date: date) -> bool:
        return self.update(planned_id, user_id, {"next_date": new_date})

    def set_active(self, planned_id: int, user_id: int, active: bool) -> bool:
        return self.update(planned_id, user_id, {"active": active})

    def aggregate_counts(self, user_id: int, as_of: date) -> AggregateCounts:
        try:
            row = self._db.get_connection().execute(
                """SELECT
                       COUNT(*) AS total,
                       SUM(CASE WHEN active = 1 THEN 1 ELSE 0 END) AS active_count,
                       SUM(CASE WHEN active = 0 THEN 1 ELSE 0 END) AS inactive_count,
                       SUM(CASE WHEN active = 1 AND next_date <= ? THEN 1 ELSE 0 END) AS due_count,
                       SUM(CASE WHEN active = 1 AND operation_type = 'income' THEN 1 ELSE 0 END) AS income_count,
                       SUM(CASE WHEN active = 1 AND operation_type = 'expense' THEN 1 ELSE 0 END) AS expense_count
                   FROM planned_transaction
                   WHERE user_id = ?""",
                (as_of.isoformat(), user_id),
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to count planned transactions: {e}")

        # SUM() over zero rows is NULL
        return AggregateCounts(
            total=row["total"] or 0,
            active=row["active_count"] or 0,
            inactive=row["inactive_count"] or 0,
            due=row["due_count"] or 0,
            income_active=row["income_count"] or 0,
            expense_active=row["expense_count"] or 0,
        )

    def sum_amounts_by_type_and_frequency(self, user_id: int) -> list[FrequencyTotal]:
        try:
            rows = self._db.get_connection().execute(
                """SELECT operation_type, frequency, SUM(amount_cents) AS total_cents
                   FROM planned_transaction
                   WHERE user_id = ? AND active = 1
                   GROUP BY operation_type, frequency""",
                (user_id,),
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to sum planned transactions: {e}")

        return [
            FrequencyTotal(
                operation_type=OperationType(r["operation_type"]),
                frequency=r["frequency"],
                total_amount=_from_cents(r["total_cents"]),
            )
            for r in rows
        ]


class SQLiteLedger(LedgerInterface):
    """
    Minimal SQLite ledger.

    The real application posts through its transaction service; this
    implementation exists so that the engine can run end to end on one file.
    """

    def __init__(self, db: SQLiteDatabase):
        self._db = db

    def _row_to_model(self, row: sqlite3.Row) -> LedgerTransaction:
        return LedgerTransaction(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            description=row["description"],
            amount=_from_cents(row["amount_cents"]),
            posting_date=date.fromisoformat(row["posting_date"]),
            category_id=row["category_id"],
            sub_category_id=row["sub_category_id"],
            account_id=row["account_id"],
            planned_transaction_id=row["planned_transaction_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def create_transaction(self, entry: LedgerEntry) -> LedgerTransaction:
        conn = self._db.get_connection()
        try:
            cursor = conn.execute(
                """INSERT INTO ledger_transaction
                   (user_id, title, description, amount_cents, posting_date,
                    category_id, sub_category_id, account_id,
                    planned_transaction_id, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    entry.user_id, entry.title, entry.description,
                    _to_cents(entry.amount), entry.posting_date.isoformat(),
                    entry.category_id, entry.sub_category_id, entry.account_id,
                    entry.planned_transaction_id, datetime.utcnow().isoformat(),
                ),
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"Failed to post ledger transaction: {e}")

        row = conn.execute(
            "SELECT * FROM ledger_transaction WHERE id = ?", (cursor.lastrowid,)
        ).fetchone()
        return self._row_to_model(row)

    def list_for_user(self, user_id: int) -> list[LedgerTransaction]:
        rows = self._db.get_connection().execute(
            "SELECT * FROM ledger_transaction WHERE user_id = ? ORDER BY id",
            (user_id,),
        ).fetchall()
        return [self._row_to_model(r) for r in rows]
