"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the planned
transaction store, the ledger and the audit log. Ships an in-memory backend
and a SQLite backend; both are swappable behind the interfaces.
"""

from financeflow.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerInterface,
    PlannedTransactionStoreInterface,
    StorageError,
)
from financeflow.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedger,
    InMemoryPlannedTransactionStore,
)
from financeflow.services.storage.sqlite import (
    SQLiteDatabase,
    SQLiteLedger,
    SQLitePlannedTransactionStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerInterface",
    "PlannedTransactionStoreInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedger",
    "InMemoryPlannedTransactionStore",
    # SQLite implementation
    "SQLiteDatabase",
    "SQLiteLedger",
    "SQLitePlannedTransactionStore",
]
