"""Services package."""

from financeflow.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    InMemoryAuditStorage,
    InMemoryLedger,
    InMemoryPlannedTransactionStore,
    LedgerInterface,
    PlannedTransactionStoreInterface,
    SQLiteDatabase,
    SQLiteLedger,
    SQLitePlannedTransactionStore,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "InMemoryAuditStorage",
    "InMemoryLedger",
    "InMemoryPlannedTransactionStore",
    "LedgerInterface",
    "PlannedTransactionStoreInterface",
    "SQLiteDatabase",
    "SQLiteLedger",
    "SQLitePlannedTransactionStore",
    "StorageError",
]
