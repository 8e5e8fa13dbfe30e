"""Services package."""

from rent_ledger.services.storage import (
    ConnectionError,
    CorruptSnapshotError,
    InMemoryLedgerStore,
    JsonFileLedgerStore,
    LedgerSnapshot,
    LedgerStore,
    StorageError,
    StorageWarning,
    create_store,
)

__all__ = [
    "ConnectionError",
    "CorruptSnapshotError",
    "InMemoryLedgerStore",
    "JsonFileLedgerStore",
    "LedgerSnapshot",
    "LedgerStore",
    "StorageError",
    "StorageWarning",
    "create_store",
]
