"""
Storage Services Package

Provides the abstract ledger store and its backends.
JSON files are the default; Google Sheets and memory are swappable.
"""

from typing import Optional

from rent_ledger.config import LedgerSettings, get_settings
from rent_ledger.services.storage.interface import (
    COLLECTIONS,
    PROPERTIES,
    TENANTS,
    TRANSACTIONS,
    ConnectionError,
    CorruptSnapshotError,
    LedgerSnapshot,
    LedgerStore,
    StorageError,
    StorageWarning,
)
from rent_ledger.services.storage.json_file import JsonFileLedgerStore
from rent_ledger.services.storage.memory import InMemoryLedgerStore
from rent_ledger.services.storage.seed import demo_snapshot


def create_store(settings: Optional[LedgerSettings] = None) -> LedgerStore:
    """Build the store selected by configuration."""
    settings = settings or get_settings().ledger
    seed_factory = demo_snapshot if settings.seed_demo_data else None

    if settings.storage_backend == "memory":
        return InMemoryLedgerStore(seed_factory=seed_factory)
    if settings.storage_backend == "sheets":
        # Imported lazily so gspread is only touched when selected
        from rent_ledger.services.storage.google_sheets import GoogleSheetsLedgerStore
        return GoogleSheetsLedgerStore(seed_factory=seed_factory)
    return JsonFileLedgerStore(settings.data_dir, seed_factory=seed_factory)


__all__ = [
    # Interface
    "COLLECTIONS",
    "PROPERTIES",
    "TENANTS",
    "TRANSACTIONS",
    "LedgerSnapshot",
    "LedgerStore",
    "StorageWarning",
    # Exceptions
    "ConnectionError",
    "CorruptSnapshotError",
    "StorageError",
    # Backends
    "InMemoryLedgerStore",
    "JsonFileLedgerStore",
    "create_store",
    "demo_snapshot",
]
