"""
Ledger Store Interface

DESIGN DECISION: The store is a pure data holder. It knows three named
collections per scope and nothing about balances.

    load(scope_key)                       -> LedgerSnapshot
    save(scope_key, collection, records)  whole-collection replace

Backends only implement raw record reads/writes. Parsing, seed fallback and
corruption handling live here, so every backend recovers the same way:
an unreadable snapshot is treated as absent, the seed is used, and the
problem comes back to the caller as a warning - never as an exception.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from rent_ledger.models.ledger import (
    Property,
    PropertyList,
    Tenant,
    TenantList,
    Transaction,
    TransactionList,
)

PROPERTIES = "properties"
TENANTS = "tenants"
TRANSACTIONS = "transactions"
COLLECTIONS = (PROPERTIES, TENANTS, TRANSACTIONS)

_ADAPTERS = {
    PROPERTIES: PropertyList,
    TENANTS: TenantList,
    TRANSACTIONS: TransactionList,
}


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptSnapshotError(StorageError):
    """Stored data exists but cannot be parsed."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class StorageWarning(BaseModel):
    """A recovered storage problem, reported to the caller."""

    collection: str
    message: str


class LedgerSnapshot(BaseModel):
    """Everything stored for one scope."""

    properties: list[Property] = Field(default_factory=list)
    tenants: list[Tenant] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)

    # True when nothing usable was stored and the seed was returned
    from_seed: bool = False
    warnings: list[StorageWarning] = Field(default_factory=list)


SeedFactory = Callable[[], LedgerSnapshot]


class LedgerStore(ABC):
    """
    Abstract base for ledger storage.

    Any backend (JSON files, Google Sheets, memory) implements
    _read_records and _write_records.
    """

    def __init__(self, seed_factory: Optional[SeedFactory] = None):
        """
        Args:
            seed_factory: Builds the fallback snapshot. Defaults to empty
                          collections.
        """
        self._seed_factory = seed_factory or LedgerSnapshot
        self._logger = structlog.get_logger(self.__class__.__name__)

    @abstractmethod
    def _read_records(self, scope_key: str, collection: str) -> Optional[list[dict]]:
        """
        Read one collection's raw records.

        Returns:
            The records, or None if the collection was never saved

        Raises:
            StorageError: If the data exists but cannot be read
        """
        pass

    @abstractmethod
    def _write_records(self, scope_key: str, collection: str, records: list[dict]) -> None:
        """
        Replace one collection's records.

        Raises:
            StorageError: If the write fails
        """
        pass

    def _seed(self, warnings: list[StorageWarning]) -> LedgerSnapshot:
        snapshot = self._seed_factory()
        return snapshot.model_copy(update={"from_seed": True, "warnings": warnings})

    def load(self, scope_key: str) -> LedgerSnapshot:
        """
        Load the last saved snapshot for a scope.

        Falls back to the seed when nothing was saved, or when any
        collection is unreadable (with a warning per failure).
        """
        raw: dict[str, Any] = {}
        for collection in COLLECTIONS:
            try:
                raw[collection] = self._read_records(scope_key, collection)
            except StorageError as e:
                return self._recover(scope_key, collection, e)

        if all(records is None for records in raw.values()):
            self._logger.info("ledger_seeded", scope_key=scope_key)
            return self._seed([])

        parsed = {}
        for collection in COLLECTIONS:
            try:
                parsed[collection] = _ADAPTERS[collection].validate_python(
                    raw[collection] or []
                )
            except ValidationError as e:
                return self._recover(scope_key, collection, e)

        return LedgerSnapshot(**parsed)

    def _recover(
        self,
        scope_key: str,
        collection: str,
        error: Exception,
    ) -> LedgerSnapshot:
        message = f"Stored {collection} could not be read: {error}"
        self._logger.warning(
            "ledger_snapshot_unreadable",
            scope_key=scope_key,
            collection=collection,
            error=str(error),
        )
        return self._seed([StorageWarning(collection=collection, message=message)])

    def save(self, scope_key: str, collection: str, records: list[BaseModel]) -> None:
        """
        Replace a whole collection for a scope.

        Raises:
            ValueError: If the collection name is unknown
            StorageError: If the backend write fails
        """
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {collection}")
        payload = [record.model_dump(mode="json") for record in records]
        self._write_records(scope_key, collection, payload)
        self._logger.debug(
            "ledger_collection_saved",
            scope_key=scope_key,
            collection=collection,
            count=len(payload),
        )

    def save_snapshot(self, scope_key: str, snapshot: LedgerSnapshot) -> None:
        """Save all three collections of a snapshot."""
        self.save(scope_key, PROPERTIES, snapshot.properties)
        self.save(scope_key, TENANTS, snapshot.tenants)
        self.save(scope_key, TRANSACTIONS, snapshot.transactions)
