"""In-memory ledger store, used by tests and throwaway demo sessions."""

import json
from typing import Optional

from rent_ledger.services.storage.interface import (
    CorruptSnapshotError,
    LedgerStore,
    SeedFactory,
)


class InMemoryLedgerStore(LedgerStore):
    """
    Keeps each collection as a JSON string, so loads go through the same
    serialisation round-trip as the file and sheets backends.
    """

    def __init__(self, seed_factory: Optional[SeedFactory] = None):
        super().__init__(seed_factory)
        self._blobs: dict[tuple[str, str], str] = {}

    def _read_records(self, scope_key: str, collection: str) -> Optional[list[dict]]:
        blob = self._blobs.get((scope_key, collection))
        if blob is None:
            return None
        try:
            records = json.loads(blob)
        except json.JSONDecodeError as e:
            raise CorruptSnapshotError(f"{collection} is not valid JSON: {e}")
        if not isinstance(records, list):
            raise CorruptSnapshotError(f"{collection} does not contain a list")
        return records

    def _write_records(self, scope_key: str, collection: str, records: list[dict]) -> None:
        self._blobs[(scope_key, collection)] = json.dumps(records)

    def put_raw(self, scope_key: str, collection: str, blob: str) -> None:
        """Store an arbitrary string, bypassing serialisation."""
        self._blobs[(scope_key, collection)] = blob

    def scopes(self) -> set[str]:
        return {scope_key for scope_key, _ in self._blobs}
