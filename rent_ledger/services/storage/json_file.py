"""
JSON File Storage Implementation

One JSON array per (scope, collection):

    <data_dir>/<quoted scope key>/<collection>.json

Writes go to a temporary file first and are moved into place with
os.replace, so a crash mid-write leaves the previous snapshot intact.
"""

import json
import os
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from rent_ledger.services.storage.interface import (
    CorruptSnapshotError,
    LedgerStore,
    SeedFactory,
    StorageError,
)


class JsonFileLedgerStore(LedgerStore):
    """Local-disk ledger store. Last write wins."""

    def __init__(self, data_dir: Path, seed_factory: Optional[SeedFactory] = None):
        super().__init__(seed_factory)
        self._data_dir = Path(data_dir)

    def _path(self, scope_key: str, collection: str) -> Path:
        # quote() is reversible, so two scope keys never share a directory
        return self._data_dir / quote(scope_key, safe="") / f"{collection}.json"

    def _read_records(self, scope_key: str, collection: str) -> Optional[list[dict]]:
        path = self._path(scope_key, collection)
        if not path.exists():
            return None
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}")
        try:
            records = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptSnapshotError(f"{path} is not valid JSON: {e}")
        if not isinstance(records, list):
            raise CorruptSnapshotError(f"{path} does not contain a list")
        return records

    def _write_records(self, scope_key: str, collection: str, records: list[dict]) -> None:
        path = self._path(scope_key, collection)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(records, indent=2), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}")
