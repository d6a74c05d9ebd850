"""Record stores for CrisisFusion entity records and cache entries.

A record store holds plain-dict records grouped into named collections
("disasters", "resources", "reports", "cache"). Every record carries a
string ``id``; ``put`` upserts by id.

Two backends ship here:
    InMemoryRecordStore: process-local dicts, used by tests and the CLI.
    JsonFileRecordStore: one JSON file per collection, atomic rewrites.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol

from crisisfusion.io.persistence import load_json, save_json

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class RecordStore(Protocol):
    """Opaque record-store contract consumed by the Cache and the coordinator."""

    def get(self, collection: str, filter: Optional[Mapping[str, Any]] = None) -> List[Record]:
        ...

    def put(self, collection: str, record: Record) -> Record:
        ...

    def delete(self, collection: str, record_id: str) -> bool:
        ...


def _matches(record: Record, filter: Optional[Mapping[str, Any]]) -> bool:
    if not filter:
        return True
    return all(record.get(k) == v for k, v in filter.items())


def _with_id(record: Record) -> Record:
    stored = copy.deepcopy(dict(record))
    if not stored.get("id"):
        stored["id"] = str(uuid.uuid4())
    stored["id"] = str(stored["id"])
    return stored


class InMemoryRecordStore:
    """Thread-safe in-process record store.

    Records are deep-copied on the way in and out, so callers can never
    mutate stored state by accident.
    """

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Record]] = {}
        self._lock = threading.Lock()

    def get(self, collection: str, filter: Optional[Mapping[str, Any]] = None) -> List[Record]:
        with self._lock:
            records = list(self._collections.get(collection, {}).values())
        return [copy.deepcopy(r) for r in records if _matches(r, filter)]

    def put(self, collection: str, record: Record) -> Record:
        stored = _with_id(record)
        with self._lock:
            self._collections.setdefault(collection, {})[stored["id"]] = stored
        return copy.deepcopy(stored)

    def delete(self, collection: str, record_id: str) -> bool:
        with self._lock:
            return self._collections.get(collection, {}).pop(str(record_id), None) is not None


class JsonFileRecordStore:
    """Record store persisted as ``<root>/<collection>.json`` files.

    Each mutation rewrites its collection file atomically via save_json().
    A lock serializes writers inside one process; concurrent processes are
    last-write-wins.

    Args:
        root: Directory holding the collection files (created on first write).
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self._lock = threading.Lock()

    def _path(self, collection: str) -> Path:
        return self.root / f"{collection}.json"

    def _load(self, collection: str) -> Dict[str, Record]:
        data = load_json(self._path(collection))
        if not isinstance(data, dict):
            if data is not None:
                logger.warning("Ignoring malformed collection file %s", self._path(collection))
            return {}
        return data

    def get(self, collection: str, filter: Optional[Mapping[str, Any]] = None) -> List[Record]:
        with self._lock:
            records = self._load(collection)
        return [r for r in records.values() if _matches(r, filter)]

    def put(self, collection: str, record: Record) -> Record:
        stored = _with_id(record)
        with self._lock:
            records = self._load(collection)
            records[stored["id"]] = stored
            save_json(records, self._path(collection))
        return copy.deepcopy(stored)

    def delete(self, collection: str, record_id: str) -> bool:
        with self._lock:
            records = self._load(collection)
            if records.pop(str(record_id), None) is None:
                return False
            save_json(records, self._path(collection))
        return True


def build_record_store(backend: str, path: str | Path) -> RecordStore:
    """Construct a record store by backend name ("memory" or "json")."""
    backend = backend.lower()
    if backend == "memory":
        return InMemoryRecordStore()
    if backend == "json":
        return JsonFileRecordStore(path)
    raise ValueError(f"Unknown record store backend: {backend!r}")
