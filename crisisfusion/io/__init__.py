"""CrisisFusion I/O package: record stores, TTL cache, and JSON persistence."""

from crisisfusion.io.cache import TTLCache
from crisisfusion.io.record_store import (
    InMemoryRecordStore,
    JsonFileRecordStore,
    RecordStore,
    build_record_store,
)

__all__ = [
    "TTLCache",
    "InMemoryRecordStore",
    "JsonFileRecordStore",
    "RecordStore",
    "build_record_store",
]
