"""TTL key-value cache backed by a record store.

Entries live in the record-store collection ``cache`` as
``{"id": key, "value": <json text>, "expires_at": <epoch seconds>}``.
Expiry is lazy: a read past ``expires_at`` purges the entry and reports a
miss. Writes are last-write-wins.

Cache failures are never fatal. A store or serialization error on ``set``
returns False and the caller proceeds uncached; on ``get`` it is a miss.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Optional

from config.defaults import CACHE_COLLECTION, CACHE_TTL_SECONDS
from crisisfusion.io.persistence import dumps
from crisisfusion.io.record_store import RecordStore
from crisisfusion.models.cache import CacheEntry

logger = logging.getLogger(__name__)


class TTLCache:
    """Time-to-live cache in front of a RecordStore.

    Args:
        store: Record store holding the ``cache`` collection.
        default_ttl: TTL applied when ``set`` is called without one.
        clock: Returns the current time in epoch seconds.
        collection: Collection name for entries.
    """

    def __init__(
        self,
        store: RecordStore,
        default_ttl: int = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        collection: str = CACHE_COLLECTION,
    ) -> None:
        self.store = store
        self.default_ttl = default_ttl
        self.clock = clock
        self.collection = collection

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value for key, or None on miss or expiry."""
        try:
            records = self.store.get(self.collection, {"id": key})
        except Exception as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None

        if not records:
            logger.debug("Cache miss: %s", key)
            return None

        try:
            entry = CacheEntry.from_record(records[0])
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Discarding malformed cache entry %s: %s", key, exc)
            self.delete(key)
            return None

        if entry.is_expired(self.clock()):
            logger.debug("Cache expired: %s", key)
            self.delete(key)
            return None

        try:
            value = json.loads(entry.value)
        except (json.JSONDecodeError, TypeError) as exc:
            logger.warning("Discarding undecodable cache entry %s: %s", key, exc)
            self.delete(key)
            return None

        logger.debug("Cache hit: %s", key)
        return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        """Store value under key for ttl_seconds, replacing any prior entry.

        Returns:
            True if the entry was written, False on serialization or store failure.
        """
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        try:
            serialized = dumps(value)
        except (TypeError, ValueError) as exc:
            logger.warning("Cache value for %s is not serializable: %s", key, exc)
            return False

        entry = CacheEntry(key=key, value=serialized, expires_at=self.clock() + ttl)
        try:
            self.store.put(self.collection, entry.to_record())
        except Exception as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)
            return False

        logger.debug("Cache set: %s (ttl=%ss)", key, ttl)
        return True

    def delete(self, key: str) -> bool:
        """Remove key from the cache. Returns True if an entry was removed."""
        try:
            removed = self.store.delete(self.collection, key)
        except Exception as exc:
            logger.warning("Cache delete failed for %s: %s", key, exc)
            return False
        if removed:
            logger.debug("Cache delete: %s", key)
        return removed
