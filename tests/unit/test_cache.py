"""Unit tests for crisisfusion.io.cache.TTLCache.

Covers:
- get/set round trip of JSON-compatible values
- Lazy expiry: reads past expires_at are misses and purge the entry
- Last-write-wins overwrite, delete
- Failure tolerance: store errors, unserializable values, corrupt entries
"""

from __future__ import annotations

from unittest.mock import MagicMock

from crisisfusion.io.cache import TTLCache
from crisisfusion.io.record_store import InMemoryRecordStore


class TestTTLCacheRoundTrip:
    def test_set_then_get_returns_value(self, cache):
        """A value stored with set must come back from get unchanged."""
        value = {"coordinates": {"latitude": 40.7, "longitude": -74.0}, "source": "mapbox"}
        assert cache.set("geocode_abc", value) is True
        assert cache.get("geocode_abc") == value

    def test_get_missing_key_returns_none(self, cache):
        """A key never written must be a miss."""
        assert cache.get("never_written") is None

    def test_list_values_supported(self, cache):
        """Lists of records must round-trip."""
        cache.set("social_media_d1_x", [{"id": "a"}, {"id": "b"}])
        assert cache.get("social_media_d1_x") == [{"id": "a"}, {"id": "b"}]

    def test_entry_stored_in_cache_collection(self, cache, record_store, fake_clock):
        """Entries must be records in the 'cache' collection with JSON text and expiry."""
        cache.set("k", {"a": 1}, ttl_seconds=60)

        record = record_store.get("cache", {"id": "k"})[0]
        assert record["value"] == '{"a": 1}'
        assert record["expires_at"] == fake_clock.now + 60


class TestTTLCacheExpiry:
    def test_value_visible_until_expiry(self, cache, fake_clock):
        """A read at exactly expires_at must still hit."""
        cache.set("k", "v", ttl_seconds=3600)
        fake_clock.advance(3600)
        assert cache.get("k") == "v"

    def test_value_absent_after_expiry(self, cache, fake_clock):
        """A read past expires_at must be a miss."""
        cache.set("k", "v", ttl_seconds=3600)
        fake_clock.advance(3601)
        assert cache.get("k") is None

    def test_expired_entry_is_purged(self, cache, record_store, fake_clock):
        """Reading an expired entry must delete it from the store."""
        cache.set("k", "v", ttl_seconds=10)
        fake_clock.advance(11)
        cache.get("k")
        assert record_store.get("cache", {"id": "k"}) == []

    def test_default_ttl_applies(self, record_store, fake_clock):
        """set without ttl_seconds must use the cache's default TTL."""
        cache = TTLCache(record_store, default_ttl=5, clock=fake_clock)
        cache.set("k", 1)
        fake_clock.advance(6)
        assert cache.get("k") is None

    def test_overwrite_refreshes_expiry(self, cache, fake_clock):
        """A second set must replace both value and expiry."""
        cache.set("k", "old", ttl_seconds=10)
        fake_clock.advance(8)
        cache.set("k", "new", ttl_seconds=10)
        fake_clock.advance(8)
        assert cache.get("k") == "new"


class TestTTLCacheDelete:
    def test_delete_existing_key(self, cache):
        """delete must remove the entry and report True."""
        cache.set("k", 1)
        assert cache.delete("k") is True
        assert cache.get("k") is None

    def test_delete_missing_key(self, cache):
        """Deleting an absent key must report False."""
        assert cache.delete("absent") is False


class TestTTLCacheFailureTolerance:
    def test_unserializable_value_not_stored(self, cache):
        """set must return False for values json cannot encode."""
        assert cache.set("k", {"bad": object()}) is False
        assert cache.get("k") is None

    def test_store_write_failure_returns_false(self, fake_clock):
        """A store error on put must be swallowed and reported as False."""
        store = MagicMock(spec=InMemoryRecordStore)
        store.put.side_effect = OSError("disk full")
        cache = TTLCache(store, clock=fake_clock)
        assert cache.set("k", 1) is False

    def test_store_read_failure_is_miss(self, fake_clock):
        """A store error on get must be treated as a miss."""
        store = MagicMock(spec=InMemoryRecordStore)
        store.get.side_effect = OSError("unavailable")
        cache = TTLCache(store, clock=fake_clock)
        assert cache.get("k") is None

    def test_corrupt_json_entry_discarded(self, cache, record_store):
        """An entry whose value is not JSON must be a miss and be purged."""
        record_store.put("cache", {"id": "k", "value": "{broken", "expires_at": 9e18})
        assert cache.get("k") is None
        assert record_store.get("cache", {"id": "k"}) == []

    def test_malformed_entry_discarded(self, cache, record_store):
        """An entry missing expires_at must be a miss and be purged."""
        record_store.put("cache", {"id": "k", "value": "1"})
        assert cache.get("k") is None
        assert record_store.get("cache", {"id": "k"}) == []
