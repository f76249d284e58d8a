"""Unit tests for sheetlink.cache."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import aiosqlite
import pytest

from sheetlink.cache import RecordCache
from sheetlink.models.records import CacheEntry, URLRecord

if TYPE_CHECKING:
    from fakes import FakeClock

    from sheetlink.cache import SqliteRecordStore


RECORDS = [
    URLRecord(id="abc123", to="https://example.com", description="Test"),
    URLRecord(id="xyz789", to="https://example.org", description="", title="Org"),
]


# ---------------------------------------------------------------------------
# Freshness policy
# ---------------------------------------------------------------------------


class TestFreshness:
    def test_empty_status(self, cache: RecordCache) -> None:
        status = cache.status()
        assert status.has_data is False
        assert not (status.is_fresh or status.is_stale or status.is_expired)
        assert status.age_seconds is None
        assert cache.freshness() == "empty"

    async def test_fresh_after_put(self, cache: RecordCache) -> None:
        await cache.put(RECORDS)
        status = cache.status()
        assert status.has_data is True
        assert status.is_fresh is True
        assert status.record_count == 2

    @pytest.mark.parametrize(
        ("elapsed", "expected"),
        [
            (0, "fresh"),
            (299.9, "fresh"),
            (300, "stale"),
            (899.9, "stale"),
            (900, "expired"),
            (86_400, "expired"),
        ],
    )
    async def test_thresholds(
        self, cache: RecordCache, clock: FakeClock, elapsed: float, expected: str
    ) -> None:
        await cache.put(RECORDS)
        clock.advance(elapsed)
        assert cache.freshness() == expected
        status = cache.status()
        assert status.is_fresh is (expected == "fresh")
        assert status.is_stale is (expected == "stale")
        assert status.is_expired is (expected == "expired")

    def test_stale_must_not_precede_fresh(self) -> None:
        with pytest.raises(ValueError):
            RecordCache(fresh_seconds=600, stale_seconds=60)


class TestReplacement:
    async def test_put_replaces_whole_entry(self, cache: RecordCache, clock: FakeClock) -> None:
        first = await cache.put(RECORDS)
        clock.advance(60)
        second = await cache.put(RECORDS[:1])
        assert cache.get() is second
        assert second is not first
        assert second.records == (RECORDS[0],)
        assert second.fetched_at == clock.now
        # The earlier entry object is untouched
        assert len(first.records) == 2

    async def test_put_resets_age(self, cache: RecordCache, clock: FakeClock) -> None:
        await cache.put(RECORDS)
        clock.advance(1000)
        assert cache.freshness() == "expired"
        await cache.put(RECORDS)
        assert cache.freshness() == "fresh"

    async def test_clear(self, cache: RecordCache) -> None:
        await cache.put(RECORDS)
        await cache.clear()
        assert cache.get() is None
        assert cache.status().has_data is False


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class TestPersistence:
    async def test_put_persists_and_load_restores(
        self, store: SqliteRecordStore, clock: FakeClock
    ) -> None:
        writer = RecordCache(store=store, clock=clock)
        await writer.put(RECORDS)

        reader = RecordCache(store=store, clock=clock)
        assert await reader.load() is True
        entry = reader.get()
        assert entry is not None
        assert list(entry.records) == RECORDS
        assert entry.fetched_at == clock.now

    async def test_restored_entry_keeps_its_age(
        self, store: SqliteRecordStore, clock: FakeClock
    ) -> None:
        await RecordCache(store=store, clock=clock).put(RECORDS)
        clock.advance(600)
        reader = RecordCache(store=store, clock=clock)
        await reader.load()
        assert reader.freshness() == "stale"

    async def test_load_without_store(self, cache: RecordCache) -> None:
        assert await cache.load() is False

    async def test_load_does_not_overwrite_memory(
        self, store: SqliteRecordStore, clock: FakeClock
    ) -> None:
        await RecordCache(store=store, clock=clock).put(RECORDS)
        cache = RecordCache(store=store, clock=clock)
        await cache.put(RECORDS[:1])
        assert await cache.load() is False
        entry = cache.get()
        assert entry is not None
        assert len(entry.records) == 1

    async def test_clear_removes_persisted_copy(
        self, store: SqliteRecordStore, clock: FakeClock
    ) -> None:
        cache = RecordCache(store=store, clock=clock)
        await cache.put(RECORDS)
        await cache.clear()
        assert await store.load_entry() is None

    async def test_store_roundtrip(self, store: SqliteRecordStore) -> None:
        entry = CacheEntry(records=tuple(RECORDS), fetched_at=datetime(2026, 3, 1, tzinfo=UTC))
        await store.save_entry(entry)
        assert await store.load_entry() == entry

    async def test_empty_store_returns_none(self, store: SqliteRecordStore) -> None:
        assert await store.load_entry() is None

    async def test_corrupt_row_returns_none(self, store: SqliteRecordStore) -> None:
        await store._db.execute(
            "INSERT INTO record_cache (cache_key, records, fetched_at) VALUES (?, ?, ?)",
            ("records", "{not json", "2026-01-01T00:00:00+00:00"),
        )
        await store._db.commit()
        assert await store.load_entry() is None

    async def test_read_failure_returns_none(self, store: SqliteRecordStore) -> None:
        """Simulate a database read error; should return None, not raise."""
        original_execute = store._db.execute

        async def failing_execute(*args, **kwargs):
            raise aiosqlite.OperationalError("disk I/O error")

        store._db.execute = failing_execute  # type: ignore[assignment]
        assert await store.load_entry() is None
        store._db.execute = original_execute  # type: ignore[assignment]

    async def test_write_failure_keeps_memory_entry(
        self, store: SqliteRecordStore, clock: FakeClock
    ) -> None:
        """A failed write is logged; the in-memory entry is still replaced."""
        original_execute = store._db.execute

        async def failing_execute(*args, **kwargs):
            raise aiosqlite.OperationalError("disk I/O error")

        cache = RecordCache(store=store, clock=clock)
        store._db.execute = failing_execute  # type: ignore[assignment]
        await cache.put(RECORDS)
        await cache.clear()
        await cache.put(RECORDS)
        store._db.execute = original_execute  # type: ignore[assignment]

        assert cache.status().record_count == 2
