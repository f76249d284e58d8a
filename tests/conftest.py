"""Shared test fixtures for the sheetlink test suite."""

from __future__ import annotations

import aiosqlite
import pytest
from fakes import FakeClock

from sheetlink.cache import RecordCache, SqliteRecordStore
from sheetlink.models.records import URLRecord


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def cache(clock: FakeClock) -> RecordCache:
    """Memory-only cache with the default 5 / 15 minute policy."""
    return RecordCache(fresh_seconds=300, stale_seconds=900, clock=clock)


@pytest.fixture()
async def store():
    async with aiosqlite.connect(":memory:") as db:
        record_store = SqliteRecordStore(db)
        await record_store.init_db()
        yield record_store


@pytest.fixture()
def sample_records() -> list[URLRecord]:
    """The records SAMPLE_CSV validates to."""
    return [
        URLRecord(id="abc123", to="https://example.com", description="Test", title="Example"),
        URLRecord(
            id="Docs2024",
            to="https://docs.example.org/guide?lang=ko",
            description="Guide, with comma",
        ),
        URLRecord(
            id="zz99yy", to="https://example.net/a", description='He said "hi"', title="Quote"
        ),
    ]
