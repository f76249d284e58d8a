"""Record cache with a fresh / stale / expired freshness policy.

``RecordCache`` holds the last validated record set in memory. Replacement
is a single attribute swap of an immutable ``CacheEntry``, so overlapping
coroutines never observe a half-written set.

An optional ``RecordStoreProtocol`` persists the entry across restarts.
``SqliteRecordStore`` catches ``aiosqlite.Error`` internally and degrades
gracefully: read failures return ``None`` (treated as a miss), write
failures are logged and ignored. Persistence is an optimisation, so
storage errors never cross the store boundary.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Literal

import aiosqlite
import structlog

from sheetlink.models.records import CacheEntry, CacheStatus, URLRecord

if TYPE_CHECKING:
    from sheetlink.protocols import RecordStoreProtocol

log = structlog.get_logger()

Freshness = Literal["empty", "fresh", "stale", "expired"]

DEFAULT_FRESH_SECONDS = 5 * 60
DEFAULT_STALE_SECONDS = 15 * 60


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RecordCache:
    """In-memory cache entry plus freshness policy."""

    def __init__(
        self,
        *,
        fresh_seconds: float = DEFAULT_FRESH_SECONDS,
        stale_seconds: float = DEFAULT_STALE_SECONDS,
        store: RecordStoreProtocol | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if stale_seconds < fresh_seconds:
            raise ValueError("stale_seconds must be >= fresh_seconds")
        self.fresh_seconds = fresh_seconds
        self.stale_seconds = stale_seconds
        self._store = store
        self._clock = clock
        self._entry: CacheEntry | None = None

    def get(self) -> CacheEntry | None:
        return self._entry

    async def put(self, records: Iterable[URLRecord]) -> CacheEntry:
        """Replace the whole entry with ``records`` stamped at the current time."""
        entry = CacheEntry(records=tuple(records), fetched_at=self._clock())
        self._entry = entry
        if self._store is not None:
            await self._store.save_entry(entry)
        log.debug("cache_updated", records=len(entry.records))
        return entry

    async def clear(self) -> None:
        self._entry = None
        if self._store is not None:
            await self._store.delete_entry()
        log.info("cache_cleared")

    async def load(self) -> bool:
        """Restore the persisted entry, if any. Returns True when one was loaded.

        An entry already held in memory is never overwritten.
        """
        if self._store is None or self._entry is not None:
            return False
        entry = await self._store.load_entry()
        if entry is None:
            return False
        self._entry = entry
        log.info(
            "cache_restored",
            records=len(entry.records),
            fetched_at=entry.fetched_at.isoformat(),
            freshness=self.freshness(),
        )
        return True

    def age_seconds(self) -> float | None:
        if self._entry is None:
            return None
        return max(0.0, (self._clock() - self._entry.fetched_at).total_seconds())

    def freshness(self) -> Freshness:
        age = self.age_seconds()
        if age is None:
            return "empty"
        if age < self.fresh_seconds:
            return "fresh"
        if age < self.stale_seconds:
            return "stale"
        return "expired"

    def status(self) -> CacheStatus:
        freshness = self.freshness()
        entry = self._entry
        return CacheStatus(
            has_data=entry is not None,
            is_fresh=freshness == "fresh",
            is_stale=freshness == "stale",
            is_expired=freshness == "expired",
            age_seconds=self.age_seconds(),
            record_count=len(entry.records) if entry is not None else 0,
        )


# ---------------------------------------------------------------------------
# SQLite persistence
# ---------------------------------------------------------------------------

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS record_cache (
    cache_key  TEXT PRIMARY KEY,
    records    TEXT NOT NULL,
    fetched_at TEXT NOT NULL
)
"""

_CACHE_KEY = "records"


class SqliteRecordStore:
    """SQLite-backed store implementing RecordStoreProtocol."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create the table and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_TABLE)
        await self._db.commit()

    async def load_entry(self) -> CacheEntry | None:
        """Read the persisted entry. Returns ``None`` on miss or read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT records, fetched_at FROM record_cache WHERE cache_key = ?",
                (_CACHE_KEY,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            records = tuple(URLRecord.model_validate(item) for item in json.loads(row[0]))
            return CacheEntry(records=records, fetched_at=datetime.fromisoformat(row[1]))
        except aiosqlite.Error:
            log.warning("cache_read_error", key=_CACHE_KEY, exc_info=True)
            return None
        except ValueError:
            # Corrupt JSON or a row written by an incompatible schema
            log.warning("cache_read_invalid", key=_CACHE_KEY, exc_info=True)
            return None

    async def save_entry(self, entry: CacheEntry) -> None:
        """Write the entry. Non-fatal on failure."""
        try:
            payload = json.dumps(
                [record.model_dump() for record in entry.records], ensure_ascii=False
            )
            await self._db.execute(
                "INSERT OR REPLACE INTO record_cache (cache_key, records, fetched_at) "
                "VALUES (?, ?, ?)",
                (_CACHE_KEY, payload, entry.fetched_at.isoformat()),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("cache_write_error", key=_CACHE_KEY, exc_info=True)

    async def delete_entry(self) -> None:
        """Remove the persisted entry. Non-fatal on failure."""
        try:
            await self._db.execute("DELETE FROM record_cache WHERE cache_key = ?", (_CACHE_KEY,))
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("cache_delete_error", key=_CACHE_KEY, exc_info=True)
